import json
import re
from typing import Any, Mapping

from pydantic import BaseModel

from site_research.errors import MissingPromptInputsError
from site_research.prompts.models import PromptParams, PromptSpec

USER_INPUT_OPEN = "<<<USER_INPUT>>>"
USER_INPUT_CLOSE = "<<<END_USER_INPUT>>>"

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class RenderedPrompt(BaseModel):
    system: str
    user: str
    model: str
    params: PromptParams


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def stringify_input(value: Any) -> str:
    """Render an input value as prompt text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, (list, tuple)):
        if all(isinstance(v, (str, int, float)) for v in value):
            return ", ".join(str(v) for v in value)
        return json.dumps(value, default=str)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str)
    return str(value)


def render_template(template: str, values: Mapping[str, str], strip_unresolved: bool = False) -> str:
    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key in values:
            return values[key]
        return "" if strip_unresolved else match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def render_prompt(
    spec: PromptSpec,
    inputs: Mapping[str, Any],
    *,
    safe_delimit: bool = True,
    strip_unresolved: bool = False,
) -> RenderedPrompt:
    """Fill the prompt's templates from ``inputs``.

    Raises MissingPromptInputsError naming every missing required key.
    """
    missing = [key for key in spec.inputs.required if _is_missing(inputs.get(key))]
    if missing:
        raise MissingPromptInputsError(spec.key, missing)

    values: dict[str, str] = {}
    for key in spec.inputs.declared:
        text = stringify_input(inputs.get(key))
        if safe_delimit and text:
            text = f"{USER_INPUT_OPEN}{text}{USER_INPUT_CLOSE}"
        values[key] = text

    return RenderedPrompt(
        system=render_template(spec.system, values, strip_unresolved),
        user=render_template(spec.user, values, strip_unresolved),
        model=spec.models[0],
        params=spec.params,
    )


def extract_placeholders(template: str) -> list[str]:
    """Placeholder names in first-seen order, without duplicates."""
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(template)))


def validate_template_placeholders(spec: PromptSpec) -> list[str]:
    """Placeholders used by the templates but never declared as inputs."""
    declared = set(spec.inputs.declared)
    used = set(extract_placeholders(spec.system)) | set(extract_placeholders(spec.user))
    return sorted(used - declared)
