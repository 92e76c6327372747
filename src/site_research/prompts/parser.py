import re

import yaml
from pydantic import ValidationError

from site_research.errors import ConfigurationError
from site_research.prompts.models import PromptSpec

_FRONT_MATTER = re.compile(r"\A\s*---\s*\n(.*?)\n---\s*\n(.*)\Z", re.DOTALL)
_SECTION_HEADING = re.compile(r"^#\s+(System|User)\s*$", re.MULTILINE | re.IGNORECASE)


def _split_sections(body: str) -> dict[str, str]:
    headings = list(_SECTION_HEADING.finditer(body))
    sections: dict[str, str] = {}
    for i, match in enumerate(headings):
        end = headings[i + 1].start() if i + 1 < len(headings) else len(body)
        sections[match.group(1).lower()] = body[match.end():end].strip()
    return sections


def parse_prompt_markdown(text: str, source: str = "<string>") -> PromptSpec:
    """Parse a ``.prompt.md`` file: YAML front matter, then ``# System`` and ``# User``."""
    match = _FRONT_MATTER.match(text)
    if not match:
        raise ConfigurationError(f"{source}: missing YAML front matter")

    try:
        meta = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{source}: invalid front matter: {e}") from e
    if not isinstance(meta, dict):
        raise ConfigurationError(f"{source}: front matter must be a mapping")

    sections = _split_sections(match.group(2))
    for name in ("system", "user"):
        if not sections.get(name):
            raise ConfigurationError(f"{source}: missing '# {name.capitalize()}' section")

    outputs = meta.get("outputs") or {}
    try:
        return PromptSpec(
            id=meta.get("id"),
            version=meta.get("version"),
            variant=meta.get("variant"),
            description=meta.get("description") or "",
            models=meta.get("models") or [],
            params=meta.get("params") or {},
            inputs=meta.get("inputs") or {},
            outputs={"format": outputs.get("format", "text"), "schema": outputs.get("schema")},
            notes={str(k): str(v) for k, v in (meta.get("notes") or {}).items()},
            system=sections["system"],
            user=sections["user"],
        )
    except ValidationError as e:
        raise ConfigurationError(f"{source}: invalid prompt definition: {e}") from e
