import json
import re
from typing import Any, Type, TypeVar

from pydantic import BaseModel
from workflows.resource import ResourceConfig


ModelT = TypeVar("ModelT", bound=BaseModel)

_CODE_FENCE = re.compile(r"```(?:json|html|markdown|md)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)


def load_config_from_json(
    *,
    model: Type[ModelT],
    config_file: str,
    path_selector: str | None = None,
    label: str | None = None,
    description: str | None = None,
) -> ModelT:
    """Load a pydantic model from a JSON config file using Workflows ResourceConfig."""

    descriptor = ResourceConfig(
        config_file=config_file,
        path_selector=path_selector,
        label=label,
        description=description,
    )
    descriptor.set_type_annotation(model)
    return descriptor.call()


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text itself when unfenced."""
    match = _CODE_FENCE.search(text)
    return (match.group(1) if match else text).strip()


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the JSON object a model returned, tolerating code fences and surrounding prose."""
    body = strip_code_fences(text)
    try:
        value = json.loads(body)
    except json.JSONDecodeError:
        start, end = body.find("{"), body.rfind("}")
        if start == -1 or end <= start:
            raise
        value = json.loads(body[start:end + 1])
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
    return value
