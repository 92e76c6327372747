from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from site_research.errors import ConfigurationError, VariantWeightsError


class _HotPatchModel(BaseModel):
    """Snake-case in Python, camelCase in the hot-patch JSON. Either is accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class PromptParams(_HotPatchModel):
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1)


class PromptInputs(_HotPatchModel):
    required: list[str] = Field(default_factory=list)
    optional: list[str] = Field(default_factory=list)

    @property
    def declared(self) -> list[str]:
        return [*self.required, *(k for k in self.optional if k not in self.required)]


class PromptOutputs(_HotPatchModel):
    format: Literal["json", "markdown", "html", "text"] = "text"
    schema_name: str | None = Field(default=None, alias="schema")


class PromptSpec(_HotPatchModel):
    """A versioned prompt template plus its input/output contract."""

    id: str = Field(..., min_length=1)
    version: int = Field(..., ge=1)
    variant: str | None = None
    description: str = ""
    models: list[str] = Field(..., min_length=1)
    params: PromptParams = Field(default_factory=PromptParams)
    inputs: PromptInputs = Field(default_factory=PromptInputs)
    outputs: PromptOutputs = Field(default_factory=PromptOutputs)
    notes: dict[str, str] = Field(default_factory=dict)
    system: str
    user: str

    @property
    def key(self) -> str:
        return build_prompt_key(self.id, self.version, self.variant)

    def to_hot_patch_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def check_variant_weights(prompt_id: str, version: int, weights: dict[str, int]) -> None:
    total = sum(weights.values())
    if total != 100:
        raise VariantWeightsError(prompt_id, version, total)


class VariantConfig(_HotPatchModel):
    prompt_id: str
    version: int = Field(..., ge=1)
    weights: dict[str, int]

    @model_validator(mode="after")
    def _weights_sum_to_100(self) -> "VariantConfig":
        check_variant_weights(self.prompt_id, self.version, self.weights)
        return self

    def to_hot_patch_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def build_prompt_key(prompt_id: str, version: int, variant: str | None = None) -> str:
    base = f"{prompt_id}@{version}"
    return f"{base}:{variant}" if variant else base


def parse_prompt_key(key: str) -> tuple[str, int, str | None]:
    """Inverse of :func:`build_prompt_key`."""
    prompt_id, sep, rest = key.partition("@")
    if not sep or not prompt_id:
        raise ConfigurationError(f"Invalid prompt key: {key!r}")
    version_str, _, variant = rest.partition(":")
    try:
        version = int(version_str)
    except ValueError as e:
        raise ConfigurationError(f"Invalid prompt key version: {key!r}") from e
    return prompt_id, version, variant or None
