"""Input and output contracts for the bundled prompts."""
import json
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from site_research.errors import ConfigurationError, ResearchDataError
from site_research.schemas import (
    BrandResearch,
    ImagesResearch,
    ProfileResearch,
    ScoreWebsiteOutput,
    SellingPointsResearch,
    SocialResearch,
)
from site_research.utils import extract_json_object, strip_code_fences

DOCTYPE = "<!doctype html>"


class _PromptInput(BaseModel):
    model_config = ConfigDict(extra="allow")


class ResearchProfileInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    business_address: str = ""
    business_phone: str = ""
    google_place_id: str = ""
    additional_context: str = ""


class ResearchSocialInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    business_type: str = Field(..., min_length=1)
    business_address: str = ""


class ResearchBrandInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    business_type: str = Field(..., min_length=1)
    business_address: str = ""
    website_url: str = ""
    additional_context: str = ""


class ResearchSellingPointsInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    business_type: str = Field(..., min_length=1)
    services_json: str = ""
    description: str = ""
    additional_context: str = ""


class ResearchImagesInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    business_type: str = Field(..., min_length=1)
    business_address: str = ""
    services_json: str = ""
    additional_context: str = ""


class GenerateWebsiteInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    profile_json: str = Field(..., min_length=2)
    ui_policy_json: str = ""
    uploads_json: str = ""


class GenerateLegalPagesInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    page_type: Literal["privacy", "terms"]
    brand_json: str = ""
    business_email: str = ""
    business_address: str = ""


class ScoreWebsiteInput(_PromptInput):
    html_content: str = Field(..., min_length=1)
    business_name: str = Field(..., min_length=1)


class SiteCopyInput(_PromptInput):
    business_name: str = Field(..., min_length=1)
    tone: Literal["friendly", "premium", "no-nonsense"]
    city: str = ""
    services: list[str] = Field(default_factory=list)


INPUT_MODELS: dict[str, type[_PromptInput]] = {
    "research_profile": ResearchProfileInput,
    "research_social": ResearchSocialInput,
    "research_brand": ResearchBrandInput,
    "research_selling_points": ResearchSellingPointsInput,
    "research_images": ResearchImagesInput,
    "generate_website": GenerateWebsiteInput,
    "generate_legal_pages": GenerateLegalPagesInput,
    "score_website": ScoreWebsiteInput,
    "site_copy": SiteCopyInput,
}

OUTPUT_MODELS: dict[str, type[BaseModel]] = {
    "research_profile": ProfileResearch,
    "research_social": SocialResearch,
    "research_brand": BrandResearch,
    "research_selling_points": SellingPointsResearch,
    "research_images": ImagesResearch,
    "score_website": ScoreWebsiteOutput,
}

HTML_OUTPUTS = {"generate_website", "generate_legal_pages"}


def validate_prompt_input(prompt_id: str, inputs: Mapping[str, Any]) -> dict[str, Any]:
    """Check ``inputs`` against the prompt's input model. Unknown prompt ids pass through."""
    model = INPUT_MODELS.get(prompt_id)
    if model is None:
        return dict(inputs)
    try:
        return model.model_validate(dict(inputs)).model_dump()
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ConfigurationError(
            f"Invalid inputs for prompt '{prompt_id}': {', '.join(fields)}"
        ) from e


def validate_prompt_output(prompt_id: str, raw_text: str) -> Any:
    """Validate a model response against the prompt's output contract.

    Returns the typed document for JSON prompts and the cleaned text otherwise.
    Raises ResearchDataError when the response does not satisfy the contract.
    """
    model = OUTPUT_MODELS.get(prompt_id)
    if model is not None:
        try:
            return model.model_validate(extract_json_object(raw_text))
        except (json.JSONDecodeError, ValueError) as e:
            raise ResearchDataError(prompt_id, str(e)) from e

    text = strip_code_fences(raw_text)
    if prompt_id in HTML_OUTPUTS:
        if not text.lower().startswith(DOCTYPE):
            raise ResearchDataError(prompt_id, "output must be a complete HTML document starting with <!DOCTYPE html>")
        return text
    if prompt_id == "site_copy" and "#" not in text:
        raise ResearchDataError(prompt_id, "markdown copy must contain a heading")
    if not text:
        raise ResearchDataError(prompt_id, "empty output")
    return text
