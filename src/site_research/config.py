"""Site generation configuration.

Configuration is loaded from configs/config.json via Workflows ResourceConfig.
Secrets (API keys) are read from the environment, never from this file.
"""
from typing import Literal

from pydantic import BaseModel, Field

from .utils import load_config_from_json


CONFIG_FILE = "configs/config.json"
CONFIG_PATH = "site_generation"


class LLMModelConfig(BaseModel):
    """Provider selection for every prompt call."""

    provider: Literal["openai", "gemini"] = "openai"
    model: str | None = Field(
        default=None,
        description="Overrides each prompt's model preference when set",
    )
    temperature: float | None = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Overrides each prompt's temperature when set",
    )


class SiteCollections(BaseModel):
    """Agent Data collections used by the site generation pipeline."""

    artifacts_collection: str = Field(..., description="Generated pages, profile and research snapshots")
    sites_collection: str = Field(..., description="One status record per site")
    site_logs_collection: str = Field(..., description="Durable failure log")


class PlacesConfig(BaseModel):
    enabled: bool = True
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_photos: int = Field(default=10, ge=0)
    max_reviews: int = Field(default=5, ge=0)


class GenerationSettings(BaseModel):
    timeout_seconds: int = Field(..., ge=1)
    score_html_chars: int = Field(
        default=6000,
        ge=1,
        description="How much of the generated HTML the quality scorer sees",
    )
    weighted_overall_confidence: bool = Field(
        default=False,
        description="Weight identity and operations above other sections in the overall score",
    )


class SiteGenerationConfig(BaseModel):
    """Loaded from configs/config.json (path: site_generation)."""

    llm: LLMModelConfig = Field(default_factory=LLMModelConfig)
    collections: SiteCollections
    places: PlacesConfig = Field(default_factory=PlacesConfig)
    settings: GenerationSettings
    prompt_versions: dict[str, int] = Field(
        default_factory=dict,
        description="Pinned version per prompt id; unlisted prompts use version 1",
    )

    def prompt_version(self, prompt_id: str) -> int:
        return self.prompt_versions.get(prompt_id, 1)


def load_site_generation_config(config_file: str = CONFIG_FILE) -> SiteGenerationConfig:
    return load_config_from_json(
        model=SiteGenerationConfig,
        config_file=config_file,
        path_selector=CONFIG_PATH,
        label="Site Generation Config",
        description="Site generation collections, prompt versions and settings",
    )
