from typing import Any, Literal

from pydantic import Field
from workflows.events import Event, StartEvent, StopEvent


ResearchKind = Literal["social", "brand", "selling_points", "images"]
LegalPageType = Literal["privacy", "terms"]


class SiteGenerationStartEvent(StartEvent):
    """Starts research and generation for one site."""

    site_id: str
    slug: str
    org_id: str
    business_name: str
    business_address: str = ""
    business_phone: str = ""
    google_place_id: str = ""
    additional_context: str = ""
    uploaded_assets: list[str] = Field(default_factory=list)
    run_id: str | None = None


class ProfileResearchRequestEvent(Event):
    """Research the business profile. Every other research call depends on it."""


class ProfileResearchedEvent(Event):
    profile: dict[str, Any]


class ResearchRequestEvent(Event):
    kind: ResearchKind


class PlacesLookupRequestEvent(Event):
    """Look the business up in the directory."""


class ResearchDocumentEvent(Event):
    kind: ResearchKind
    document: dict[str, Any]


class PlacesLookupEvent(Event):
    result: dict[str, Any] | None = None


class ResearchCollectedEvent(Event):
    """All research documents and the directory lookup have arrived."""


class ProfileFusedEvent(Event):
    overall_confidence: float
    warnings: list[str]


class WebsiteGeneratedEvent(Event):
    html: str


class PageRequestEvent(Event):
    page_type: LegalPageType


class ScoreRequestEvent(Event):
    """Score the generated homepage."""


class PageGeneratedEvent(Event):
    page_type: LegalPageType
    html: str


class QualityScoredEvent(Event):
    score: dict[str, Any]


class PagesCompletedEvent(Event):
    pages: dict[str, str]
    quality: dict[str, Any]


class ArtifactsUploadedEvent(Event):
    build_version: str
    artifacts: list[str]
    quality_score: float


class SiteGenerationStatusEvent(Event):
    level: Literal["info", "warning", "error"]
    message: str


class SiteGenerationResponse(StopEvent):
    """Final response for a published site."""

    site_id: str
    slug: str
    version: str
    status: Literal["published"]
    quality_score: float
    pages: list[str]
    artifacts: list[str]
    overall_confidence: float
    warnings: list[str]


class PromptHotPatchStartEvent(StartEvent):
    """Reloads prompts and variant weights from the hot-patch store."""

    prompt_ids: list[str] | None = None


class PromptHotPatchResponse(StopEvent):
    loaded: int
    total_prompts: int
    unique_ids: int
    variant_configs: int


class SiteMetadataResponse(StopEvent):
    """Runtime metadata used to configure the site builder UI."""

    sites_collection: str
    artifacts_collection: str
    prompt_versions: dict[str, int]
    request_schema: dict[str, Any] | None = None
