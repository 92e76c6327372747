import json
from typing import Any, Callable

import pytest
from workflows.retry_policy import wait_none

from site_research.config import (
    GenerationSettings,
    PlacesConfig,
    SiteCollections,
    SiteGenerationConfig,
)
from site_research.fusion import ConfidenceFusionEngine
from site_research.kv_store import InMemoryKeyValueStore
from site_research.prompts import PromptRegistry, load_bundled_prompts
from site_research.prompts.models import PromptSpec
from site_research.prompts.renderer import RenderedPrompt
from site_research.schemas import RawResearch
from site_research.services import PlacesService, StepJournal
from site_research.services.prompt_runner import PromptRunner
from site_research.workflows.site_generation import SiteGenerationRequest, SiteGenerationWorkflow
from site_research.workflows.site_generation import retry as retry_policies


PROFILE_DOC: dict[str, Any] = {
    "business_name": "Sharp Cuts Barbershop",
    "tagline": "Classic cuts, modern fades",
    "description": "Neighbourhood barbershop offering cuts, fades and hot towel shaves.",
    "business_type": "barber shop",
    "categories": ["barber", "men's grooming"],
    "phone": "+1 555 010 2000",
    "email": "hello@sharpcuts.example",
    "website_url": "https://sharpcuts.example",
    "address": {
        "street": "12 Main St",
        "city": "Springfield",
        "state": "IL",
        "zip": "62701",
        "country": "US",
    },
    "geo": {"lat": 39.7817, "lng": -89.6501},
    "hours": [
        {"day": "Monday", "open": "9:00 AM", "close": "6:00 PM"},
        {"day": "Sunday", "closed": True},
    ],
    "booking": {"url": "https://sharpcuts.example/book", "method": "online"},
    "payments": ["cash", "card"],
    "amenities": ["free wifi"],
    "languages_spoken": ["English", "Spanish"],
    "services": [
        {"name": "Classic Cut", "price_from": 25, "duration_minutes": 30},
        {"name": "Skin Fade", "price_from": 30, "duration_minutes": 45},
        {"name": "Hot Towel Shave", "price_from": 20},
    ],
    "faq": [{"question": "Do you take walk-ins?", "answer": "Yes, every day before 4pm."}],
    "reviews_summary": {"rating": 4.8, "review_count": 120, "highlights": ["Great fades"]},
    "seo_keywords": ["barber springfield", "fade"],
}

SOCIAL_DOC: dict[str, Any] = {
    "social_links": [{"platform": "instagram", "url": "https://instagram.com/sharpcuts"}],
    "google_business_photos": [
        {"url": "https://photos.example/1.jpg", "alt_text": "Barber giving a skin fade"},
        {"url": "https://photos.example/2.jpg", "alt_text": "Sushi platter"},
    ],
}

BRAND_DOC: dict[str, Any] = {
    "colors": {"primary": "#111827", "accent": "#f59e0b"},
    "fonts": {"heading": "Oswald"},
    "brand_personality": "confident, friendly",
}

SELLING_POINTS_DOC: dict[str, Any] = {
    "selling_points": [
        {"headline": "Walk-ins welcome", "description": "No appointment needed.", "icon": "clock"}
    ],
    "hero_slogans": [
        {
            "headline": "Look sharp",
            "subheadline": "Cuts and shaves by seasoned barbers",
            "cta_primary": {"text": "Book now", "action": "#booking"},
        }
    ],
    "benefit_bullets": ["Experienced barbers", "Open six days a week"],
}

IMAGES_DOC: dict[str, Any] = {
    "hero_images": [
        {"concept": "barber chair with clippers", "search_query": "barber chair", "alt_text": "Barber chair"},
        {"concept": "tropical beach sunset", "search_query": "beach", "alt_text": "Beach"},
    ],
    "storefront_image": {"search_query": "barbershop storefront", "alt_text": "Shop front"},
    "service_images": [{"service_name": "Skin Fade", "search_query": "skin fade", "alt_text": "Skin fade"}],
}

SCORE_DOC: dict[str, Any] = {
    "scores": {
        "accuracy": 0.9,
        "completeness": 0.8,
        "professionalism": 0.85,
        "seo": 0.7,
        "accessibility": 0.75,
    },
    "overall": 0.8,
    "issues": ["Missing alt text on gallery"],
    "suggestions": ["Add a map embed"],
}

WEBSITE_HTML = "<!DOCTYPE html><html><head><title>Sharp Cuts</title></head><body><h1>Sharp Cuts</h1></body></html>"
LEGAL_HTML = "<!DOCTYPE html><html><body><h1>Policy</h1></body></html>"
SITE_COPY_MD = "# Sharp Cuts Barbershop\n\nClassic cuts for Springfield."


@pytest.fixture
def canned_outputs() -> dict[str, str]:
    return {
        "research_profile": json.dumps(PROFILE_DOC),
        "research_social": json.dumps(SOCIAL_DOC),
        "research_brand": json.dumps(BRAND_DOC),
        "research_selling_points": f"```json\n{json.dumps(SELLING_POINTS_DOC)}\n```",
        "research_images": json.dumps(IMAGES_DOC),
        "generate_website": WEBSITE_HTML,
        "generate_legal_pages": LEGAL_HTML,
        "score_website": json.dumps(SCORE_DOC),
        "site_copy": SITE_COPY_MD,
    }


@pytest.fixture
def raw_research() -> RawResearch:
    return RawResearch.model_validate(
        {
            "profile": PROFILE_DOC,
            "social": SOCIAL_DOC,
            "brand": BRAND_DOC,
            "selling_points": SELLING_POINTS_DOC,
            "images": IMAGES_DOC,
        }
    )


@pytest.fixture
def registry() -> PromptRegistry:
    registry = PromptRegistry()
    load_bundled_prompts(registry)
    return registry


class FakeLLM:
    """Stands in for the model call. Responses come from canned outputs or overrides."""

    def __init__(self, outputs: dict[str, str]):
        self.outputs = outputs
        self.calls: list[tuple[str, RenderedPrompt]] = []
        self.overrides: dict[str, Callable[[int], str]] = {}

    def count(self, prompt_id: str) -> int:
        return sum(1 for called_id, _ in self.calls if called_id == prompt_id)

    async def respond(self, spec: PromptSpec, rendered: RenderedPrompt) -> str:
        self.calls.append((spec.id, rendered))
        override = self.overrides.get(spec.id)
        if override is not None:
            return override(self.count(spec.id))
        return self.outputs[spec.id]


@pytest.fixture
def fake_llm(monkeypatch: pytest.MonkeyPatch, canned_outputs: dict[str, str]) -> FakeLLM:
    llm = FakeLLM(canned_outputs)

    async def _mock_invoke_model(self: PromptRunner, spec: PromptSpec, rendered: RenderedPrompt) -> str:
        return await llm.respond(spec, rendered)

    monkeypatch.setattr(PromptRunner, "_invoke_model", _mock_invoke_model)
    # tiktoken downloads its encodings on first use; keep tests offline
    monkeypatch.setattr(
        "site_research.services.prompt_runner.count_tokens", lambda text: len(text.split())
    )
    return llm


@pytest.fixture
def prompt_runner(registry: PromptRegistry, fake_llm: FakeLLM) -> PromptRunner:
    def _no_llm(model, params):
        raise AssertionError("model calls are served by fake_llm")

    return PromptRunner(registry=registry, llm_factory=_no_llm)


class FakeArtifactStore:
    def __init__(self):
        self.artifacts: dict[str, tuple[str, str]] = {}
        self.put_calls = 0

    async def put_artifact(self, slug, build_version, name, content, content_type) -> str:
        self.put_calls += 1
        key = f"sites/{slug}/{build_version}/{name}"
        self.artifacts[key] = (content, content_type)
        return key


class FakeSiteRecordStore:
    def __init__(self):
        self.status_updates: list[tuple[str, str, str | None]] = []
        self.failures: list[dict[str, Any]] = []

    @property
    def statuses(self) -> list[str]:
        return [status for _, status, _ in self.status_updates]

    async def update_status(self, site_id, status, build_version=None) -> None:
        self.status_updates.append((site_id, status, build_version))

    async def record_failure(self, site_id, run_id, step_name, error) -> None:
        self.failures.append(
            {"site_id": site_id, "run_id": run_id, "step": step_name, "error": error}
        )


@pytest.fixture
def artifact_store() -> FakeArtifactStore:
    return FakeArtifactStore()


@pytest.fixture
def site_store() -> FakeSiteRecordStore:
    return FakeSiteRecordStore()


@pytest.fixture
def journal_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def site_config() -> SiteGenerationConfig:
    return SiteGenerationConfig(
        collections=SiteCollections(
            artifacts_collection="site_artifacts",
            sites_collection="sites",
            site_logs_collection="site_logs",
        ),
        places=PlacesConfig(enabled=False),
        settings=GenerationSettings(timeout_seconds=60, score_html_chars=40),
        prompt_versions={"site_copy": 3},
    )


@pytest.fixture
def no_retry_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    for policy in retry_policies.ALL_RETRY_POLICIES:
        monkeypatch.setattr(policy, "wait", wait_none())


@pytest.fixture
def build_workflow(
    prompt_runner: PromptRunner,
    artifact_store: FakeArtifactStore,
    site_store: FakeSiteRecordStore,
    journal_store: InMemoryKeyValueStore,
    site_config: SiteGenerationConfig,
    no_retry_delay: None,
) -> Callable[..., SiteGenerationWorkflow]:
    def _build(places_service: PlacesService | None = None) -> SiteGenerationWorkflow:
        return SiteGenerationWorkflow(
            prompt_runner=prompt_runner,
            places_service=places_service
            or PlacesService(api_key=None, config=site_config.places),
            fusion_engine=ConfidenceFusionEngine(),
            artifact_store=artifact_store,
            site_store=site_store,
            journal=StepJournal(journal_store),
            config=site_config,
        )

    return _build


@pytest.fixture
def site_request() -> SiteGenerationRequest:
    return SiteGenerationRequest(
        site_id="site-1",
        slug="sharp-cuts",
        org_id="org-42",
        business_name="Sharp Cuts Barbershop",
        business_address="12 Main St, Springfield, IL",
        business_phone="+1 555 010 2000",
    )
