import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

from workflows import Context, Workflow, step

from site_research.config import SiteGenerationConfig
from site_research.errors import StepExecutionError
from site_research.fusion import ConfidenceFusionEngine
from site_research.schemas import PlacesResult, RawResearch, UserInputs
from site_research.services import ArtifactStore, PlacesService, SiteRecordStore, StepJournal
from site_research.services.prompt_runner import PromptCallResult, PromptRunner
from site_research.workflows.site_generation.events import (
    ArtifactsUploadedEvent,
    PageGeneratedEvent,
    PageRequestEvent,
    PagesCompletedEvent,
    PlacesLookupEvent,
    PlacesLookupRequestEvent,
    ProfileFusedEvent,
    ProfileResearchedEvent,
    ProfileResearchRequestEvent,
    QualityScoredEvent,
    ResearchCollectedEvent,
    ResearchDocumentEvent,
    ResearchRequestEvent,
    ScoreRequestEvent,
    SiteGenerationResponse,
    SiteGenerationStartEvent,
    SiteGenerationStatusEvent,
    WebsiteGeneratedEvent,
)
from site_research.workflows.site_generation.retry import (
    HTML_RETRY,
    LEGAL_RETRY,
    RESEARCH_RETRY,
    SCORE_RETRY,
    STATUS_RETRY,
    UPLOAD_RETRY,
)
from site_research.workflows.site_generation.state import (
    RunStatus,
    SiteGenerationRequest,
    SiteStateAccessor,
)

logger = logging.getLogger(__name__)

RESEARCH_KINDS = ("social", "brand", "selling_points", "images")
LEGAL_PAGES = ("privacy", "terms")
DEFAULT_BUSINESS_TYPE = "local business"


def new_run_id() -> str:
    return f"run-{uuid4().hex[:12]}"


def new_build_version() -> str:
    return datetime.now(timezone.utc).strftime("v%Y%m%d%H%M%S")


class SiteGenerationWorkflow(Workflow):
    """Research a business, fuse the findings and publish a generated site.

    Every step that calls a model, the directory, storage or the status store
    goes through the step journal, so retried and resumed runs pick up recorded
    results instead of repeating side effects.
    """

    def __init__(
        self,
        *,
        prompt_runner: PromptRunner,
        places_service: PlacesService,
        fusion_engine: ConfidenceFusionEngine,
        artifact_store: ArtifactStore,
        site_store: SiteRecordStore,
        journal: StepJournal,
        config: SiteGenerationConfig,
        **kwargs: Any,
    ):
        kwargs.setdefault("timeout", config.settings.timeout_seconds)
        super().__init__(**kwargs)
        self.prompt_runner = prompt_runner
        self.places_service = places_service
        self.fusion_engine = fusion_engine
        self.artifact_store = artifact_store
        self.site_store = site_store
        self.journal = journal
        self.config = config

    async def _durable(
        self,
        ctx: Context,
        step_name: str,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run ``compute`` once per run. Later calls return the journaled output."""
        state = await SiteStateAccessor.get(ctx)
        if await self.journal.has(state.run_id, step_name):
            logger.info(f"Replaying {step_name} for run {state.run_id} from journal")
            return await self.journal.get(state.run_id, step_name)

        async with SiteStateAccessor.edit(ctx) as editable:
            editable.attempts[step_name] = editable.attempts.get(step_name, 0) + 1

        try:
            output = await compute()
        except Exception as e:
            raise StepExecutionError(step_name, e) from e

        await self.journal.record(state.run_id, step_name, output)
        return output

    async def _run_prompt(
        self,
        ctx: Context,
        step_name: str,
        prompt_id: str,
        inputs: dict[str, Any],
    ) -> PromptCallResult:
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()
        return await self.prompt_runner.run(
            prompt_id,
            self.config.prompt_version(prompt_id),
            inputs,
            seed=request.org_id,
            retry_count=max(state.attempts.get(step_name, 1) - 1, 0),
        )

    async def _set_status(
        self,
        ctx: Context,
        status: RunStatus,
        build_version: str | None = None,
    ) -> None:
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()

        async def _update() -> None:
            await self.site_store.update_status(request.site_id, status.value, build_version)

        await self._durable(ctx, f"status:{status.value}", _update)
        async with SiteStateAccessor.edit(ctx) as editable:
            editable.status = status

    @step(retry_policy=STATUS_RETRY)
    async def start_run(
        self, ctx: Context, ev: SiteGenerationStartEvent
    ) -> ProfileResearchRequestEvent:
        request = SiteGenerationRequest(
            site_id=ev.site_id,
            slug=ev.slug,
            org_id=ev.org_id,
            business_name=ev.business_name,
            business_address=ev.business_address,
            business_phone=ev.business_phone,
            google_place_id=ev.google_place_id,
            additional_context=ev.additional_context,
            uploaded_assets=ev.uploaded_assets,
        )
        async with SiteStateAccessor.edit(ctx) as state:
            state.run_id = state.run_id or ev.run_id or new_run_id()
            state.request = request

        async def _version() -> str:
            return new_build_version()

        build_version = await self._durable(ctx, "build_version", _version)
        async with SiteStateAccessor.edit(ctx) as state:
            state.build_version = build_version

        await self._set_status(ctx, RunStatus.COLLECTING)
        ctx.write_event_to_stream(
            SiteGenerationStatusEvent(
                level="info",
                message=f"Researching '{request.business_name}' (build {build_version})",
            )
        )
        return ProfileResearchRequestEvent()

    @step(retry_policy=RESEARCH_RETRY)
    async def research_profile(
        self, ctx: Context, ev: ProfileResearchRequestEvent
    ) -> ProfileResearchedEvent:
        request = (await SiteStateAccessor.get(ctx)).require_request()

        async def _research() -> dict[str, Any]:
            result = await self._run_prompt(
                ctx,
                "research_profile",
                "research_profile",
                {
                    "business_name": request.business_name,
                    "business_address": request.business_address,
                    "business_phone": request.business_phone,
                    "google_place_id": request.google_place_id,
                    "additional_context": request.additional_context,
                },
            )
            return result.output.model_dump(mode="json")

        profile = await self._durable(ctx, "research_profile", _research)
        async with SiteStateAccessor.edit(ctx) as state:
            state.raw_research["profile"] = profile
        return ProfileResearchedEvent(profile=profile)

    @step
    async def dispatch_research(
        self, ctx: Context, ev: ProfileResearchedEvent
    ) -> ResearchRequestEvent | PlacesLookupRequestEvent | None:
        for kind in RESEARCH_KINDS:
            ctx.send_event(ResearchRequestEvent(kind=kind))
        ctx.send_event(PlacesLookupRequestEvent())
        return None

    def _research_inputs(
        self, kind: str, request: SiteGenerationRequest, profile: dict[str, Any]
    ) -> dict[str, Any]:
        categories = profile.get("categories") or []
        business_type = profile.get("business_type") or (categories[0] if categories else "")
        inputs: dict[str, Any] = {
            "business_name": profile.get("business_name") or request.business_name,
            "business_type": business_type or DEFAULT_BUSINESS_TYPE,
        }
        services_json = json.dumps(profile.get("services") or [])
        if kind == "social":
            inputs["business_address"] = request.business_address
        elif kind == "brand":
            inputs["business_address"] = request.business_address
            inputs["website_url"] = profile.get("website_url") or ""
            inputs["additional_context"] = request.additional_context
        elif kind == "selling_points":
            inputs["services_json"] = services_json
            inputs["description"] = profile.get("description") or ""
            inputs["additional_context"] = request.additional_context
        elif kind == "images":
            inputs["business_address"] = request.business_address
            inputs["services_json"] = services_json
            inputs["additional_context"] = request.additional_context
        return inputs

    @step(num_workers=4, retry_policy=RESEARCH_RETRY)
    async def research_domain(
        self, ctx: Context, ev: ResearchRequestEvent
    ) -> ResearchDocumentEvent:
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()
        prompt_id = f"research_{ev.kind}"
        inputs = self._research_inputs(ev.kind, request, state.raw_research["profile"])

        async def _research() -> dict[str, Any]:
            result = await self._run_prompt(ctx, prompt_id, prompt_id, inputs)
            return result.output.model_dump(mode="json")

        document = await self._durable(ctx, prompt_id, _research)
        return ResearchDocumentEvent(kind=ev.kind, document=document)

    @step(retry_policy=RESEARCH_RETRY)
    async def lookup_places(
        self, ctx: Context, ev: PlacesLookupRequestEvent
    ) -> PlacesLookupEvent:
        request = (await SiteStateAccessor.get(ctx)).require_request()

        async def _lookup() -> dict[str, Any] | None:
            result = await self.places_service.lookup(
                request.business_name,
                request.business_address,
                place_id=request.google_place_id or None,
            )
            return result.model_dump(mode="json") if result is not None else None

        result = await self._durable(ctx, "places_lookup", _lookup)
        if result is None:
            ctx.write_event_to_stream(
                SiteGenerationStatusEvent(
                    level="warning", message="No directory listing found; continuing without it"
                )
            )
        return PlacesLookupEvent(result=result)

    @step
    async def join_research(
        self, ctx: Context, ev: ResearchDocumentEvent | PlacesLookupEvent
    ) -> ResearchCollectedEvent | None:
        events = ctx.collect_events(
            ev, [ResearchDocumentEvent] * len(RESEARCH_KINDS) + [PlacesLookupEvent]
        )
        if events is None:
            return None

        async with SiteStateAccessor.edit(ctx) as state:
            for collected in events:
                if isinstance(collected, ResearchDocumentEvent):
                    state.raw_research[collected.kind] = collected.document
                else:
                    state.places = collected.result
        ctx.write_event_to_stream(
            SiteGenerationStatusEvent(level="info", message="Research collected")
        )
        return ResearchCollectedEvent()

    @step(retry_policy=STATUS_RETRY)
    async def fuse_profile(self, ctx: Context, ev: ResearchCollectedEvent) -> ProfileFusedEvent:
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()

        async def _fuse() -> dict[str, Any]:
            research = RawResearch.model_validate(state.raw_research)
            places = PlacesResult.model_validate(state.places) if state.places else None
            user_inputs = UserInputs(
                business_name=request.business_name,
                address=request.business_address,
                phone=request.business_phone,
            )
            profile = self.fusion_engine.fuse(research, places, user_inputs)
            return profile.model_dump(mode="json")

        fused = await self._durable(ctx, "fuse_profile", _fuse)
        async with SiteStateAccessor.edit(ctx) as editable:
            editable.fused_profile = fused

        await self._set_status(ctx, RunStatus.GENERATING)
        provenance = fused["provenance"]
        for warning in provenance["warnings"]:
            ctx.write_event_to_stream(SiteGenerationStatusEvent(level="warning", message=warning))
        return ProfileFusedEvent(
            overall_confidence=provenance["overall_confidence"],
            warnings=provenance["warnings"],
        )

    @step(retry_policy=HTML_RETRY)
    async def generate_website(self, ctx: Context, ev: ProfileFusedEvent) -> WebsiteGeneratedEvent:
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()
        fused = dict(state.fused_profile or {})
        ui_policy = fused.pop("ui_policy", {})

        async def _generate() -> str:
            result = await self._run_prompt(
                ctx,
                "generate_website",
                "generate_website",
                {
                    "business_name": request.business_name,
                    "profile_json": json.dumps(fused),
                    "ui_policy_json": json.dumps(ui_policy),
                    "uploads_json": json.dumps(request.uploaded_assets) if request.uploaded_assets else "",
                },
            )
            return result.output

        html = await self._durable(ctx, "generate_website", _generate)
        async with SiteStateAccessor.edit(ctx) as editable:
            editable.site_html = html
        return WebsiteGeneratedEvent(html=html)

    @step
    async def dispatch_pages(
        self, ctx: Context, ev: WebsiteGeneratedEvent
    ) -> PageRequestEvent | ScoreRequestEvent | None:
        for page_type in LEGAL_PAGES:
            ctx.send_event(PageRequestEvent(page_type=page_type))
        ctx.send_event(ScoreRequestEvent())
        return None

    @step(num_workers=2, retry_policy=LEGAL_RETRY)
    async def generate_legal_page(self, ctx: Context, ev: PageRequestEvent) -> PageGeneratedEvent:
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()
        fused = state.fused_profile or {}
        identity = fused.get("identity", {})
        step_name = f"generate_legal_pages:{ev.page_type}"

        async def _generate() -> str:
            result = await self._run_prompt(
                ctx,
                step_name,
                "generate_legal_pages",
                {
                    "business_name": request.business_name,
                    "page_type": ev.page_type,
                    "brand_json": json.dumps(fused.get("brand", {})),
                    "business_email": identity.get("email", {}).get("value") or "",
                    "business_address": identity.get("address", {}).get("formatted", {}).get("value")
                    or request.business_address,
                },
            )
            return result.output

        html = await self._durable(ctx, step_name, _generate)
        return PageGeneratedEvent(page_type=ev.page_type, html=html)

    @step(retry_policy=SCORE_RETRY)
    async def score_website(self, ctx: Context, ev: ScoreRequestEvent) -> QualityScoredEvent:
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()
        html = state.site_html[: self.config.settings.score_html_chars]

        async def _score() -> dict[str, Any]:
            result = await self._run_prompt(
                ctx,
                "score_website",
                "score_website",
                {"html_content": html, "business_name": request.business_name},
            )
            return result.output.model_dump(mode="json")

        score = await self._durable(ctx, "score_website", _score)
        return QualityScoredEvent(score=score)

    @step
    async def join_pages(
        self, ctx: Context, ev: PageGeneratedEvent | QualityScoredEvent
    ) -> PagesCompletedEvent | None:
        events = ctx.collect_events(
            ev, [PageGeneratedEvent] * len(LEGAL_PAGES) + [QualityScoredEvent]
        )
        if events is None:
            return None

        pages: dict[str, str] = {}
        quality: dict[str, Any] = {}
        for collected in events:
            if isinstance(collected, PageGeneratedEvent):
                pages[collected.page_type] = collected.html
            else:
                quality = collected.score
        return PagesCompletedEvent(pages=pages, quality=quality)

    @step(retry_policy=UPLOAD_RETRY)
    async def upload_artifacts(
        self, ctx: Context, ev: PagesCompletedEvent
    ) -> ArtifactsUploadedEvent:
        await self._set_status(ctx, RunStatus.UPLOADING)
        state = await SiteStateAccessor.get(ctx)
        request = state.require_request()

        artifacts: list[tuple[str, str, str]] = [
            ("index.html", state.site_html, "text/html"),
            *[(f"{page}.html", ev.pages[page], "text/html") for page in LEGAL_PAGES],
            ("profile.json", json.dumps(state.fused_profile), "application/json"),
            (
                "research.json",
                json.dumps({**state.raw_research, "places": state.places}),
                "application/json",
            ),
        ]

        keys: list[str] = []
        for name, content, content_type in artifacts:

            async def _upload(name: str = name, content: str = content, content_type: str = content_type) -> str:
                return await self.artifact_store.put_artifact(
                    request.slug, state.build_version, name, content, content_type
                )

            keys.append(await self._durable(ctx, f"upload:{name}", _upload))

        ctx.write_event_to_stream(
            SiteGenerationStatusEvent(level="info", message=f"Uploaded {len(keys)} artifacts")
        )
        return ArtifactsUploadedEvent(
            build_version=state.build_version,
            artifacts=keys,
            quality_score=ev.quality.get("overall", 0.0),
        )

    @step(retry_policy=STATUS_RETRY)
    async def publish_site(
        self, ctx: Context, ev: ArtifactsUploadedEvent
    ) -> SiteGenerationResponse:
        await self._set_status(ctx, RunStatus.PUBLISHED, ev.build_version)
        state = await SiteStateAccessor.get(ctx)
        await self.journal.clear(state.run_id)
        request = state.require_request()
        provenance = (state.fused_profile or {}).get("provenance", {})

        ctx.write_event_to_stream(
            SiteGenerationStatusEvent(
                level="info", message=f"Published {request.slug} at {ev.build_version}"
            )
        )
        return SiteGenerationResponse(
            site_id=request.site_id,
            slug=request.slug,
            version=ev.build_version,
            status="published",
            quality_score=ev.quality_score,
            pages=["index.html", *[f"{page}.html" for page in LEGAL_PAGES]],
            artifacts=ev.artifacts,
            overall_confidence=provenance.get("overall_confidence", 0.0),
            warnings=provenance.get("warnings", []),
        )
