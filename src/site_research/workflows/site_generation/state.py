from contextlib import asynccontextmanager
from enum import StrEnum
from typing import Any, AsyncIterator

from pydantic import BaseModel, Field
from workflows import Context


class RunStatus(StrEnum):
    COLLECTING = "collecting"
    GENERATING = "generating"
    UPLOADING = "uploading"
    PUBLISHED = "published"
    ERROR = "error"


class SiteGenerationRequest(BaseModel):
    """What the caller knows about the business before research starts."""

    site_id: str
    slug: str
    org_id: str
    business_name: str = Field(..., min_length=1)
    business_address: str = ""
    business_phone: str = ""
    google_place_id: str = ""
    additional_context: str = ""
    uploaded_assets: list[str] = Field(default_factory=list)


class SiteGenerationState(BaseModel):
    run_id: str = ""
    request: SiteGenerationRequest | None = None
    status: RunStatus = RunStatus.COLLECTING
    build_version: str = ""
    attempts: dict[str, int] = Field(default_factory=dict)
    raw_research: dict[str, Any] = Field(default_factory=dict)
    places: dict[str, Any] | None = None
    fused_profile: dict[str, Any] | None = None
    site_html: str = ""

    def require_request(self) -> SiteGenerationRequest:
        if self.request is None:
            raise ValueError("Site generation state has no request; start_run must run first")
        return self.request


class SiteStateAccessor:
    KEY = "site_generation_state"

    @classmethod
    async def get(cls, ctx: Context) -> SiteGenerationState:
        """Read-only access to typed state."""
        data = await ctx.store.get(cls.KEY, default={})
        return SiteGenerationState.model_validate(data)

    @classmethod
    @asynccontextmanager
    async def edit(cls, ctx: Context) -> AsyncIterator[SiteGenerationState]:
        """Read-write access to typed state (atomic)."""
        async with ctx.store.edit_state() as store:
            raw = store.get(cls.KEY, {})
            state = SiteGenerationState.model_validate(raw)
            yield state
            store[cls.KEY] = state.model_dump(mode="json")
