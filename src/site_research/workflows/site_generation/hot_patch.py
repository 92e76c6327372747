import logging
from typing import Any

from workflows import Workflow, step

from site_research.kv_store import KeyValueStore
from site_research.prompts.registry import PromptRegistry
from site_research.workflows.site_generation.events import (
    PromptHotPatchResponse,
    PromptHotPatchStartEvent,
)

logger = logging.getLogger(__name__)


class PromptHotPatchWorkflow(Workflow):
    """Administrative path that reloads prompt overrides from the key-value store."""

    def __init__(self, *, registry: PromptRegistry, store: KeyValueStore, **kwargs: Any):
        super().__init__(**kwargs)
        self.registry = registry
        self.store = store

    @step
    async def reload_prompts(self, ev: PromptHotPatchStartEvent) -> PromptHotPatchResponse:
        loaded = await self.registry.load_from_kv(self.store, ev.prompt_ids)
        stats = self.registry.stats()
        logger.info(f"Hot patch loaded {loaded} entries; registry now holds {stats.total_prompts} prompts")
        return PromptHotPatchResponse(loaded=loaded, **stats.model_dump())
