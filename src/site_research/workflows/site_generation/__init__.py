from .events import SiteGenerationResponse, SiteGenerationStartEvent, SiteGenerationStatusEvent
from .hot_patch import PromptHotPatchWorkflow
from .runner import run_site_generation
from .state import RunStatus, SiteGenerationRequest
from .workflow import SiteGenerationWorkflow


__all__ = [
    "PromptHotPatchWorkflow",
    "RunStatus",
    "SiteGenerationRequest",
    "SiteGenerationResponse",
    "SiteGenerationStartEvent",
    "SiteGenerationStatusEvent",
    "SiteGenerationWorkflow",
    "run_site_generation",
]
