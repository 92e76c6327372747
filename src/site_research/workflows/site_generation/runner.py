import logging

from site_research.errors import find_failed_step
from site_research.services import SiteRecordStore
from site_research.workflows.site_generation.events import (
    SiteGenerationResponse,
    SiteGenerationStartEvent,
    SiteGenerationStatusEvent,
)
from site_research.workflows.site_generation.state import RunStatus, SiteGenerationRequest
from site_research.workflows.site_generation.workflow import SiteGenerationWorkflow, new_run_id

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


async def run_site_generation(
    workflow: SiteGenerationWorkflow,
    request: SiteGenerationRequest,
    site_store: SiteRecordStore,
    *,
    run_id: str | None = None,
) -> SiteGenerationResponse:
    """Drive one generation run to completion.

    On failure the site is marked ``error`` and a failure entry naming the
    failed step is written before the error is re-raised. Pass the ``run_id``
    of an earlier run to resume it from the step journal.
    """
    run_id = run_id or new_run_id()
    start_event = SiteGenerationStartEvent(**request.model_dump(), run_id=run_id)
    handler = workflow.run(start_event=start_event)

    try:
        async for ev in handler.stream_events():
            if isinstance(ev, SiteGenerationStatusEvent):
                logger.log(_LOG_LEVELS[ev.level], f"[{request.slug}] {ev.message}")
        result = await handler
    except Exception as e:
        failed = find_failed_step(e)
        step_name = failed.step_name if failed else None
        error = str(failed.error) if failed else str(e)
        logger.error(f"Site generation run {run_id} for {request.site_id} failed at {step_name}: {error}")
        await site_store.update_status(request.site_id, RunStatus.ERROR.value)
        await site_store.record_failure(request.site_id, run_id, step_name, error)
        raise

    logger.info(f"Site generation run {run_id} published {result.slug} at {result.version}")
    return result
