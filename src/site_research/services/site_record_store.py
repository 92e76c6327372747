import logging
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from llama_cloud import AsyncLlamaCloud

from site_research.clients import agent_name


logger = logging.getLogger(__name__)


@runtime_checkable
class SiteRecordStore(Protocol):
    async def update_status(
        self, site_id: str, status: str, build_version: str | None = None
    ) -> None: ...

    async def record_failure(
        self, site_id: str, run_id: str, step_name: str | None, error: str
    ) -> None: ...


class AgentDataSiteRecordStore:
    """Site status records and the failure log, kept in Agent Data collections."""

    def __init__(self, client: AsyncLlamaCloud, sites_collection: str, logs_collection: str):
        self.client = client
        self.sites_collection = sites_collection
        self.logs_collection = logs_collection

    async def update_status(
        self, site_id: str, status: str, build_version: str | None = None
    ) -> None:
        record = {
            "site_id": site_id,
            "status": status,
            "current_build_version": build_version,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        await self.client.beta.agent_data.delete_by_query(
            deployment_name=agent_name or "_public",
            collection=self.sites_collection,
            filter={"site_id": {"eq": site_id}},  # noqa
        )
        await self.client.beta.agent_data.agent_data(
            data=record,
            deployment_name=agent_name or "_public",
            collection=self.sites_collection,
        )
        logger.info(f"Site {site_id} status -> {status}")

    async def record_failure(
        self, site_id: str, run_id: str, step_name: str | None, error: str
    ) -> None:
        record = {
            "site_id": site_id,
            "run_id": run_id,
            "action": "workflow.failed",
            "step": step_name,
            "error": error,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        await self.client.beta.agent_data.agent_data(
            data=record,
            deployment_name=agent_name or "_public",
            collection=self.logs_collection,
        )
        logger.warning(f"Recorded failure for site {site_id} at step {step_name}: {error}")
