import logging
from typing import Protocol, runtime_checkable

from llama_cloud import AsyncLlamaCloud

from site_research.clients import agent_name


logger = logging.getLogger(__name__)


def artifact_key(slug: str, build_version: str, name: str) -> str:
    return f"sites/{slug}/{build_version}/{name}"


@runtime_checkable
class ArtifactStore(Protocol):
    async def put_artifact(
        self,
        slug: str,
        build_version: str,
        name: str,
        content: str,
        content_type: str,
    ) -> str: ...


class AgentDataArtifactStore:
    """Stores generated site files as Agent Data items, one item per key."""

    def __init__(self, client: AsyncLlamaCloud, collection: str):
        self.client = client
        self.collection = collection

    async def put_artifact(
        self,
        slug: str,
        build_version: str,
        name: str,
        content: str,
        content_type: str,
    ) -> str:
        key = artifact_key(slug, build_version, name)
        record = {
            "key": key,
            "slug": slug,
            "build_version": build_version,
            "name": name,
            "content_type": content_type,
            "content": content,
        }

        # replace, so a retried upload leaves exactly one item per key
        await self.client.beta.agent_data.delete_by_query(
            deployment_name=agent_name or "_public",
            collection=self.collection,
            filter={"key": {"eq": key}},  # noqa
        )
        await self.client.beta.agent_data.agent_data(
            data=record,
            deployment_name=agent_name or "_public",
            collection=self.collection,
        )
        logger.info(f"Uploaded {key} ({content_type}, {len(content)} chars)")
        return key
