import asyncio
import logging

from site_research.clients import get_llama_cloud_client, places_api_key
from site_research.config import load_site_generation_config
from site_research.fusion import ConfidenceFusionEngine
from site_research.kv_store import InMemoryKeyValueStore
from site_research.llm import make_llm_factory
from site_research.prompts import PromptRegistry, load_bundled_prompts
from site_research.services import (
    AgentDataArtifactStore,
    AgentDataSiteRecordStore,
    PlacesService,
    StepJournal,
)
from site_research.services.prompt_runner import PromptRunner
from site_research.workflows.site_generation import (
    SiteGenerationRequest,
    SiteGenerationWorkflow,
    run_site_generation,
)


async def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = load_site_generation_config()

    registry = PromptRegistry()
    load_bundled_prompts(registry)

    cloud = get_llama_cloud_client()
    site_store = AgentDataSiteRecordStore(
        cloud,
        sites_collection=config.collections.sites_collection,
        logs_collection=config.collections.site_logs_collection,
    )
    places = PlacesService(api_key=places_api_key, config=config.places)
    workflow = SiteGenerationWorkflow(
        prompt_runner=PromptRunner(registry=registry, llm_factory=make_llm_factory(config.llm)),
        places_service=places,
        fusion_engine=ConfidenceFusionEngine(
            weighted_overall=config.settings.weighted_overall_confidence
        ),
        artifact_store=AgentDataArtifactStore(cloud, config.collections.artifacts_collection),
        site_store=site_store,
        journal=StepJournal(InMemoryKeyValueStore()),
        config=config,
    )

    request = SiteGenerationRequest(
        site_id="site-local",
        slug=input("Slug: ").strip() or "demo-site",
        org_id="org-local",
        business_name=input("Business name: ").strip(),
        business_address=input("Address (optional): ").strip(),
    )
    try:
        result = await run_site_generation(workflow, request, site_store)
    finally:
        await places.aclose()
    print(f"\n🏁 Published {result.slug} at {result.version} (quality {result.quality_score:.2f})")
    for warning in result.warnings:
        print(f"  ⚠️  {warning}")


if __name__ == "__main__":
    asyncio.run(main())
