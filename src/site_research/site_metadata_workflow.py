from typing import Annotated

import jsonref
from workflows import Workflow, step
from workflows.events import StartEvent
from workflows.resource import ResourceConfig

from .config import CONFIG_FILE, CONFIG_PATH, SiteGenerationConfig
from .workflows.site_generation.events import SiteMetadataResponse
from .workflows.site_generation.state import SiteGenerationRequest


class SiteMetadataWorkflow(Workflow):
    """Expose the site generation collections and request schema to the UI."""

    @step
    async def get_metadata(
        self,
        _: StartEvent,
        site_config: Annotated[
            SiteGenerationConfig,
            ResourceConfig(
                config_file=CONFIG_FILE,
                path_selector=CONFIG_PATH,
                label="Site Generation Config",
                description="Site generation collections, prompt versions and settings",
            ),
        ],
    ) -> SiteMetadataResponse:
        request_schema = jsonref.replace_refs(
            SiteGenerationRequest.model_json_schema(), proxies=False
        )
        return SiteMetadataResponse(
            sites_collection=site_config.collections.sites_collection,
            artifacts_collection=site_config.collections.artifacts_collection,
            prompt_versions=site_config.prompt_versions,
            request_schema=request_schema,
        )


workflow = SiteMetadataWorkflow(timeout=None)
