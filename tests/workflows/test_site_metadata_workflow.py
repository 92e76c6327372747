import json
from pathlib import Path

import pytest

from site_research.site_metadata_workflow import SiteMetadataWorkflow

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.mark.asyncio
async def test_metadata_reports_collections_and_request_schema(monkeypatch):
    # the config resource is read relative to the working directory
    monkeypatch.chdir(PROJECT_ROOT)
    config = json.loads((PROJECT_ROOT / "configs" / "config.json").read_text())["site_generation"]

    result = await SiteMetadataWorkflow(timeout=None).run()

    assert result.sites_collection == config["collections"]["sites_collection"]
    assert result.artifacts_collection == config["collections"]["artifacts_collection"]
    assert result.prompt_versions == config["prompt_versions"]
    assert result.request_schema["properties"]["business_name"]["minLength"] == 1
    assert set(result.request_schema["required"]) == {"site_id", "slug", "org_id", "business_name"}
