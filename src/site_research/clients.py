import logging
import os

import httpx
from llama_cloud import AsyncLlamaCloud

logger = logging.getLogger(__name__)
agent_name = os.getenv("LLAMA_DEPLOY_DEPLOYMENT_NAME")
api_key = os.getenv("LLAMA_CLOUD_API_KEY")
base_url = os.getenv("LLAMA_CLOUD_BASE_URL")
places_api_key = os.getenv("GOOGLE_PLACES_API_KEY")


def get_llama_cloud_client() -> AsyncLlamaCloud:
    """Agent Data connection for artifacts and site records."""
    return AsyncLlamaCloud(api_key=api_key, base_url=base_url)


def get_places_http_client(timeout_seconds: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout_seconds)
