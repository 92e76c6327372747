from typing import Callable

from llama_index.core.llms import LLM
from llama_index.llms.openai import OpenAI

from .config import LLMModelConfig
from .prompts.models import PromptParams

LLMFactory = Callable[[str, PromptParams], LLM]


def build_llm(provider: str, model: str, temperature: float, max_tokens: int | None = None) -> LLM:
    if provider == "openai":
        return OpenAI(model=model, temperature=temperature, max_tokens=max_tokens)
    elif provider == "gemini":
        from llama_index.llms.google_genai import GoogleGenAI
        return GoogleGenAI(model=model, temperature=temperature, max_tokens=max_tokens)
    else:
        raise ValueError(
            f"Unsupported LLM provider: {provider!r}. Expected: 'openai' or 'gemini'."
        )


def make_llm_factory(llm_config: LLMModelConfig) -> LLMFactory:
    """Build LLM clients per prompt call.

    The prompt's model and params are used unless the config pins a model or temperature.
    """
    cache: dict[tuple[str, float, int], LLM] = {}

    def factory(model: str, params: PromptParams) -> LLM:
        chosen_model = llm_config.model or model
        temperature = (
            llm_config.temperature if llm_config.temperature is not None else params.temperature
        )
        key = (chosen_model, temperature, params.max_tokens)
        if key not in cache:
            cache[key] = build_llm(llm_config.provider, chosen_model, temperature, params.max_tokens)
        return cache[key]

    return factory
