import logging
from typing import Any, Mapping

from llama_index.core.llms import ChatMessage
from pydantic import BaseModel, ConfigDict

from site_research.errors import PromptNotFoundError
from site_research.llm import LLMFactory
from site_research.prompts.contracts import validate_prompt_input, validate_prompt_output
from site_research.prompts.models import PromptSpec
from site_research.prompts.observability import TokenUsage, count_tokens, with_observability
from site_research.prompts.registry import PromptRegistry
from site_research.prompts.renderer import RenderedPrompt, render_prompt

logger = logging.getLogger(__name__)


class PromptCallResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    output: Any
    raw_text: str
    model: str
    tokens_used: int
    latency_ms: int
    prompt_id: str
    prompt_version: int
    prompt_variant: str | None = None


class PromptRunner:
    """Resolve, render, call and validate a registered prompt."""

    def __init__(
        self,
        *,
        registry: PromptRegistry,
        llm_factory: LLMFactory,
        model_override: str | None = None,
    ):
        self.registry = registry
        self.llm_factory = llm_factory
        self.model_override = model_override

    def resolve(self, prompt_id: str, version: int, seed: str | None = None) -> PromptSpec:
        spec = (
            self.registry.resolve_variant(prompt_id, version, seed)
            if seed
            else self.registry.resolve(prompt_id, version)
        )
        if spec is None:
            raise PromptNotFoundError(prompt_id, version)
        return spec

    async def _invoke_model(self, spec: PromptSpec, rendered: RenderedPrompt) -> str:
        llm = self.llm_factory(rendered.model, rendered.params)
        response = await llm.achat(
            [
                ChatMessage(role="system", content=rendered.system),
                ChatMessage(role="user", content=rendered.user),
            ]
        )
        return response.message.content or ""

    async def run(
        self,
        prompt_id: str,
        version: int,
        inputs: Mapping[str, Any],
        *,
        seed: str | None = None,
        retry_count: int = 0,
    ) -> PromptCallResult:
        spec = self.resolve(prompt_id, version, seed)
        validated = validate_prompt_input(prompt_id, inputs)
        rendered = render_prompt(spec, validated)
        if self.model_override:
            rendered = rendered.model_copy(update={"model": self.model_override})

        async def _call() -> tuple[str, TokenUsage]:
            text = await self._invoke_model(spec, rendered)
            usage = TokenUsage(
                input_tokens=count_tokens(rendered.system) + count_tokens(rendered.user),
                output_tokens=count_tokens(text),
            )
            return text, usage

        raw_text, log = await with_observability(
            spec, rendered.model, validated, retry_count, _call
        )
        output = validate_prompt_output(prompt_id, raw_text)
        logger.info(
            f"Prompt {spec.key} completed with {log.token_count} tokens in {log.latency_ms}ms"
        )
        return PromptCallResult(
            output=output,
            raw_text=raw_text,
            model=rendered.model,
            tokens_used=log.token_count,
            latency_ms=log.latency_ms,
            prompt_id=spec.id,
            prompt_version=spec.version,
            prompt_variant=spec.variant,
        )
