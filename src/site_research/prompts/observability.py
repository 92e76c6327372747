import hashlib
import json
import logging
import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Awaitable, Callable, Literal, Mapping, TypeVar

import tiktoken
from pydantic import BaseModel, Field

from site_research.prompts.models import PromptParams, PromptSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")

# USD per 1k tokens.
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4.1": {"input": 0.002, "output": 0.008},
    "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
    "gemini-2.5-flash": {"input": 0.0003, "output": 0.0025},
    "gemini-2.5-pro": {"input": 0.00125, "output": 0.01},
}


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


class LlmCallLog(BaseModel):
    prompt_id: str
    prompt_version: int
    prompt_variant: str | None = None
    model: str
    params: PromptParams
    input_hash: str
    latency_ms: int
    token_count: int = 0
    cost: float | None = None
    outcome: Literal["success", "error"]
    retry_count: int = 0
    error_message: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def hash_inputs(inputs: Mapping[str, Any]) -> str:
    """Deterministic SHA-256 of the inputs; key order does not matter."""
    payload = json.dumps(inputs, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@lru_cache(maxsize=1)
def _encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    if not text:
        return 0
    return len(_encoding().encode(text, disallowed_special=()))


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float | None:
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        return None
    cost = (input_tokens / 1000) * pricing["input"] + (output_tokens / 1000) * pricing["output"]
    return round(cost, 6)


def build_call_log(
    *,
    spec: PromptSpec,
    model: str,
    inputs: Mapping[str, Any],
    latency_ms: int,
    outcome: Literal["success", "error"],
    token_count: int = 0,
    cost: float | None = None,
    retry_count: int = 0,
    error_message: str | None = None,
) -> LlmCallLog:
    return LlmCallLog(
        prompt_id=spec.id,
        prompt_version=spec.version,
        prompt_variant=spec.variant,
        model=model,
        params=spec.params,
        input_hash=hash_inputs(inputs),
        latency_ms=latency_ms,
        token_count=token_count,
        cost=cost,
        outcome=outcome,
        retry_count=retry_count,
        error_message=error_message,
    )


def emit_call_log(log: LlmCallLog) -> None:
    record = {
        "level": "info" if log.outcome == "success" else "warning",
        "service": "site_research",
        "event": "llm_call",
        **log.model_dump(mode="json"),
    }
    line = json.dumps(record)
    if log.outcome == "success":
        logger.info(line)
    else:
        logger.warning(line)


async def with_observability(
    spec: PromptSpec,
    model: str,
    inputs: Mapping[str, Any],
    retry_count: int,
    call: Callable[[], Awaitable[tuple[T, TokenUsage]]],
) -> tuple[T, LlmCallLog]:
    """Time ``call`` and emit one call log for it.

    ``call`` returns ``(output, usage)``. Errors are logged and re-raised unchanged.
    """
    started = time.perf_counter()
    try:
        output, usage = await call()
    except Exception as e:
        log = build_call_log(
            spec=spec,
            model=model,
            inputs=inputs,
            latency_ms=int((time.perf_counter() - started) * 1000),
            outcome="error",
            retry_count=retry_count,
            error_message=str(e),
        )
        emit_call_log(log)
        raise

    log = build_call_log(
        spec=spec,
        model=model,
        inputs=inputs,
        latency_ms=int((time.perf_counter() - started) * 1000),
        outcome="success",
        token_count=usage.total,
        cost=estimate_cost(model, usage.input_tokens, usage.output_tokens),
        retry_count=retry_count,
    )
    emit_call_log(log)
    return output, log
