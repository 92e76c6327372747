import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from pydantic import BaseModel, ValidationError

from site_research.prompts.models import (
    PromptSpec,
    VariantConfig,
    build_prompt_key,
    check_variant_weights,
)
from site_research.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

PROMPT_KEY_PREFIX = "prompt:"
VARIANT_CONFIG_KEY_PREFIX = "variant_config:"


def bucketing_hash(value: str) -> int:
    """32-bit string hash used only to spread seeds across A/B buckets.

    Same arithmetic as Java's ``String.hashCode`` (over UTF-16 code units),
    wrapped to a signed 32-bit integer and returned as its absolute value.
    This is a load-balancing hash, not a security primitive.
    """
    h = 0
    encoded = value.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


@dataclass(frozen=True)
class RegistrySnapshot:
    """A complete, consistent view of the registry. Never mutated after creation."""

    specs: Mapping[str, PromptSpec] = field(default_factory=lambda: MappingProxyType({}))
    variant_configs: Mapping[str, VariantConfig] = field(
        default_factory=lambda: MappingProxyType({})
    )


class RegistryStats(BaseModel):
    total_prompts: int
    unique_ids: int
    variant_configs: int


class PromptRegistry:
    """Versioned prompt store with deterministic A/B variant selection.

    Reads go against the last committed snapshot without locking. Every write
    builds a new snapshot and swaps it in under a single lock, so readers never
    observe a half-applied update.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = RegistrySnapshot()

    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    def replace(self, snapshot: RegistrySnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    def _commit(
        self,
        specs: Iterable[PromptSpec] = (),
        variant_configs: Iterable[VariantConfig] = (),
    ) -> None:
        with self._lock:
            current = self._snapshot
            new_specs = dict(current.specs)
            for spec in specs:
                new_specs[spec.key] = spec
            new_configs = dict(current.variant_configs)
            for config in variant_configs:
                new_configs[build_prompt_key(config.prompt_id, config.version)] = config
            self._snapshot = RegistrySnapshot(
                specs=MappingProxyType(new_specs),
                variant_configs=MappingProxyType(new_configs),
            )

    def register(self, spec: PromptSpec) -> None:
        """Insert or overwrite the entry at ``(id, version, variant)``. Last write wins."""
        self._commit(specs=[spec])

    def register_all(self, specs: Iterable[PromptSpec]) -> None:
        self._commit(specs=list(specs))

    def configure_variants(self, prompt_id: str, version: int, weights: dict[str, int]) -> None:
        """Set the A/B weights for ``prompt_id@version``, replacing any previous split."""
        check_variant_weights(prompt_id, version, weights)
        self._commit(
            variant_configs=[
                VariantConfig(prompt_id=prompt_id, version=version, weights=dict(weights))
            ]
        )

    def clear(self) -> None:
        self.replace(RegistrySnapshot())

    def resolve(self, prompt_id: str, version: int) -> PromptSpec | None:
        return self.resolve_exact(prompt_id, version)

    def resolve_exact(
        self, prompt_id: str, version: int, variant: str | None = None
    ) -> PromptSpec | None:
        return self._snapshot.specs.get(build_prompt_key(prompt_id, version, variant))

    def resolve_latest(self, prompt_id: str) -> PromptSpec | None:
        """Highest-versioned base entry for ``prompt_id``. Variants never count."""
        candidates = [
            spec
            for spec in self._snapshot.specs.values()
            if spec.id == prompt_id and spec.variant is None
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda spec: spec.version)

    def list_all(self) -> list[PromptSpec]:
        return list(self._snapshot.specs.values())

    def list_versions(self, prompt_id: str) -> list[int]:
        return sorted(
            spec.version
            for spec in self._snapshot.specs.values()
            if spec.id == prompt_id and spec.variant is None
        )

    def list_variants(self, prompt_id: str, version: int) -> list[PromptSpec]:
        return [
            spec
            for spec in self._snapshot.specs.values()
            if spec.id == prompt_id and spec.version == version and spec.variant is not None
        ]

    def get_variant_config(self, prompt_id: str, version: int) -> VariantConfig | None:
        return self._snapshot.variant_configs.get(build_prompt_key(prompt_id, version))

    def select_variant(self, prompt_id: str, version: int, seed: str) -> str | None:
        """Pick a variant for ``seed``. The same inputs always give the same variant."""
        config = self.get_variant_config(prompt_id, version)
        if config is None or not config.weights:
            return None

        bucket = bucketing_hash(f"{seed}{prompt_id}{version}") % 100
        cumulative = 0
        for variant, weight in config.weights.items():
            cumulative += weight
            if bucket < cumulative:
                return variant
        return next(iter(config.weights))

    def resolve_variant(self, prompt_id: str, version: int, seed: str) -> PromptSpec | None:
        variant = self.select_variant(prompt_id, version, seed)
        if variant is not None:
            spec = self.resolve_exact(prompt_id, version, variant)
            if spec is not None:
                return spec
        return self.resolve_exact(prompt_id, version)

    def stats(self) -> RegistryStats:
        snapshot = self._snapshot
        return RegistryStats(
            total_prompts=len(snapshot.specs),
            unique_ids=len({spec.id for spec in snapshot.specs.values()}),
            variant_configs=len(snapshot.variant_configs),
        )

    async def load_from_kv(
        self, store: KeyValueStore, prompt_ids: list[str] | None = None
    ) -> int:
        """Load prompts and variant configs from ``store``.

        Bad entries are logged and skipped. Everything that parsed is applied
        in one commit. Returns how many entries were loaded.
        """
        specs: list[PromptSpec] = []
        for key in await store.list_keys(PROMPT_KEY_PREFIX):
            if prompt_ids and not any(
                key.startswith(f"{PROMPT_KEY_PREFIX}{prompt_id}@") for prompt_id in prompt_ids
            ):
                continue
            raw = await store.get(key)
            if raw is None:
                continue
            try:
                specs.append(PromptSpec.model_validate_json(raw))
            except ValidationError as e:
                logger.warning(f"Failed to parse KV prompt: {key} ({e.error_count()} errors)")

        configs: list[VariantConfig] = []
        for key in await store.list_keys(VARIANT_CONFIG_KEY_PREFIX):
            raw = await store.get(key)
            if raw is None:
                continue
            try:
                configs.append(VariantConfig.model_validate_json(raw))
            except ValidationError as e:
                logger.warning(f"Failed to parse KV variant config: {key} ({e.error_count()} errors)")

        self._commit(specs=specs, variant_configs=configs)
        loaded = len(specs) + len(configs)
        logger.info(f"Loaded {len(specs)} prompts and {len(configs)} variant configs from KV")
        return loaded

    @staticmethod
    async def save_to_kv(store: KeyValueStore, spec: PromptSpec) -> str:
        key = f"{PROMPT_KEY_PREFIX}{spec.key}"
        await store.put(key, spec.to_hot_patch_json())
        return key

    @staticmethod
    async def save_variant_config_to_kv(store: KeyValueStore, config: VariantConfig) -> str:
        key = f"{VARIANT_CONFIG_KEY_PREFIX}{build_prompt_key(config.prompt_id, config.version)}"
        await store.put(key, config.to_hot_patch_json())
        return key
