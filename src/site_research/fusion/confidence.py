from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterator, Mapping

from pydantic import BaseModel

from site_research.fusion.models import Conf, SourceKind, SourceRef

BASE_CONFIDENCE: dict[SourceKind, float] = {
    SourceKind.BUSINESS_OWNER: 0.95,
    SourceKind.USER_PROVIDED: 0.90,
    SourceKind.GOOGLE_PLACES: 0.92,
    SourceKind.OSM: 0.80,
    SourceKind.REVIEW_PLATFORM: 0.80,
    SourceKind.DOMAIN_WHOIS: 0.70,
    SourceKind.STREET_VIEW: 0.70,
    SourceKind.SOCIAL_PROFILE: 0.70,
    SourceKind.LLM_GENERATED: 0.50,
    SourceKind.INTERNAL_INFERENCE: 0.45,
    SourceKind.STOCK_PHOTO: 0.30,
}

# Boost by number of distinct source kinds backing a field. Tuned values; keep as is.
CORROBORATION_BOOST: dict[int, float] = {1: 0.0, 2: 0.08, 3: 0.15, 4: 0.20}

MAX_CONFIDENCE = 0.98
EMPTY_PENALTY = 0.15
PLACEHOLDER_PENALTY = 0.10
LLM_ONLY_PENALTY = 0.15

SECTION_WEIGHTS: dict[str, int] = {
    "identity": 5,
    "operations": 4,
    "offerings": 3,
    "trust": 3,
    "brand": 2,
    "marketing": 2,
    "media": 1,
    "seo": 2,
}


def round_confidence(value: float) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def corroboration_boost(kind_count: int) -> float:
    if kind_count <= 1:
        return 0.0
    return CORROBORATION_BOOST[min(kind_count, 4)]


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def build_conf(
    value: Any,
    kind: SourceKind,
    rationale: str | None = None,
    *,
    is_placeholder: bool = False,
    source_id: str | None = None,
    source_url: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Conf:
    now = now or datetime.now(timezone.utc)
    confidence = BASE_CONFIDENCE[kind]
    if is_empty(value):
        confidence = max(0.0, confidence - EMPTY_PENALTY)
    if is_placeholder:
        confidence = max(0.0, confidence - PLACEHOLDER_PENALTY)
    return Conf(
        value=value,
        confidence=round_confidence(confidence),
        sources=[
            SourceRef(kind=kind, id=source_id, url=source_url, retrieved_at=now, notes=notes)
        ],
        rationale=rationale,
        last_verified_at=now,
        is_placeholder=is_placeholder,
    )


def llm_inferred(
    value: Any,
    rationale: str | None = None,
    *,
    source_id: str | None = None,
    now: datetime | None = None,
) -> Conf:
    """Conf for a field only the model can claim, with the extra unverified penalty."""
    conf = build_conf(value, SourceKind.LLM_GENERATED, rationale, source_id=source_id, now=now)
    return conf.model_copy(
        update={"confidence": round_confidence(max(0.0, conf.confidence - LLM_ONLY_PENALTY))}
    )


def merge_conf(a: Conf, b: Conf) -> Conf:
    """Fuse two observations of one field.

    The higher-confidence side provides the value; sources are unioned and the
    result is boosted by how many distinct source kinds now back it.
    """
    primary, secondary = (a, b) if a.confidence >= b.confidence else (b, a)

    seen: set[str] = set()
    sources: list[SourceRef] = []
    for ref in [*primary.sources, *secondary.sources]:
        if ref.dedup_key in seen:
            continue
        seen.add(ref.dedup_key)
        sources.append(ref)

    kinds = {ref.kind for ref in sources}
    confidence = min(MAX_CONFIDENCE, primary.confidence + corroboration_boost(len(kinds)))
    return Conf(
        value=primary.value,
        confidence=round_confidence(confidence),
        sources=sources,
        rationale=primary.rationale or secondary.rationale,
        last_verified_at=primary.last_verified_at,
        is_placeholder=primary.is_placeholder and secondary.is_placeholder,
    )


def iter_conf_leaves(node: Any) -> Iterator[Conf]:
    """Depth-first walk yielding every Conf under ``node``. Does not descend into Conf values."""
    if isinstance(node, Conf):
        yield node
    elif isinstance(node, BaseModel):
        for name in type(node).model_fields:
            yield from iter_conf_leaves(getattr(node, name))
    elif isinstance(node, Mapping):
        for item in node.values():
            yield from iter_conf_leaves(item)
    elif isinstance(node, (list, tuple)):
        for item in node:
            yield from iter_conf_leaves(item)


def section_confidence(section: Any) -> float:
    """Mean confidence of the Conf leaves under ``section``; 0.0 when there are none."""
    values = [leaf.confidence for leaf in iter_conf_leaves(section)]
    if not values:
        return 0.0
    return round_confidence(sum(values) / len(values))


def aggregate_confidence(section_scores: Mapping[str, float]) -> float:
    """Weighted mean of section scores, weighting identity and operations highest."""
    total_weight = 0
    weighted = 0.0
    for name, score in section_scores.items():
        weight = SECTION_WEIGHTS.get(name, 1)
        weighted += score * weight
        total_weight += weight
    if total_weight == 0:
        return 0.0
    return round_confidence(weighted / total_weight)
