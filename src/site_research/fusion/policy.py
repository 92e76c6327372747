from enum import StrEnum

from site_research.fusion.models import ProminenceBand, UiPolicy

COMPONENT_THRESHOLDS: dict[str, float] = {
    "hero.title": 0.80,
    "hero.tagline": 0.80,
    "contact.phone": 0.85,
    "contact.booking_cta": 0.85,
    "contact.address": 0.85,
    "contact.map": 0.85,
    "hours.display": 0.80,
    "reviews.aggregate": 0.80,
    "services.pricing": 0.75,
    "team.bios": 0.70,
    "brand.colors": 0.70,
    "brand.fonts": 0.70,
    "marketing.copy": 0.60,
    "images.hero": 0.50,
    "images.gallery": 0.40,
}

DEFAULT_COMPONENT_THRESHOLD = 0.50


class ProminenceLevel(StrEnum):
    PROMINENT = "prominent"
    STANDARD = "standard"
    DEEMPHASIZE = "deemphasize"
    HIDE_OR_PLACEHOLDER = "hide_or_placeholder"


PROMINENCE_BANDS: list[ProminenceBand] = [
    ProminenceBand(
        level=ProminenceLevel.PROMINENT,
        min_confidence=0.85,
        max_confidence=1.0,
        description="Show prominently",
    ),
    ProminenceBand(
        level=ProminenceLevel.STANDARD,
        min_confidence=0.70,
        max_confidence=0.84,
        description="Show normally",
    ),
    ProminenceBand(
        level=ProminenceLevel.DEEMPHASIZE,
        min_confidence=0.50,
        max_confidence=0.69,
        description="Show with reduced emphasis",
    ),
    ProminenceBand(
        level=ProminenceLevel.HIDE_OR_PLACEHOLDER,
        min_confidence=0.0,
        max_confidence=0.49,
        description="Hide or render a placeholder",
    ),
]


def build_ui_policy() -> UiPolicy:
    return UiPolicy(
        component_thresholds=dict(COMPONENT_THRESHOLDS),
        prominence_levels=list(PROMINENCE_BANDS),
    )


def get_prominence_level(confidence: float) -> ProminenceLevel:
    for band in PROMINENCE_BANDS:
        if confidence >= band.min_confidence:
            return ProminenceLevel(band.level)
    return ProminenceLevel.HIDE_OR_PLACEHOLDER


def should_show_component(policy: UiPolicy, component: str, confidence: float) -> bool:
    threshold = policy.component_thresholds.get(component, DEFAULT_COMPONENT_THRESHOLD)
    return confidence >= threshold
