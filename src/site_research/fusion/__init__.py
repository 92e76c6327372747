from .confidence import (
    BASE_CONFIDENCE,
    CORROBORATION_BOOST,
    aggregate_confidence,
    build_conf,
    llm_inferred,
    merge_conf,
    section_confidence,
)
from .engine import ConfidenceFusionEngine
from .images import is_image_relevant
from .models import Conf, FusedProfile, SourceKind, SourceRef
from .policy import ProminenceLevel, get_prominence_level, should_show_component


__all__ = [
    "BASE_CONFIDENCE",
    "CORROBORATION_BOOST",
    "ConfidenceFusionEngine",
    "Conf",
    "FusedProfile",
    "ProminenceLevel",
    "SourceKind",
    "SourceRef",
    "aggregate_confidence",
    "build_conf",
    "get_prominence_level",
    "is_image_relevant",
    "llm_inferred",
    "merge_conf",
    "section_confidence",
    "should_show_component",
]
