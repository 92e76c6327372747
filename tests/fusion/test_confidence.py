from datetime import datetime, timezone

import pytest

from site_research.fusion import (
    BASE_CONFIDENCE,
    SourceKind,
    aggregate_confidence,
    build_conf,
    llm_inferred,
    merge_conf,
    section_confidence,
)
from site_research.fusion.confidence import MAX_CONFIDENCE, round_confidence
from site_research.fusion.models import Booking

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_base_confidence_per_source_kind():
    assert build_conf("x", SourceKind.USER_PROVIDED, now=NOW).confidence == 0.90
    assert build_conf("x", SourceKind.GOOGLE_PLACES, now=NOW).confidence == 0.92
    assert build_conf("x", SourceKind.LLM_GENERATED, now=NOW).confidence == 0.50
    assert build_conf("x", SourceKind.INTERNAL_INFERENCE, now=NOW).confidence == 0.45
    assert build_conf("x", SourceKind.STOCK_PHOTO, now=NOW).confidence == 0.30


@pytest.mark.parametrize("empty", [None, "", "   ", [], {}])
def test_empty_value_is_penalised(empty):
    for kind, base in BASE_CONFIDENCE.items():
        conf = build_conf(empty, kind, now=NOW)
        assert conf.confidence <= round_confidence(base - 0.15)


def test_placeholder_penalty_stacks_with_empty_penalty():
    assert build_conf("x", SourceKind.LLM_GENERATED, is_placeholder=True, now=NOW).confidence == 0.40
    assert build_conf("", SourceKind.LLM_GENERATED, is_placeholder=True, now=NOW).confidence == 0.25
    assert build_conf(None, SourceKind.STOCK_PHOTO, is_placeholder=True, now=NOW).confidence == 0.05


def test_llm_only_fields_carry_extra_penalty():
    assert llm_inferred(["cash"], now=NOW).confidence == 0.35
    assert llm_inferred([], now=NOW).confidence == 0.20


def test_merge_prefers_higher_confidence_and_boosts():
    llm = build_conf("555-0100", SourceKind.LLM_GENERATED, source_id="research_profile", now=NOW)
    places = build_conf("555-0199", SourceKind.GOOGLE_PLACES, source_id="place-1", now=NOW)

    merged = merge_conf(llm, places)

    assert merged.value == "555-0199"
    assert merged.confidence == 0.98
    assert {ref.kind for ref in merged.sources} == {SourceKind.LLM_GENERATED, SourceKind.GOOGLE_PLACES}


def test_merge_deduplicates_sources():
    a = build_conf("x", SourceKind.LLM_GENERATED, source_id="doc", now=NOW)
    b = build_conf("x", SourceKind.LLM_GENERATED, source_id="doc", now=NOW)

    merged = merge_conf(a, b)

    assert len(merged.sources) == 1
    assert merged.confidence == 0.50


def test_corroboration_boost_is_graduated_and_capped():
    conf = build_conf("x", SourceKind.INTERNAL_INFERENCE, source_id="i", now=NOW)
    history = [conf.confidence]
    for kind in (SourceKind.LLM_GENERATED, SourceKind.SOCIAL_PROFILE, SourceKind.OSM, SourceKind.DOMAIN_WHOIS):
        conf = merge_conf(conf, build_conf("x", kind, source_id=kind.value, now=NOW))
        history.append(conf.confidence)

    assert all(later >= earlier for earlier, later in zip(history, history[1:]))
    assert max(history) <= MAX_CONFIDENCE


def test_two_kind_boost_values():
    llm = build_conf("x", SourceKind.LLM_GENERATED, source_id="a", now=NOW)
    internal = build_conf("x", SourceKind.INTERNAL_INFERENCE, source_id="b", now=NOW)
    social = build_conf("x", SourceKind.SOCIAL_PROFILE, source_id="c", now=NOW)

    two = merge_conf(llm, internal)
    assert two.confidence == 0.58

    three = merge_conf(social, merge_conf(llm, internal))
    # social (0.70) wins over 0.58; three kinds add 0.15
    assert three.confidence == 0.85
    assert three.value == "x"


def test_placeholder_survives_merge_only_if_both_sides_are_placeholders():
    real = build_conf("x", SourceKind.LLM_GENERATED, now=NOW)
    placeholder = build_conf("y", SourceKind.INTERNAL_INFERENCE, is_placeholder=True, now=NOW)

    assert merge_conf(real, placeholder).is_placeholder is False
    assert merge_conf(placeholder, placeholder).is_placeholder is True


def test_section_confidence_averages_leaves():
    booking = Booking(
        url=build_conf("https://x", SourceKind.LLM_GENERATED, now=NOW),
        method=build_conf("online", SourceKind.USER_PROVIDED, now=NOW),
        lead_time=build_conf("", SourceKind.LLM_GENERATED, now=NOW),
    )

    assert section_confidence(booking) == round_confidence((0.50 + 0.90 + 0.35) / 3)
    assert section_confidence({}) == 0.0
    assert section_confidence([]) == 0.0


def test_aggregate_confidence_weights_identity_over_media():
    assert aggregate_confidence({"identity": 1.0, "media": 0.0}) == round_confidence(5 / 6)
    assert aggregate_confidence({}) == 0.0


def test_round_confidence_rounds_half_up():
    assert round_confidence(0.585) == 0.59
    assert round_confidence(0.125) == 0.13
