from datetime import datetime, timezone

import pytest

from site_research.fusion import ConfidenceFusionEngine, SourceKind
from site_research.fusion.confidence import aggregate_confidence, iter_conf_leaves, section_confidence
from site_research.fusion.models import SECTION_NAMES
from site_research.schemas import (
    GeoPoint,
    HoursEntry,
    PlacesPhoto,
    PlacesResult,
    PlacesReview,
    RawResearch,
    UserInputs,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine() -> ConfidenceFusionEngine:
    return ConfidenceFusionEngine(clock=lambda: NOW)


@pytest.fixture
def minimal_research() -> RawResearch:
    return RawResearch.model_validate(
        {
            "profile": {
                "business_name": "Corner Bakery",
                "services": [{"name": "Bread"}],
                "faq": [],
            }
        }
    )


@pytest.fixture
def places_result() -> PlacesResult:
    return PlacesResult(
        place_id="ChIJ-sharp",
        name="Sharp Cuts Barbershop",
        formatted_address="12 Main St, Springfield, IL 62701, USA",
        phone="+1 555-010-2000",
        website="https://sharpcuts.example",
        rating=4.7,
        review_count=98,
        hours=[HoursEntry(day="Monday", open="9:00 AM", close="6:00 PM")],
        geo=GeoPoint(lat=39.78, lng=-89.65),
        maps_url="https://maps.google.com/?cid=1",
        photos=[PlacesPhoto(url="https://maps.example/photo/1", attribution="Owner", width=800, height=600)],
        reviews=[PlacesReview(text="Best fade in town", author="Sam", rating=5, time="a week ago")],
    )


def test_llm_only_phone_has_base_confidence_and_no_warning(engine, minimal_research):
    research = minimal_research.model_copy(
        update={"profile": minimal_research.profile.model_copy(update={"phone": "555-0100"})}
    )

    profile = engine.fuse(research)

    assert profile.identity.phone.value == "555-0100"
    assert profile.identity.phone.confidence == pytest.approx(0.50)
    assert "Missing: phone number" not in profile.provenance.warnings


def test_missing_phone_everywhere_warns(engine, minimal_research):
    profile = engine.fuse(minimal_research, places=None, user_inputs=UserInputs())

    assert profile.identity.phone.confidence <= 0.35
    assert "Missing: phone number" in profile.provenance.warnings


def test_minimal_profile_warnings(engine, minimal_research):
    warnings = engine.fuse(minimal_research).provenance.warnings

    for expected in (
        "Missing: phone number",
        "Missing: email address",
        "Missing: website URL",
        "Missing: geo coordinates (lat/lng)",
        "Missing: booking URL",
        "Missing: customer reviews",
    ):
        assert expected in warnings


def test_every_empty_leaf_is_penalised(engine, minimal_research):
    profile = engine.fuse(minimal_research)

    for name in SECTION_NAMES:
        for leaf in iter_conf_leaves(getattr(profile, name)):
            if leaf.value in (None, "", [], {}):
                winning_kind = leaf.sources[0].kind
                assert leaf.confidence <= {
                    SourceKind.LLM_GENERATED: 0.35,
                    SourceKind.INTERNAL_INFERENCE: 0.30,
                    SourceKind.USER_PROVIDED: 0.75,
                    SourceKind.GOOGLE_PLACES: 0.77,
                }[winning_kind]


def test_places_and_user_input_corroborate_phone(engine, raw_research, places_result):
    profile = engine.fuse(
        raw_research,
        places=places_result,
        user_inputs=UserInputs(business_name="Sharp Cuts Barbershop", phone="+1 555 010 2000"),
    )
    phone = profile.identity.phone

    # the customer value wins the first merge and keeps the lead; three kinds agree
    assert phone.value == "+1 555 010 2000"
    assert phone.confidence == 0.98
    assert {ref.kind for ref in phone.sources} == {
        SourceKind.LLM_GENERATED,
        SourceKind.USER_PROVIDED,
        SourceKind.GOOGLE_PLACES,
    }
    assert profile.identity.directory.place_id.value == "ChIJ-sharp"
    assert profile.provenance.enrichment_pipeline == ["llm_research", "google_places"]


def test_user_address_overrides_model_address(engine, raw_research):
    profile = engine.fuse(raw_research, user_inputs=UserInputs(address="99 Elm St, Springfield"))

    formatted = profile.identity.address.formatted
    assert formatted.value == "99 Elm St, Springfield"
    assert formatted.confidence == pytest.approx(0.98)


def test_llm_only_fields_are_penalised(engine, raw_research):
    operations = engine.fuse(raw_research).operations

    assert operations.payments.value == ["cash", "card"]
    assert operations.payments.confidence == pytest.approx(0.35)
    assert operations.amenities.confidence == pytest.approx(0.35)
    assert operations.languages_spoken.confidence == pytest.approx(0.35)
    assert operations.accessibility.wheelchair.confidence == pytest.approx(0.20)


def test_section_and_overall_confidence(engine, raw_research):
    profile = engine.fuse(raw_research)
    provenance = profile.provenance

    assert set(provenance.section_confidence) == set(SECTION_NAMES)
    for name in SECTION_NAMES:
        assert provenance.section_confidence[name] == section_confidence(getattr(profile, name))
    expected = sum(provenance.section_confidence.values()) / len(SECTION_NAMES)
    assert provenance.overall_confidence == pytest.approx(expected, abs=0.006)
    assert provenance.version == "v3"
    assert provenance.generated_at == NOW
    assert provenance.enrichment_pipeline == ["llm_research"]


def test_weighted_overall_confidence_is_opt_in(raw_research):
    weighted = ConfidenceFusionEngine(clock=lambda: NOW, weighted_overall=True).fuse(raw_research)
    provenance = weighted.provenance

    assert provenance.overall_confidence == aggregate_confidence(provenance.section_confidence)


def test_irrelevant_images_are_dropped_and_urls_never_guessed(engine, raw_research):
    media = engine.fuse(raw_research).media

    concepts = [slot.concept.value for slot in media.hero_images]
    assert concepts == ["barber chair with clippers"]
    assert all(slot.url.value is None and slot.url.is_placeholder for slot in media.hero_images)

    gallery_alts = [slot.alt_text.value for slot in media.gallery]
    assert gallery_alts == ["Barber giving a skin fade"]
    assert media.placeholder_strategy.value == "generated_placeholder"


def test_directory_photos_keep_their_source(engine, raw_research, places_result):
    gallery = engine.fuse(raw_research, places=places_result).media.gallery

    photo = gallery[0]
    assert photo.url.value == "https://maps.example/photo/1"
    assert photo.url.sources[0].kind == SourceKind.GOOGLE_PLACES
    assert photo.url.sources[0].notes == "Owner"
    assert photo.aspect_ratio.value == "800:600"


def test_directory_reviews_become_quotes(engine, raw_research, places_result):
    reviews = engine.fuse(raw_research, places=places_result).trust.reviews

    assert [q.text.value for q in reviews.quotes] == ["Best fade in town"]
    assert reviews.rating.value == 4.7
    assert reviews.review_count.value == 98


def test_brand_defaults_fill_gaps(engine, raw_research):
    brand = engine.fuse(raw_research).brand

    assert brand.colors.primary.value == "#111827"
    assert brand.colors.primary.is_placeholder is False
    assert brand.colors.secondary.value == "#7c3aed"
    assert brand.colors.secondary.is_placeholder is True
    assert brand.fonts.heading.value == "Oswald"
    assert brand.fonts.body.value == "Inter"
    assert brand.logo.url.value is None
    assert brand.logo.fallback_text.value == "Sharp Cuts Barbershop"


def test_marketing_defaults(engine, raw_research, minimal_research):
    slogan = engine.fuse(raw_research).marketing.hero_slogans[0]
    assert slogan.cta_primary.text.value == "Book now"
    assert slogan.cta_secondary.text.value == "Learn More"
    assert slogan.cta_secondary.action.value == "#services"

    fallback = engine.fuse(minimal_research).marketing.hero_slogans
    assert len(fallback) == 1
    assert fallback[0].headline.value == "Corner Bakery"
    assert fallback[0].headline.is_placeholder is True


def test_seo_schema_type_follows_business_type(engine, raw_research, minimal_research):
    assert engine.fuse(raw_research).seo.schema_org_type.value == "HairSalon"
    assert engine.fuse(minimal_research).seo.schema_org_type.value == "LocalBusiness"


def test_ui_policy_travels_with_profile(engine, minimal_research):
    policy = engine.fuse(minimal_research).ui_policy

    assert policy.component_thresholds["contact.phone"] == 0.85
    assert [band.level for band in policy.prominence_levels] == [
        "prominent",
        "standard",
        "deemphasize",
        "hide_or_placeholder",
    ]


def test_fused_profile_round_trips_through_json(engine, raw_research, places_result):
    from site_research.fusion import FusedProfile

    profile = engine.fuse(raw_research, places=places_result)
    data = profile.model_dump(mode="json")

    restored = FusedProfile.model_validate(data)

    assert restored.provenance.overall_confidence == profile.provenance.overall_confidence
    assert restored.identity.phone.sources[0].kind == profile.identity.phone.sources[0].kind
