"""Typed research documents.

Each model is permissive but typed: unknown keys are ignored and missing or
``null`` keys fall back to their defaults. Fields without a default are part of
the prompt's output contract and must be present.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ResearchRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        """Treat explicit nulls the same as absent keys so defaults apply."""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class RawAddress(ResearchRecord):
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    formatted: str = ""


class GeoPoint(ResearchRecord):
    lat: float
    lng: float


class RawServiceArea(ResearchRecord):
    description: str = ""
    towns: list[str] = Field(default_factory=list)
    radius_miles: float | None = None


class HoursEntry(ResearchRecord):
    day: str
    open: str = ""
    close: str = ""
    closed: bool = False


class RawBooking(ResearchRecord):
    url: str = ""
    method: str = ""
    lead_time: str = ""


class RawPolicies(ResearchRecord):
    cancellation: str = ""
    refund: str = ""
    warranty: str = ""


class RawAccessibility(ResearchRecord):
    wheelchair: bool | None = None
    notes: str = ""


class RawService(ResearchRecord):
    name: str = Field(..., min_length=1)
    description: str = ""
    price_from: float | None = None
    price_to: float | None = None
    duration_minutes: int | None = None


class RawFaq(ResearchRecord):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class RawTeamMember(ResearchRecord):
    name: str = Field(..., min_length=1)
    role: str = ""
    bio: str = ""


class RawReviewsSummary(ResearchRecord):
    rating: float | None = None
    review_count: int | None = None
    highlights: list[str] = Field(default_factory=list)


class ProfileResearch(ResearchRecord):
    business_name: str = Field(..., min_length=1)
    tagline: str = ""
    description: str = ""
    mission_statement: str = ""
    business_type: str = ""
    categories: list[str] = Field(default_factory=list)
    phone: str = ""
    email: str = ""
    website_url: str = ""
    primary_contact_name: str = ""
    address: RawAddress = Field(default_factory=RawAddress)
    geo: GeoPoint | None = None
    service_area: RawServiceArea = Field(default_factory=RawServiceArea)
    neighborhood: str = ""
    parking: str = ""
    public_transit: str = ""
    landmarks_nearby: list[str] = Field(default_factory=list)
    hours: list[HoursEntry] = Field(default_factory=list)
    booking: RawBooking = Field(default_factory=RawBooking)
    policies: RawPolicies = Field(default_factory=RawPolicies)
    payments: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    accessibility: RawAccessibility = Field(default_factory=RawAccessibility)
    languages_spoken: list[str] = Field(default_factory=list)
    services: list[RawService] = Field(..., min_length=1, max_length=8)
    products_sold: list[str] = Field(default_factory=list)
    guarantee_details: str = ""
    faq: list[RawFaq]
    team: list[RawTeamMember] = Field(default_factory=list)
    reviews_summary: RawReviewsSummary = Field(default_factory=RawReviewsSummary)
    seo_title: str = ""
    seo_description: str = ""
    seo_keywords: list[str] = Field(default_factory=list)


class RawSocialLink(ResearchRecord):
    platform: str
    url: str = ""


class RawReviewPlatform(ResearchRecord):
    platform: str
    url: str = ""
    rating: float | None = None
    review_count: int | None = None


class RawPhoto(ResearchRecord):
    url: str = ""
    alt_text: str = ""


class SocialResearch(ResearchRecord):
    social_links: list[RawSocialLink] = Field(default_factory=list)
    website_url: str = ""
    review_platforms: list[RawReviewPlatform] = Field(default_factory=list)
    google_business_photos: list[RawPhoto] = Field(default_factory=list)


class RawLogo(ResearchRecord):
    found_online: bool = False
    url: str = ""
    fallback_text: str = ""
    fallback_font: str = ""
    accent_color: str = ""


class RawColors(ResearchRecord):
    primary: str = ""
    secondary: str = ""
    accent: str = ""
    background: str = ""
    surface: str = ""
    text: str = ""
    muted: str = ""


class RawFonts(ResearchRecord):
    heading: str = ""
    body: str = ""


class BrandResearch(ResearchRecord):
    logo: RawLogo = Field(default_factory=RawLogo)
    colors: RawColors = Field(default_factory=RawColors)
    fonts: RawFonts = Field(default_factory=RawFonts)
    brand_personality: str = ""
    style_notes: str = ""


class RawSellingPoint(ResearchRecord):
    headline: str = ""
    description: str = ""
    icon: str = ""


class RawCta(ResearchRecord):
    text: str = ""
    action: str = ""


class RawSlogan(ResearchRecord):
    headline: str = ""
    subheadline: str = ""
    cta_primary: RawCta | None = None
    cta_secondary: RawCta | None = None


class SellingPointsResearch(ResearchRecord):
    selling_points: list[RawSellingPoint] = Field(default_factory=list)
    hero_slogans: list[RawSlogan] = Field(default_factory=list)
    benefit_bullets: list[str] = Field(default_factory=list)


class RawHeroImage(ResearchRecord):
    concept: str = ""
    url: str = ""
    search_query: str = ""
    alt_text: str = ""
    aspect_ratio: str = ""


class RawStorefrontImage(ResearchRecord):
    url: str = ""
    search_query: str = ""
    alt_text: str = ""


class RawServiceImage(ResearchRecord):
    service_name: str = ""
    search_query: str = ""
    alt_text: str = ""


class ImagesResearch(ResearchRecord):
    hero_images: list[RawHeroImage] = Field(default_factory=list)
    storefront_image: RawStorefrontImage | None = None
    service_images: list[RawServiceImage] = Field(default_factory=list)


class RawResearch(BaseModel):
    """The five research documents, each already validated on its own."""

    profile: ProfileResearch
    social: SocialResearch = Field(default_factory=SocialResearch)
    brand: BrandResearch = Field(default_factory=BrandResearch)
    selling_points: SellingPointsResearch = Field(default_factory=SellingPointsResearch)
    images: ImagesResearch = Field(default_factory=ImagesResearch)


class PlacesPhoto(ResearchRecord):
    url: str
    attribution: str = ""
    width: int | None = None
    height: int | None = None


class PlacesReview(ResearchRecord):
    text: str = ""
    author: str = ""
    rating: float | None = None
    time: str = ""


class PlacesResult(ResearchRecord):
    """Structured business directory lookup (Google Places)."""

    place_id: str
    name: str = ""
    formatted_address: str = ""
    phone: str = ""
    website: str = ""
    rating: float | None = None
    review_count: int | None = None
    hours: list[HoursEntry] = Field(default_factory=list)
    geo: GeoPoint | None = None
    maps_url: str = ""
    photos: list[PlacesPhoto] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    price_level: int | None = None
    reviews: list[PlacesReview] = Field(default_factory=list)
    business_status: str = ""


class UserInputs(BaseModel):
    """Caller-supplied overrides. Trusted above model output."""

    business_name: str = ""
    address: str = ""
    phone: str = ""


class QualityScores(ResearchRecord):
    accuracy: float = Field(..., ge=0.0, le=1.0)
    completeness: float = Field(..., ge=0.0, le=1.0)
    professionalism: float = Field(..., ge=0.0, le=1.0)
    seo: float = Field(..., ge=0.0, le=1.0)
    accessibility: float = Field(..., ge=0.0, le=1.0)


class ScoreWebsiteOutput(ResearchRecord):
    scores: QualityScores
    overall: float = Field(..., ge=0.0, le=1.0)
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
