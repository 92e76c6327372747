from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class SourceKind(StrEnum):
    BUSINESS_OWNER = "business_owner"
    USER_PROVIDED = "user_provided"
    GOOGLE_PLACES = "google_places"
    OSM = "osm"
    REVIEW_PLATFORM = "review_platform"
    DOMAIN_WHOIS = "domain_whois"
    STREET_VIEW = "street_view"
    SOCIAL_PROFILE = "social_profile"
    LLM_GENERATED = "llm_generated"
    INTERNAL_INFERENCE = "internal_inference"
    STOCK_PHOTO = "stock_photo"


class SourceRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    id: str | None = None
    url: str | None = None
    retrieved_at: datetime
    notes: str | None = None

    @property
    def dedup_key(self) -> str:
        return f"{self.kind}:{self.id or self.url or ''}"


class Conf(BaseModel, Generic[T]):
    """A single profile value with its confidence and provenance."""

    model_config = ConfigDict(frozen=True)

    value: T
    confidence: float = Field(..., ge=0.0, le=1.0)
    sources: list[SourceRef]
    rationale: str | None = None
    last_verified_at: datetime
    is_placeholder: bool = False


class FusedRecord(BaseModel):
    model_config = ConfigDict(frozen=True)


class Address(FusedRecord):
    street: Conf
    city: Conf
    state: Conf
    zip: Conf
    country: Conf
    formatted: Conf


class DirectoryListing(FusedRecord):
    place_id: Conf
    maps_url: Conf


class ServiceArea(FusedRecord):
    description: Conf
    towns: Conf
    radius_miles: Conf


class IdentitySection(FusedRecord):
    business_name: Conf
    tagline: Conf
    description: Conf
    mission_statement: Conf
    business_type: Conf
    categories: Conf
    phone: Conf
    email: Conf
    website_url: Conf
    primary_contact_name: Conf
    address: Address
    geo: Conf
    directory: DirectoryListing
    service_area: ServiceArea
    neighborhood: Conf
    parking: Conf
    public_transit: Conf
    landmarks_nearby: Conf


class Booking(FusedRecord):
    url: Conf
    method: Conf
    lead_time: Conf


class Policies(FusedRecord):
    cancellation: Conf
    refund: Conf
    warranty: Conf


class Accessibility(FusedRecord):
    wheelchair: Conf
    notes: Conf


class OperationsSection(FusedRecord):
    hours: Conf
    holiday_hours: Conf
    booking: Booking
    policies: Policies
    payments: Conf
    amenities: Conf
    accessibility: Accessibility
    languages_spoken: Conf


class ServiceOffering(FusedRecord):
    name: Conf
    description: Conf
    price_from: Conf
    price_to: Conf
    duration_minutes: Conf


class FaqEntry(FusedRecord):
    question: Conf
    answer: Conf


class OfferingsSection(FusedRecord):
    services: list[ServiceOffering]
    products_sold: Conf
    guarantee_details: Conf
    faq: list[FaqEntry]


class TeamMember(FusedRecord):
    name: Conf
    role: Conf
    bio: Conf


class ReviewQuote(FusedRecord):
    text: Conf
    author: Conf
    rating: Conf


class Reviews(FusedRecord):
    rating: Conf
    review_count: Conf
    highlights: Conf
    quotes: list[ReviewQuote]


class SocialLink(FusedRecord):
    platform: Conf
    url: Conf


class ReviewPlatform(FusedRecord):
    platform: Conf
    url: Conf
    rating: Conf


class TrustSection(FusedRecord):
    team: list[TeamMember]
    reviews: Reviews
    social_links: list[SocialLink]
    review_platforms: list[ReviewPlatform]
    credentials: Conf
    before_after_gallery: Conf


class Logo(FusedRecord):
    url: Conf
    fallback_text: Conf
    fallback_font: Conf
    accent_color: Conf


class Palette(FusedRecord):
    primary: Conf
    secondary: Conf
    accent: Conf
    background: Conf
    surface: Conf
    text: Conf
    muted: Conf


class Fonts(FusedRecord):
    heading: Conf
    body: Conf


class BrandSection(FusedRecord):
    logo: Logo
    colors: Palette
    fonts: Fonts
    brand_personality: Conf
    style_notes: Conf
    tone: Conf


class SellingPoint(FusedRecord):
    headline: Conf
    description: Conf
    icon: Conf


class CallToAction(FusedRecord):
    text: Conf
    action: Conf


class HeroSlogan(FusedRecord):
    headline: Conf
    subheadline: Conf
    cta_primary: CallToAction
    cta_secondary: CallToAction


class MarketingSection(FusedRecord):
    selling_points: list[SellingPoint]
    hero_slogans: list[HeroSlogan]
    benefit_bullets: list[Conf]


class ImageSlot(FusedRecord):
    concept: Conf
    alt_text: Conf
    search_query: Conf
    aspect_ratio: Conf
    url: Conf


class MediaSection(FusedRecord):
    hero_images: list[ImageSlot]
    storefront_image: ImageSlot
    team_image: ImageSlot
    service_images: list[ImageSlot]
    gallery: list[ImageSlot]
    placeholder_strategy: Conf


class SeoSection(FusedRecord):
    title: Conf
    description: Conf
    keywords: Conf
    schema_org_type: Conf


class ProminenceBand(FusedRecord):
    level: str
    min_confidence: float
    max_confidence: float
    description: str


class UiPolicy(FusedRecord):
    component_thresholds: dict[str, float]
    prominence_levels: list[ProminenceBand]


class Provenance(FusedRecord):
    overall_confidence: float
    section_confidence: dict[str, float]
    warnings: list[str]
    enrichment_pipeline: list[str]
    generated_at: datetime
    version: str = "v3"


SECTION_NAMES = (
    "identity",
    "operations",
    "offerings",
    "trust",
    "brand",
    "marketing",
    "media",
    "seo",
)


class FusedProfile(FusedRecord):
    """The unified business profile. Every leaf under a section is a Conf."""

    identity: IdentitySection
    operations: OperationsSection
    offerings: OfferingsSection
    trust: TrustSection
    brand: BrandSection
    marketing: MarketingSection
    media: MediaSection
    seo: SeoSection
    ui_policy: UiPolicy
    provenance: Provenance

    def sections(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in SECTION_NAMES}
