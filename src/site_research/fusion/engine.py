import logging
from datetime import datetime, timezone
from typing import Any, Callable

from site_research.fusion.confidence import (
    aggregate_confidence,
    build_conf,
    is_empty,
    llm_inferred,
    merge_conf,
    round_confidence,
    section_confidence,
)
from site_research.fusion.images import detect_business_category, is_image_relevant
from site_research.fusion.models import (
    Accessibility,
    Address,
    Booking,
    BrandSection,
    CallToAction,
    Conf,
    DirectoryListing,
    FaqEntry,
    Fonts,
    FusedProfile,
    HeroSlogan,
    IdentitySection,
    ImageSlot,
    Logo,
    MarketingSection,
    MediaSection,
    OfferingsSection,
    OperationsSection,
    Palette,
    Policies,
    Provenance,
    ReviewPlatform,
    ReviewQuote,
    Reviews,
    SECTION_NAMES,
    SellingPoint,
    SeoSection,
    ServiceArea,
    ServiceOffering,
    SocialLink,
    SourceKind,
    TeamMember,
    TrustSection,
)
from site_research.fusion.policy import build_ui_policy
from site_research.schemas import PlacesResult, RawResearch, RawSlogan, UserInputs

logger = logging.getLogger(__name__)

DEFAULT_COLORS = {
    "primary": "#2563eb",
    "secondary": "#7c3aed",
    "accent": "#64ffda",
    "background": "#ffffff",
    "surface": "#f8fafc",
    "text": "#1e293b",
    "muted": "#64748b",
}
DEFAULT_FONT = "Inter"
DEFAULT_TONE = "friendly"
DEFAULT_PRIMARY_CTA = ("Get Started", "#contact")
DEFAULT_SECONDARY_CTA = ("Learn More", "#services")
PLACEHOLDER_STRATEGY = "generated_placeholder"

SCHEMA_ORG_TYPES = {
    "barber": "HairSalon",
    "salon": "BeautySalon",
    "restaurant": "Restaurant",
    "dentist": "Dentist",
    "plumber": "Plumber",
}

PROFILE_DOC = "research_profile"
SOCIAL_DOC = "research_social"
BRAND_DOC = "research_brand"
SELLING_POINTS_DOC = "research_selling_points"
IMAGES_DOC = "research_images"

UNVERIFIED_IMAGE = "No verified photo for this slot; render a generated placeholder"


class ConfidenceFusionEngine:
    """Merge research documents, directory data and user input into one FusedProfile."""

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        weighted_overall: bool = False,
    ):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.weighted_overall = weighted_overall

    def fuse(
        self,
        research: RawResearch,
        places: PlacesResult | None = None,
        user_inputs: UserInputs | None = None,
    ) -> FusedProfile:
        run = _FusionRun(
            research, places, user_inputs or UserInputs(), self._clock(), self.weighted_overall
        )
        profile = run.build()
        logger.info(
            f"Fused profile for '{profile.identity.business_name.value}': "
            f"overall confidence {profile.provenance.overall_confidence}, "
            f"{len(profile.provenance.warnings)} warnings"
        )
        return profile


class _FusionRun:
    """State for a single fuse() call."""

    def __init__(
        self,
        research: RawResearch,
        places: PlacesResult | None,
        user: UserInputs,
        now: datetime,
        weighted_overall: bool = False,
    ):
        self.research = research
        self.places = places
        self.user = user
        self.now = now
        self.weighted_overall = weighted_overall
        self.warnings: list[str] = []

    def _llm(self, value: Any, doc: str = PROFILE_DOC, rationale: str | None = None) -> Conf:
        return build_conf(value, SourceKind.LLM_GENERATED, rationale, source_id=doc, now=self.now)

    def _inferred(self, value: Any) -> Conf:
        return llm_inferred(
            value,
            "Model inference only; no independent source can verify this",
            source_id=PROFILE_DOC,
            now=self.now,
        )

    def _placeholder(self, value: Any, rationale: str) -> Conf:
        return build_conf(
            value, SourceKind.INTERNAL_INFERENCE, rationale, is_placeholder=True, now=self.now
        )

    def _internal(self, value: Any, rationale: str) -> Conf:
        return build_conf(value, SourceKind.INTERNAL_INFERENCE, rationale, now=self.now)

    def _llm_or_default(self, value: Any, default: Any, doc: str, rationale: str) -> Conf:
        if is_empty(value):
            return self._placeholder(default, rationale)
        return self._llm(value, doc)

    def _user(self, attr: str) -> Conf | None:
        value = getattr(self.user, attr)
        if is_empty(value):
            return None
        return build_conf(
            value, SourceKind.USER_PROVIDED, "Supplied by the customer", now=self.now
        )

    def _place(self, attr: str) -> Conf | None:
        if self.places is None:
            return None
        return self._place_value(getattr(self.places, attr))

    def _place_value(
        self, value: Any, *, source_url: str | None = None, notes: str | None = None
    ) -> Conf | None:
        if self.places is None or is_empty(value):
            return None
        return build_conf(
            value,
            SourceKind.GOOGLE_PLACES,
            "Business directory listing",
            source_id=self.places.place_id,
            source_url=source_url or self.places.maps_url or None,
            notes=notes,
            now=self.now,
        )

    @staticmethod
    def _corroborate(conf: Conf, *others: Conf | None) -> Conf:
        for other in others:
            if other is not None:
                conf = merge_conf(conf, other)
        return conf

    def _warn_if_empty(self, conf: Conf, message: str) -> None:
        if is_empty(conf.value):
            self.warnings.append(message)

    def _image_slot(
        self,
        *,
        concept: str = "",
        alt_text: str = "",
        search_query: str = "",
        aspect_ratio: str = "",
        doc: str = IMAGES_DOC,
    ) -> ImageSlot:
        return ImageSlot(
            concept=self._llm(concept, doc),
            alt_text=self._llm(alt_text, doc),
            search_query=self._llm(search_query, doc),
            aspect_ratio=self._llm(aspect_ratio, doc),
            url=self._placeholder(None, UNVERIFIED_IMAGE),
        )

    def _placeholder_slot(self, concept: str, rationale: str) -> ImageSlot:
        return ImageSlot(
            concept=self._placeholder(concept, rationale),
            alt_text=self._placeholder("", rationale),
            search_query=self._placeholder("", rationale),
            aspect_ratio=self._placeholder("", rationale),
            url=self._placeholder(None, UNVERIFIED_IMAGE),
        )

    def build(self) -> FusedProfile:
        identity = self._identity()
        operations = self._operations()
        offerings = self._offerings()
        trust = self._trust()
        brand = self._brand(identity)
        marketing = self._marketing(identity)
        media = self._media(identity)
        seo = self._seo(identity)

        sections = {
            "identity": identity,
            "operations": operations,
            "offerings": offerings,
            "trust": trust,
            "brand": brand,
            "marketing": marketing,
            "media": media,
            "seo": seo,
        }
        scores = {name: section_confidence(sections[name]) for name in SECTION_NAMES}
        if self.weighted_overall:
            overall = aggregate_confidence(scores)
        else:
            overall = round_confidence(sum(scores.values()) / len(scores))

        pipeline = ["llm_research"]
        if self.places is not None:
            pipeline.append("google_places")

        return FusedProfile(
            **sections,
            ui_policy=build_ui_policy(),
            provenance=Provenance(
                overall_confidence=overall,
                section_confidence=scores,
                warnings=list(self.warnings),
                enrichment_pipeline=pipeline,
                generated_at=self.now,
            ),
        )

    def _identity(self) -> IdentitySection:
        p = self.research.profile
        a = p.address
        formatted = a.formatted or ", ".join(
            part for part in (a.street, a.city, a.state, a.zip) if part
        )

        phone = self._corroborate(self._llm(p.phone), self._user("phone"), self._place("phone"))
        email = self._llm(p.email)
        website = self._corroborate(
            self._llm(p.website_url),
            self._llm(self.research.social.website_url, SOCIAL_DOC)
            if self.research.social.website_url
            else None,
            self._place("website"),
        )
        geo = self._corroborate(self._llm(p.geo), self._place("geo"))

        self._warn_if_empty(phone, "Missing: phone number")
        self._warn_if_empty(email, "Missing: email address")
        self._warn_if_empty(website, "Missing: website URL")
        self._warn_if_empty(geo, "Missing: geo coordinates (lat/lng)")

        no_listing = "No business directory match"
        return IdentitySection(
            business_name=self._corroborate(
                self._llm(p.business_name), self._user("business_name"), self._place("name")
            ),
            tagline=self._llm(p.tagline),
            description=self._llm(p.description),
            mission_statement=self._llm(p.mission_statement),
            business_type=self._llm(p.business_type),
            categories=self._llm(p.categories),
            phone=phone,
            email=email,
            website_url=website,
            primary_contact_name=self._llm(p.primary_contact_name),
            address=Address(
                street=self._llm(a.street),
                city=self._llm(a.city),
                state=self._llm(a.state),
                zip=self._llm(a.zip),
                country=self._llm(a.country),
                formatted=self._corroborate(
                    self._llm(formatted),
                    self._user("address"),
                    self._place("formatted_address"),
                ),
            ),
            geo=geo,
            directory=DirectoryListing(
                place_id=self._place("place_id") or self._internal(None, no_listing),
                maps_url=self._place("maps_url") or self._internal(None, no_listing),
            ),
            service_area=ServiceArea(
                description=self._llm(p.service_area.description),
                towns=self._llm(p.service_area.towns),
                radius_miles=self._llm(p.service_area.radius_miles),
            ),
            neighborhood=self._llm(p.neighborhood),
            parking=self._llm(p.parking),
            public_transit=self._llm(p.public_transit),
            landmarks_nearby=self._llm(p.landmarks_nearby),
        )

    def _operations(self) -> OperationsSection:
        p = self.research.profile
        booking = Booking(
            url=self._llm(p.booking.url),
            method=self._llm(p.booking.method),
            lead_time=self._llm(p.booking.lead_time),
        )
        self._warn_if_empty(booking.url, "Missing: booking URL")

        return OperationsSection(
            hours=self._corroborate(self._llm(p.hours), self._place("hours")),
            holiday_hours=self._placeholder([], "Holiday hours are not published"),
            booking=booking,
            policies=Policies(
                cancellation=self._llm(p.policies.cancellation),
                refund=self._llm(p.policies.refund),
                warranty=self._llm(p.policies.warranty),
            ),
            payments=self._inferred(p.payments),
            amenities=self._inferred(p.amenities),
            accessibility=Accessibility(
                wheelchair=self._inferred(p.accessibility.wheelchair),
                notes=self._inferred(p.accessibility.notes),
            ),
            languages_spoken=self._inferred(p.languages_spoken),
        )

    def _offerings(self) -> OfferingsSection:
        p = self.research.profile
        return OfferingsSection(
            services=[
                ServiceOffering(
                    name=self._llm(s.name),
                    description=self._llm(s.description),
                    price_from=self._llm(s.price_from),
                    price_to=self._llm(s.price_to),
                    duration_minutes=self._llm(s.duration_minutes),
                )
                for s in p.services
            ],
            products_sold=self._llm(p.products_sold),
            guarantee_details=self._llm(p.guarantee_details),
            faq=[
                FaqEntry(question=self._llm(f.question), answer=self._llm(f.answer))
                for f in p.faq
            ],
        )

    def _trust(self) -> TrustSection:
        p = self.research.profile
        social = self.research.social
        summary = p.reviews_summary

        quotes = []
        if self.places is not None:
            quotes = [
                ReviewQuote(
                    text=self._place_value(review.text) or self._internal("", "Empty review"),
                    author=self._place_value(review.author) or self._internal("", "Anonymous"),
                    rating=self._place_value(review.rating) or self._internal(None, "Unrated"),
                )
                for review in self.places.reviews
            ]

        reviews = Reviews(
            rating=self._corroborate(self._llm(summary.rating), self._place("rating")),
            review_count=self._corroborate(
                self._llm(summary.review_count), self._place("review_count")
            ),
            highlights=self._llm(summary.highlights),
            quotes=quotes,
        )
        if is_empty(reviews.rating.value) and is_empty(reviews.highlights.value) and not quotes:
            self.warnings.append("Missing: customer reviews")

        return TrustSection(
            team=[
                TeamMember(name=self._llm(m.name), role=self._llm(m.role), bio=self._llm(m.bio))
                for m in p.team
            ],
            reviews=reviews,
            social_links=[
                SocialLink(
                    platform=self._llm(link.platform, SOCIAL_DOC),
                    url=self._llm(link.url, SOCIAL_DOC),
                )
                for link in social.social_links
            ],
            review_platforms=[
                ReviewPlatform(
                    platform=self._llm(rp.platform, SOCIAL_DOC),
                    url=self._llm(rp.url, SOCIAL_DOC),
                    rating=self._llm(rp.rating, SOCIAL_DOC),
                )
                for rp in social.review_platforms
            ],
            credentials=self._placeholder([], "No licences or certifications verified"),
            before_after_gallery=self._placeholder([], "No before/after photos supplied"),
        )

    def _brand(self, identity: IdentitySection) -> BrandSection:
        brand = self.research.brand
        colors = brand.colors
        default_palette = "Default palette; brand colours not found"
        default_font = "Default typeface; brand fonts not found"

        palette = Palette(
            **{
                name: self._llm_or_default(
                    getattr(colors, name), default, BRAND_DOC, default_palette
                )
                for name, default in DEFAULT_COLORS.items()
            }
        )
        logo_url = (
            self._placeholder(None, "Logo found online but not verified; render the text logo")
            if brand.logo.url
            else self._placeholder(None, "No logo found; render the text logo")
        )
        return BrandSection(
            logo=Logo(
                url=logo_url,
                fallback_text=self._llm_or_default(
                    brand.logo.fallback_text,
                    identity.business_name.value,
                    BRAND_DOC,
                    "Text logo from the business name",
                ),
                fallback_font=self._llm_or_default(
                    brand.logo.fallback_font, DEFAULT_FONT, BRAND_DOC, default_font
                ),
                accent_color=self._llm_or_default(
                    brand.logo.accent_color, palette.accent.value, BRAND_DOC, default_palette
                ),
            ),
            colors=palette,
            fonts=Fonts(
                heading=self._llm_or_default(brand.fonts.heading, DEFAULT_FONT, BRAND_DOC, default_font),
                body=self._llm_or_default(brand.fonts.body, DEFAULT_FONT, BRAND_DOC, default_font),
            ),
            brand_personality=self._llm(brand.brand_personality, BRAND_DOC),
            style_notes=self._llm(brand.style_notes, BRAND_DOC),
            tone=self._placeholder(DEFAULT_TONE, "Copy tone not researched"),
        )

    def _cta(self, cta: Any, default: tuple[str, str]) -> CallToAction:
        text = cta.text if cta is not None else ""
        action = cta.action if cta is not None else ""
        return CallToAction(
            text=self._llm_or_default(text, default[0], SELLING_POINTS_DOC, "Default call to action"),
            action=self._llm_or_default(
                action, default[1], SELLING_POINTS_DOC, "Default call to action"
            ),
        )

    def _marketing(self, identity: IdentitySection) -> MarketingSection:
        research = self.research.selling_points
        slogans = research.hero_slogans or [
            RawSlogan(
                headline=identity.tagline.value or identity.business_name.value or "",
                subheadline=identity.description.value or "",
            )
        ]
        fallback = not research.hero_slogans

        def headline(value: str) -> Conf:
            if fallback:
                return self._placeholder(value, "No slogan researched; derived from the profile")
            return self._llm(value, SELLING_POINTS_DOC)

        return MarketingSection(
            selling_points=[
                SellingPoint(
                    headline=self._llm(sp.headline, SELLING_POINTS_DOC),
                    description=self._llm(sp.description, SELLING_POINTS_DOC),
                    icon=self._llm(sp.icon, SELLING_POINTS_DOC),
                )
                for sp in research.selling_points
            ],
            hero_slogans=[
                HeroSlogan(
                    headline=headline(s.headline),
                    subheadline=headline(s.subheadline),
                    cta_primary=self._cta(s.cta_primary, DEFAULT_PRIMARY_CTA),
                    cta_secondary=self._cta(s.cta_secondary, DEFAULT_SECONDARY_CTA),
                )
                for s in slogans
            ],
            benefit_bullets=[
                self._llm(bullet, SELLING_POINTS_DOC) for bullet in research.benefit_bullets
            ],
        )

    def _media(self, identity: IdentitySection) -> MediaSection:
        images = self.research.images
        name = identity.business_name.value or ""
        business_type = self.research.profile.business_type

        hero_images = [
            self._image_slot(
                concept=h.concept,
                alt_text=h.alt_text,
                search_query=h.search_query,
                aspect_ratio=h.aspect_ratio or "16:9",
            )
            for h in images.hero_images
            if is_image_relevant(h.concept or h.alt_text, name, business_type)
        ]
        dropped = len(images.hero_images) - len(hero_images)
        if dropped:
            logger.debug(f"Dropped {dropped} irrelevant hero image concepts for '{name}'")

        storefront = images.storefront_image
        storefront_slot = (
            self._image_slot(
                concept="storefront",
                alt_text=storefront.alt_text,
                search_query=storefront.search_query,
                aspect_ratio="4:3",
            )
            if storefront is not None
            else self._placeholder_slot("storefront", "No storefront photo researched")
        )

        gallery: list[ImageSlot] = []
        if self.places is not None:
            for photo in self.places.photos:
                alt_text = f"Photo of {name}" if name else "Business photo"
                gallery.append(
                    ImageSlot(
                        concept=self._place_value("gallery photo", source_url=photo.url),
                        alt_text=self._place_value(alt_text, source_url=photo.url),
                        search_query=self._internal("", "Directory photo; no search needed"),
                        aspect_ratio=self._place_value(
                            f"{photo.width}:{photo.height}" if photo.width and photo.height else "",
                            source_url=photo.url,
                        )
                        or self._internal("", "Unknown dimensions"),
                        url=self._place_value(
                            photo.url, source_url=photo.url, notes=photo.attribution or None
                        )
                        or self._placeholder(None, UNVERIFIED_IMAGE),
                    )
                )
        for photo in self.research.social.google_business_photos:
            if is_image_relevant(photo.alt_text, name, business_type):
                gallery.append(
                    self._image_slot(concept="gallery photo", alt_text=photo.alt_text, doc=SOCIAL_DOC)
                )

        return MediaSection(
            hero_images=hero_images,
            storefront_image=storefront_slot,
            team_image=self._placeholder_slot("team", "No team photo supplied"),
            service_images=[
                self._image_slot(
                    concept=si.service_name,
                    alt_text=si.alt_text,
                    search_query=si.search_query,
                    aspect_ratio="1:1",
                )
                for si in images.service_images
            ],
            gallery=gallery,
            placeholder_strategy=self._internal(
                PLACEHOLDER_STRATEGY,
                "Slots without a verified photo get a generated placeholder, never stock imagery",
            ),
        )

    def _seo(self, identity: IdentitySection) -> SeoSection:
        p = self.research.profile
        name = identity.business_name.value or ""
        category = detect_business_category(p.business_type)
        return SeoSection(
            title=self._llm_or_default(
                p.seo_title, name[:60], PROFILE_DOC, "Derived from the business name"
            ),
            description=self._llm_or_default(
                p.seo_description,
                (p.description or name)[:160],
                PROFILE_DOC,
                "Derived from the business description",
            ),
            keywords=self._llm(p.seo_keywords or p.categories),
            schema_org_type=self._internal(
                SCHEMA_ORG_TYPES.get(category or "", "LocalBusiness"),
                "Mapped from the business type",
            ),
        )
