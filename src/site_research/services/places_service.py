import logging
from typing import Any

import httpx

from site_research.clients import get_places_http_client
from site_research.config import PlacesConfig
from site_research.schemas import GeoPoint, HoursEntry, PlacesPhoto, PlacesResult, PlacesReview


logger = logging.getLogger(__name__)

PLACES_API_BASE = "https://maps.googleapis.com/maps/api/place"
DETAILS_FIELDS = ",".join(
    [
        "name",
        "formatted_address",
        "formatted_phone_number",
        "international_phone_number",
        "website",
        "rating",
        "user_ratings_total",
        "opening_hours",
        "geometry",
        "photos",
        "types",
        "price_level",
        "reviews",
        "url",
        "business_status",
    ]
)
# Google numbers days from Sunday
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
PHOTO_MAX_WIDTH = 1200


def format_time(hhmm: str) -> str:
    """Turns Google's "0930" into "9:30 AM"."""
    if not hhmm or len(hhmm) < 4 or not hhmm[:4].isdigit():
        return hhmm or ""
    hours = int(hhmm[:2])
    minutes = hhmm[2:4]
    period = "PM" if hours >= 12 else "AM"
    display = hours % 12 or 12
    return f"{display}:{minutes} {period}"


def parse_hours(opening_hours: dict[str, Any] | None) -> list[HoursEntry]:
    periods = (opening_hours or {}).get("periods") or []
    if not periods:
        return []

    by_day: dict[int, dict[str, Any]] = {}
    for period in periods:
        open_ = period.get("open") or {}
        day = open_.get("day")
        if isinstance(day, int) and 0 <= day < len(DAY_NAMES):
            by_day[day] = period

    hours: list[HoursEntry] = []
    for index, day_name in enumerate(DAY_NAMES):
        period = by_day.get(index)
        if period is None:
            hours.append(HoursEntry(day=day_name, closed=True))
            continue
        close = period.get("close") or {}
        hours.append(
            HoursEntry(
                day=day_name,
                open=format_time(str(period["open"].get("time", ""))),
                close=format_time(str(close.get("time", ""))),
                closed=False,
            )
        )
    return hours


class PlacesService:
    """Business directory lookup against the Google Places web API.

    Lookups are best effort: a missing key, a disabled config, transport errors
    and non-OK statuses all produce None so research can continue without
    directory data.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        config: PlacesConfig,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.config = config
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.config.enabled and self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = get_places_http_client(self.config.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        response = await self._get_client().get(
            f"{PLACES_API_BASE}/{path}", params={**params, "key": self.api_key}
        )
        response.raise_for_status()
        return response.json()

    def photo_url(self, photo_reference: str, max_width: int = PHOTO_MAX_WIDTH) -> str:
        return (
            f"{PLACES_API_BASE}/photo?maxwidth={max_width}"
            f"&photo_reference={photo_reference}&key={self.api_key}"
        )

    async def find_place_id(self, business_name: str, business_address: str = "") -> str | None:
        query = f"{business_name} {business_address}".strip()
        data = await self._get_json("textsearch/json", {"query": query})
        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            logger.warning(f"Places text search for '{query}' returned status {status}")
            return None
        return results[0].get("place_id")

    async def get_details(self, place_id: str) -> PlacesResult | None:
        data = await self._get_json(
            "details/json", {"place_id": place_id, "fields": DETAILS_FIELDS}
        )
        status = data.get("status")
        if status != "OK" or not data.get("result"):
            logger.warning(f"Places details for {place_id} returned status {status}")
            return None
        return self._to_result(place_id, data["result"])

    async def lookup(
        self,
        business_name: str,
        business_address: str = "",
        place_id: str | None = None,
    ) -> PlacesResult | None:
        """Looks a business up by place id, or by name and address when no id is known."""
        if not self.enabled:
            logger.info("Places lookup skipped: no API key or lookups disabled")
            return None

        try:
            resolved_id = place_id or await self.find_place_id(business_name, business_address)
            if not resolved_id:
                return None
            result = await self.get_details(resolved_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Places lookup failed for '{business_name}': {e}")
            return None

        if result is not None:
            logger.info(
                f"Places lookup found {result.name!r} with {len(result.photos)} photos "
                f"and {len(result.reviews)} reviews"
            )
        return result

    def _to_result(self, place_id: str, place: dict[str, Any]) -> PlacesResult:
        location = (place.get("geometry") or {}).get("location") or {}
        geo = None
        if "lat" in location and "lng" in location:
            geo = GeoPoint(lat=location["lat"], lng=location["lng"])

        photos = [
            PlacesPhoto(
                url=self.photo_url(photo["photo_reference"]),
                attribution=(photo.get("html_attributions") or [""])[0],
                width=photo.get("width"),
                height=photo.get("height"),
            )
            for photo in (place.get("photos") or [])[: self.config.max_photos]
            if photo.get("photo_reference")
        ]

        reviews = [
            PlacesReview(
                text=review.get("text") or "",
                author=review.get("author_name") or "",
                rating=review.get("rating"),
                time=review.get("relative_time_description") or "",
            )
            for review in (place.get("reviews") or [])[: self.config.max_reviews]
        ]

        return PlacesResult(
            place_id=place_id,
            name=place.get("name"),
            formatted_address=place.get("formatted_address"),
            phone=place.get("international_phone_number") or place.get("formatted_phone_number"),
            website=place.get("website"),
            rating=place.get("rating"),
            review_count=place.get("user_ratings_total"),
            hours=parse_hours(place.get("opening_hours")),
            geo=geo,
            maps_url=place.get("url"),
            photos=photos,
            types=place.get("types") or [],
            price_level=place.get("price_level"),
            reviews=reviews,
            business_status=place.get("business_status"),
        )
