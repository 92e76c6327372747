BUSINESS_IMAGE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "barber": ("barber", "haircut", "salon", "shave", "fade", "grooming", "hair", "men"),
    "salon": ("salon", "hair", "beauty", "style", "cut", "color", "women", "nails"),
    "restaurant": ("food", "restaurant", "dining", "meal", "kitchen", "chef", "plate"),
    "dentist": ("dental", "dentist", "teeth", "smile", "clinic", "office"),
    "plumber": ("plumbing", "pipe", "water", "repair", "faucet", "bathroom"),
}

GENERIC_IMAGE_TERMS: tuple[str, ...] = (
    "shop",
    "store",
    "front",
    "exterior",
    "interior",
    "entrance",
    "sign",
    "logo",
    "building",
    "office",
    "staff",
    "team",
    "professional",
)

GENERIC_CAPTIONS = {"photo", "image"}


def detect_business_category(business_type: str) -> str | None:
    """Map a free-text business type onto a keyword table, if one exists."""
    text = (business_type or "").lower()
    for category in BUSINESS_IMAGE_KEYWORDS:
        if category in text:
            return category
    return None


def is_image_relevant(caption: str, business_name: str, business_type: str) -> bool:
    text = (caption or "").strip().lower()
    if not text or text in GENERIC_CAPTIONS:
        return True

    name = (business_name or "").strip().lower()
    if name and name in text:
        return True

    if any(term in text for term in GENERIC_IMAGE_TERMS):
        return True

    category = detect_business_category(business_type)
    if category is None:
        return True
    return any(keyword in text for keyword in BUSINESS_IMAGE_KEYWORDS[category])
