"""Reduce reviewer-submitted data to a safe row for a canonical record table.

Sanitizing never raises: unknown keys are dropped, numbers that cannot be
read become None, and enums outside their allow-list fall back to a default.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from estate_intake.schemas.confirm import RecordKind
from estate_intake.services.normalization.text_normalizer import digits_only

_LISTING_FIELDS = [
    "source", "property_type", "price", "currency", "size_sqm", "bedrooms",
    "bathrooms", "area", "compound", "floor", "furnished", "finishing",
    "payment_terms", "notes",
]

ALLOWED_FIELDS: Dict[RecordKind, List[str]] = {
    RecordKind.SALE: _LISTING_FIELDS,
    RecordKind.RENT: _LISTING_FIELDS + ["rent_period"],
    RecordKind.BUYER: [
        "source", "intent", "budget_min", "budget_max", "currency", "preferred_areas",
        "property_type", "bedrooms_needed", "timeline", "notes",
    ],
    RecordKind.CLIENT: ["source", "name", "phone", "role", "area", "tags", "notes"],
}

# Extraction-side names accepted for record columns.
FIELD_ALIASES: Dict[str, str] = {
    "area": "location_area",
    "timeline": "move_timeline",
    "role": "client_type",
}

NUMERIC_FIELDS = frozenset({
    "price", "size_sqm", "bedrooms", "bathrooms", "floor",
    "budget_min", "budget_max", "bedrooms_needed",
})
LIST_FIELDS = frozenset({"preferred_areas", "tags"})

FURNISHED_VALUES = frozenset({"furnished", "semi_furnished", "unfurnished", "unknown"})
FURNISHED_ALIASES = {"fully_furnished": "furnished", "not_furnished": "unfurnished"}
CLIENT_ROLES = frozenset({"owner", "seller", "landlord"})
CURRENCIES = frozenset({"egp"})
RENT_PERIODS = frozenset({"daily", "weekly", "monthly", "yearly"})
INTENTS = frozenset({"buy", "rent"})


def as_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def as_int_or_none(value: Any) -> Optional[int]:
    digits = digits_only(as_text(value))
    return int(digits) if digits else None


def as_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        items = [as_text(v) for v in value]
    else:
        items = [part.strip() for part in as_text(value).split(",")]
    return [item for item in items if item]


def _pick(data: Mapping[str, Any], field: str) -> Any:
    value = data.get(field)
    alias = FIELD_ALIASES.get(field)
    if alias and (value is None or as_text(value) == ""):
        value = data.get(alias, value)
    return value


def _sanitize_value(field: str, value: Any) -> Any:
    if field in NUMERIC_FIELDS:
        return as_int_or_none(value)
    if field in LIST_FIELDS:
        return as_list(value)
    if field == "phone":
        return digits_only(as_text(value))

    text = as_text(value)
    lowered = text.lower()
    if field == "furnished":
        lowered = FURNISHED_ALIASES.get(lowered, lowered)
        return lowered if lowered in FURNISHED_VALUES else "unknown"
    if field == "role":
        return lowered if lowered in CLIENT_ROLES else "owner"
    if field == "currency":
        return lowered if lowered in CURRENCIES else "egp"
    if field == "rent_period":
        return lowered if lowered in RENT_PERIODS else ""
    if field == "intent":
        return lowered if lowered in INTENTS else ""
    return text


def sanitize_for_kind(kind: RecordKind, data: Mapping[str, Any]) -> Dict[str, Any]:
    """Build a row with exactly the allowed columns of ``kind``."""
    data = data or {}
    return {field: _sanitize_value(field, _pick(data, field)) for field in ALLOWED_FIELDS[kind]}


def contact_candidates(sanitized: Mapping[str, Any], data: Mapping[str, Any]) -> Tuple[str, str]:
    """Name and phone to resolve a contact from: record columns first, then extracted contact fields."""
    data = data or {}
    name = as_text(sanitized.get("name")) or as_text(data.get("contact_name")) or as_text(data.get("name"))
    phone = (
        as_text(sanitized.get("phone"))
        or digits_only(as_text(data.get("contact_phone")))
        or digits_only(as_text(data.get("phone")))
    )
    return name, phone
