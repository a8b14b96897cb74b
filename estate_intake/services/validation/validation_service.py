"""Deterministic validation and normalization of extracted fields.

Everything here is a total function: any extracted payload yields a
normalized field map, the missing critical fields and a per-field
confidence, and nothing raises.
"""

import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from estate_intake.schemas.intake import EXTRACTION_MODELS, IntakeType, ValidationResult
from estate_intake.services.normalization.text_normalizer import (
    collapse_whitespace,
    digits_only,
    normalize_currency_tokens,
    normalize_text,
)
from estate_intake.services.validation.critical_fields import missing_critical_fields

ENUM_ALLOW_LISTS: Dict[str, Tuple[str, ...]] = {
    "furnished": ("fully_furnished", "semi_furnished", "not_furnished"),
    "rent_period": ("daily", "weekly", "monthly", "yearly"),
    "intent": ("buy", "rent"),
    "client_type": ("owner", "seller", "landlord", "broker", "other"),
    "currency": ("egp",),
}

NUMERIC_FIELDS = frozenset({
    "price", "size_sqm", "bedrooms", "bathrooms", "floor",
    "budget_min", "budget_max", "bedrooms_needed",
})

PHONE_FIELDS = frozenset({"contact_phone", "phone"})

# Placeholder confidences for fields the model gave no confidence for.
FILLED_FIELD_CONFIDENCE = 0.82
EMPTY_FIELD_CONFIDENCE = 0.2
OTHER_NOTES_CONFIDENCE = 0.7

_STUDIO_RE = re.compile(r"\bstudio\b|ستوديو", re.IGNORECASE)
_COMPOUND_KEYWORDS_RE = re.compile(
    r"\b(resort|compound|village|residence|heights|gardens|bay|marina)\b", re.IGNORECASE
)

FEATURE_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"sea view|اطلالة بحر|view sea", re.IGNORECASE), "Sea view"),
    (re.compile(r"street view|اطلالة شارع", re.IGNORECASE), "Street view"),
    (re.compile(r"balcony|بلكونة|تراس", re.IGNORECASE), "Balcony"),
    (re.compile(r"maintenance|صيانة", re.IGNORECASE), "Maintenance"),
    (re.compile(r"including furniture|with furniture|مفروش", re.IGNORECASE), "Including furniture"),
    (re.compile(r"studio|ستوديو", re.IGNORECASE), "Studio"),
]


def normalize_enum(field: str, value: str) -> str:
    """Lower-case ``value`` and keep it only if it is allowed for ``field``."""
    candidate = (value or "").strip().lower()
    if field == "currency":
        candidate = normalize_currency_tokens(candidate).strip().lower()
    return candidate if candidate in ENUM_ALLOW_LISTS[field] else ""


def normalize_bedrooms(bedrooms: str, normalized_text: str) -> str:
    """Studios have zero bedrooms, whatever the model extracted."""
    if _STUDIO_RE.search(f"{bedrooms} {normalized_text}"):
        return "0"
    return digits_only(bedrooms)


def sync_location_compound(location_area: str, compound: str) -> Tuple[str, str]:
    """Use one name for both fields when the place names a compound.

    If ``location_area`` plus ``compound`` contains a compound keyword
    (resort, compound, village, residence, heights, gardens, bay, marina),
    both fields become the joined, whitespace-collapsed text.
    """
    place = f"{location_area} {compound}".strip()
    if place and _COMPOUND_KEYWORDS_RE.search(place):
        joined = collapse_whitespace(place)
        return joined, joined
    return location_area, compound


def detect_features(normalized_text: str) -> List[str]:
    return [label for pattern, label in FEATURE_PATTERNS if pattern.search(normalized_text)]


def merge_notes(notes: str, normalized_text: str) -> str:
    """Union of the model's notes and detected features, comma-joined."""
    items = [part.strip() for part in (notes or "").split(",")]
    items.extend(detect_features(normalized_text))

    merged: List[str] = []
    seen = set()
    for item in items:
        key = item.lower()
        if item and key not in seen:
            seen.add(key)
            merged.append(item)
    return ", ".join(merged)


def field_confidence(value: str, model_confidence: Any = None) -> float:
    """Model confidence clamped to [0, 1], else a fixed placeholder."""
    number = None
    if isinstance(model_confidence, (int, float)) and not isinstance(model_confidence, bool):
        number = float(model_confidence)
    elif isinstance(model_confidence, str) and model_confidence.strip():
        try:
            number = float(model_confidence)
        except ValueError:
            number = None

    if number is not None and math.isfinite(number):
        return max(0.0, min(1.0, number))
    return FILLED_FIELD_CONFIDENCE if value else EMPTY_FIELD_CONFIDENCE


def completeness_score(normalized: Mapping[str, str]) -> float:
    """Percentage of informative fields that are filled."""
    fields = [k for k in normalized if k not in ("code", "listing_type")]
    if not fields:
        return 0.0
    filled = sum(1 for k in fields if normalized[k])
    return round(100.0 * filled / len(fields), 2)


def _normalize_listing(intake_type: IntakeType, src: Dict[str, str], text: str) -> Dict[str, str]:
    location_area, compound = sync_location_compound(src["location_area"], src["compound"])
    out = {
        "code": src["code"].strip(),
        "listing_type": intake_type.value,
        "property_type": src["property_type"].strip(),
        "price": digits_only(src["price"]),
        "currency": normalize_enum("currency", src["currency"]),
        "size_sqm": digits_only(src["size_sqm"]),
        "bedrooms": normalize_bedrooms(src["bedrooms"], text),
        "bathrooms": digits_only(src["bathrooms"]),
        "location_area": location_area.strip(),
        "compound": compound.strip(),
        "floor": digits_only(src["floor"]),
        "furnished": normalize_enum("furnished", src["furnished"]),
        "finishing": src["finishing"].strip(),
        "payment_terms": src["payment_terms"].strip(),
        "contact_name": src["contact_name"].strip(),
        "contact_phone": digits_only(src["contact_phone"]),
    }
    if intake_type == IntakeType.RENT:
        out["rent_period"] = normalize_enum("rent_period", src["rent_period"])
    out["notes"] = merge_notes(src["notes"], text)
    return out


def _normalize_buyer(src: Dict[str, str], text: str) -> Dict[str, str]:
    areas = [part.strip() for part in src["preferred_areas"].split(",")]
    return {
        "code": src["code"].strip(),
        "intent": normalize_enum("intent", src["intent"]),
        "budget_min": digits_only(src["budget_min"]),
        "budget_max": digits_only(src["budget_max"]),
        "currency": normalize_enum("currency", src["currency"]),
        "preferred_areas": ", ".join(a for a in areas if a),
        "property_type": src["property_type"].strip(),
        "bedrooms_needed": digits_only(src["bedrooms_needed"]),
        "move_timeline": src["move_timeline"].strip(),
        "contact_name": src["contact_name"].strip(),
        "contact_phone": digits_only(src["contact_phone"]),
        "notes": merge_notes(src["notes"], text),
    }


def _normalize_client(src: Dict[str, str], text: str) -> Dict[str, str]:
    return {
        "code": src["code"].strip(),
        "client_type": normalize_enum("client_type", src["client_type"]),
        "name": src["name"].strip(),
        "phone": digits_only(src["phone"]),
        "area": src["area"].strip(),
        "notes": merge_notes(src["notes"], text),
    }


def _critical_view(intake_type: IntakeType, normalized: Dict[str, str]) -> Dict[str, Any]:
    """Map extraction keys onto the canonical keys used by the critical rules."""
    if intake_type in (IntakeType.SALE, IntakeType.RENT):
        return {
            "price": normalized["price"],
            "area": normalized["location_area"],
            "compound": normalized["compound"],
        }
    if intake_type == IntakeType.BUYER:
        return {
            "budget_min": normalized["budget_min"],
            "budget_max": normalized["budget_max"],
            "preferred_areas": normalized["preferred_areas"],
        }
    return {
        "name": normalized["name"],
        "phone": normalized["phone"],
        "role": normalized["client_type"],
    }


def validate_and_normalize(
    intake_type: IntakeType,
    extracted: Mapping[str, Any],
    normalized_text: str,
    confidence_map: Optional[Mapping[str, Any]] = None,
) -> ValidationResult:
    """Normalize extracted fields and compute missing critical fields.

    Args:
        intake_type: Type the fields were extracted as
        extracted: Field map from the extractor (or a reviewer)
        normalized_text: Text the fields were extracted from
        confidence_map: Optional per-field model confidences; falls back to
            ``extracted["confidence_map"]``

    Returns:
        ValidationResult with normalized fields, missing critical fields,
        per-field confidence and a completeness score
    """
    text = normalize_text(normalized_text or "")

    if intake_type == IntakeType.OTHER:
        return ValidationResult(
            normalized_json={"notes": text},
            missing_fields=[],
            confidence_map={"notes": OTHER_NOTES_CONFIDENCE},
            completeness_score=100.0 if text else 0.0,
        )

    extracted = dict(extracted or {})
    if confidence_map is None:
        confidence_map = extracted.get("confidence_map")
    if not isinstance(confidence_map, Mapping):
        confidence_map = {}

    src = EXTRACTION_MODELS[intake_type].model_validate(extracted).model_dump()

    if intake_type in (IntakeType.SALE, IntakeType.RENT):
        normalized = _normalize_listing(intake_type, src, text)
    elif intake_type == IntakeType.BUYER:
        normalized = _normalize_buyer(src, text)
    else:
        normalized = _normalize_client(src, text)

    confidences = {
        key: field_confidence(value, confidence_map.get(key))
        for key, value in normalized.items()
    }

    return ValidationResult(
        normalized_json=normalized,
        missing_fields=missing_critical_fields(
            intake_type.value, _critical_view(intake_type, normalized)
        ),
        confidence_map=confidences,
        completeness_score=completeness_score(normalized),
    )
