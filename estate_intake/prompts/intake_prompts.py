# System prompts for the intake pipeline.
# - DETECT_TYPE_AND_LANGUAGE_PROMPT: classify text and clean it
# - DETECT_MULTI_LISTING_PROMPT: split a blob into listing segments
# - JSON_REPAIR_PROMPT: single repair pass for malformed model JSON
# - per-type extraction prompts built by get_extraction_prompt()

from typing import Dict, List

from estate_intake.schemas.intake import IntakeType

# =============================================================================
# CLASSIFICATION
# =============================================================================
DETECT_TYPE_AND_LANGUAGE_PROMPT = """You are a strict CRM intake classifier.
Task: Given messy user text (Arabic/English/mixed, emojis, random order), classify into exactly one detected_type:
- sale
- rent
- buyer
- client
- other

Also detect language as exactly one of:
- ar
- en
- mixed

Return ONLY valid JSON with this exact shape:
{
  "detected_type":"",
  "confidence":"",
  "language":"",
  "normalized_text":"",
  "signals":[]
}

Hard rules:
1) confidence must be an integer string from 0 to 100 (no decimals).
2) normalized_text must keep meaning but clean spacing/newlines.
3) normalized_text must convert Arabic numerals to Western digits (١٢٣ -> 123).
4) normalized_text must standardize currency tokens: جنيه, ج, egp, le, l.e => EGP.
5) normalized_text must reduce repeated punctuation while keeping key tokens.
6) signals must be a short array of clues found in text (e.g. "for sale", "للبيع", "budget", "عايز اشتري", "مطلوب شقة").
7) If unclear between sale and rent, output detected_type="other" with low confidence.
8) If text is mainly about a person (name/phone/needs), choose buyer or client based on wording.
9) Never invent missing details. Use only evidence from the input."""

# =============================================================================
# SEGMENTATION
# =============================================================================
DETECT_MULTI_LISTING_PROMPT = """You split CRM intake text into listing segments.
Return ONLY valid JSON:
{
  "multi_listing": false,
  "segments": []
}

Rules:
- multi_listing=true only when there are clearly multiple listings/properties.
- Detect by repeated price patterns, multiple area mentions, list separators, numbering, or newline blocks.
- Support Arabic + English mixed text.
- If multi_listing=true, segments must contain each listing text independently.
- Keep each segment meaningful and concise.
- If uncertain, return multi_listing=false.
- Never merge multiple listings into one segment."""

# =============================================================================
# REPAIR
# =============================================================================
JSON_REPAIR_PROMPT = "Repair this into valid strict JSON object only. No markdown."

# =============================================================================
# EXTRACTION
# =============================================================================
EXTRACTION_PROMPT_BASE = """General requirements for ALL extraction:
- temperature=0
- Return ONLY valid JSON object
- Use EXACT keys in EXACT order
- Never output null
- Missing => ""
- Numeric fields => digits only (stored as strings)
- Enum fields must be one of allowed values only
- If uncertain, leave "" and put the info in notes (short)

Normalization rules:
1) studio => bedrooms "0" ALWAYS + include "Studio" in notes if not mapped elsewhere
2) furnished enum only: "", "fully_furnished", "semi_furnished", "not_furnished"
3) location_area vs compound consistency:
   if place contains keywords: resort, compound, village, residence, heights, gardens, bay, marina
   then set BOTH location_area and compound to same extracted name.
4) notes:
   - only leftover info not mapped elsewhere
   - comma-separated, short
   - must include views/features like "Sea view", "Street view", "Balcony", "Maintenance", "Including furniture"
5) phone normalization:
   - keep digits only, preserve leading country code if present
6) currency normalization:
   - map "جنيه" "egp" "le" -> "egp"
   - do not output multiple variants"""

_LISTING_KEYS = [
    "code", "listing_type", "property_type", "price", "currency", "size_sqm",
    "bedrooms", "bathrooms", "location_area", "compound", "floor", "furnished",
    "finishing", "payment_terms", "contact_name", "contact_phone",
]

EXTRACTION_KEYS: Dict[IntakeType, List[str]] = {
    IntakeType.SALE: _LISTING_KEYS + ["notes"],
    IntakeType.RENT: _LISTING_KEYS + ["rent_period", "notes"],
    IntakeType.BUYER: [
        "code", "intent", "budget_min", "budget_max", "currency", "preferred_areas",
        "property_type", "bedrooms_needed", "move_timeline", "contact_name",
        "contact_phone", "notes",
    ],
    IntakeType.CLIENT: ["code", "client_type", "name", "phone", "area", "notes"],
}

_EXTRA_RULES: Dict[IntakeType, str] = {
    IntakeType.RENT: 'Allowed rent_period enum: "", "daily", "weekly", "monthly", "yearly"',
    IntakeType.BUYER: (
        'Allowed intent enum: "", "buy", "rent"\n'
        "preferred_areas must be a single comma-separated string."
    ),
    IntakeType.CLIENT: 'Allowed client_type enum: "", "owner", "seller", "landlord", "broker", "other"',
}


def _json_template(intake_type: IntakeType) -> str:
    lines = []
    for key in EXTRACTION_KEYS[intake_type]:
        value = intake_type.value if key == "listing_type" else ""
        lines.append(f'  "{key}":"{value}"')
    return "{\n" + ",\n".join(lines) + "\n}"


def get_extraction_prompt(intake_type: IntakeType) -> str:
    """Build the system prompt that extracts the field set of ``intake_type``.

    Raises:
        ValueError: For ``other``, which has no field set
    """
    if intake_type not in EXTRACTION_KEYS:
        raise ValueError(f"No extraction prompt for type '{intake_type.value}'")

    prompt = (
        f"{EXTRACTION_PROMPT_BASE}\n\nReturn ONLY this JSON object exactly:\n"
        f"{_json_template(intake_type)}"
    )
    extra = _EXTRA_RULES.get(intake_type)
    if extra:
        prompt = f"{prompt}\n{extra}"
    return prompt
