"""Follow-up questions shown next to a session under review."""

import re
from typing import Any, List, Mapping, Sequence

from estate_intake.schemas.intake import QuickQuestion

MAX_QUESTIONS = 3

PREFERRED_AREA_OPTIONS = ["New Cairo", "Maadi", "Zamalek", "Sheikh Zayed", "October", "Nasr City"]
CLIENT_TYPE_OPTIONS = ["owner", "seller", "landlord", "broker", "other"]

_PHONE_IN_TEXT_RE = re.compile(r"\+?\d[\d\s()-]{7,}")


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def has_phone_in_text(raw_text: str) -> bool:
    return bool(_PHONE_IN_TEXT_RE.search(raw_text or ""))


def derive_quick_questions(
    intake_type: str,
    ai_json: Mapping[str, Any],
    raw_text: str,
    missing_fields: Sequence[str],
) -> List[QuickQuestion]:
    """Up to three questions for the most important gaps of a session."""
    questions: List[QuickQuestion] = []

    def add(question: QuickQuestion) -> None:
        if len(questions) < MAX_QUESTIONS and all(q.key != question.key for q in questions):
            questions.append(question)

    if intake_type in ("sale", "rent"):
        if not _text(ai_json.get("price")) or "price" in missing_fields:
            add(QuickQuestion(key="price", label="What is the asking price?", type="number"))
        no_place = not _text(ai_json.get("location_area")) and not _text(ai_json.get("compound"))
        if no_place or "location_area" in missing_fields:
            add(QuickQuestion(key="location_area", label="Which area/compound is this in?", type="text"))
        if not _text(ai_json.get("contact_phone")) and not has_phone_in_text(raw_text):
            add(QuickQuestion(key="contact_phone", label="What is the contact phone number?", type="phone"))

    elif intake_type == "buyer":
        if not _text(ai_json.get("budget_min")) and not _text(ai_json.get("budget_max")):
            add(QuickQuestion(key="budget_max", label="What is the budget?", type="number"))
        if not _text(ai_json.get("preferred_areas")) or "preferred_areas" in missing_fields:
            add(QuickQuestion(
                key="preferred_areas",
                label="Which areas are preferred?",
                type="multiselect",
                options=PREFERRED_AREA_OPTIONS,
            ))
        if not _text(ai_json.get("contact_phone")) and not has_phone_in_text(raw_text):
            add(QuickQuestion(key="contact_phone", label="What is the buyer phone number?", type="phone"))

    elif intake_type == "client":
        if not _text(ai_json.get("name")) and not _text(ai_json.get("phone")):
            add(QuickQuestion(key="phone", label="Client name or phone (at least one)", type="text"))
        client_type = _text(ai_json.get("client_type"))
        if not client_type or client_type == "other":
            add(QuickQuestion(
                key="client_type",
                label="What is the client type?",
                type="select",
                options=CLIENT_TYPE_OPTIONS,
            ))

    return questions
