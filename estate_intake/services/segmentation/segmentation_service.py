"""Detection and splitting of texts that hold several listings."""

import re
from typing import List

from estate_intake.core.result import Err
from estate_intake.prompts.intake_prompts import DETECT_MULTI_LISTING_PROMPT
from estate_intake.schemas.intake import MultiListingResult
from estate_intake.services.llm.json_completion_service import JsonCompletionService
from estate_intake.services.normalization.text_normalizer import normalize_text
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

MAX_SEGMENTS = 10
MIN_SEGMENT_LENGTH = 20

_NUMBERED_SPLIT_RE = re.compile(
    r"\n(?=(?:\d+[\).\-]|[-*•]\s+|(?:listing|unit|property|شقة|فيلا|دوبلكس|وحدة)\b))",
    re.IGNORECASE,
)
_PRICE_RE = re.compile(r"(?:\b\d{5,}\b)\s*(?:egp|جنيه)?", re.IGNORECASE)
_AREA_RE = re.compile(
    r"(?:in|area|compound|منطقة|في|التجمع|المعادي|الشيخ زايد)\s+[\w\- ]+",
    re.IGNORECASE,
)
_SEPARATOR_RE = re.compile(r"(?:^|\n)\s*(?:\d+[\).\-]|[-*•])", re.MULTILINE)
_BLANK_LINE_RE = re.compile(r"\n\s*\n+")


def _long_parts(parts: List[str]) -> List[str]:
    stripped = (part.strip() for part in parts)
    return [part for part in stripped if len(part) > MIN_SEGMENT_LENGTH]


def heuristic_split_listings(raw_text: str) -> MultiListingResult:
    """Split numbered, bulleted or blank-line separated listings.

    A text is multi-listing when it has at least two numbered/bulleted
    segments longer than 20 characters backed by two prices, two list
    markers or four lines; or, failing that, four lines with two prices and
    two area mentions that separate into two blank-line blocks. At most 10
    segments are returned.
    """
    raw_text = raw_text or ""
    normalized = normalize_text(raw_text)
    lines = [line for line in raw_text.split("\n") if line.strip()]

    numbered = _long_parts(_NUMBERED_SPLIT_RE.split(raw_text))
    price_hits = len(_PRICE_RE.findall(normalized))
    area_hits = len(_AREA_RE.findall(normalized))
    separator_hits = len(_SEPARATOR_RE.findall(raw_text))

    if len(numbered) >= 2 and (price_hits >= 2 or separator_hits >= 2 or len(lines) >= 4):
        return MultiListingResult(multi_listing=True, segments=numbered[:MAX_SEGMENTS])

    if len(lines) >= 4 and price_hits >= 2 and area_hits >= 2:
        blocks = _long_parts(_BLANK_LINE_RE.split(raw_text))
        if len(blocks) >= 2:
            return MultiListingResult(multi_listing=True, segments=blocks[:MAX_SEGMENTS])

    return MultiListingResult(multi_listing=False, segments=[])


class SegmentationService:
    """Heuristic multi-listing detection with a model fallback."""

    def __init__(self, completion_service: JsonCompletionService, max_segments: int = MAX_SEGMENTS):
        self.completion_service = completion_service
        self.max_segments = max_segments

    async def detect_multiple_listings(self, raw_text: str) -> MultiListingResult:
        """Detect whether ``raw_text`` holds more than one listing.

        The heuristic answers first. Otherwise the model is asked; its
        segments are normalized, blanks dropped, and the text counts as
        multi-listing only with more than one segment left. Unparseable
        model output is treated as a single listing.
        """
        heuristic = heuristic_split_listings(raw_text)
        if heuristic.multi_listing:
            return MultiListingResult(
                multi_listing=True, segments=heuristic.segments[: self.max_segments]
            )

        result = await self.completion_service.complete_json(
            DETECT_MULTI_LISTING_PROMPT, raw_text
        )
        if isinstance(result, Err):
            LOGGER.warning(
                f"Multi-listing detection failed, treating as single listing: {result.error}"
            )
            return MultiListingResult(multi_listing=False, segments=[])

        payload = result.value
        raw_segments = payload.get("segments")
        if not isinstance(raw_segments, list):
            raw_segments = []
        segments = [normalize_text(str(s)) for s in raw_segments if s is not None]
        segments = [s for s in segments if s][: self.max_segments]

        multi_listing = payload.get("multi_listing") is True and len(segments) > 1
        return MultiListingResult(
            multi_listing=multi_listing,
            segments=segments if multi_listing else [],
        )
