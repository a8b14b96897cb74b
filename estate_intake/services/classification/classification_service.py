"""Type and language classification of raw intake text."""

from typing import Any, Dict, List

from estate_intake.core.exceptions import ExtractionParseError
from estate_intake.core.result import Err, Ok, Result
from estate_intake.prompts.intake_prompts import DETECT_TYPE_AND_LANGUAGE_PROMPT
from estate_intake.schemas.intake import DetectResult, IntakeType, Language
from estate_intake.services.llm.json_completion_service import JsonCompletionService
from estate_intake.services.normalization.text_normalizer import normalize_text
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

_INTAKE_TYPES = {t.value for t in IntakeType}
_LANGUAGES = {lang.value for lang in Language}


def parse_confidence(value: Any) -> int:
    """Read a 0-100 confidence from an int, float or numeric string.

    Unparseable values give 0; out-of-range values are clamped.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0
    if number != number:  # NaN
        return 0
    return int(max(0.0, min(100.0, number)))


def coerce_detect_payload(payload: Dict[str, Any], raw_text: str) -> DetectResult:
    """Turn the model's classification object into a trusted ``DetectResult``.

    The model's ``normalized_text`` is always run through ``normalize_text``;
    when it is missing the raw text is normalized instead.
    """
    detected_type = str(payload.get("detected_type") or "").strip().lower()
    if detected_type not in _INTAKE_TYPES:
        detected_type = IntakeType.OTHER.value

    language = str(payload.get("language") or "").strip().lower()
    if language not in _LANGUAGES:
        language = Language.MIXED.value

    model_text = payload.get("normalized_text")
    if not isinstance(model_text, str) or not model_text.strip():
        model_text = raw_text

    raw_signals = payload.get("signals")
    signals: List[str] = []
    if isinstance(raw_signals, list):
        signals = [str(s).strip() for s in raw_signals if s is not None and str(s).strip()]

    return DetectResult(
        detected_type=IntakeType(detected_type),
        confidence=parse_confidence(payload.get("confidence")),
        language=Language(language),
        normalized_text=normalize_text(model_text),
        signals=signals,
    )


class ClassificationService:
    """Classifies raw text as sale, rent, buyer, client or other."""

    def __init__(self, completion_service: JsonCompletionService):
        self.completion_service = completion_service

    async def classify(self, raw_text: str) -> Result[DetectResult, ExtractionParseError]:
        """Detect intake type and language.

        Args:
            raw_text: Unprocessed session text

        Returns:
            Ok(DetectResult), or Err(ExtractionParseError) when the model's
            answer could not be parsed even after repair
        """
        result = await self.completion_service.complete_json(
            DETECT_TYPE_AND_LANGUAGE_PROMPT, raw_text
        )
        if isinstance(result, Err):
            return result

        detected = coerce_detect_payload(result.value, raw_text)
        LOGGER.info(
            "Classified intake text",
            extra={
                "detected_type": detected.detected_type.value,
                "confidence": detected.confidence,
                "language": detected.language.value,
            },
        )
        return Ok(detected)
