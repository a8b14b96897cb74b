import json
from typing import Any, Dict, Optional

from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```) if present."""
    cleaned_text = text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text[7:]
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text[3:]

    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text[:-3]

    return cleaned_text.strip()


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a single JSON object from model output.

    Only markdown fences and surrounding whitespace are tolerated. Anything
    else that is not a JSON object (arrays, scalars, truncated or concatenated
    output) is rejected so the caller can decide whether to ask the model for
    a repair.

    Args:
        text: Raw model output

    Returns:
        Parsed dict, or None when the text is not a single JSON object
    """
    if not text:
        return None

    cleaned_text = strip_code_fences(text)

    try:
        parsed = json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"JSON parse failed: {e}")
        return None

    if not isinstance(parsed, dict):
        LOGGER.warning(
            "Model output parsed but is not a JSON object",
            extra={"parsed_type": type(parsed).__name__},
        )
        return None

    return parsed
