"""JSON-object completions with a single repair attempt."""

from typing import Any, Dict

from estate_intake.core.exceptions import ExtractionParseError
from estate_intake.core.result import Err, Ok, Result
from estate_intake.core.unified_llm import LLMClient
from estate_intake.prompts.intake_prompts import JSON_REPAIR_PROMPT
from estate_intake.utils.json_parser import parse_json_object
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

JSON_GENERATION_CONFIG: Dict[str, Any] = {
    "temperature": 0.0,
    "response_mime_type": "application/json",
}


class JsonCompletionService:
    """Asks the model for one JSON object and parses what comes back.

    If the first answer is not a JSON object the raw text is sent back once
    with a repair instruction. A second failure is returned as
    ``Err(ExtractionParseError)``; transport errors still raise.
    """

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    async def complete(self, system_prompt: str, user_text: str) -> str:
        content = await self.llm_client.generate_content(
            contents=user_text,
            system_instruction=system_prompt,
            generation_config=JSON_GENERATION_CONFIG,
        )
        return content or "{}"

    async def complete_json(
        self, system_prompt: str, user_text: str
    ) -> Result[Dict[str, Any], ExtractionParseError]:
        """Run a completion and parse it, repairing at most once.

        Args:
            system_prompt: Task instructions
            user_text: Text the task applies to

        Returns:
            Ok(parsed object) or Err(ExtractionParseError)
        """
        raw = await self.complete(system_prompt, user_text)
        parsed = parse_json_object(raw)
        if parsed is not None:
            return Ok(parsed)

        LOGGER.warning(
            "Model returned invalid JSON, requesting repair",
            extra={"raw_preview": raw[:200]},
        )
        repaired = await self.complete(JSON_REPAIR_PROMPT, raw)
        parsed = parse_json_object(repaired)
        if parsed is not None:
            return Ok(parsed)

        LOGGER.error(
            "JSON repair failed",
            extra={"raw_preview": repaired[:200]},
        )
        return Err(ExtractionParseError("JSON parse failed after one repair attempt"))
