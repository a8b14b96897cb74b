"""Schema-constrained field extraction per intake type."""

from typing import Any, Dict

from estate_intake.core.exceptions import ExtractionParseError
from estate_intake.core.result import Err, Ok, Result
from estate_intake.prompts.intake_prompts import get_extraction_prompt
from estate_intake.schemas.intake import EXTRACTION_MODELS, ExtractionResult, IntakeType
from estate_intake.services.llm.json_completion_service import JsonCompletionService
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


def coerce_extraction_payload(intake_type: IntakeType, payload: Dict[str, Any]) -> ExtractionResult:
    """Fit a model payload to the field set of ``intake_type``.

    Unknown keys are dropped and missing keys become ``""``. A
    ``confidence_map`` object, if the model sent one, is kept alongside.
    """
    if intake_type == IntakeType.OTHER:
        return ExtractionResult(intake_type=intake_type)

    model = EXTRACTION_MODELS[intake_type]
    fields = model.model_validate(payload).as_fields()

    confidence_map = payload.get("confidence_map")
    if not isinstance(confidence_map, dict):
        confidence_map = {}

    return ExtractionResult(
        intake_type=intake_type,
        fields=fields,
        confidence_map=confidence_map,
    )


class ExtractionService:
    """Extracts the fixed field set of a detected type from normalized text."""

    def __init__(self, completion_service: JsonCompletionService):
        self.completion_service = completion_service

    async def extract(
        self, intake_type: IntakeType, normalized_text: str
    ) -> Result[ExtractionResult, ExtractionParseError]:
        """Extract fields for ``intake_type``.

        ``other`` has no field set and returns an empty result without
        calling the model.
        """
        if intake_type == IntakeType.OTHER:
            return Ok(ExtractionResult(intake_type=intake_type))

        result = await self.completion_service.complete_json(
            get_extraction_prompt(intake_type), normalized_text
        )
        if isinstance(result, Err):
            LOGGER.warning(
                "Extraction output could not be parsed",
                extra={"intake_type": intake_type.value},
            )
            return result

        extraction = coerce_extraction_payload(intake_type, result.value)
        LOGGER.info(
            "Extracted intake fields",
            extra={
                "intake_type": intake_type.value,
                "non_empty_fields": sum(1 for v in extraction.fields.values() if v),
            },
        )
        return Ok(extraction)
