"""Tests for per-type field extraction."""

from unittest.mock import AsyncMock

import pytest

from estate_intake.core.exceptions import ExtractionParseError
from estate_intake.core.result import Err, Ok
from estate_intake.prompts.intake_prompts import EXTRACTION_KEYS, get_extraction_prompt
from estate_intake.schemas.intake import IntakeType
from estate_intake.services.extraction.extraction_service import (
    ExtractionService,
    coerce_extraction_payload,
)


class TestCoerceExtractionPayload:

    def test_fixed_key_set(self):
        result = coerce_extraction_payload(
            IntakeType.CLIENT,
            {"name": "Ahmed", "phone": 1012345678, "favourite_color": "blue"},
        )
        assert list(result.fields) == ["code", "client_type", "name", "phone", "area", "notes"]
        assert result.fields["phone"] == "1012345678"
        assert result.fields["client_type"] == ""

    def test_listing_type_is_set(self):
        result = coerce_extraction_payload(IntakeType.SALE, {"price": 3500000.0})
        assert result.fields["listing_type"] == "sale"
        assert result.fields["price"] == "3500000"

    def test_confidence_map_is_kept(self):
        result = coerce_extraction_payload(IntakeType.BUYER, {"confidence_map": {"budget_max": 0.9}})
        assert result.confidence_map == {"budget_max": 0.9}
        assert "confidence_map" not in result.fields


class TestExtractionService:

    @pytest.mark.asyncio
    async def test_other_skips_model(self):
        completion = AsyncMock()
        service = ExtractionService(completion)

        result = await service.extract(IntakeType.OTHER, "hello")

        assert isinstance(result, Ok)
        assert result.value.fields == {}
        completion.complete_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_uses_type_prompt(self):
        completion = AsyncMock()
        completion.complete_json.return_value = Ok({"rent_period": "monthly"})
        service = ExtractionService(completion)

        result = await service.extract(IntakeType.RENT, "flat for rent")

        completion.complete_json.assert_awaited_once_with(
            get_extraction_prompt(IntakeType.RENT), "flat for rent"
        )
        assert result.value.fields["rent_period"] == "monthly"

    @pytest.mark.asyncio
    async def test_parse_failure(self):
        completion = AsyncMock()
        completion.complete_json.return_value = Err(ExtractionParseError("bad"))
        service = ExtractionService(completion)

        result = await service.extract(IntakeType.BUYER, "need flat")

        assert isinstance(result, Err)


@pytest.mark.parametrize("intake_type", [IntakeType.SALE, IntakeType.RENT, IntakeType.BUYER, IntakeType.CLIENT])
def test_prompt_lists_every_key(intake_type):
    prompt = get_extraction_prompt(intake_type)
    for key in EXTRACTION_KEYS[intake_type]:
        assert f'"{key}"' in prompt


def test_prompt_for_other_is_rejected():
    with pytest.raises(ValueError):
        get_extraction_prompt(IntakeType.OTHER)
