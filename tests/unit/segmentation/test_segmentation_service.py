"""Tests for multi-listing detection."""

from unittest.mock import AsyncMock

import pytest

from estate_intake.core.exceptions import ExtractionParseError
from estate_intake.core.result import Err, Ok
from estate_intake.services.segmentation.segmentation_service import (
    SegmentationService,
    heuristic_split_listings,
)


NUMBERED_TWO_LISTINGS = "1) شقة للبيع 3500000 جنيه في التجمع\n2) شقة للبيع 4200000 جنيه في المعادي"
SINGLE_LISTING = "Apartment for sale in New Cairo price 5500000 EGP, 3 bedrooms"


class TestHeuristicSplit:

    def test_numbered_listings_are_split(self):
        result = heuristic_split_listings(NUMBERED_TWO_LISTINGS)
        assert result.multi_listing is True
        assert len(result.segments) >= 2
        assert result.segments[0].startswith("1)")
        assert result.segments[1].startswith("2)")

    def test_single_listing_is_not_split(self):
        result = heuristic_split_listings(SINGLE_LISTING)
        assert result.multi_listing is False
        assert result.segments == []

    def test_blank_line_blocks_with_prices_and_areas(self):
        text = (
            "Apartment in Maadi, 3 bedrooms.\nprice 3500000 egp.\n\n"
            "Villa in Sheikh Zayed, garden.\nprice 9000000 egp."
        )
        result = heuristic_split_listings(text)
        assert result.multi_listing is True
        assert len(result.segments) == 2

    def test_output_is_capped(self):
        text = "\n".join(f"{i}) شقة للبيع {1000000 + i} جنيه في التجمع" for i in range(1, 15))
        result = heuristic_split_listings(text)
        assert result.multi_listing is True
        assert len(result.segments) == 10

    def test_empty_text(self):
        assert heuristic_split_listings("").multi_listing is False


class TestSegmentationService:

    @pytest.mark.asyncio
    async def test_heuristic_answer_skips_model(self):
        completion = AsyncMock()
        service = SegmentationService(completion)

        result = await service.detect_multiple_listings(NUMBERED_TWO_LISTINGS)

        assert result.multi_listing is True
        completion.complete_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_model_segments_are_normalized(self):
        completion = AsyncMock()
        completion.complete_json.return_value = Ok({
            "multi_listing": True,
            "segments": ["شقة ١  بسعر ٣٥٠٠٠٠٠ جنيه", "  ", None, "villa 9000000 LE"],
        })
        service = SegmentationService(completion)

        result = await service.detect_multiple_listings(SINGLE_LISTING)

        assert result.multi_listing is True
        assert result.segments == ["شقة 1 بسعر 3500000 egp", "villa 9000000 egp"]

    @pytest.mark.asyncio
    async def test_model_needs_more_than_one_segment(self):
        completion = AsyncMock()
        completion.complete_json.return_value = Ok({"multi_listing": True, "segments": ["one listing"]})
        service = SegmentationService(completion)

        result = await service.detect_multiple_listings(SINGLE_LISTING)

        assert result.multi_listing is False
        assert result.segments == []

    @pytest.mark.asyncio
    async def test_model_flag_must_be_true(self):
        completion = AsyncMock()
        completion.complete_json.return_value = Ok({"multi_listing": "yes", "segments": ["a", "b"]})
        service = SegmentationService(completion)

        result = await service.detect_multiple_listings(SINGLE_LISTING)

        assert result.multi_listing is False

    @pytest.mark.asyncio
    async def test_parse_failure_means_single_listing(self):
        completion = AsyncMock()
        completion.complete_json.return_value = Err(ExtractionParseError("bad json"))
        service = SegmentationService(completion)

        result = await service.detect_multiple_listings(SINGLE_LISTING)

        assert result.multi_listing is False
