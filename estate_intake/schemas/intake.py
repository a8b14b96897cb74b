"""Intake pipeline schemas.

Classification and segmentation results, the per-type extraction models
(a closed union dispatched by :class:`IntakeType`), validation output and the
request/response payloads of the intake endpoints.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IntakeType(str, Enum):
    """Kinds of intake text the classifier can detect."""
    SALE = "sale"
    RENT = "rent"
    BUYER = "buyer"
    CLIENT = "client"
    OTHER = "other"


class Language(str, Enum):
    AR = "ar"
    EN = "en"
    MIXED = "mixed"


class IntakeStatus(str, Enum):
    """Intake session lifecycle states."""
    DRAFT = "draft"
    NEEDS_REVIEW = "needs_review"
    CONFIRMED = "confirmed"


class ExtractableType(str, Enum):
    """Types that can be forced for extraction. ``other`` has nothing to extract."""
    SALE = "sale"
    RENT = "rent"
    BUYER = "buyer"
    CLIENT = "client"


class DetectResult(BaseModel):
    """Classifier output after coercion of the model's payload."""

    detected_type: IntakeType
    confidence: int = Field(..., ge=0, le=100)
    language: Language
    normalized_text: str
    signals: List[str] = Field(default_factory=list)


class MultiListingResult(BaseModel):
    """Whether a text holds several listings, and the listing segments."""

    multi_listing: bool = False
    segments: List[str] = Field(default_factory=list)


# Extraction models


class ExtractedFields(BaseModel):
    """Base for per-type extraction payloads.

    Every field is a string. Unknown keys are dropped, missing keys default
    to ``""``, ``null`` becomes ``""`` and other scalars are stringified.
    """

    model_config = ConfigDict(extra="ignore")

    intake_type: ClassVar[IntakeType]

    code: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value if item is not None)
        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False)
        return str(value)

    def as_fields(self) -> Dict[str, str]:
        """Field map in declaration order."""
        return self.model_dump()


class ListingFields(ExtractedFields):
    property_type: str = ""
    price: str = ""
    currency: str = ""
    size_sqm: str = ""
    bedrooms: str = ""
    bathrooms: str = ""
    location_area: str = ""
    compound: str = ""
    floor: str = ""
    furnished: str = ""
    finishing: str = ""
    payment_terms: str = ""
    contact_name: str = ""
    contact_phone: str = ""

    def as_fields(self) -> Dict[str, str]:
        data = self.model_dump()
        return {"code": data.pop("code"), "listing_type": self.intake_type.value, **data}


class SaleFields(ListingFields):
    intake_type: ClassVar[IntakeType] = IntakeType.SALE

    notes: str = ""


class RentFields(ListingFields):
    intake_type: ClassVar[IntakeType] = IntakeType.RENT

    rent_period: str = ""
    notes: str = ""


class BuyerFields(ExtractedFields):
    intake_type: ClassVar[IntakeType] = IntakeType.BUYER

    intent: str = ""
    budget_min: str = ""
    budget_max: str = ""
    currency: str = ""
    preferred_areas: str = ""
    property_type: str = ""
    bedrooms_needed: str = ""
    move_timeline: str = ""
    contact_name: str = ""
    contact_phone: str = ""
    notes: str = ""


class ClientFields(ExtractedFields):
    intake_type: ClassVar[IntakeType] = IntakeType.CLIENT

    client_type: str = ""
    name: str = ""
    phone: str = ""
    area: str = ""
    notes: str = ""


AnyExtractedFields = Union[SaleFields, RentFields, BuyerFields, ClientFields]

EXTRACTION_MODELS: Dict[IntakeType, Type[AnyExtractedFields]] = {
    IntakeType.SALE: SaleFields,
    IntakeType.RENT: RentFields,
    IntakeType.BUYER: BuyerFields,
    IntakeType.CLIENT: ClientFields,
}


class ExtractionResult(BaseModel):
    """Extractor output: the type's field map plus optional model confidences."""

    intake_type: IntakeType
    fields: Dict[str, str] = Field(default_factory=dict)
    confidence_map: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """Validator output used to persist a processed session."""

    normalized_json: Dict[str, str] = Field(default_factory=dict)
    missing_fields: List[str] = Field(default_factory=list)
    confidence_map: Dict[str, float] = Field(default_factory=dict)
    completeness_score: float = 0.0


# API payloads


class ProcessIntakeRequest(BaseModel):
    """Detect-and-extract request."""

    session_id: UUID = Field(..., description="Intake session to process")


class ExtractByTypeRequest(BaseModel):
    """Forced-type extraction request; skips classification."""

    session_id: UUID = Field(..., description="Intake session to process")
    forced_type: ExtractableType = Field(..., description="Type to extract as")


class ProcessIntakeResponse(BaseModel):
    session_id: UUID
    status: IntakeStatus
    detected_type: IntakeType
    confidence: Optional[int] = None
    language: Optional[Language] = None
    extracted_json: Dict[str, str] = Field(default_factory=dict)
    normalized_json: Dict[str, str] = Field(default_factory=dict)
    missing_fields: List[str] = Field(default_factory=list)
    confidence_map: Dict[str, float] = Field(default_factory=dict)
    completeness_score: float = 0.0
    multi_listing: bool = False
    child_session_ids: List[UUID] = Field(default_factory=list)


class SplitSessionResponse(BaseModel):
    """Outcome of multi-listing detection on a session."""

    session_id: UUID
    multi_listing: bool
    child_session_ids: List[UUID] = Field(default_factory=list)
    created: bool = Field(False, description="False when existing children were returned")


class MediaItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_url: str
    media_type: str
    mime_type: str
    original_filename: str
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None


class CreateSessionResponse(BaseModel):
    """Result of manual intake capture."""

    session_id: UUID
    status: IntakeStatus
    media: List[MediaItemResponse] = Field(default_factory=list)
    skipped_duplicates: List[str] = Field(
        default_factory=list, description="Files already attached with the same name and size"
    )


class QuickQuestion(BaseModel):
    """A follow-up question a reviewer can answer to fill a critical gap."""

    key: str
    label: str
    type: str = Field(..., description="text, number, select, multiselect or phone")
    options: Optional[List[str]] = None


class SessionResponse(BaseModel):
    """Intake session with its media and follow-up questions for the reviewer."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    parent_session_id: Optional[UUID] = None
    status: IntakeStatus
    raw_text: str
    type_detected: str = ""
    type_confirmed: str = ""
    ai_json: Dict[str, Any] = Field(default_factory=dict)
    ai_meta: Dict[str, Any] = Field(default_factory=dict)
    completeness_score: float = 0.0
    final_record_type: Optional[str] = None
    final_record_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    media: List[MediaItemResponse] = Field(default_factory=list)
    quick_questions: List[QuickQuestion] = Field(default_factory=list)

