"""Schemas for confirming a reviewed intake session into a canonical record."""

from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class RecordKind(str, Enum):
    """Intake types that can be confirmed into a record."""
    SALE = "sale"
    RENT = "rent"
    BUYER = "buyer"
    CLIENT = "client"


class RecordType(str, Enum):
    """Canonical record tables."""
    PROPERTIES_SALE = "properties_sale"
    PROPERTIES_RENT = "properties_rent"
    BUYERS = "buyers"
    CLIENTS = "clients"


RECORD_TYPE_BY_KIND: Dict[RecordKind, RecordType] = {
    RecordKind.SALE: RecordType.PROPERTIES_SALE,
    RecordKind.RENT: RecordType.PROPERTIES_RENT,
    RecordKind.BUYER: RecordType.BUYERS,
    RecordKind.CLIENT: RecordType.CLIENTS,
}

CODE_PREFIX_BY_KIND: Dict[RecordKind, str] = {
    RecordKind.SALE: "SALE",
    RecordKind.RENT: "RENT",
    RecordKind.BUYER: "BUY",
    RecordKind.CLIENT: "CLI",
}


class ConfirmMode(str, Enum):
    CREATE_NEW = "create_new"
    UPDATE_EXISTING = "update_existing"


class MergeDecision(str, Enum):
    """Per-field rule for combining incoming data with an existing record."""
    KEEP_EXISTING = "keep_existing"
    REPLACE_WITH_NEW = "replace_with_new"
    APPEND = "append"


class RecordStatus(str, Enum):
    ACTIVE = "active"
    NEEDS_REVIEW = "needs_review"


class ConfirmRequest(BaseModel):
    """Reviewer's confirmation of an intake session."""

    session_id: UUID = Field(..., description="Intake session being confirmed")
    type: RecordKind = Field(..., description="Record kind to create or update")
    mode: ConfirmMode = Field(ConfirmMode.CREATE_NEW)
    target_record_id: Optional[UUID] = Field(
        None, description="Existing record to merge into; required for update_existing"
    )
    extracted_data: Dict[str, Any] = Field(default_factory=dict)
    merge_decisions: Dict[str, MergeDecision] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_target(self) -> "ConfirmRequest":
        if self.mode == ConfirmMode.UPDATE_EXISTING and self.target_record_id is None:
            raise ValueError("target_record_id is required for update_existing")
        return self


class MediaSummary(BaseModel):
    images: int = 0
    videos: int = 0
    documents: int = 0
    move_warnings: List[str] = Field(default_factory=list)


class ConfirmResult(BaseModel):
    """Outcome of a confirmation."""

    record_type: RecordType
    record_id: UUID
    code: Optional[str] = None
    status: RecordStatus
    changed_fields: List[str] = Field(default_factory=list)
    media_summary: MediaSummary = Field(default_factory=MediaSummary)
