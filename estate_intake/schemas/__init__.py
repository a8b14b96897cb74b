from .intake import (
    IntakeType,
    Language,
    IntakeStatus,
    DetectResult,
    MultiListingResult,
    ExtractionResult,
    ValidationResult,
)
from .confirm import (
    RecordKind,
    RecordType,
    ConfirmMode,
    MergeDecision,
    ConfirmRequest,
    ConfirmResult,
    MediaSummary,
)

__all__ = [
    "IntakeType",
    "Language",
    "IntakeStatus",
    "DetectResult",
    "MultiListingResult",
    "ExtractionResult",
    "ValidationResult",
    "RecordKind",
    "RecordType",
    "ConfirmMode",
    "MergeDecision",
    "ConfirmRequest",
    "ConfirmResult",
    "MediaSummary",
]
