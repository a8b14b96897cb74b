"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_intake.database.base import Base


class IntakeSession(Base):
    """One unit of raw intake text awaiting classification and confirmation."""

    __tablename__ = "intake_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    parent_session_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("intake_sessions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    raw_text: Mapped[str] = mapped_column(Text, nullable=False)
    type_detected: Mapped[str] = mapped_column(String, nullable=False, default="")
    type_confirmed: Mapped[str] = mapped_column(String, nullable=False, default="")
    ai_json: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    ai_meta: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    completeness_score: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="draft"
    )  # draft | needs_review | confirmed
    final_record_type: Mapped[str | None] = mapped_column(String, nullable=True)
    final_record_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    media: Mapped[list["MediaItem"]] = relationship(
        "MediaItem", back_populates="intake_session"
    )


class Contact(Base):
    """A person behind a listing or requirement. Phone is the dedup key."""

    __tablename__ = "contacts"
    __table_args__ = (UniqueConstraint("phone", name="uq_contacts_phone"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class CanonicalRecordMixin:
    """Columns shared by the four confirmed record tables."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="active"
    )  # active | needs_review
    completeness_score: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    intake_session_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("intake_sessions.id", ondelete="SET NULL"), nullable=True
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ListingMixin(CanonicalRecordMixin):
    """Property fields shared by sale and rent listings."""

    property_type: Mapped[str] = mapped_column(String, nullable=False, default="")
    price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    currency: Mapped[str] = mapped_column(String, nullable=False, default="egp")
    size_sqm: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bathrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    area: Mapped[str] = mapped_column(String, nullable=False, default="")
    compound: Mapped[str] = mapped_column(String, nullable=False, default="")
    floor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    furnished: Mapped[str] = mapped_column(String, nullable=False, default="unknown")
    finishing: Mapped[str] = mapped_column(String, nullable=False, default="")
    payment_terms: Mapped[str] = mapped_column(String, nullable=False, default="")


class SaleProperty(ListingMixin, Base):
    """Confirmed property listed for sale."""

    __tablename__ = "properties_sale"


class RentProperty(ListingMixin, Base):
    """Confirmed property listed for rent."""

    __tablename__ = "properties_rent"

    rent_period: Mapped[str] = mapped_column(String, nullable=False, default="")


class Buyer(CanonicalRecordMixin, Base):
    """Confirmed buyer requirement."""

    __tablename__ = "buyers"

    intent: Mapped[str] = mapped_column(String, nullable=False, default="")
    budget_min: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    budget_max: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    currency: Mapped[str] = mapped_column(String, nullable=False, default="egp")
    preferred_areas: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
    property_type: Mapped[str] = mapped_column(String, nullable=False, default="")
    bedrooms_needed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timeline: Mapped[str] = mapped_column(String, nullable=False, default="")


class Client(CanonicalRecordMixin, Base):
    """Confirmed owner/seller/landlord contact record."""

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    phone: Mapped[str] = mapped_column(String, nullable=False, default="")
    role: Mapped[str] = mapped_column(String, nullable=False, default="owner")
    area: Mapped[str] = mapped_column(String, nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)


class MediaItem(Base):
    """A file attached to an intake session or, after confirmation, to a record."""

    __tablename__ = "media"
    __table_args__ = (
        Index(
            "idx_media_dedupe_intake",
            "intake_session_id",
            "original_filename",
            "file_size",
            unique=True,
            postgresql_where=text("intake_session_id IS NOT NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    intake_session_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("intake_sessions.id", ondelete="SET NULL"), nullable=True
    )
    record_type: Mapped[str | None] = mapped_column(String, nullable=True)
    record_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    storage_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mime_type: Mapped[str] = mapped_column(String, nullable=False, default="")
    media_type: Mapped[str] = mapped_column(
        String, nullable=False, default="other"
    )  # image | video | document | other
    original_filename: Mapped[str] = mapped_column(String, nullable=False, default="")
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    intake_session: Mapped["IntakeSession | None"] = relationship(
        "IntakeSession", back_populates="media"
    )


class CodeSequence(Base):
    """Last issued number per (prefix, year)."""

    __tablename__ = "crm_code_sequences"

    code_key: Mapped[str] = mapped_column(String, primary_key=True)
    year_num: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TimelineEvent(Base):
    """Append-only history entry for a record or session."""

    __tablename__ = "timeline"
    __table_args__ = (Index("idx_timeline_record", "record_type", "record_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    record_type: Mapped[str] = mapped_column(String, nullable=False)
    record_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class AuditLogEntry(Base):
    """Append-only audit entry of who changed what."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("idx_audit_logs_record", "record_type", "record_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    record_type: Mapped[str] = mapped_column(String, nullable=False)
    record_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    before_json: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    after_json: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    source: Mapped[str] = mapped_column(String, nullable=False, default="app")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
