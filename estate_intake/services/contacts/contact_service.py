"""Contact resolution: find or create the person behind a record."""

from typing import Any, Optional
from uuid import UUID

from estate_intake.repositories.contact_repository import ContactRepository
from estate_intake.services.normalization.text_normalizer import digits_only
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


class ContactService:
    """Resolves contacts by phone; name-only contacts are always new."""

    def __init__(self, contact_repository: ContactRepository):
        self.contact_repository = contact_repository

    async def resolve_contact_id(self, name: Any = None, phone: Any = None) -> Optional[UUID]:
        """Find or create a contact for a name/phone pair.

        With a phone, the existing contact for that phone is reused or one is
        created (named "Unknown" when no name is given). With only a name a
        new phone-less contact is created. With neither, returns None.
        """
        normalized_phone = digits_only(_text(phone))
        normalized_name = _text(name)

        if normalized_phone:
            existing = await self.contact_repository.find_by_phone(normalized_phone)
            if existing:
                return existing.id
            contact = await self.contact_repository.insert_phone_contact(
                normalized_phone, normalized_name or "Unknown"
            )
            LOGGER.info("Created contact by phone", extra={"contact_id": str(contact.id)})
            return contact.id

        if normalized_name:
            contact = await self.contact_repository.create_name_only(normalized_name)
            LOGGER.info("Created name-only contact", extra={"contact_id": str(contact.id)})
            return contact.id

        return None
