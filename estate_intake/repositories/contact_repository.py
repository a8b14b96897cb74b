from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.dialects.postgresql import insert as pg_insert

from estate_intake.repositories.base_repository import BaseRepository
from estate_intake.database.models import Contact
from estate_intake.core.exceptions import DatabaseError
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ContactRepository(BaseRepository[Contact]):
    """Repository for contacts, deduplicated by phone."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Contact)

    async def find_by_phone(self, phone: str) -> Optional[Contact]:
        try:
            result = await self.session.execute(
                select(Contact).where(Contact.phone == phone).limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error looking up contact by phone: {str(e)}", exc_info=True)
            raise

    async def insert_phone_contact(self, phone: str, name: str) -> Contact:
        """Insert a contact keyed on phone, tolerating a concurrent insert.

        Uses ``ON CONFLICT (phone) DO NOTHING`` and then re-reads the row, so
        two callers racing on the same phone end up with the same contact.
        """
        try:
            stmt = (
                pg_insert(Contact)
                .values(name=name, phone=phone)
                .on_conflict_do_nothing(index_elements=["phone"])
            )
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error inserting contact: {str(e)}", exc_info=True)
            raise

        contact = await self.find_by_phone(phone)
        if contact is None:
            raise DatabaseError(f"Contact with phone {phone} missing after insert")
        return contact

    async def create_name_only(self, name: str) -> Contact:
        """Create a contact with no phone. These are never deduplicated."""
        return await self.create(name=name, phone=None)
