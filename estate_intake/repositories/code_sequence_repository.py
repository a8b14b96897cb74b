from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError

from estate_intake.database.models import CodeSequence
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class CodeSequenceRepository:
    """Atomic per-(prefix, year) counters."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_value(self, code_key: str, year_num: int) -> int:
        """Increment and return the counter in a single statement.

        ``INSERT ... ON CONFLICT (code_key, year_num) DO UPDATE SET
        last_value = last_value + 1 RETURNING last_value``. The row lock taken
        by the upsert serializes concurrent callers, so each gets a distinct
        value.
        """
        stmt = pg_insert(CodeSequence).values(
            code_key=code_key, year_num=year_num, last_value=1
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CodeSequence.code_key, CodeSequence.year_num],
            set_={"last_value": CodeSequence.last_value + 1},
        ).returning(CodeSequence.last_value)

        try:
            result = await self.session.execute(stmt)
            value = result.scalar_one()
            await self.session.commit()
            return int(value)
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(
                f"Error allocating code for {code_key}/{year_num}: {str(e)}",
                exc_info=True
            )
            raise
