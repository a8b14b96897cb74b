"""Tests for the per-(prefix, year) code counter."""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from estate_intake.repositories.code_sequence_repository import CodeSequenceRepository


@pytest.fixture
def db_session() -> AsyncMock:
    session = AsyncMock()
    session.execute.return_value = MagicMock(scalar_one=MagicMock(return_value=7))
    return session


def compiled_sql(statement) -> str:
    compiled = statement.compile(
        dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}
    )
    return " ".join(str(compiled).split())


@pytest.mark.asyncio
async def test_next_value_is_a_single_upsert(db_session):
    repository = CodeSequenceRepository(db_session)

    value = await repository.next_value("SALE", 2025)

    assert value == 7
    statement = db_session.execute.await_args.args[0]
    sql = compiled_sql(statement)
    assert sql.startswith("INSERT INTO crm_code_sequences")
    assert "VALUES ('SALE', 2025, 1)" in sql
    assert "ON CONFLICT (code_key, year_num) DO UPDATE SET" in sql
    assert re.search(r"last_value = \(?crm_code_sequences\.last_value \+ 1\)?", sql)
    assert sql.endswith("RETURNING crm_code_sequences.last_value")
    db_session.commit.assert_awaited_once()
    db_session.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_database_error_rolls_back_and_reraises(db_session):
    db_session.execute.side_effect = SQLAlchemyError("deadlock detected")
    repository = CodeSequenceRepository(db_session)

    with pytest.raises(SQLAlchemyError):
        await repository.next_value("RENT", 2026)

    db_session.rollback.assert_awaited_once()
    db_session.commit.assert_not_awaited()
