"""Human-readable record codes such as ``SALE-2025-00017``."""

from datetime import datetime, timezone
from typing import Callable, Optional

from estate_intake.repositories.code_sequence_repository import CodeSequenceRepository


def format_code(prefix: str, year: int, value: int) -> str:
    return f"{prefix}-{year}-{value:05d}"


class CodeAllocator:
    """Mints codes from the per-(prefix, year) counter."""

    def __init__(
        self,
        code_sequence_repository: CodeSequenceRepository,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.code_sequence_repository = code_sequence_repository
        self.clock = clock

    async def next_code(self, prefix: str, year: Optional[int] = None) -> str:
        year = year if year is not None else self.clock().year
        value = await self.code_sequence_repository.next_value(prefix, year)
        return format_code(prefix, year, value)
