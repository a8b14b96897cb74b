from typing import Dict, Type, Union

from sqlalchemy.ext.asyncio import AsyncSession

from estate_intake.repositories.base_repository import BaseRepository
from estate_intake.database.models import Buyer, Client, RentProperty, SaleProperty
from estate_intake.core.exceptions import PreconditionError

CanonicalRecord = Union[SaleProperty, RentProperty, Buyer, Client]

RECORD_MODELS: Dict[str, Type[CanonicalRecord]] = {
    "properties_sale": SaleProperty,
    "properties_rent": RentProperty,
    "buyers": Buyer,
    "clients": Client,
}


class RecordRepository(BaseRepository[CanonicalRecord]):
    """Repository for one of the four canonical record tables.

    The table is chosen by record type name (``properties_sale``,
    ``properties_rent``, ``buyers``, ``clients``).
    """

    def __init__(self, session: AsyncSession, record_type: str):
        model = RECORD_MODELS.get(record_type)
        if model is None:
            raise PreconditionError(f"Unknown record type: {record_type}")
        super().__init__(session, model)
        self.record_type = record_type
