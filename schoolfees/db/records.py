"""
Document-style storage collaborator.

Every call touches exactly one record and commits on its own, so callers get
single-document atomicity and nothing more. Multi-record consistency is the
ledger's job.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolfees.core.enums import Collection
from schoolfees.core.exceptions import NotFoundError, TransportError
from schoolfees.core.models import Payment, Student
from schoolfees.db.session import get_db

logger = logging.getLogger(__name__)

COLLECTION_MODELS = {
    Collection.STUDENTS: Student,
    Collection.PAYMENTS: Payment,
}


def _model_for(collection: Collection):
    return COLLECTION_MODELS[Collection(collection)]


class RecordStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _commit(self, action: str, collection: Collection) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Storage %s on %s failed: %s", action, collection.value, e)
            raise TransportError(f"Storage unavailable while trying to {action} {collection.value}") from e

    async def create_record(self, collection: Collection, data: Dict[str, Any]):
        model = _model_for(collection)
        record = model(**data)
        self.db.add(record)
        await self._commit("create", Collection(collection))
        await self.db.refresh(record)
        return record

    async def list_records(
        self,
        collection: Collection,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Any]:
        model = _model_for(collection)
        stmt = select(model).where(*[getattr(model, key) == value for key, value in filters.items()])
        if order_by:
            column = getattr(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Storage list on %s failed: %s", Collection(collection).value, e)
            raise TransportError(f"Storage unavailable while listing {Collection(collection).value}") from e
        return list(result.scalars().all())

    async def get_record(self, collection: Collection, record_id: UUID):
        model = _model_for(collection)
        try:
            return await self.db.get(model, record_id)
        except SQLAlchemyError as e:
            logger.error("Storage get on %s failed: %s", Collection(collection).value, e)
            raise TransportError(f"Storage unavailable while reading {Collection(collection).value}") from e

    async def update_record(self, collection: Collection, record_id: UUID, partial: Dict[str, Any]):
        record = await self.get_record(collection, record_id)
        if record is None:
            raise NotFoundError(f"{Collection(collection).value} record {record_id} not found")
        for key, value in partial.items():
            setattr(record, key, value)
        await self._commit("update", Collection(collection))
        await self.db.refresh(record)
        return record

    async def delete_record(self, collection: Collection, record_id: UUID) -> None:
        # Deleting a missing record is a no-op so cascades can be re-run
        record = await self.get_record(collection, record_id)
        if record is None:
            return
        await self.db.delete(record)
        await self._commit("delete", Collection(collection))


async def get_record_store(db: AsyncSession = Depends(get_db)) -> RecordStore:
    return RecordStore(db)
