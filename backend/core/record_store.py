# backend/core/record_store.py

"""
Record store contract used by the layout services.

Services go through a RecordStore instead of the ORM session. Driver
failures surface as StoreUnavailableError.
Writes are flushed, not committed: callers group them with
``async with store.transaction()``.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Type, Union
import logging

from sqlalchemy import func, select, update as sql_update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from .exceptions import NotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

Predicate = Union[None, Mapping[str, Any], ColumnElement, Sequence[ColumnElement]]


class RecordStore(ABC):
    """Minimal persistence contract: find / find_one / insert / update / delete"""

    @abstractmethod
    async def find(self, model: Type, predicate: Predicate = None, order_by=None) -> List[Any]:
        ...

    @abstractmethod
    async def find_one(self, model: Type, record_id: Any) -> Optional[Any]:
        ...

    @abstractmethod
    async def insert(self, model: Type, values: Dict[str, Any]) -> Any:
        ...

    @abstractmethod
    async def update(self, model: Type, record_id: Any, patch: Dict[str, Any]) -> Any:
        ...

    @abstractmethod
    async def update_many(self, model: Type, predicate: Predicate, patch: Dict[str, Any]) -> int:
        """Atomically patch every record matching predicate; returns the row count"""

    @abstractmethod
    async def delete(self, model: Type, record_id: Any) -> None:
        ...

    @abstractmethod
    async def count(self, model: Type, predicate: Predicate = None) -> int:
        ...

    @abstractmethod
    def transaction(self):
        """Async context manager committing on success, rolling back on error"""


def _translate_errors(method):
    """Map driver failures to StoreUnavailableError; integrity errors pass through"""

    @wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except IntegrityError:
            raise
        except (DBAPIError, OSError) as e:
            logger.error(f"Record store failure in {method.__name__}: {e}")
            raise StoreUnavailableError(
                f"Record store unavailable during {method.__name__}"
            ) from e

    return wrapper


class SQLAlchemyRecordStore(RecordStore):
    """RecordStore over an async SQLAlchemy session"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _where(self, model: Type, predicate: Predicate) -> List[ColumnElement]:
        if predicate is None:
            return []
        if isinstance(predicate, Mapping):
            clauses = []
            for field, value in predicate.items():
                column = getattr(model, field)
                if value is None or isinstance(value, bool):
                    clauses.append(column.is_(value))
                else:
                    clauses.append(column == value)
            return clauses
        if isinstance(predicate, ColumnElement):
            return [predicate]
        return list(predicate)

    @_translate_errors
    async def find(self, model: Type, predicate: Predicate = None, order_by=None) -> List[Any]:
        query = select(model).where(*self._where(model, predicate))
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                query = query.order_by(*order_by)
            else:
                query = query.order_by(order_by)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @_translate_errors
    async def find_one(self, model: Type, record_id: Any) -> Optional[Any]:
        return await self.db.get(model, record_id)

    @_translate_errors
    async def insert(self, model: Type, values: Dict[str, Any]) -> Any:
        record = model(**values)
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record

    @_translate_errors
    async def update(self, model: Type, record_id: Any, patch: Dict[str, Any]) -> Any:
        record = await self.db.get(model, record_id)
        if record is None:
            raise NotFoundError(f"{model.__name__} {record_id} not found")

        for field, value in patch.items():
            setattr(record, field, value)

        await self.db.flush()
        await self.db.refresh(record)
        return record

    @_translate_errors
    async def update_many(self, model: Type, predicate: Predicate, patch: Dict[str, Any]) -> int:
        result = await self.db.execute(
            sql_update(model)
            .where(*self._where(model, predicate))
            .values(**patch)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    @_translate_errors
    async def delete(self, model: Type, record_id: Any) -> None:
        record = await self.db.get(model, record_id)
        if record is None:
            raise NotFoundError(f"{model.__name__} {record_id} not found")

        await self.db.delete(record)
        await self.db.flush()

    @_translate_errors
    async def count(self, model: Type, predicate: Predicate = None) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(model).where(*self._where(model, predicate))
        )
        return result.scalar_one()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLAlchemyRecordStore"]:
        try:
            yield self
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        except DBAPIError as e:
            await self.db.rollback()
            raise StoreUnavailableError("Record store unavailable during commit") from e
        except BaseException:
            await self.db.rollback()
            raise
