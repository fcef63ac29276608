# backend/modules/layouts/services/default_enforcer.py

from typing import Any, Dict, Optional
import logging

from sqlalchemy.exc import IntegrityError

from core.config import settings
from core.database_retry import is_unique_violation, retry_on_conflict
from core.exceptions import ConflictError, ExclusivityConflictError
from core.record_store import RecordStore

from ..models.layout_models import GridLayout, DEFAULT_SCOPE_INDEX

logger = logging.getLogger(__name__)

# Postgres names the index, SQLite names the column
_DEFAULT_SCOPE_MARKERS = (DEFAULT_SCOPE_INDEX, "grid_layouts.scope_key")


def is_default_scope_race(error: BaseException) -> bool:
    """A concurrent writer claimed the default of the same scope first"""
    return is_unique_violation(error, _DEFAULT_SCOPE_MARKERS)


class DefaultExclusivityEnforcer:
    """
    Keeps at most one default grid layout per scope key.

    Clearing the siblings and writing the new default happen in one
    transaction. The partial unique index on scope_key turns a racing
    writer into an IntegrityError, which is treated as a lost
    compare-and-set and retried, so the last accepted write wins.
    """

    def __init__(
        self,
        store: RecordStore,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self.store = store
        self.max_retries = (
            settings.default_write_max_retries if max_retries is None else max_retries
        )
        self.retry_delay = (
            settings.default_write_retry_delay if retry_delay is None else retry_delay
        )

    async def apply_default(
        self, values: Dict[str, Any], record_id: Optional[int] = None
    ) -> GridLayout:
        """
        Write a layout as the default of its scope.

        Args:
            values: Fields to write; must carry the (new) scope_key
            record_id: Layout to update, or None to insert a new one

        Returns:
            The written layout with is_default set
        """
        scope_key = values["scope_key"]
        record = await self._write_with_retry(values, record_id)

        try:
            await self._verify(scope_key)
        except ExclusivityConflictError as conflict:
            logger.warning(
                f"{conflict.detail}; re-applying default for layout {record.id}"
            )
            record = await self._write_with_retry(values, record.id)
            await self._verify(scope_key)

        return record

    async def clear_default(
        self, record_id: int, values: Optional[Dict[str, Any]] = None
    ) -> GridLayout:
        """Unmark a layout as default; siblings are left alone"""
        payload = dict(values or {})
        payload["is_default"] = False
        try:
            async with self.store.transaction():
                record = await self.store.update(GridLayout, record_id, payload)
        except IntegrityError as e:
            raise ConflictError(f"Layout {record_id} violates a store constraint") from e
        return record

    async def _write(self, values: Dict[str, Any], record_id: Optional[int]) -> GridLayout:
        scope_key = values["scope_key"]
        sibling_filter = [
            GridLayout.scope_key == scope_key,
            GridLayout.is_default.is_(True),
        ]
        if record_id is not None:
            sibling_filter.append(GridLayout.id != record_id)

        payload = dict(values)
        payload["is_default"] = True

        async with self.store.transaction():
            cleared = await self.store.update_many(
                GridLayout, sibling_filter, {"is_default": False}
            )
            if record_id is None:
                record = await self.store.insert(GridLayout, payload)
            else:
                record = await self.store.update(GridLayout, record_id, payload)

        logger.info(
            f"Layout {record.id} is now default for scope '{scope_key}' "
            f"({cleared} previous default(s) cleared)"
        )
        return record

    async def _write_with_retry(
        self, values: Dict[str, Any], record_id: Optional[int]
    ) -> GridLayout:
        try:
            return await retry_on_conflict(
                self._write,
                values,
                record_id,
                retry_if=is_default_scope_race,
                max_retries=self.max_retries,
                initial_delay=self.retry_delay,
            )
        except IntegrityError as e:
            if is_default_scope_race(e):
                raise ExclusivityConflictError(
                    values["scope_key"],
                    f"Could not claim default for scope '{values['scope_key']}' "
                    f"after {self.max_retries + 1} attempts",
                ) from e
            raise ConflictError("Layout violates a store constraint") from e

    async def _verify(self, scope_key: str) -> None:
        defaults = await self.store.count(
            GridLayout, {"scope_key": scope_key, "is_default": True}
        )
        if defaults > 1:
            raise ExclusivityConflictError(
                scope_key, f"Scope '{scope_key}' has {defaults} default layouts after write"
            )
