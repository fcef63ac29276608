# backend/modules/layouts/services/clone_service.py

from typing import Optional
import copy
import logging

from core.exceptions import InvalidTargetError

from ..models.layout_models import GridLayout
from .layout_repository import LayoutRepository

logger = logging.getLogger(__name__)


class LayoutCloneOperator:
    """Copies a layout into another till's scope"""

    def __init__(self, repository: LayoutRepository):
        self.repository = repository

    async def clone_to_scope(
        self, source_id: int, target_till_id: int, name: Optional[str] = None
    ) -> GridLayout:
        """
        Copy a layout to a till. The copy is never default and never
        shared; the source is left untouched.

        Raises:
            NotFoundError: source layout does not exist
            InvalidTargetError: target is the source's own till
        """
        source = await self.repository.get(source_id)

        if target_till_id is None or target_till_id <= 0:
            raise InvalidTargetError("Clone target must be a till")
        if source.scope_till_id == target_till_id:
            raise InvalidTargetError(
                f"Layout {source_id} already belongs to till {target_till_id}"
            )

        layout_name = await self._unique_name(
            name or f"Copy of {source.name}", target_till_id
        )

        clone = await self.repository.create(
            {
                "scope_till_id": target_till_id,
                "filter_type": source.filter_type,
                "category_id": source.category_id,
                "name": layout_name,
                "columns": source.columns,
                "items": copy.deepcopy(source.items or []),
                "version": source.version,
                "is_default": False,
            }
        )

        logger.info(
            f"Cloned grid layout {source_id} to till {target_till_id} as {clone.id}"
        )
        return clone

    async def _unique_name(self, base_name: str, till_id: int) -> str:
        layout_name = base_name
        counter = 1
        while await self.repository.name_exists(layout_name, till_id):
            counter += 1
            layout_name = f"{base_name} ({counter})"
        return layout_name
