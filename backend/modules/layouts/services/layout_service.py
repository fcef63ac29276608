# backend/modules/layouts/services/layout_service.py

from typing import Dict, List, Optional, Union
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from core.record_store import SQLAlchemyRecordStore

from ..models.layout_models import GridLayout, FilterType
from ..schemas.layout_schemas import GridLayoutCreate, GridLayoutUpdate, ResolveContext
from .clone_service import LayoutCloneOperator
from .default_enforcer import DefaultExclusivityEnforcer
from .edit_session import OptimisticEditSession
from .geometry import Size, snap_to_cells
from .layout_repository import LayoutRepository, ScopeFilter
from .scope_resolver import ScopeResolver

logger = logging.getLogger(__name__)


class LayoutService:
    """Service for resolving, saving and copying product grid layouts"""

    def _repository(self, db: AsyncSession) -> LayoutRepository:
        store = SQLAlchemyRecordStore(db)
        return LayoutRepository(store, DefaultExclusivityEnforcer(store))

    async def resolve_layout(
        self,
        db: AsyncSession,
        context: ResolveContext,
        explicit_layout_id: Optional[int] = None,
    ) -> GridLayout:
        """Layout to show for a till and product filter"""
        return await ScopeResolver(self._repository(db)).resolve(context, explicit_layout_id)

    async def get_layout(self, db: AsyncSession, layout_id: int) -> GridLayout:
        return await self._repository(db).get(layout_id)

    async def list_layouts(
        self,
        db: AsyncSession,
        scope: ScopeFilter = "all",
        filter_type: Optional[FilterType] = None,
        category_id: Optional[int] = None,
    ) -> List[GridLayout]:
        return await self._repository(db).list_by_scope(scope, filter_type, category_id)

    async def save_layout(
        self,
        db: AsyncSession,
        layout_data: Union[GridLayoutCreate, GridLayoutUpdate],
        layout_id: Optional[int] = None,
    ) -> GridLayout:
        """Create a layout, or update one when layout_id is given"""
        repository = self._repository(db)
        if layout_id is None:
            return await repository.create(layout_data)
        return await repository.update(layout_id, layout_data)

    async def set_default(self, db: AsyncSession, layout_id: int) -> GridLayout:
        return await self._repository(db).set_default(layout_id)

    async def clone_layout(
        self,
        db: AsyncSession,
        layout_id: int,
        target_till_id: int,
        name: Optional[str] = None,
    ) -> GridLayout:
        return await LayoutCloneOperator(self._repository(db)).clone_to_scope(
            layout_id, target_till_id, name
        )

    async def delete_layout(self, db: AsyncSession, layout_id: int) -> None:
        await self._repository(db).delete(layout_id)

    async def update_item_position(
        self, db: AsyncSession, layout_id: int, item_id: str, x: float, y: float
    ) -> GridLayout:
        return await self._repository(db).update_item_position(layout_id, item_id, x, y)

    async def open_edit_session(
        self,
        db: AsyncSession,
        layout_id: int,
        debounce_ms: Optional[int] = None,
    ) -> OptimisticEditSession:
        """Drag session over a layout's items; the canvas is the grid itself and
        drags snap to whole cells"""
        layout = await self.get_layout(db, layout_id)
        items = layout.items or []
        rows = max([item["y"] + item["height"] for item in items] + [layout.columns])

        async def commit(item_id: str, patch: Dict[str, float]) -> GridLayout:
            return await self.update_item_position(
                db, layout_id, item_id, patch["x"], patch["y"]
            )

        return OptimisticEditSession(
            commit,
            Size(layout.columns, rows),
            items=items,
            debounce_ms=debounce_ms,
            snap=snap_to_cells,
        )


# Create singleton service
layout_service = LayoutService()
