# backend/modules/layouts/services/scope_resolver.py

from typing import Optional
import logging

from core.config import settings

from ..models.layout_models import GridLayout, FilterType, build_scope_key
from ..schemas.layout_schemas import ResolveContext
from .layout_repository import LayoutRepository

logger = logging.getLogger(__name__)


def builtin_layout(context: ResolveContext) -> GridLayout:
    """Empty grid used when neither the till nor the shared scope has a default.
    Never persisted, so it has no id."""
    filter_type = FilterType(context.filter_type)
    return GridLayout(
        id=None,
        scope_till_id=context.till_id,
        filter_type=filter_type,
        category_id=context.category_id,
        scope_key=build_scope_key(context.till_id, filter_type, context.category_id),
        name=f"Default {filter_type.value} Layout",
        columns=settings.default_grid_columns,
        items=[],
        version=settings.layout_version,
        is_default=True,
        is_shared=False,
    )


class ScopeResolver:
    """
    Picks the layout to show: an explicit choice, then the till default,
    then the shared default, then the built-in grid.
    """

    def __init__(self, repository: LayoutRepository):
        self.repository = repository

    async def resolve(
        self, context: ResolveContext, explicit_layout_id: Optional[int] = None
    ) -> GridLayout:
        if explicit_layout_id is not None:
            layout = await self.repository.find(explicit_layout_id)
            if layout:
                return layout
            logger.info(
                f"Selected layout {explicit_layout_id} no longer exists, "
                f"falling back for till {context.till_id}"
            )

        till_key = build_scope_key(context.till_id, context.filter_type, context.category_id)
        layout = await self.repository.find_default(till_key)
        if layout:
            return layout

        shared_key = build_scope_key(None, context.filter_type, context.category_id)
        layout = await self.repository.find_default(shared_key)
        if layout:
            return layout

        logger.debug(f"No default layout for {till_key}, using built-in grid")
        return builtin_layout(context)
