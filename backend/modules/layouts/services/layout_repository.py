# backend/modules/layouts/services/layout_repository.py

from typing import Any, Dict, List, Optional, Union
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from core.config import settings
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.record_store import RecordStore

from ..models.layout_models import GridLayout, FilterType, build_scope_key
from ..schemas.layout_schemas import GridLayoutCreate, GridLayoutUpdate, normalise_category
from .default_enforcer import DefaultExclusivityEnforcer
from .geometry import validate_items

logger = logging.getLogger(__name__)

ScopeFilter = Union[int, str]  # till id, "shared" or "all"


def _dump(data: Any, exclude_unset: bool = False) -> Dict[str, Any]:
    if isinstance(data, dict):
        return dict(data)
    return data.model_dump(exclude_unset=exclude_unset)


def _plain_items(items: List[Any]) -> List[Dict[str, Any]]:
    return [item if isinstance(item, dict) else item.model_dump() for item in items]


class LayoutRepository:
    """Persistence of grid layouts, scoped per till or shared"""

    def __init__(
        self,
        store: RecordStore,
        enforcer: Optional[DefaultExclusivityEnforcer] = None,
    ):
        self.store = store
        self.enforcer = enforcer or DefaultExclusivityEnforcer(store)

    # Reads

    async def find(self, layout_id: int) -> Optional[GridLayout]:
        return await self.store.find_one(GridLayout, layout_id)

    async def get(self, layout_id: int) -> GridLayout:
        layout = await self.find(layout_id)
        if not layout:
            raise NotFoundError(f"Grid layout {layout_id} not found")
        return layout

    async def find_default(self, scope_key: str) -> Optional[GridLayout]:
        """Default layout of a scope key, if one is marked"""
        layouts = await self.store.find(
            GridLayout,
            {"scope_key": scope_key, "is_default": True},
            order_by=GridLayout.id,
        )
        return layouts[0] if layouts else None

    async def list_by_scope(
        self,
        scope: ScopeFilter = "all",
        filter_type: Optional[FilterType] = None,
        category_id: Optional[int] = None,
    ) -> List[GridLayout]:
        """
        List layouts visible for a scope.

        A till id lists that till's layouts together with the shared ones;
        "shared" lists shared layouts only; "all" lists everything.
        """
        clauses = []
        if scope == "shared":
            clauses.append(GridLayout.scope_till_id.is_(None))
        elif scope != "all":
            try:
                till_id = int(scope)
            except (TypeError, ValueError):
                raise ValidationError(f"Unknown layout scope '{scope}'")
            clauses.append(
                or_(GridLayout.scope_till_id == till_id, GridLayout.scope_till_id.is_(None))
            )

        if filter_type is not None:
            clauses.append(GridLayout.filter_type == FilterType(filter_type))
            if filter_type == FilterType.CATEGORY and category_id is not None:
                clauses.append(GridLayout.category_id == category_id)

        return await self.store.find(
            GridLayout, clauses, order_by=[GridLayout.created_at, GridLayout.id]
        )

    async def name_exists(
        self, name: str, scope_till_id: Optional[int], exclude_id: Optional[int] = None
    ) -> bool:
        clauses = [GridLayout.name == name]
        if scope_till_id is None:
            clauses.append(GridLayout.scope_till_id.is_(None))
        else:
            clauses.append(GridLayout.scope_till_id == scope_till_id)
        if exclude_id is not None:
            clauses.append(GridLayout.id != exclude_id)
        return await self.store.count(GridLayout, clauses) > 0

    # Writes

    async def create(self, data: Union[GridLayoutCreate, Dict[str, Any]]) -> GridLayout:
        """Create a layout; a default layout demotes the current default of its scope"""
        values = _dump(data)
        items = _plain_items(values.get("items") or [])
        validate_items(items)

        scope_till_id = values.get("scope_till_id")
        filter_type = FilterType(values.get("filter_type") or FilterType.ALL)
        category_id = self._category(filter_type, values.get("category_id"))

        if await self.name_exists(values["name"], scope_till_id):
            raise ConflictError(
                f"Layout with name '{values['name']}' already exists in this scope"
            )

        record = {
            "scope_till_id": scope_till_id,
            "filter_type": filter_type,
            "category_id": category_id,
            "scope_key": build_scope_key(scope_till_id, filter_type, category_id),
            "name": values["name"],
            "columns": values.get("columns") or settings.default_grid_columns,
            "items": items,
            "version": values.get("version") or settings.layout_version,
            "is_shared": scope_till_id is None,
        }

        if values.get("is_default"):
            layout = await self.enforcer.apply_default(record)
        else:
            record["is_default"] = False
            layout = await self._write(None, record)

        logger.info(f"Created grid layout {layout.id} '{layout.name}' in {layout.scope_key}")
        return layout

    async def update(
        self, layout_id: int, data: Union[GridLayoutUpdate, Dict[str, Any]]
    ) -> GridLayout:
        """Apply a partial update, re-deriving the scope key from the merged fields"""
        layout = await self.get(layout_id)
        patch = _dump(data, exclude_unset=True)
        for field in ("name", "columns", "items", "version", "filter_type", "is_default"):
            if field in patch and patch[field] is None:
                del patch[field]

        scope_till_id = patch.get("scope_till_id", layout.scope_till_id)
        filter_type = FilterType(patch.get("filter_type") or layout.filter_type)
        if "category_id" in patch:
            category_id = patch["category_id"]
        else:
            category_id = layout.category_id
        category_id = self._category(filter_type, category_id)

        if "items" in patch:
            patch["items"] = _plain_items(patch["items"] or [])
            validate_items(patch["items"])

        name = patch.get("name", layout.name)
        if (name != layout.name or scope_till_id != layout.scope_till_id) and (
            await self.name_exists(name, scope_till_id, exclude_id=layout_id)
        ):
            raise ConflictError(f"Layout with name '{name}' already exists in this scope")

        scope_key = build_scope_key(scope_till_id, filter_type, category_id)
        patch.update(
            {
                "scope_till_id": scope_till_id,
                "filter_type": filter_type,
                "category_id": category_id,
                "scope_key": scope_key,
                "is_shared": scope_till_id is None,
            }
        )

        was_default = layout.is_default
        wants_default = patch.pop("is_default", None)
        if wants_default is None:
            wants_default = was_default

        if wants_default and (not was_default or scope_key != layout.scope_key):
            updated = await self.enforcer.apply_default(patch, record_id=layout_id)
        elif not wants_default and was_default:
            updated = await self.enforcer.clear_default(layout_id, patch)
        else:
            updated = await self._write(layout_id, patch)

        logger.info(f"Updated grid layout {layout_id}")
        return updated

    async def set_default(self, layout_id: int) -> GridLayout:
        """Mark a layout as the default of its current scope"""
        layout = await self.get(layout_id)
        return await self.enforcer.apply_default(
            {"scope_key": layout.scope_key}, record_id=layout_id
        )

    async def update_item_position(
        self, layout_id: int, item_id: str, x: float, y: float
    ) -> GridLayout:
        """Commit the dropped position of one grid item"""
        layout = await self.get(layout_id)

        items = [dict(item) for item in layout.items or []]
        for item in items:
            if item.get("id") == item_id:
                item["x"] = x
                item["y"] = y
                break
        else:
            raise NotFoundError(f"Item '{item_id}' not found in grid layout {layout_id}")

        validate_items(items)
        return await self._write(layout_id, {"items": items})

    async def delete(self, layout_id: int) -> None:
        """Delete a layout; the last layout of a scope cannot go while it is the default"""
        layout = await self.get(layout_id)

        if layout.is_default:
            siblings = await self.store.count(GridLayout, {"scope_key": layout.scope_key})
            if siblings <= 1:
                raise ValidationError(
                    "Cannot delete the only layout for this scope while it is the default"
                )

        async with self.store.transaction():
            await self.store.delete(GridLayout, layout_id)

        logger.info(f"Deleted grid layout {layout_id} from {layout.scope_key}")

    async def _write(self, layout_id: Optional[int], values: Dict[str, Any]) -> GridLayout:
        try:
            async with self.store.transaction():
                if layout_id is None:
                    return await self.store.insert(GridLayout, values)
                return await self.store.update(GridLayout, layout_id, values)
        except IntegrityError as e:
            raise ConflictError("Layout violates a store constraint") from e

    @staticmethod
    def _category(filter_type: FilterType, category_id: Optional[int]) -> Optional[int]:
        try:
            return normalise_category(filter_type, category_id)
        except ValueError as e:
            raise ValidationError(str(e))
