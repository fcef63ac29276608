# backend/modules/layouts/routers/grid_layout_router.py

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from ..models.layout_models import FilterType
from ..schemas.layout_schemas import (
    GridLayoutCreate,
    GridLayoutUpdate,
    GridLayoutResponse,
    GridLayoutCloneRequest,
    GridItemPositionUpdate,
    ResolveContext,
)
from ..services.layout_service import layout_service

router = APIRouter(prefix="/grid-layouts", tags=["Grid Layouts"])


@router.get("/resolve", response_model=GridLayoutResponse)
async def resolve_layout(
    till_id: int = Query(..., gt=0),
    filter_type: FilterType = Query(FilterType.ALL),
    category_id: Optional[int] = Query(None),
    layout_id: Optional[int] = Query(None, description="Layout explicitly chosen on the till"),
    db: AsyncSession = Depends(get_db),
):
    """
    Layout to show for a till and product filter.

    Falls back from the chosen layout to the till default, the shared
    default and finally an empty built-in grid (returned without an id).
    """
    context = ResolveContext(
        till_id=till_id, filter_type=filter_type, category_id=category_id
    )
    return await layout_service.resolve_layout(db, context, layout_id)


@router.get("/shared", response_model=List[GridLayoutResponse])
async def get_shared_layouts(
    filter_type: Optional[FilterType] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Get layouts shared by every till"""
    return await layout_service.list_layouts(db, "shared", filter_type)


@router.get("", response_model=List[GridLayoutResponse])
async def get_layouts(
    scope: str = Query("all", description="Till id, 'shared' or 'all'"),
    filter_type: Optional[FilterType] = Query(None),
    category_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List layouts; a till id includes the shared layouts"""
    return await layout_service.list_layouts(db, scope, filter_type, category_id)


@router.get("/{layout_id}", response_model=GridLayoutResponse)
async def get_layout(layout_id: int, db: AsyncSession = Depends(get_db)):
    """Get layout by ID"""
    return await layout_service.get_layout(db, layout_id)


@router.post("", response_model=GridLayoutResponse, status_code=201)
async def create_layout(layout_data: GridLayoutCreate, db: AsyncSession = Depends(get_db)):
    """Create a layout; is_default demotes the current default of the scope"""
    return await layout_service.save_layout(db, layout_data)


@router.put("/{layout_id}", response_model=GridLayoutResponse)
async def update_layout(
    layout_id: int,
    update_data: GridLayoutUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update layout"""
    return await layout_service.save_layout(db, update_data, layout_id)


@router.put("/{layout_id}/set-default", response_model=GridLayoutResponse)
async def set_default_layout(layout_id: int, db: AsyncSession = Depends(get_db)):
    """Make a layout the default of its scope"""
    return await layout_service.set_default(db, layout_id)


@router.post("/{layout_id}/clone", response_model=GridLayoutResponse, status_code=201)
async def clone_layout(
    layout_id: int,
    clone_data: GridLayoutCloneRequest,
    db: AsyncSession = Depends(get_db),
):
    """Copy a layout to another till"""
    return await layout_service.clone_layout(
        db, layout_id, clone_data.target_till_id, clone_data.name
    )


@router.put("/{layout_id}/items/{item_id}/position", response_model=GridLayoutResponse)
async def update_item_position(
    layout_id: int,
    item_id: str,
    position: GridItemPositionUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Commit the dropped position of a grid item"""
    return await layout_service.update_item_position(
        db, layout_id, item_id, position.x, position.y
    )


@router.delete("/{layout_id}")
async def delete_layout(layout_id: int, db: AsyncSession = Depends(get_db)):
    """Delete layout"""
    await layout_service.delete_layout(db, layout_id)
    return {"success": True, "message": "Layout deleted successfully"}
