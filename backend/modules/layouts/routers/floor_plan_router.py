# backend/modules/layouts/routers/floor_plan_router.py

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from ..schemas.layout_schemas import (
    CanvasBoundsResponse,
    RoomCreate,
    RoomUpdate,
    RoomResponse,
    RoomWithTablesResponse,
    TableCreate,
    TableUpdate,
    TableResponse,
    TablePositionUpdate,
    TableStatusUpdate,
)
from ..services.floor_plan_service import floor_plan_service

router = APIRouter(tags=["Floor Plan"])


# Room Endpoints
@router.post("/rooms", response_model=RoomResponse, status_code=201)
async def create_room(room_data: RoomCreate, db: AsyncSession = Depends(get_db)):
    """Create a new room"""
    return await floor_plan_service.create_room(db, room_data)


@router.get("/rooms", response_model=List[RoomResponse])
async def get_rooms(db: AsyncSession = Depends(get_db)):
    """Get all rooms"""
    return await floor_plan_service.get_rooms(db)


@router.get("/rooms/{room_id}", response_model=RoomWithTablesResponse)
async def get_room(room_id: str, db: AsyncSession = Depends(get_db)):
    """Get room details with its tables"""
    return await floor_plan_service.get_room(db, room_id)


@router.put("/rooms/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: str, update_data: RoomUpdate, db: AsyncSession = Depends(get_db)
):
    """Update room details"""
    return await floor_plan_service.update_room(db, room_id, update_data)


@router.delete("/rooms/{room_id}")
async def delete_room(room_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a room together with its tables"""
    removed = await floor_plan_service.delete_room(db, room_id)
    return {
        "success": True,
        "message": "Room deleted successfully",
        "tables_deleted": removed,
    }


@router.get("/rooms/{room_id}/tables", response_model=List[TableResponse])
async def get_room_tables(room_id: str, db: AsyncSession = Depends(get_db)):
    """Get the tables placed in a room"""
    return await floor_plan_service.list_tables(db, room_id)


@router.get("/rooms/{room_id}/bounds", response_model=CanvasBoundsResponse)
async def get_room_bounds(room_id: str, db: AsyncSession = Depends(get_db)):
    """Canvas bounds of a room's floor plan"""
    bounds = await floor_plan_service.get_room_bounds(db, room_id)
    return bounds.as_dict()


# Table Endpoints
@router.get("/tables", response_model=List[TableResponse])
async def get_tables(
    room_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Get tables, optionally for one room"""
    return await floor_plan_service.list_tables(db, room_id)


@router.post("/tables", response_model=TableResponse, status_code=201)
async def create_table(table_data: TableCreate, db: AsyncSession = Depends(get_db)):
    """Place a new table"""
    return await floor_plan_service.create_table(db, table_data)


@router.get("/tables/{table_id}", response_model=TableResponse)
async def get_table(table_id: str, db: AsyncSession = Depends(get_db)):
    """Get table details"""
    return await floor_plan_service.get_table(db, table_id)


@router.put("/tables/{table_id}", response_model=TableResponse)
async def update_table(
    table_id: str, update_data: TableUpdate, db: AsyncSession = Depends(get_db)
):
    """Update table details"""
    return await floor_plan_service.update_table(db, table_id, update_data)


@router.put("/tables/{table_id}/position", response_model=TableResponse)
async def update_table_position(
    table_id: str, position: TablePositionUpdate, db: AsyncSession = Depends(get_db)
):
    """Commit a dragged table's position"""
    return await floor_plan_service.update_table_position(
        db, table_id, position.x, position.y
    )


@router.put("/tables/{table_id}/status", response_model=TableResponse)
async def update_table_status(
    table_id: str, status_update: TableStatusUpdate, db: AsyncSession = Depends(get_db)
):
    """Change table status"""
    return await floor_plan_service.update_table_status(db, table_id, status_update.status)


@router.delete("/tables/{table_id}")
async def delete_table(table_id: str, db: AsyncSession = Depends(get_db)):
    """Delete table"""
    await floor_plan_service.delete_table(db, table_id)
    return {"success": True, "message": "Table deleted successfully"}
