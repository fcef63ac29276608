# backend/modules/layouts/services/floor_plan_service.py

from collections import Counter
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.record_store import SQLAlchemyRecordStore

from ..models.layout_models import Room, Table, TableStatus
from ..schemas.layout_schemas import (
    RoomCreate,
    RoomUpdate,
    RoomWithTablesResponse,
    TableCreate,
    TableResponse,
    TableUpdate,
)
from .edit_session import OptimisticEditSession
from .geometry import CanvasBounds, Size, canvas_bounds, validate_item

logger = logging.getLogger(__name__)

ROOM_NAME_MAX_LENGTH = 100
ROOM_DESCRIPTION_MAX_LENGTH = 500

# Allowed status changes; setting the current status again is a no-op
TABLE_STATUS_TRANSITIONS = {
    TableStatus.AVAILABLE: {
        TableStatus.OCCUPIED,
        TableStatus.RESERVED,
        TableStatus.UNAVAILABLE,
    },
    TableStatus.OCCUPIED: {TableStatus.AVAILABLE, TableStatus.BILL_REQUESTED},
    TableStatus.BILL_REQUESTED: {TableStatus.AVAILABLE, TableStatus.OCCUPIED},
    TableStatus.RESERVED: {TableStatus.OCCUPIED, TableStatus.AVAILABLE},
    TableStatus.UNAVAILABLE: {TableStatus.AVAILABLE},
}


def can_transition(current: TableStatus, new: TableStatus) -> bool:
    return current == new or new in TABLE_STATUS_TRANSITIONS.get(current, set())


def _clean_room_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Room name must be a non-empty string")
    if len(name) > ROOM_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Room name must be {ROOM_NAME_MAX_LENGTH} characters or fewer"
        )
    return name


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    description = description.strip()
    if len(description) > ROOM_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Room description must be {ROOM_DESCRIPTION_MAX_LENGTH} characters or fewer"
        )
    return description or None


class FloorPlanService:
    """Service for managing rooms and the tables placed on them"""

    # Rooms

    async def create_room(self, db: AsyncSession, room_data: RoomCreate) -> Room:
        """Create a new room"""
        store = SQLAlchemyRecordStore(db)
        name = _clean_room_name(room_data.name)
        await self._check_room_name(store, name)

        async with store.transaction():
            room = await store.insert(
                Room, {"name": name, "description": _clean_description(room_data.description)}
            )

        room.table_count = 0
        logger.info(f"Created room {room.id} '{room.name}'")
        return room

    async def get_rooms(self, db: AsyncSession) -> List[Room]:
        """Get all rooms with their table counts"""
        store = SQLAlchemyRecordStore(db)
        rooms = await store.find(Room, order_by=[Room.name, Room.id])
        counts = Counter(table.room_id for table in await store.find(Table))

        for room in rooms:
            room.table_count = counts.get(room.id, 0)

        return rooms

    async def get_room(self, db: AsyncSession, room_id: str) -> RoomWithTablesResponse:
        """Get a room together with its floor plan"""
        store = SQLAlchemyRecordStore(db)
        room = await self._get_room(store, room_id)
        tables = await self._room_tables(store, room_id)

        return RoomWithTablesResponse(
            id=room.id,
            name=room.name,
            description=room.description,
            table_count=len(tables),
            created_at=room.created_at,
            updated_at=room.updated_at,
            tables=[TableResponse.model_validate(table) for table in tables],
        )

    async def update_room(
        self, db: AsyncSession, room_id: str, update_data: RoomUpdate
    ) -> Room:
        """Update room details"""
        store = SQLAlchemyRecordStore(db)
        room = await self._get_room(store, room_id)
        patch: Dict[str, Any] = {}

        fields = update_data.model_dump(exclude_unset=True)
        if fields.get("name") is not None:
            name = _clean_room_name(fields["name"])
            if name.lower() != room.name.lower():
                await self._check_room_name(store, name, exclude_id=room_id)
            patch["name"] = name
        if "description" in fields:
            patch["description"] = _clean_description(fields["description"])

        async with store.transaction():
            room = await store.update(Room, room_id, patch)

        room.table_count = await store.count(Table, {"room_id": room_id})
        return room

    async def delete_room(self, db: AsyncSession, room_id: str) -> int:
        """Delete a room and every table on it; returns the number of tables removed"""
        store = SQLAlchemyRecordStore(db)
        await self._get_room(store, room_id)
        tables = await self._room_tables(store, room_id)

        async with store.transaction():
            for table in tables:
                await store.delete(Table, table.id)
            await store.delete(Room, room_id)

        logger.info(f"Deleted room {room_id} with {len(tables)} table(s)")
        return len(tables)

    async def get_room_bounds(self, db: AsyncSession, room_id: str) -> CanvasBounds:
        """Bounding box of a room's tables, used to size the floor plan canvas"""
        store = SQLAlchemyRecordStore(db)
        await self._get_room(store, room_id)
        return canvas_bounds(await self._room_tables(store, room_id))

    # Tables

    async def list_tables(
        self, db: AsyncSession, room_id: Optional[str] = None
    ) -> List[Table]:
        store = SQLAlchemyRecordStore(db)
        if room_id is not None:
            await self._get_room(store, room_id)
            return await self._room_tables(store, room_id)
        return await store.find(Table, order_by=[Table.room_id, Table.name, Table.id])

    async def get_table(self, db: AsyncSession, table_id: str) -> Table:
        return await self._get_table(SQLAlchemyRecordStore(db), table_id)

    async def create_table(self, db: AsyncSession, table_data: TableCreate) -> Table:
        """Place a new table on a room"""
        store = SQLAlchemyRecordStore(db)
        await self._get_room(store, table_data.room_id)

        values = table_data.model_dump()
        validate_item(values)

        table = await self._write_table(store, None, values)
        logger.info(f"Created table {table.id} '{table.name}' in room {table.room_id}")
        return table

    async def update_table(
        self, db: AsyncSession, table_id: str, update_data: TableUpdate
    ) -> Table:
        """Update table details"""
        store = SQLAlchemyRecordStore(db)
        table = await self._get_table(store, table_id)

        patch = {
            field: value
            for field, value in update_data.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if "name" in patch:
            patch["name"] = patch["name"].strip()
            if not patch["name"]:
                raise ValidationError("Table name must be a non-empty string")
        if "room_id" in patch and patch["room_id"] != table.room_id:
            await self._get_room(store, patch["room_id"])
        if "status" in patch and not can_transition(
            TableStatus(table.status), TableStatus(patch["status"])
        ):
            raise ValidationError(
                f"Cannot change table status from {TableStatus(table.status).value} "
                f"to {TableStatus(patch['status']).value}"
            )

        validate_item(
            {
                "id": table_id,
                "x": patch.get("x", table.x),
                "y": patch.get("y", table.y),
                "width": patch.get("width", table.width),
                "height": patch.get("height", table.height),
            }
        )

        return await self._write_table(store, table_id, patch)

    async def update_table_position(
        self, db: AsyncSession, table_id: str, x: float, y: float
    ) -> Table:
        """Commit a dragged table's position"""
        store = SQLAlchemyRecordStore(db)
        table = await self._get_table(store, table_id)
        validate_item(
            {"id": table_id, "x": x, "y": y, "width": table.width, "height": table.height}
        )
        return await self._write_table(store, table_id, {"x": x, "y": y})

    async def update_table_status(
        self, db: AsyncSession, table_id: str, new_status: TableStatus
    ) -> Table:
        """Change table status along the allowed transitions"""
        store = SQLAlchemyRecordStore(db)
        table = await self._get_table(store, table_id)
        current = TableStatus(table.status)
        new_status = TableStatus(new_status)

        if current == new_status:
            return table
        if not can_transition(current, new_status):
            raise ValidationError(
                f"Cannot change table status from {current.value} to {new_status.value}"
            )

        table = await self._write_table(store, table_id, {"status": new_status})
        logger.info(f"Table {table_id} status {current.value} -> {new_status.value}")
        return table

    async def delete_table(self, db: AsyncSession, table_id: str) -> None:
        store = SQLAlchemyRecordStore(db)
        await self._get_table(store, table_id)
        async with store.transaction():
            await store.delete(Table, table_id)

    async def open_edit_session(
        self,
        db: AsyncSession,
        room_id: str,
        canvas_size: Optional[Size] = None,
        debounce_ms: Optional[int] = None,
    ) -> OptimisticEditSession:
        """Drag session over a room's tables, committing through update_table_position"""
        tables = await self.list_tables(db, room_id)
        if canvas_size is None:
            bounds = canvas_bounds(tables)
            canvas_size = Size(bounds.max_x, bounds.max_y)

        async def commit(table_id: str, patch: Dict[str, float]) -> Table:
            return await self.update_table_position(db, table_id, patch["x"], patch["y"])

        return OptimisticEditSession(
            commit, canvas_size, items=tables, debounce_ms=debounce_ms
        )

    # Helper methods

    async def _check_room_name(
        self, store: SQLAlchemyRecordStore, name: str, exclude_id: Optional[str] = None
    ) -> None:
        clauses = [func.lower(Room.name) == name.lower()]
        if exclude_id is not None:
            clauses.append(Room.id != exclude_id)
        if await store.count(Room, clauses):
            raise ConflictError(f"Room with name '{name}' already exists")

    async def _room_tables(self, store: SQLAlchemyRecordStore, room_id: str) -> List[Table]:
        return await store.find(Table, {"room_id": room_id}, order_by=[Table.name, Table.id])

    async def _get_room(self, store: SQLAlchemyRecordStore, room_id: str) -> Room:
        room = await store.find_one(Room, room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def _get_table(self, store: SQLAlchemyRecordStore, table_id: str) -> Table:
        table = await store.find_one(Table, table_id)
        if not table:
            raise NotFoundError(f"Table {table_id} not found")
        return table

    async def _write_table(
        self, store: SQLAlchemyRecordStore, table_id: Optional[str], values: Dict[str, Any]
    ) -> Table:
        try:
            async with store.transaction():
                if table_id is None:
                    return await store.insert(Table, values)
                return await store.update(Table, table_id, values)
        except IntegrityError as e:
            raise ConflictError("Table violates a store constraint") from e


# Create singleton service
floor_plan_service = FloorPlanService()
