from .layout_schemas import (
    LayoutItem,
    CanvasBoundsResponse,
    GridLayoutCreate,
    GridLayoutUpdate,
    GridLayoutResponse,
    GridLayoutCloneRequest,
    GridItemPositionUpdate,
    ResolveContext,
    RoomCreate,
    RoomUpdate,
    RoomResponse,
    RoomWithTablesResponse,
    TableCreate,
    TableUpdate,
    TablePositionUpdate,
    TableStatusUpdate,
    TableResponse,
    normalise_category,
)

__all__ = [
    "LayoutItem",
    "CanvasBoundsResponse",
    "GridLayoutCreate",
    "GridLayoutUpdate",
    "GridLayoutResponse",
    "GridLayoutCloneRequest",
    "GridItemPositionUpdate",
    "ResolveContext",
    "RoomCreate",
    "RoomUpdate",
    "RoomResponse",
    "RoomWithTablesResponse",
    "TableCreate",
    "TableUpdate",
    "TablePositionUpdate",
    "TableStatusUpdate",
    "TableResponse",
    "normalise_category",
]
