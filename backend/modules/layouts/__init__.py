# backend/modules/layouts/__init__.py

from .models.layout_models import GridLayout, Room, Table, FilterType, TableStatus

from .services.layout_service import layout_service
from .services.floor_plan_service import floor_plan_service

from .routers.grid_layout_router import router as grid_layout_router
from .routers.floor_plan_router import router as floor_plan_router

__all__ = [
    # Models
    "GridLayout",
    "Room",
    "Table",
    "FilterType",
    "TableStatus",
    # Services
    "layout_service",
    "floor_plan_service",
    # Routers
    "grid_layout_router",
    "floor_plan_router",
]
