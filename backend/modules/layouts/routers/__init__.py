from .grid_layout_router import router as grid_layout_router
from .floor_plan_router import router as floor_plan_router

__all__ = ["grid_layout_router", "floor_plan_router"]
