from .layout_service import layout_service, LayoutService
from .floor_plan_service import floor_plan_service, FloorPlanService
from .layout_repository import LayoutRepository
from .default_enforcer import DefaultExclusivityEnforcer
from .scope_resolver import ScopeResolver
from .clone_service import LayoutCloneOperator
from .edit_session import OptimisticEditSession, EditState, CommitOutcome

__all__ = [
    "layout_service",
    "LayoutService",
    "floor_plan_service",
    "FloorPlanService",
    "LayoutRepository",
    "DefaultExclusivityEnforcer",
    "ScopeResolver",
    "LayoutCloneOperator",
    "OptimisticEditSession",
    "EditState",
    "CommitOutcome",
]
