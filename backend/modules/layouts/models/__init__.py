from .layout_models import (
    GridLayout,
    Room,
    Table,
    FilterType,
    TableStatus,
    build_scope_key,
    ALL_PRODUCTS_CATEGORY_ID,
    FAVORITES_CATEGORY_ID,
    DEFAULT_SCOPE_INDEX,
)

__all__ = [
    "GridLayout",
    "Room",
    "Table",
    "FilterType",
    "TableStatus",
    "build_scope_key",
    "ALL_PRODUCTS_CATEGORY_ID",
    "FAVORITES_CATEGORY_ID",
    "DEFAULT_SCOPE_INDEX",
]
