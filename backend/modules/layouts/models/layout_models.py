# backend/modules/layouts/models/layout_models.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Float,
    ForeignKey,
    JSON,
    Enum as SQLEnum,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import relationship
from enum import Enum
from typing import Optional

from core.database import Base
from core.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class FilterType(str, Enum):
    """Which products a grid layout is arranged for"""

    ALL = "all"
    FAVORITES = "favorites"
    CATEGORY = "category"


class TableStatus(str, Enum):
    """Table availability status"""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    BILL_REQUESTED = "bill_requested"
    UNAVAILABLE = "unavailable"


# Legacy pseudo-category ids, kept for display grouping only
ALL_PRODUCTS_CATEGORY_ID = 0
FAVORITES_CATEGORY_ID = -1

SHARED_SCOPE = "shared"

# Index name of the one-default-per-scope guarantee
DEFAULT_SCOPE_INDEX = "uix_grid_layouts_default_scope"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def build_scope_key(
    scope_till_id: Optional[int],
    filter_type: FilterType,
    category_id: Optional[int] = None,
) -> str:
    """
    Scope key of a grid layout: till (or shared), filter type and, for
    category layouts only, the category id.
    """
    filter_type = FilterType(filter_type)
    owner = SHARED_SCOPE if scope_till_id is None else f"till:{scope_till_id}"
    if filter_type == FilterType.CATEGORY:
        return f"{owner}|category:{category_id}"
    return f"{owner}|{filter_type.value}"


class GridLayout(Base, TimestampMixin):
    """Saved product grid arrangement for a till, or shared across tills"""

    __tablename__ = "grid_layouts"

    id = Column(Integer, primary_key=True)

    # Scope (None = shared by every till)
    scope_till_id = Column(Integer, index=True)
    filter_type = Column(
        SQLEnum(FilterType, name="grid_filter_type", values_callable=_enum_values),
        nullable=False,
        default=FilterType.ALL,
    )
    category_id = Column(Integer)
    scope_key = Column(String(64), nullable=False, index=True)

    name = Column(String(255), nullable=False)

    # Grid content
    columns = Column(Integer, nullable=False, default=4)
    items = Column(JSON, nullable=False, default=list)  # [{id, ref_id, x, y, width, height}]
    version = Column(String(20), nullable=False, default="1.0")

    # Usage
    is_default = Column(Boolean, nullable=False, default=False)
    is_shared = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index(
            DEFAULT_SCOPE_INDEX,
            "scope_key",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
        CheckConstraint("columns > 0", name="chk_grid_layout_columns"),
        CheckConstraint(
            "filter_type != 'category' OR category_id IS NOT NULL",
            name="chk_grid_layout_category",
        ),
    )

    @property
    def display_category_id(self) -> Optional[int]:
        """Category id for grouping in the UI, with the legacy pseudo ids"""
        if self.filter_type == FilterType.ALL:
            return ALL_PRODUCTS_CATEGORY_ID
        if self.filter_type == FilterType.FAVORITES:
            return FAVORITES_CATEGORY_ID
        return self.category_id

    def __repr__(self) -> str:
        return f"<GridLayout id={self.id} scope={self.scope_key} default={self.is_default}>"


class Room(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Dining room; the scope of a floor plan"""

    __tablename__ = "rooms"

    name = Column(String(100), nullable=False)
    description = Column(String(500))

    # Relationships
    tables = relationship(
        "Table",
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Table(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Table placed on a room's floor plan"""

    __tablename__ = "tables"

    name = Column(String(100), nullable=False)
    room_id = Column(
        String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Position and dimensions in canvas units
    x = Column(Float, nullable=False, default=50)
    y = Column(Float, nullable=False, default=50)
    width = Column(Float, nullable=False, default=100)
    height = Column(Float, nullable=False, default=100)

    status = Column(
        SQLEnum(TableStatus, name="table_status", values_callable=_enum_values),
        nullable=False,
        default=TableStatus.AVAILABLE,
    )

    # Relationships
    room = relationship("Room", back_populates="tables")

    __table_args__ = (
        CheckConstraint("width > 0 AND height > 0", name="chk_table_size"),
        CheckConstraint("x >= 0 AND y >= 0", name="chk_table_position"),
    )
