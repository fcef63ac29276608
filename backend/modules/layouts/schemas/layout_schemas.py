# backend/modules/layouts/schemas/layout_schemas.py

from typing import List, Optional, Union
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from ..models.layout_models import (
    FilterType,
    TableStatus,
    ALL_PRODUCTS_CATEGORY_ID,
    FAVORITES_CATEGORY_ID,
)


def normalise_category(
    filter_type: Optional[FilterType], category_id: Optional[int]
) -> Optional[int]:
    """
    Drop the legacy pseudo-category ids. Only category layouts carry a
    category id; the others are identified by filter type alone.
    """
    if filter_type is None:
        return category_id
    if filter_type != FilterType.CATEGORY:
        return None
    if category_id in (ALL_PRODUCTS_CATEGORY_ID, FAVORITES_CATEGORY_ID):
        raise ValueError("category_id must reference a real category")
    if category_id is None:
        raise ValueError("category_id is required when filter_type is 'category'")
    return category_id


def check_grid_cells(items):
    """Grid items are placed and sized in whole cells"""
    for item in items or []:
        for value in (item.x, item.y, item.width, item.height):
            if float(value) != int(value):
                raise ValueError(f"Grid item '{item.id}' must use whole grid cells")
    return items


# Geometry Schemas
class LayoutItem(BaseModel):
    """Positioned item: a product button on a grid or a table on a floor plan"""

    id: str = Field(..., min_length=1, max_length=64)
    ref_id: Optional[Union[int, str]] = None  # variant id or table id
    x: float = Field(0, ge=0)
    y: float = Field(0, ge=0)
    width: float = Field(1, gt=0)
    height: float = Field(1, gt=0)


class CanvasBoundsResponse(BaseModel):
    """Bounding box of a set of items"""

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    width: float
    height: float


# Grid Layout Schemas
class GridLayoutBase(BaseModel):
    """Base grid layout schema"""

    name: str = Field(..., min_length=1, max_length=255)
    columns: int = Field(4, gt=0)
    items: List[LayoutItem] = []
    version: Optional[str] = Field(None, max_length=20)
    filter_type: FilterType = FilterType.ALL
    category_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Layout name cannot be empty")
        return v

    @field_validator("items")
    @classmethod
    def grid_cells_are_integral(cls, items: List[LayoutItem]) -> List[LayoutItem]:
        return check_grid_cells(items)

    @model_validator(mode="after")
    def check_category(self):
        self.category_id = normalise_category(self.filter_type, self.category_id)
        return self


class GridLayoutCreate(GridLayoutBase):
    """Grid layout creation schema"""

    scope_till_id: Optional[int] = Field(None, gt=0)  # None = shared
    is_default: bool = False


class GridLayoutUpdate(BaseModel):
    """Grid layout update schema; scope consistency is checked against the stored record"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    columns: Optional[int] = Field(None, gt=0)
    items: Optional[List[LayoutItem]] = None
    version: Optional[str] = Field(None, max_length=20)
    filter_type: Optional[FilterType] = None
    category_id: Optional[int] = None
    scope_till_id: Optional[int] = Field(None, gt=0)
    is_default: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Layout name cannot be empty")
        return v

    @field_validator("items")
    @classmethod
    def grid_cells_are_integral(
        cls, items: Optional[List[LayoutItem]]
    ) -> Optional[List[LayoutItem]]:
        return check_grid_cells(items)


class GridLayoutResponse(BaseModel):
    """Grid layout response schema"""

    id: Optional[int] = None  # None for the built-in fallback layout
    scope_till_id: Optional[int]
    name: str
    columns: int
    items: List[LayoutItem]
    version: str
    is_default: bool
    is_shared: bool
    filter_type: FilterType
    category_id: Optional[int]
    display_category_id: Optional[int]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ResolveContext(BaseModel):
    """Request context a grid layout is resolved for"""

    till_id: int = Field(..., gt=0)
    filter_type: FilterType = FilterType.ALL
    category_id: Optional[int] = None

    @model_validator(mode="after")
    def check_category(self):
        self.category_id = normalise_category(self.filter_type, self.category_id)
        return self


class GridLayoutCloneRequest(BaseModel):
    """Copy a layout to another till"""

    target_till_id: int = Field(..., gt=0)
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class GridItemPositionUpdate(BaseModel):
    """Committed position of one grid item"""

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)


# Room Schemas
class RoomBase(BaseModel):
    """Base room schema"""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class RoomCreate(RoomBase):
    """Room creation schema"""


class RoomUpdate(BaseModel):
    """Room update schema"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class RoomResponse(RoomBase):
    """Room response schema"""

    id: str
    table_count: Optional[int] = 0
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# Table Schemas
class TableLayoutData(BaseModel):
    """Table position data"""

    x: float = Field(50, ge=0)
    y: float = Field(50, ge=0)
    width: float = Field(100, gt=0)
    height: float = Field(100, gt=0)


class TableCreate(TableLayoutData):
    """Table creation schema"""

    name: str = Field(..., min_length=1, max_length=100)
    room_id: str
    status: TableStatus = TableStatus.AVAILABLE

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Table name must be a non-empty string")
        return v


class TableUpdate(BaseModel):
    """Table update schema"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    room_id: Optional[str] = None
    x: Optional[float] = Field(None, ge=0)
    y: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    status: Optional[TableStatus] = None


class TablePositionUpdate(BaseModel):
    """Committed drag position of a table"""

    x: float = Field(..., ge=0)
    y: float = Field(..., ge=0)


class TableStatusUpdate(BaseModel):
    """Table status change"""

    status: TableStatus


class TableResponse(TableLayoutData):
    """Table response schema"""

    id: str
    name: str
    room_id: str
    status: TableStatus
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RoomWithTablesResponse(RoomResponse):
    """Room with its floor plan"""

    tables: List[TableResponse] = []
