# backend/modules/layouts/services/geometry.py

"""
Geometry value types shared by product grids and floor plans.

Grid items use whole grid cells, floor plan tables use canvas units;
both are validated and bounded the same way.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from core.config import settings
from core.exceptions import InvalidGeometryError


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def offset_by(self, other: "Position") -> "Position":
        return Position(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class CanvasBounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def as_dict(self) -> dict:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
            "width": self.width,
            "height": self.height,
        }


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def validate_item(item: Any) -> None:
    """
    Reject an item whose size is not positive or whose origin is negative.

    Accepts LayoutItem schemas, ORM tables or plain dicts.
    """
    item_id = _field(item, "id")
    values = {name: _field(item, name) for name in ("x", "y", "width", "height")}

    for name, value in values.items():
        if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidGeometryError(f"Item {item_id}: {name} must be a number")

    if values["width"] <= 0 or values["height"] <= 0:
        raise InvalidGeometryError(
            f"Item {item_id}: width and height must be greater than 0"
        )
    if values["x"] < 0 or values["y"] < 0:
        raise InvalidGeometryError(f"Item {item_id}: coordinates must not be negative")


def validate_items(items: Iterable[Any]) -> None:
    for item in items:
        validate_item(item)


def canvas_bounds(
    items: Iterable[Any],
    margin: Optional[float] = None,
    default: Optional[CanvasBounds] = None,
) -> CanvasBounds:
    """Bounding box of the items grown by margin; a default box when empty"""
    items = list(items)
    if margin is None:
        margin = settings.canvas_margin

    if not items:
        return default or CanvasBounds(
            0, 0, settings.default_canvas_width, settings.default_canvas_height
        )

    min_x = min(_field(item, "x") for item in items)
    min_y = min(_field(item, "y") for item in items)
    max_x = max(_field(item, "x") + _field(item, "width") for item in items)
    max_y = max(_field(item, "y") + _field(item, "height") for item in items)

    return CanvasBounds(min_x - margin, min_y - margin, max_x + margin, max_y + margin)


def clamp_position(candidate: Position, item_size: Size, canvas_size: Size) -> Position:
    """Keep the whole item on the canvas; pin to 0 when it cannot fit"""
    max_x = max(0, canvas_size.width - item_size.width)
    max_y = max(0, canvas_size.height - item_size.height)
    return Position(
        x=min(max(candidate.x, 0), max_x),
        y=min(max(candidate.y, 0), max_y),
    )


def snap_to_cells(position: Position) -> Position:
    """Round a grid position to whole cells"""
    return Position(int(round(position.x)), int(round(position.y)))
