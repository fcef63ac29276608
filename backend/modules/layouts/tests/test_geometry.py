# backend/modules/layouts/tests/test_geometry.py

"""
Tests for geometry validation, bounds and clamping
"""

import pytest

from core.exceptions import InvalidGeometryError
from ..schemas.layout_schemas import LayoutItem
from ..services.geometry import (
    CanvasBounds,
    Position,
    Size,
    canvas_bounds,
    clamp_position,
    validate_item,
    validate_items,
)


class TestValidateItem:
    """Test item geometry validation"""

    def test_valid_item_passes(self):
        validate_item({"id": "a", "x": 0, "y": 0, "width": 1, "height": 1})
        validate_item(LayoutItem(id="b", x=3, y=2, width=2, height=1))

    @pytest.mark.parametrize("field", ["width", "height"])
    @pytest.mark.parametrize("value", [0, -5])
    def test_non_positive_size_rejected(self, field, value):
        item = {"id": "a", "x": 0, "y": 0, "width": 10, "height": 10}
        item[field] = value

        with pytest.raises(InvalidGeometryError) as exc_info:
            validate_item(item)

        assert exc_info.value.error_code == "INVALID_GEOMETRY"

    @pytest.mark.parametrize("field", ["x", "y"])
    def test_negative_coordinate_rejected(self, field):
        item = {"id": "a", "x": 5, "y": 5, "width": 10, "height": 10}
        item[field] = -1

        with pytest.raises(InvalidGeometryError):
            validate_item(item)

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidGeometryError):
            validate_item({"id": "a", "x": "1", "y": 0, "width": 1, "height": 1})

        with pytest.raises(InvalidGeometryError):
            validate_item({"id": "a", "x": 0, "y": 0, "width": True, "height": 1})

    def test_validate_items_stops_at_first_bad_item(self):
        items = [
            {"id": "ok", "x": 0, "y": 0, "width": 1, "height": 1},
            {"id": "bad", "x": 0, "y": 0, "width": 0, "height": 1},
        ]

        with pytest.raises(InvalidGeometryError, match="bad"):
            validate_items(items)


class TestCanvasBounds:
    """Test bounding box computation"""

    def test_bounds_include_margin(self):
        items = [
            {"id": "a", "x": 100, "y": 100, "width": 50, "height": 50},
            {"id": "b", "x": 300, "y": 200, "width": 100, "height": 40},
        ]

        bounds = canvas_bounds(items, margin=50)

        assert bounds == CanvasBounds(50, 50, 450, 290)
        assert bounds.width == 400
        assert bounds.height == 240

    def test_empty_returns_default_canvas(self):
        bounds = canvas_bounds([], margin=10)

        assert bounds.min_x == 0
        assert bounds.min_y == 0
        assert bounds.width > 0
        assert bounds.height > 0

    def test_empty_returns_given_default(self):
        default = CanvasBounds(0, 0, 640, 480)

        assert canvas_bounds([], default=default) is default

    def test_as_dict(self):
        assert CanvasBounds(0, 0, 10, 20).as_dict() == {
            "min_x": 0,
            "min_y": 0,
            "max_x": 10,
            "max_y": 20,
            "width": 10,
            "height": 20,
        }


class TestClampPosition:
    """Test keeping items on the canvas"""

    def test_clamps_to_far_edge(self):
        result = clamp_position(Position(500, 500), Size(80, 80), Size(400, 400))

        assert result == Position(320, 320)

    def test_clamps_negative_to_zero(self):
        result = clamp_position(Position(-30, 12), Size(80, 80), Size(400, 400))

        assert result == Position(0, 12)

    def test_inside_is_unchanged(self):
        result = clamp_position(Position(100, 150), Size(80, 80), Size(400, 400))

        assert result == Position(100, 150)

    def test_item_larger_than_canvas_pins_to_origin(self):
        result = clamp_position(Position(50, 50), Size(500, 20), Size(400, 400))

        assert result == Position(0, 50)

    def test_offset_by(self):
        assert Position(120, 90).offset_by(Position(20, 10)) == Position(100, 80)
