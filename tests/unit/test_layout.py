"""Tests for promptcanvas.canvas.layout - grid arithmetic."""

from __future__ import annotations

import pytest

from promptcanvas.canvas.layout import (
    CELL_SIZE,
    arrange_to_grid,
    grid_columns,
    grid_position,
    nearest_grid_position,
)
from promptcanvas.canvas.models import CanvasSize, Position


class TestGridColumns:
    @pytest.mark.parametrize(
        "width, expected",
        [(0, 1), (100, 1), (143, 1), (144, 1), (288, 2), (600, 4), (1000, 6)],
    )
    def test_columns_from_width(self, width, expected):
        assert grid_columns(CanvasSize(width, 400)) == expected

    def test_grid_position_row_major(self):
        assert grid_position(0, 3) == Position(16, 16)
        assert grid_position(2, 3) == Position(16 + 2 * CELL_SIZE, 16)
        assert grid_position(3, 3) == Position(16, 16 + CELL_SIZE)


class TestArrangeToGrid:
    """Pure layout of a tile sequence."""

    def test_positions_follow_input_order(self, tile_factory):
        tiles = [tile_factory(f"t{i}", position=Position(999, 999)) for i in range(5)]

        arranged = arrange_to_grid(tiles, CanvasSize(600, 400))

        assert [tile.id for tile in arranged] == ["t0", "t1", "t2", "t3", "t4"]
        assert [tile.position for tile in arranged] == [
            Position(16, 16),
            Position(160, 16),
            Position(304, 16),
            Position(448, 16),
            Position(16, 160),
        ]

    def test_inputs_not_mutated(self, tile_factory):
        tiles = [tile_factory("t1", position=Position(5, 5))]

        arrange_to_grid(tiles, CanvasSize(600, 400))

        assert tiles[0].position == Position(5, 5)

    def test_idempotent(self, tile_factory):
        size = CanvasSize(500, 400)
        tiles = [tile_factory(f"t{i}", position=Position(i * 7, i * 3)) for i in range(7)]

        once = arrange_to_grid(tiles, size)
        twice = arrange_to_grid(once, size)

        assert [t.position for t in once] == [t.position for t in twice]

    def test_zero_width_stacks_vertically(self, tile_factory):
        tiles = [tile_factory("t1"), tile_factory("t2")]

        arranged = arrange_to_grid(tiles, CanvasSize(0, 0))

        assert arranged[1].position == Position(16, 160)

    def test_content_preserved(self, tile_factory):
        tile = tile_factory("t1", prompt="a red fox", is_favorite=True)

        (arranged,) = arrange_to_grid([tile], CanvasSize(600, 400))

        assert arranged.prompt == "a red fox"
        assert arranged.image_url == tile.image_url
        assert arranged.is_favorite is True
        assert arranged.variations == tile.variations
        assert arranged.variations is not tile.variations


class TestNearestGridPosition:
    def test_snaps_to_closest_cell(self):
        size = CanvasSize(600, 400)

        assert nearest_grid_position(Position(150, 20), size) == Position(160, 16)
        assert nearest_grid_position(Position(20, 300), size) == Position(16, 304)

    def test_halfway_rounds_forward(self):
        assert nearest_grid_position(Position(16 + 72, 16), CanvasSize(600, 400)) == Position(
            160, 16
        )

    def test_clamped_to_canvas(self):
        size = CanvasSize(300, 400)

        assert nearest_grid_position(Position(5000, -500), size) == Position(160, 16)
