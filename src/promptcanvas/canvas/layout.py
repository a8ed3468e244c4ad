"""Grid layout helpers for canvas tiles.

Every tile occupies a square footprint of ``TILE_SIZE`` pixels and is
separated from its neighbours by ``TILE_MARGIN``.  A grid cell is therefore
``TILE_SIZE + TILE_MARGIN`` wide and the grid starts one margin in from the
canvas origin:

    x = col * (TILE_SIZE + TILE_MARGIN) + TILE_MARGIN
    y = row * (TILE_SIZE + TILE_MARGIN) + TILE_MARGIN

The number of columns is derived from the canvas width and is never less
than one, so a zero-width canvas (not yet measured) stacks tiles vertically.

All functions here are pure: they never mutate their inputs.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import replace

from promptcanvas.canvas.models import CanvasSize, Position, Tile

TILE_SIZE = 128
TILE_MARGIN = 16
CELL_SIZE = TILE_SIZE + TILE_MARGIN


def grid_columns(canvas_size: CanvasSize) -> int:
    """Return the number of grid columns that fit in the canvas width."""
    return max(1, math.floor(canvas_size.width / CELL_SIZE))


def grid_position(index: int, columns: int) -> Position:
    """Return the origin of the ``index``-th cell in row-major order."""
    col = index % columns
    row = index // columns
    return Position(col * CELL_SIZE + TILE_MARGIN, row * CELL_SIZE + TILE_MARGIN)


def arrange_to_grid(tiles: Iterable[Tile], canvas_size: CanvasSize) -> list[Tile]:
    """Lay tiles out on the grid in their input order.

    Args:
        tiles: Tiles to arrange. Only positions change in the result.
        canvas_size: Canvas dimensions used to compute the column count.

    Returns:
        New tile objects, in input order, positioned on the grid.  Applying
        the function again to its own output with the same canvas size
        returns equal positions.
    """
    columns = grid_columns(canvas_size)
    return [
        replace(tile, position=grid_position(index, columns), variations=list(tile.variations))
        for index, tile in enumerate(tiles)
    ]


def nearest_grid_position(point: Position, canvas_size: CanvasSize) -> Position:
    """Snap a free point to the nearest grid cell origin.

    The column is clamped to ``[0, columns - 1]`` and the row to ``>= 0``.
    """
    columns = grid_columns(canvas_size)

    col = _round_half_up((point.x - TILE_MARGIN) / CELL_SIZE)
    row = _round_half_up((point.y - TILE_MARGIN) / CELL_SIZE)

    col = max(0, min(col, columns - 1))
    row = max(0, row)

    return Position(col * CELL_SIZE + TILE_MARGIN, row * CELL_SIZE + TILE_MARGIN)


def _round_half_up(value: float) -> int:
    # round() uses banker's rounding; a point exactly between two cells
    # should snap forward.
    return math.floor(value + 0.5)
