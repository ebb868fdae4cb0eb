"""
Neighbor math for the offset-row hex lattice.

Rows interleave: a cell's Top and Bottom neighbors sit two rows away in the
same column, and the four diagonal neighbors sit one row away. Odd rows are
shifted half a cell to the right, so their diagonals reach x or x + 1 while
even rows reach x - 1 or x.

All functions are pure integer arithmetic.
"""

from __future__ import annotations

from hex_types import Direction, GridCoord, PORT_COUNT

__all__ = [
    "neighbor",
    "all_neighbors",
    "direction_between",
    "are_adjacent",
    "opposite",
    "in_bounds",
    "valid_neighbors",
    "direction_angle",
    "direction_from_angle",
]

# (dx, dy) per direction, for odd rows and even rows
_ODD_ROW_DELTAS = {
    Direction.TOP: (0, 2),
    Direction.TOP_RIGHT: (1, 1),
    Direction.BOTTOM_RIGHT: (1, -1),
    Direction.BOTTOM: (0, -2),
    Direction.BOTTOM_LEFT: (0, -1),
    Direction.TOP_LEFT: (0, 1),
}

_EVEN_ROW_DELTAS = {
    Direction.TOP: (0, 2),
    Direction.TOP_RIGHT: (0, 1),
    Direction.BOTTOM_RIGHT: (0, -1),
    Direction.BOTTOM: (0, -2),
    Direction.BOTTOM_LEFT: (-1, -1),
    Direction.TOP_LEFT: (-1, 1),
}


def neighbor(coord: GridCoord, direction: Direction) -> GridCoord:
    """Coordinate of the cell adjacent to coord in the given direction."""
    deltas = _ODD_ROW_DELTAS if coord.y % 2 else _EVEN_ROW_DELTAS
    dx, dy = deltas[Direction(direction)]
    return GridCoord(coord.x + dx, coord.y + dy)


def all_neighbors(coord: GridCoord) -> list[GridCoord]:
    """All six neighbors, indexed by Direction."""
    return [neighbor(coord, d) for d in Direction]


def direction_between(a: GridCoord, b: GridCoord) -> Direction | None:
    """
    Direction d such that neighbor(a, d) == b, or None if not adjacent.

    Found by testing every direction; no closed-form inverse is assumed.
    """
    for d in Direction:
        if neighbor(a, d) == b:
            return d
    return None


def are_adjacent(a: GridCoord, b: GridCoord) -> bool:
    return direction_between(a, b) is not None


def opposite(direction: Direction) -> Direction:
    return Direction((direction + 3) % PORT_COUNT)


def in_bounds(coord: GridCoord, width: int, height: int) -> bool:
    return 0 <= coord.x < width and 0 <= coord.y < height


def valid_neighbors(coord: GridCoord, width: int, height: int) -> list[GridCoord]:
    """Neighbors that fall inside a width x height grid."""
    return [n for n in all_neighbors(coord) if in_bounds(n, width, height)]


def direction_angle(direction: Direction) -> int:
    """Clockwise angle in degrees from Top (0, 60, ..., 300)."""
    return int(direction) * 60


def direction_from_angle(angle: float) -> Direction:
    """Closest direction to an angle in degrees (any range). Exact halfway angles go clockwise."""
    angle = angle % 360
    return Direction(int(angle / 60 + 0.5) % PORT_COUNT)
