"""
Plain-text debug view of a hex grid.

Rows are printed top (highest y) to bottom; odd rows are indented half a cell
to match the lattice offset. Each occupied cell shows its kind letter, its
rotation and a '*' when powered:

      C0*  .
    S0* G3
"""

from __future__ import annotations

import logging

from simple_chalk import chalk  # type: ignore[import-untyped]

from hex_coords import neighbor
from hex_types import Direction, GridCoord, HexGrid, NodeInstance, NodeKind

logger = logging.getLogger(__name__)

CELL_WIDTH = 4
EMPTY_CELL = " .  "

_KIND_CHARS = {
    NodeKind.EMPTY: "E",
    NodeKind.SOURCE: "S",
    NodeKind.GOAL: "G",
    NodeKind.CONNECTOR: "C",
}


def _cell_text(node: NodeInstance) -> str:
    marker = "*" if node.powered else " "
    return f"{_KIND_CHARS[node.kind]}{node.rotation}{marker}".ljust(CELL_WIDTH)


def _colorize(node: NodeInstance, text: str) -> str:
    if node.is_goal:
        return chalk.greenBright(text) if node.powered else chalk.red(text)
    if node.is_source:
        return chalk.yellow(text)
    if node.powered:
        return chalk.yellowBright(text)
    return chalk.white(text)


def render_grid(
    grid: HexGrid,
    color: bool = True,
    highlight: GridCoord | None = None,
) -> str:
    """
    Render the grid as text, one line per row.

    Args:
        grid: Grid to render.
        color: Wrap cells in ANSI colors via simple_chalk.
        highlight: Cell drawn inverted (ignored when color is False).

    Returns:
        Multi-line string without a trailing newline.
    """
    lines: list[str] = []
    for y in range(grid.height - 1, -1, -1):
        parts: list[str] = [" " * (CELL_WIDTH // 2) if y % 2 else ""]
        for x in range(grid.width):
            coord = GridCoord(x, y)
            node = grid.get(coord)
            if node is None:
                parts.append(EMPTY_CELL)
                continue

            text = _cell_text(node)
            if color:
                text = chalk.bgWhite.black(text) if coord == highlight else _colorize(node, text)
            parts.append(text)
        lines.append("".join(parts).rstrip())

    return "\n".join(lines)


def describe_node(node: NodeInstance, grid: HexGrid | None = None) -> str:
    """Connection dump for one node, for logging while debugging levels."""
    active = [f"{d.value} ({d.name})" for d in Direction if node.has_port(d)]
    lines = [
        f"--- NODE {node.coord} '{node.profile.name}' ({node.kind.value}) ---",
        f"Rotation: {node.rotation}",
        f"Base pattern: {node.profile.pattern}",
        f"Active ports (rotated): {', '.join(active) if active else 'none'}",
        f"Powered: {node.powered}",
        f"Locked: {not node.can_rotate}",
    ]

    if grid is not None:
        linked = [
            str(neighbor(node.coord, d))
            for d in Direction
            if node.has_port(d) and _links(node, d, grid)
        ]
        lines.append(f"Valid connections: {len(linked)} {' '.join(linked)}".rstrip())

    text = "\n".join(lines)
    logger.debug(text)
    return text


def _links(node: NodeInstance, direction: Direction, grid: HexGrid) -> bool:
    other = grid.get(neighbor(node.coord, direction))
    return other is not None and other.has_port(direction.opposite)
