"""
Editor-time rotation solver and scrambler.

auto_solve() is a greedy hill-climbing relaxation: each pass visits every
rotatable node, scores all six rotations against the current neighbors and
keeps the best one immediately, so later nodes in the same pass see the
update. It stops when a pass changes nothing or after max_passes. There is no
backtracking, so it can settle on a locally stable configuration that does
not win; SolveReport.solved says which happened.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from hex_coords import in_bounds, neighbor
from hex_types import Direction, GridCoord, HexGrid, NodeInstance, PORT_COUNT
from hexlink import check_win, propagate
from level_data import LevelData, build_grid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverConfig:
    """Pass bound and scoring weights."""

    max_passes: int = 10
    leak_penalty: int = -100  # Open port into an empty or out-of-bounds cell
    link_reward: int = 10  # Both facing ports open
    blocked_penalty: int = -50  # One-sided port against a fixed neighbor
    isolated_penalty: int = -5  # No link at all


@dataclass(frozen=True)
class SolveReport:
    passes: int
    changes: int
    converged: bool
    solved: bool


def score_rotation(
    node: NodeInstance,
    rotation: int,
    grid: HexGrid,
    config: SolverConfig | None = None,
) -> int:
    """Score a trial rotation of node against its current neighbors."""
    config = config or SolverConfig()
    ports = node.effective_ports(rotation)
    score = 0
    linked = False

    for direction in Direction:
        mine = ports[direction]
        coord = neighbor(node.coord, direction)
        other = grid.get(coord) if in_bounds(coord, grid.width, grid.height) else None

        if other is None:
            if mine:
                score += config.leak_penalty
            continue

        theirs = other.has_port(direction.opposite)
        if mine and theirs:
            score += config.link_reward
            linked = True
        elif mine != theirs and not other.can_rotate:
            score += config.blocked_penalty
        # One-sided against a rotatable neighbor: it may turn to match later

    if not linked:
        score += config.isolated_penalty
    return score


def _best_rotation(node: NodeInstance, grid: HexGrid, config: SolverConfig) -> int:
    best_rotation = 0
    best_score: int | None = None
    for rotation in range(PORT_COUNT):
        score = score_rotation(node, rotation, grid, config)
        # Strict comparison keeps the lowest rotation on ties
        if best_score is None or score > best_score:
            best_rotation, best_score = rotation, score
    return best_rotation


def _rotatable_nodes(grid: HexGrid) -> list[NodeInstance]:
    return sorted(
        (node for node in grid if node.can_rotate),
        key=lambda node: (node.coord.y, node.coord.x),
    )


def auto_solve(grid: HexGrid, config: SolverConfig | None = None) -> SolveReport:
    """Assign rotations to rotatable nodes in place. Always terminates."""
    config = config or SolverConfig()
    nodes = _rotatable_nodes(grid)
    total_changes = 0
    passes = 0
    converged = False

    while passes < config.max_passes:
        passes += 1
        changes = 0
        for node in nodes:
            best = _best_rotation(node, grid, config)
            if best != node.rotation:
                node.set_rotation(best)
                changes += 1
        total_changes += changes
        logger.debug("Solver pass %d: %d rotations changed", passes, changes)
        if changes == 0:
            converged = True
            break

    solved = check_win(grid.goals(), propagate(grid.sources(), grid))
    if solved:
        logger.info("Solver found a winning layout after %d passes", passes)
    else:
        logger.info(
            "Solver stopped after %d passes without a win (converged=%s)", passes, converged
        )
    return SolveReport(passes=passes, changes=total_changes, converged=converged, solved=solved)


def scramble(grid: HexGrid, rng: random.Random | None = None) -> None:
    """Give every rotatable node a uniformly random rotation."""
    rng = rng or random.Random()
    for node in grid:
        if node.can_rotate:
            node.set_rotation(rng.randrange(PORT_COUNT))
    logger.debug("Scrambled %d nodes", sum(1 for node in grid if node.can_rotate))


# =============================================================================
# Level Wrappers
# =============================================================================


def _write_back(level: LevelData, grid: HexGrid) -> None:
    for layout in level.nodes:
        if layout.profile is None:
            continue
        node = grid.get(GridCoord(layout.x, layout.y))
        if node is not None:
            layout.initial_rotation = node.rotation


def run_auto_solve(level: LevelData, config: SolverConfig | None = None) -> SolveReport:
    """Solve a level's initial rotations in place."""
    grid = build_grid(level)
    report = auto_solve(grid, config)
    _write_back(level, grid)
    return report


def scramble_level(level: LevelData, rng: random.Random | None = None) -> None:
    """Randomise a level's initial rotations in place."""
    grid = build_grid(level)
    scramble(grid, rng)
    _write_back(level, grid)
    logger.info("[%s] Level scrambled", level.name)
