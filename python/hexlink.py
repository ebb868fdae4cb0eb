"""
Power propagation and win evaluation over a hex tile grid.

Two-phase update: propagate (multi-source BFS builds the powered set) ->
apply_powered_states (the only writer of NodeInstance.powered). PuzzleSession
wraps both with level loading, rotation and a debounced win check.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable

from hex_coords import neighbor
from hex_types import Direction, GridCoord, HexGrid, NodeInstance
from level_data import LevelData, build_grid

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


# =============================================================================
# Propagation
# =============================================================================


def _linked_neighbors(node: NodeInstance, grid: HexGrid) -> Iterable[NodeInstance]:
    """Yield neighbors joined to node by a valid bidirectional connection."""
    for direction in Direction:
        if not node.has_port(direction):
            continue

        other = grid.get(neighbor(node.coord, direction))
        if other is None:
            # Open port facing empty space connects to nothing
            continue

        if other.has_port(direction.opposite):
            yield other


def propagate(sources: Iterable[NodeInstance], grid: HexGrid) -> set[NodeInstance]:
    """
    Find every node reachable from any source through valid connections.

    An edge between adjacent nodes is valid only when both facing ports are
    open. Nodes already reached are not re-validated. The result is a set, so
    discovery order is not observable.

    Args:
        sources: Seed nodes. Nodes not owned by grid are ignored.
        grid: The grid to search.

    Returns:
        Set of reached nodes, including the seeds. Empty for no sources or an
        empty grid.
    """
    if len(grid) == 0:
        logger.debug("propagate called on an empty grid")
        return set()

    queue: deque[NodeInstance] = deque()
    visited: set[NodeInstance] = set()

    for source in sources:
        if grid.get(source.coord) is not source:
            logger.warning("Source %r is not part of the grid, ignoring", source)
            continue
        if source not in visited:
            visited.add(source)
            queue.append(source)

    while queue:
        current = queue.popleft()
        for other in _linked_neighbors(current, grid):
            if other in visited:
                continue
            visited.add(other)
            queue.append(other)

    logger.debug("Propagation complete. Total powered nodes: %d", len(visited))
    return visited


def find_connected_nodes(source: NodeInstance, grid: HexGrid) -> set[NodeInstance]:
    """Single-source form of propagate()."""
    return propagate([source], grid)


def apply_powered_states(powered: set[NodeInstance], grid: HexGrid) -> None:
    """
    Write the powered flag on every node of the grid.

    Applied to the whole grid each time so stale power cannot persist.
    Sources stay powered regardless of membership.
    """
    for node in grid:
        node.set_powered(node in powered)


def check_win(goals: Iterable[NodeInstance], powered: set[NodeInstance]) -> bool:
    """True when there is at least one goal and every goal is powered."""
    goals = list(goals)
    if not goals or not powered:
        return False
    return all(goal in powered for goal in goals)


# =============================================================================
# Debug Helpers
# =============================================================================


def find_path(start: NodeInstance, goal: NodeInstance, grid: HexGrid) -> list[GridCoord]:
    """
    Shortest chain of coordinates from start to goal along valid connections.

    Returns an empty list when goal is unreachable.
    """
    if start is goal:
        return [start.coord]

    parents: dict[NodeInstance, NodeInstance | None] = {start: None}
    queue: deque[NodeInstance] = deque([start])

    while queue:
        current = queue.popleft()
        if current is goal:
            break
        for other in _linked_neighbors(current, grid):
            if other not in parents:
                parents[other] = current
                queue.append(other)

    if goal not in parents:
        return []

    path: list[GridCoord] = []
    node: NodeInstance | None = goal
    while node is not None:
        path.append(node.coord)
        node = parents[node]
    path.reverse()
    return path


def count_valid_connections(node: NodeInstance, grid: HexGrid) -> int:
    return sum(1 for _ in _linked_neighbors(node, grid))


# =============================================================================
# Session
# =============================================================================


@dataclass(frozen=True)
class EngineConfig:
    """Gameplay settings."""

    win_check_delay: float = 0.3  # Seconds after the last rotation
    auto_check_win: bool = True
    star_thresholds: tuple[int, int] = (10, 20)  # Max rotations for 3 and 2 stars


def calculate_stars(rotations: int, thresholds: tuple[int, int] = (10, 20)) -> int:
    three_stars, two_stars = thresholds
    if rotations <= three_stars:
        return 3
    if rotations <= two_stars:
        return 2
    return 1


class DebouncedCheck:
    """
    Coalescing one-shot timer driven by explicit ticks.

    schedule() replaces any pending deadline rather than stacking another.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.due_at: float | None = None

    @property
    def pending(self) -> bool:
        return self.due_at is not None

    def schedule(self, now: float) -> None:
        self.due_at = now + self.delay

    def cancel(self) -> None:
        self.due_at = None

    def poll(self, now: float) -> bool:
        """Return True exactly once when the deadline has passed."""
        if self.due_at is None or now < self.due_at:
            return False
        self.due_at = None
        return True


@dataclass(frozen=True)
class RotationResult:
    """Outcome of a single rotate_node() call."""

    coord: GridCoord
    rotated: bool
    rotation: int
    powered: frozenset[GridCoord]
    winning: bool


@dataclass(frozen=True)
class LevelResult:
    """Reported once when a level is completed."""

    level_number: int
    completion_time: float
    rotations: int
    stars: int


WinChangedFn = Callable[[bool], None]
LevelCompleteFn = Callable[[LevelResult], None]


class PuzzleSession:
    """
    Owns the grid for the current level and runs the play loop.

    The host calls rotate_node() on player input and update() every tick;
    update() runs the debounced win check once the settling delay has passed.
    """

    def __init__(
        self,
        levels: list[LevelData],
        config: EngineConfig | None = None,
        clock: Clock = time.monotonic,
        on_win_changed: WinChangedFn | None = None,
        on_level_complete: LevelCompleteFn | None = None,
    ) -> None:
        self.levels = levels
        self.config = config or EngineConfig()
        self.clock = clock
        self.on_win_changed = on_win_changed
        self.on_level_complete = on_level_complete

        self.grid = HexGrid(0, 0)
        self.level: LevelData | None = None
        self.level_index = 0
        self.powered_set: set[NodeInstance] = set()
        self.total_rotations = 0
        self.is_active = False
        self._start_time = 0.0
        self._win_check = DebouncedCheck(self.config.win_check_delay)

    # -------------------------------------------------------------------------
    # Level flow
    # -------------------------------------------------------------------------

    def load_level(self, index: int) -> None:
        if not 0 <= index < len(self.levels):
            raise IndexError(
                f"Invalid level index: {index}\n"
                f"  Available levels: 0-{len(self.levels) - 1}"
            )

        self.level_index = index
        self.level = self.levels[index]
        self.grid = build_grid(self.level)
        self.total_rotations = 0
        self.is_active = True
        self._start_time = self.clock()
        self._win_check.cancel()

        if not self.grid.sources():
            logger.error("No source nodes in '%s'", self.level.name)
        if not self.grid.goals():
            logger.error("No goal nodes in '%s'", self.level.name)

        logger.info("Level %d '%s' started", self.level.number, self.level.name)
        self.update_connections()

    def load_next_level(self) -> bool:
        """Advance to the next level. Returns False after the last one."""
        next_index = self.level_index + 1
        if next_index >= len(self.levels):
            logger.info("All levels completed!")
            return False
        self.load_level(next_index)
        return True

    def restart_level(self) -> None:
        if self.level is not None:
            self.load_level(self.level_index)

    # -------------------------------------------------------------------------
    # Play
    # -------------------------------------------------------------------------

    def update_connections(self) -> set[NodeInstance]:
        """Recompute the powered set over the whole grid and apply it."""
        self.powered_set = propagate(self.grid.sources(), self.grid)
        apply_powered_states(self.powered_set, self.grid)
        return self.powered_set

    def powered_coords(self) -> frozenset[GridCoord]:
        return frozenset(node.coord for node in self.powered_set)

    def is_winning(self) -> bool:
        return check_win(self.grid.goals(), self.powered_set)

    def rotate_node(self, coord: GridCoord, now: float | None = None) -> RotationResult:
        """
        Rotate the node at coord, re-propagate and schedule a win check.

        Empty cells and locked nodes are a no-op (rotated is False).
        """
        node = self.grid.get(coord)
        rotated = node is not None and node.rotate()

        if rotated:
            self.total_rotations += 1
            self.update_connections()
            if self.config.auto_check_win and self.is_active:
                self._win_check.schedule(self.clock() if now is None else now)

        return RotationResult(
            coord=coord,
            rotated=rotated,
            rotation=node.rotation if node is not None else 0,
            powered=self.powered_coords(),
            winning=self.is_winning(),
        )

    def update(self, now: float | None = None) -> bool | None:
        """Run the pending win check if due. Returns its result, or None."""
        if not self._win_check.poll(self.clock() if now is None else now):
            return None
        return self.check_win_condition(now)

    def check_win_condition(self, now: float | None = None) -> bool:
        if not self.is_active:
            return False

        self.update_connections()
        winning = self.is_winning()
        if self.on_win_changed is not None:
            self.on_win_changed(winning)
        if winning:
            self._complete_level(self.clock() if now is None else now)
        return winning

    def elapsed_time(self, now: float | None = None) -> float:
        if not self.is_active:
            return 0.0
        return (self.clock() if now is None else now) - self._start_time

    def _complete_level(self, now: float) -> None:
        assert self.level is not None
        self.is_active = False
        result = LevelResult(
            level_number=self.level.number,
            completion_time=now - self._start_time,
            rotations=self.total_rotations,
            stars=calculate_stars(self.total_rotations, self.config.star_thresholds),
        )
        logger.info(
            "Level %d '%s' complete in %.2fs, %d rotations, %d stars",
            result.level_number, self.level.name, result.completion_time,
            result.rotations, result.stars,
        )
        if self.on_level_complete is not None:
            self.on_level_complete(result)
