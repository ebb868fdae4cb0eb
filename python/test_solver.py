"""Tests for the rotation solver and scrambler."""

import random
from pathlib import Path

import pytest

from hex_types import ConnectionProfile, GridCoord, HexGrid, NodeKind
from hexlink import check_win, propagate
from level_data import LevelData, NodeLayout, load_levels
from solver import (
    SolveReport,
    SolverConfig,
    auto_solve,
    run_auto_solve,
    scramble,
    scramble_level,
    score_rotation,
)

SAMPLE_LEVELS = Path(__file__).parent / "levels" / "sample_levels.json"

SOURCE_UP = ConnectionProfile.from_pattern("source-up", NodeKind.SOURCE, "100000")
SOURCE_UP_RIGHT = ConnectionProfile.from_pattern("source-up-right", NodeKind.SOURCE, "010000")
STRAIGHT = ConnectionProfile.from_pattern("straight", NodeKind.CONNECTOR, "100100")
BEND = ConnectionProfile.from_pattern("bend", NodeKind.CONNECTOR, "100010")
GOAL_DOWN = ConnectionProfile.from_pattern("goal-down", NodeKind.GOAL, "000100", rotatable=False)


def bend_grid(bend_rotation: int = 0) -> HexGrid:
    """Source (0,0) -TopRight-> bend (0,1) -Top-> goal (0,3). Only rotation 0 wins."""
    grid = HexGrid(2, 4)
    grid.place(0, 0, SOURCE_UP_RIGHT)
    grid.place(0, 1, BEND, rotation=bend_rotation)
    grid.place(0, 3, GOAL_DOWN)
    return grid


def is_won(grid: HexGrid) -> bool:
    return check_win(grid.goals(), propagate(grid.sources(), grid))


class TestScoreRotation:
    """Tests for the per-rotation score."""

    def test_valid_links_score_ten_each(self) -> None:
        grid = bend_grid()
        assert score_rotation(grid.get(GridCoord(0, 1)), 0, grid) == 20

    def test_leaks_and_blocks_are_penalised(self) -> None:
        grid = bend_grid()
        bend = grid.get(GridCoord(0, 1))
        # Rotation 1 opens TopLeft (empty) and Bottom (out of bounds): two leaks.
        # Source and goal both face closed ports: two fixed mismatches.
        # No link at all: isolated.
        assert score_rotation(bend, 1, grid) == -100 * 2 - 50 * 2 - 5

    def test_rotatable_neighbor_mismatch_is_free(self) -> None:
        grid = HexGrid(1, 5)
        grid.place(0, 0, SOURCE_UP)
        lower = grid.place(0, 2, STRAIGHT, rotation=0)
        grid.place(0, 4, STRAIGHT, rotation=1)
        # Top faces a rotatable neighbor with its Bottom closed: no penalty
        assert score_rotation(lower, 0, grid) == 10

    def test_isolated_penalty(self) -> None:
        closed = ConnectionProfile.from_pattern("closed", NodeKind.CONNECTOR, "000000")
        grid = HexGrid(2, 2)
        node = grid.place(0, 0, closed)
        assert score_rotation(node, 0, grid) == -5

    def test_custom_weights(self) -> None:
        grid = bend_grid()
        config = SolverConfig(link_reward=1)
        assert score_rotation(grid.get(GridCoord(0, 1)), 0, grid, config) == 2


class TestAutoSolve:
    """Tests for the greedy relaxation."""

    @pytest.mark.parametrize("rotation", range(6))
    def test_bend_solved_from_any_rotation(self, rotation: int) -> None:
        grid = bend_grid(rotation)
        report = auto_solve(grid)
        assert report.solved
        assert report.converged
        assert grid.get(GridCoord(0, 1)).rotation == 0
        assert is_won(grid)

    def test_scramble_then_solve(self) -> None:
        """A scrambled single-solution layout is solved again."""
        grid = HexGrid(2, 7)
        grid.place(0, 0, SOURCE_UP)
        grid.place(0, 2, STRAIGHT)
        grid.place(0, 4, STRAIGHT)
        grid.place(0, 6, GOAL_DOWN)
        scramble(grid, random.Random(3))
        report = auto_solve(grid)
        assert report.solved
        assert is_won(grid)

    def test_ties_prefer_lowest_rotation(self) -> None:
        """The straight piece scores the same at 0 and 3; 0 wins."""
        grid = HexGrid(2, 7)
        grid.place(0, 0, SOURCE_UP)
        middle = grid.place(0, 2, STRAIGHT, rotation=3)
        grid.place(0, 4, GOAL_DOWN)
        report = auto_solve(grid)
        assert middle.rotation == 0
        assert report.changes == 1

    def test_already_solved_converges_in_one_pass(self) -> None:
        grid = bend_grid(0)
        assert auto_solve(grid) == SolveReport(passes=1, changes=0, converged=True, solved=True)

    def test_fixed_nodes_untouched(self) -> None:
        grid = bend_grid(4)
        grid.get(GridCoord(0, 1)).can_rotate = False
        report = auto_solve(grid)
        assert grid.get(GridCoord(0, 1)).rotation == 4
        assert not report.solved
        assert report.converged

    def test_pass_bound(self) -> None:
        grid = bend_grid(3)
        report = auto_solve(grid, SolverConfig(max_passes=1))
        assert report.passes == 1
        assert not report.converged

    def test_empty_grid_terminates(self) -> None:
        report = auto_solve(HexGrid(3, 3))
        assert report == SolveReport(passes=1, changes=0, converged=True, solved=False)

    def test_local_optimum_is_not_an_error(self) -> None:
        """A goal with no path at all leaves the solver converged but unsolved."""
        grid = HexGrid(3, 7)
        grid.place(0, 0, SOURCE_UP)
        grid.place(0, 2, STRAIGHT, rotation=1)
        grid.place(2, 6, GOAL_DOWN)
        report = auto_solve(grid)
        assert report.converged
        assert not report.solved


class TestScramble:
    """Tests for scramble."""

    def test_only_rotatable_nodes_change(self) -> None:
        grid = bend_grid(0)
        scramble(grid, random.Random(0))
        assert grid.get(GridCoord(0, 0)).rotation == 0
        assert grid.get(GridCoord(0, 3)).rotation == 0
        assert 0 <= grid.get(GridCoord(0, 1)).rotation <= 5

    def test_seeded_scramble_is_reproducible(self) -> None:
        a, b = bend_grid(), bend_grid()
        scramble(a, random.Random(42))
        scramble(b, random.Random(42))
        assert [n.rotation for n in a] == [n.rotation for n in b]

    def test_scramble_does_not_count_as_player_rotation(self) -> None:
        grid = bend_grid()
        scramble(grid, random.Random(1))
        assert grid.get(GridCoord(0, 1)).rotation_count == 0


class TestLevelWrappers:
    """Tests for solving and scrambling LevelData in place."""

    def make_level(self) -> LevelData:
        return LevelData(
            number=1,
            name="Bend",
            width=2,
            height=4,
            nodes=[
                NodeLayout(0, 0, SOURCE_UP_RIGHT),
                NodeLayout(0, 1, BEND, initial_rotation=2),
                NodeLayout(0, 3, GOAL_DOWN),
                NodeLayout(1, 1, None),
            ],
        )

    def test_run_auto_solve_writes_rotations(self) -> None:
        level = self.make_level()
        report = run_auto_solve(level)
        assert report.solved
        assert level.node_at(0, 1).initial_rotation == 0
        assert level.node_at(1, 1).initial_rotation == 0

    def test_scramble_level_then_solve(self) -> None:
        level = self.make_level()
        level.node_at(0, 1).initial_rotation = 0
        scramble_level(level, random.Random(5))
        assert run_auto_solve(level).solved
        assert level.node_at(0, 1).initial_rotation == 0

    def test_sample_levels_are_solvable(self) -> None:
        _, levels = load_levels(SAMPLE_LEVELS)
        for level in levels:
            assert run_auto_solve(level).solved, level.name
