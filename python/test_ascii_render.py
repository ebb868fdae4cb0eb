"""Tests for ascii_render module."""

from hex_types import ConnectionProfile, GridCoord, HexGrid, NodeKind
from hexlink import apply_powered_states, propagate
from ascii_render import describe_node, render_grid

SOURCE_UP = ConnectionProfile.from_pattern("source-up", NodeKind.SOURCE, "100000")
STRAIGHT = ConnectionProfile.from_pattern("straight", NodeKind.CONNECTOR, "100100")
GOAL_DOWN = ConnectionProfile.from_pattern("goal-down", NodeKind.GOAL, "000100", rotatable=False)


def powered_chain(straight_rotation: int = 0) -> HexGrid:
    grid = HexGrid(1, 5)
    grid.place(0, 0, SOURCE_UP)
    grid.place(0, 2, STRAIGHT, rotation=straight_rotation)
    grid.place(0, 4, GOAL_DOWN)
    apply_powered_states(propagate(grid.sources(), grid), grid)
    return grid


class TestRenderGrid:
    """Tests for the plain-text grid view."""

    def test_rows_top_to_bottom_with_offset(self) -> None:
        output = render_grid(powered_chain(), color=False)
        assert output.split("\n") == ["G0*", "   .", "C0*", "   .", "S0*"]

    def test_unpowered_cells_have_no_marker(self) -> None:
        output = render_grid(powered_chain(straight_rotation=1), color=False)
        assert output.split("\n") == ["G0", "   .", "C1", "   .", "S0*"]

    def test_color_keeps_cell_text(self) -> None:
        output = render_grid(powered_chain(), color=True, highlight=GridCoord(0, 2))
        assert "C0*" in output

    def test_empty_grid(self) -> None:
        assert render_grid(HexGrid(2, 2), color=False) == "   .   .\n .   ."


class TestDescribeNode:
    """Tests for the node connection dump."""

    def test_describe_connected_node(self) -> None:
        grid = powered_chain()
        text = describe_node(grid.get(GridCoord(0, 2)), grid)
        assert "'straight' (connector)" in text
        assert "Rotation: 0" in text
        assert "0 (TOP), 3 (BOTTOM)" in text
        assert "Valid connections: 2 (0, 4) (0, 0)" in text

    def test_describe_without_grid(self) -> None:
        grid = powered_chain(straight_rotation=1)
        text = describe_node(grid.get(GridCoord(0, 2)))
        assert "Powered: False" in text
        assert "Valid connections" not in text
