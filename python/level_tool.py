"""
Command line editor for hexlink level files.

    python level_tool.py show levels/sample_levels.json
    python level_tool.py solve levels/sample_levels.json --level 2 -o solved.json
    python level_tool.py scramble levels/sample_levels.json --seed 7 -o scrambled.json
"""

from __future__ import annotations

import argparse
import logging
import random
import sys

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ascii_render import render_grid
from hexlink import apply_powered_states, check_win, propagate
from level_data import LevelData, build_grid, load_levels, save_levels, validate_level
from solver import SolverConfig, run_auto_solve, scramble_level

console = Console()


def show_level(level: LevelData) -> None:
    """Print the level with its current powered state."""
    grid = build_grid(level)
    powered = propagate(grid.sources(), grid)
    apply_powered_states(powered, grid)
    winning = check_win(grid.goals(), powered)

    body = Text()
    body.append(f"Grid: {level.width}x{level.height}  ", style="bold")
    body.append(f"Nodes: {len(grid)}  Sources: {level.source_count}  Goals: {level.goal_count}\n\n")
    body.append(Text.from_ansi(render_grid(grid)))
    body.append("\n\n")
    body.append("Status: ", style="bold")
    if winning:
        body.append("solved", style="bold green")
    else:
        body.append(f"{len(powered)} powered, goals not all reached", style="yellow")

    title = f"#{level.number} {level.name} (difficulty {level.difficulty})"
    console.print(Panel(body, title=title, border_style="green" if winning else "red", width=80))


def _select(levels: list[LevelData], number: int | None) -> list[LevelData]:
    if number is None:
        return levels
    selected = [level for level in levels if level.number == number]
    if not selected:
        raise SystemExit(f"No level numbered {number}")
    return selected


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect and edit hexlink level files")
    parser.add_argument("command", choices=["show", "solve", "scramble"])
    parser.add_argument("path", help="Level document (JSON)")
    parser.add_argument("--level", type=int, default=None, help="Only this level number")
    parser.add_argument("-o", "--output", default=None, help="Write the edited document here")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for scramble")
    parser.add_argument("--max-passes", type=int, default=SolverConfig.max_passes)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    profiles, levels = load_levels(args.path)
    selected = _select(levels, args.level)

    for level in selected:
        validate_level(level)

        if args.command == "solve":
            report = run_auto_solve(level, SolverConfig(max_passes=args.max_passes))
            style = "green" if report.solved else "yellow"
            console.print(
                f"[{style}]#{level.number} {level.name}: "
                f"{'solved' if report.solved else 'not solved'} after {report.passes} passes "
                f"({report.changes} rotations changed)[/{style}]"
            )
        elif args.command == "scramble":
            scramble_level(level, random.Random(args.seed))

        show_level(level)

    if args.output is not None and args.command != "show":
        save_levels(args.output, profiles, levels)
        console.print(f"Wrote {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
