"""
Level data for hexlink: profiles, node layouts and the JSON interchange.

A level document holds a profile library and a list of levels:

    {
        "profiles": {
            "source-up": {"kind": "source", "pattern": "100000"},
            "straight": {"kind": "connector", "pattern": "100100"}
        },
        "levels": [
            {"number": 1, "name": "First Light", "difficulty": 1,
             "width": 3, "height": 5,
             "nodes": [{"x": 0, "y": 0, "profile": "source-up"},
                       {"x": 0, "y": 2, "profile": "straight", "rotation": 1}]}
        ]
    }

Content problems (bad patterns, rotations, bounds, unknown profiles) are
repaired with a warning so a broken level still loads. Structural problems
(a document that is not an object, missing coordinates) raise ValueError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hex_types import (
    ConnectionProfile,
    GridCoord,
    HexGrid,
    NodeInstance,
    NodeKind,
    clamp_rotation,
)

__all__ = [
    "MIN_GRID_SIZE",
    "MAX_GRID_SIZE",
    "NodeLayout",
    "LevelData",
    "ProfileLibrary",
    "parse_profiles",
    "parse_level",
    "parse_levels",
    "load_levels",
    "level_to_dict",
    "dump_levels",
    "save_levels",
    "validate_level",
    "build_grid",
]

logger = logging.getLogger(__name__)

MIN_GRID_SIZE = 2
MAX_GRID_SIZE = 8

ProfileLibrary = dict[str, ConnectionProfile]


@dataclass
class NodeLayout:
    """One occupied cell of a level as authored."""

    x: int
    y: int
    profile: ConnectionProfile | None
    initial_rotation: int = 0
    can_rotate_override: bool | None = None  # None = use the profile
    profile_name: str | None = None  # authored reference when the profile is unknown

    def can_rotate(self) -> bool:
        if self.can_rotate_override is not None:
            return self.can_rotate_override
        if self.profile is not None:
            return self.profile.rotatable
        return False


@dataclass
class LevelData:
    """A complete level: grid size and node layouts."""

    number: int
    name: str
    width: int
    height: int
    difficulty: int = 1
    nodes: list[NodeLayout] = field(default_factory=list)

    def node_at(self, x: int, y: int) -> NodeLayout | None:
        for layout in self.nodes:
            if layout.x == x and layout.y == y:
                return layout
        return None

    def nodes_by_kind(self, kind: NodeKind) -> list[NodeLayout]:
        return [n for n in self.nodes if n.profile is not None and n.profile.kind is kind]

    @property
    def source_count(self) -> int:
        return len(self.nodes_by_kind(NodeKind.SOURCE))

    @property
    def goal_count(self) -> int:
        return len(self.nodes_by_kind(NodeKind.GOAL))


# =============================================================================
# Parsing
# =============================================================================


def _clamp_dimension(value: int, what: str, level_name: str) -> int:
    clamped = min(max(value, MIN_GRID_SIZE), MAX_GRID_SIZE)
    if clamped != value:
        logger.warning(
            "[%s] Grid %s %d outside %d-%d, clamped to %d",
            level_name, what, value, MIN_GRID_SIZE, MAX_GRID_SIZE, clamped,
        )
    return clamped


def _parse_flag(value: Any, default: bool | None, what: str, where: str) -> bool | None:
    """JSON booleans only. Anything else falls back to the default with a warning."""
    if value is None or isinstance(value, bool):
        return default if value is None else value
    logger.warning("[%s] %s must be true or false, got %r. Using %s.", where, what, value, default)
    return default


def parse_profiles(definitions: dict[str, dict[str, Any]]) -> ProfileLibrary:
    """
    Parse the profile library.

    Each entry maps a profile name to {"kind", "pattern", "rotatable"}.
    kind defaults to "connector" and rotatable to true. An unknown kind is a
    ValueError; a malformed pattern is sanitised to all-closed.
    """
    library: ProfileLibrary = {}
    valid_kinds = ", ".join(kind.value for kind in NodeKind)

    for name, definition in definitions.items():
        if not isinstance(definition, dict):
            raise ValueError(
                f"Invalid profile definition: expected an object, got {type(definition).__name__}\n"
                f"  Profile: '{name}'"
            )

        kind_name = definition.get("kind", NodeKind.CONNECTOR.value)
        try:
            kind = NodeKind(kind_name)
        except ValueError:
            raise ValueError(
                f"Unknown node kind: '{kind_name}'\n"
                f"  Profile: '{name}'\n"
                f"  Valid kinds: {valid_kinds}"
            ) from None

        library[name] = ConnectionProfile.from_pattern(
            name,
            kind,
            definition.get("pattern"),
            rotatable=_parse_flag(definition.get("rotatable"), True, "rotatable", name),
        )

    return library


def parse_level(definition: dict[str, Any], profiles: ProfileLibrary) -> LevelData:
    """
    Parse one level definition against a profile library.

    Args:
        definition: Dict with width, height, nodes and optional number, name,
            difficulty.
        profiles: Library that node "profile" names refer to.

    Returns:
        LevelData with clamped dimensions, coordinates and rotations.

    Raises:
        ValueError: If the definition is not a dict, lacks width/height, or a
            node lacks x/y.
    """
    if not isinstance(definition, dict):
        raise ValueError(
            f"Invalid level definition: expected an object, got {type(definition).__name__}"
        )

    missing = [key for key in ("width", "height") if key not in definition]
    if missing:
        raise ValueError(
            f"Level definition is missing required fields: {', '.join(missing)}\n"
            f"  Level: '{definition.get('name', '?')}'"
        )

    number = max(int(definition.get("number", 1)), 1)
    name = str(definition.get("name", f"Level {number}"))
    width = _clamp_dimension(int(definition["width"]), "width", name)
    height = _clamp_dimension(int(definition["height"]), "height", name)

    level = LevelData(
        number=number,
        name=name,
        width=width,
        height=height,
        difficulty=int(definition.get("difficulty", 1)),
    )

    for index, node_def in enumerate(definition.get("nodes", [])):
        if "x" not in node_def or "y" not in node_def:
            raise ValueError(
                f"Node definition is missing coordinates\n"
                f"  Level: '{name}'\n"
                f"  Node {index}: {node_def!r}"
            )

        x, y = int(node_def["x"]), int(node_def["y"])
        if not 0 <= x < width or not 0 <= y < height:
            clamped_x = min(max(x, 0), width - 1)
            clamped_y = min(max(y, 0), height - 1)
            logger.warning(
                "[%s] Node at (%d, %d) outside %dx%d grid, clamped to (%d, %d)",
                name, x, y, width, height, clamped_x, clamped_y,
            )
            x, y = clamped_x, clamped_y

        profile_name = node_def.get("profile")
        profile = profiles.get(profile_name) if profile_name is not None else None
        if profile_name is not None and profile is None:
            logger.warning("[%s] Node at (%d, %d) refers to unknown profile '%s'", name, x, y, profile_name)

        level.nodes.append(
            NodeLayout(
                x=x,
                y=y,
                profile=profile,
                initial_rotation=clamp_rotation(int(node_def.get("rotation", 0)), GridCoord(x, y)),
                can_rotate_override=_parse_flag(
                    node_def.get("can_rotate"), None, "can_rotate", f"{name} ({x}, {y})"
                ),
                profile_name=profile_name if profile is None else None,
            )
        )

    return level


def parse_levels(document: dict[str, Any]) -> tuple[ProfileLibrary, list[LevelData]]:
    """Parse a full level document (profiles plus levels)."""
    if not isinstance(document, dict):
        raise ValueError(
            f"Invalid level document: expected an object, got {type(document).__name__}"
        )

    profiles = parse_profiles(document.get("profiles", {}))
    levels = [parse_level(level_def, profiles) for level_def in document.get("levels", [])]
    return profiles, levels


def load_levels(path: str | Path) -> tuple[ProfileLibrary, list[LevelData]]:
    with open(path, encoding="utf-8") as f:
        return parse_levels(json.load(f))


# =============================================================================
# Serialisation
# =============================================================================


def level_to_dict(level: LevelData) -> dict[str, Any]:
    """Inverse of parse_level. Unknown profile references are written back as authored."""
    nodes: list[dict[str, Any]] = []
    for layout in level.nodes:
        node_def: dict[str, Any] = {"x": layout.x, "y": layout.y}
        if layout.profile is not None:
            node_def["profile"] = layout.profile.name
        elif layout.profile_name is not None:
            node_def["profile"] = layout.profile_name
        node_def["rotation"] = layout.initial_rotation
        if layout.can_rotate_override is not None:
            node_def["can_rotate"] = layout.can_rotate_override
        nodes.append(node_def)

    return {
        "number": level.number,
        "name": level.name,
        "difficulty": level.difficulty,
        "width": level.width,
        "height": level.height,
        "nodes": nodes,
    }


def dump_levels(profiles: ProfileLibrary, levels: list[LevelData]) -> dict[str, Any]:
    return {
        "profiles": {
            name: {
                "kind": profile.kind.value,
                "pattern": profile.pattern,
                "rotatable": profile.rotatable,
            }
            for name, profile in profiles.items()
        },
        "levels": [level_to_dict(level) for level in levels],
    }


def save_levels(path: str | Path, profiles: ProfileLibrary, levels: list[LevelData]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dump_levels(profiles, levels), f, indent=2)
        f.write("\n")


# =============================================================================
# Validation & Grid Building
# =============================================================================


def validate_level(level: LevelData) -> list[str]:
    """Check a level for authoring problems. Returns the warnings it logged."""
    problems: list[str] = []

    if level.source_count == 0:
        problems.append("No source nodes found! At least one source is required.")
    if level.goal_count == 0:
        problems.append("No goal nodes found! At least one goal is required.")

    without_profile = sum(1 for layout in level.nodes if layout.profile is None)
    if without_profile:
        problems.append(f"{without_profile} nodes have no connection profile assigned.")

    seen: set[tuple[int, int]] = set()
    for layout in level.nodes:
        key = (layout.x, layout.y)
        if key in seen:
            problems.append(f"Duplicate node at ({layout.x}, {layout.y}).")
        seen.add(key)

    for problem in problems:
        logger.warning("[%s] %s", level.name, problem)
    logger.debug(
        "[%s] Grid %dx%d, %d nodes, %d sources, %d goals, difficulty %d",
        level.name, level.width, level.height, len(level.nodes),
        level.source_count, level.goal_count, level.difficulty,
    )
    return problems


def build_grid(level: LevelData) -> HexGrid:
    """Create a fresh grid with one NodeInstance per layout that has a profile."""
    grid = HexGrid(level.width, level.height)
    for layout in level.nodes:
        if layout.profile is None:
            continue
        grid.add(
            NodeInstance(
                GridCoord(layout.x, layout.y),
                layout.profile,
                layout.initial_rotation,
                can_rotate=layout.can_rotate(),
            )
        )
    return grid
