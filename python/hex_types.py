"""
Shared type definitions for the hexlink engine.

Tiles sit on an offset-row hexagonal lattice. Each tile exposes six ports, one
per Direction, described by a ConnectionProfile. A NodeInstance places a
profile on the grid with a rotation offset; the effective port facing world
direction ``i`` is ``ports[(i + rotation) % 6]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterator

logger = logging.getLogger(__name__)

PORT_COUNT = 6
CLOSED_PATTERN = "000000"


class Direction(IntEnum):
    """Hex direction, 60 degrees apart, clockwise from Top."""

    TOP = 0
    TOP_RIGHT = 1
    BOTTOM_RIGHT = 2
    BOTTOM = 3
    BOTTOM_LEFT = 4
    TOP_LEFT = 5

    @property
    def opposite(self) -> Direction:
        return Direction((self + 3) % PORT_COUNT)


class NodeKind(Enum):
    """Role a tile plays in the circuit."""

    EMPTY = "empty"
    SOURCE = "source"  # Always powered
    GOAL = "goal"  # Must be powered to win
    CONNECTOR = "connector"  # Passive conduit


@dataclass(frozen=True)
class GridCoord:
    """Integer cell coordinate. y grows upward; Top is (x, y + 2)."""

    x: int
    y: int

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


# =============================================================================
# Port Patterns
# =============================================================================


def parse_pattern(pattern: str | None, name: str = "") -> tuple[bool, ...]:
    """
    Parse a six-character binary port pattern into a port tuple.

    Index order is Direction order: Top, TopRight, BottomRight, Bottom,
    BottomLeft, TopLeft. Anything that is not exactly six '0'/'1' characters
    is replaced by an all-closed pattern and a warning is logged.
    """
    label = f"[{name}] " if name else ""
    if pattern is None or pattern == "":
        return (False,) * PORT_COUNT

    if not isinstance(pattern, str):
        logger.warning(
            "%sConnection pattern must be a string, got %r. Resetting to '%s'.",
            label, pattern, CLOSED_PATTERN,
        )
        return (False,) * PORT_COUNT

    if len(pattern) != PORT_COUNT:
        logger.warning(
            "%sConnection pattern must be %d characters, got %r. Resetting to '%s'.",
            label, PORT_COUNT, pattern, CLOSED_PATTERN,
        )
        return (False,) * PORT_COUNT

    for char in pattern:
        if char not in "01":
            logger.warning(
                "%sConnection pattern must only contain '0' or '1'. Found %r.", label, char
            )
            return (False,) * PORT_COUNT

    return tuple(char == "1" for char in pattern)


def format_pattern(ports: tuple[bool, ...]) -> str:
    """Inverse of parse_pattern."""
    return "".join("1" if port else "0" for port in ports)


@dataclass(frozen=True)
class ConnectionProfile:
    """Immutable tile archetype: port pattern, kind and rotatability."""

    name: str
    kind: NodeKind = NodeKind.CONNECTOR
    ports: tuple[bool, ...] = (False,) * PORT_COUNT
    rotatable: bool = True

    def __post_init__(self) -> None:
        ports = tuple(bool(p) for p in self.ports)
        if len(ports) != PORT_COUNT:
            logger.warning(
                "[%s] Profile needs %d ports, got %d. Closing all ports.",
                self.name, PORT_COUNT, len(ports),
            )
            ports = (False,) * PORT_COUNT
        object.__setattr__(self, "ports", ports)

        # Sources never rotate
        if self.kind is NodeKind.SOURCE and self.rotatable:
            object.__setattr__(self, "rotatable", False)

    @classmethod
    def from_pattern(
        cls,
        name: str,
        kind: NodeKind,
        pattern: str | None,
        rotatable: bool = True,
    ) -> ConnectionProfile:
        return cls(name, kind, parse_pattern(pattern, name), rotatable)

    @property
    def pattern(self) -> str:
        return format_pattern(self.ports)

    @property
    def is_source(self) -> bool:
        return self.kind is NodeKind.SOURCE

    @property
    def is_goal(self) -> bool:
        return self.kind is NodeKind.GOAL


# =============================================================================
# Node Instances
# =============================================================================


def clamp_rotation(rotation: int, where: object = None) -> int:
    """Clamp a rotation into [0, 5], warning when it was out of range."""
    clamped = min(max(rotation, 0), PORT_COUNT - 1)
    if clamped != rotation:
        logger.warning("Rotation %d at %s out of range, clamped to %d", rotation, where, clamped)
    return clamped


@dataclass(eq=False)
class NodeInstance:
    """
    Mutable per-cell state. Compared by identity so nodes can live in sets.

    rotation is only changed by rotate() during play, or by set_rotation()
    at load/editor time. powered is only written by the propagation pass.
    """

    coord: GridCoord
    profile: ConnectionProfile
    rotation: int = 0
    can_rotate: bool | None = None  # None = take it from the profile
    powered: bool = field(default=False, init=False)
    rotation_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.rotation = clamp_rotation(self.rotation, self.coord)
        if self.can_rotate is None:
            self.can_rotate = self.profile.rotatable
        if self.profile.is_source:
            self.can_rotate = False
            self.powered = True

    @property
    def kind(self) -> NodeKind:
        return self.profile.kind

    @property
    def is_source(self) -> bool:
        return self.profile.is_source

    @property
    def is_goal(self) -> bool:
        return self.profile.is_goal

    def effective_ports(self, rotation: int | None = None) -> tuple[bool, ...]:
        """Ports by world direction, for the current or a trial rotation."""
        r = self.rotation if rotation is None else rotation
        ports = self.profile.ports
        return tuple(ports[(i + r) % PORT_COUNT] for i in range(PORT_COUNT))

    def has_port(self, direction: Direction) -> bool:
        return self.profile.ports[(direction + self.rotation) % PORT_COUNT]

    def rotate(self) -> bool:
        """
        Advance the rotation by one step. Returns False (no-op) when locked.

        Each open port moves to the previous Direction (counter-clockwise):
        a Top-only tile faces TopLeft after one step.
        """
        if not self.can_rotate:
            return False
        self.rotation = (self.rotation + 1) % PORT_COUNT
        self.rotation_count += 1
        return True

    def set_rotation(self, rotation: int) -> None:
        self.rotation = clamp_rotation(rotation, self.coord)

    def set_powered(self, powered: bool) -> None:
        self.powered = True if self.is_source else powered

    def __repr__(self) -> str:
        return (
            f"NodeInstance({self.profile.name!r} at {self.coord}, "
            f"rotation={self.rotation}, powered={self.powered})"
        )


# =============================================================================
# Grid
# =============================================================================


class HexGrid:
    """Owns every NodeInstance of a level, keyed by coordinate."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._nodes: dict[GridCoord, NodeInstance] = {}

    def add(self, node: NodeInstance) -> NodeInstance:
        if node.coord in self._nodes:
            logger.warning("Duplicate node at %s, replacing %r", node.coord, self._nodes[node.coord])
        self._nodes[node.coord] = node
        return node

    def place(
        self,
        x: int,
        y: int,
        profile: ConnectionProfile,
        rotation: int = 0,
        can_rotate: bool | None = None,
    ) -> NodeInstance:
        return self.add(NodeInstance(GridCoord(x, y), profile, rotation, can_rotate))

    def get(self, coord: GridCoord) -> NodeInstance | None:
        return self._nodes.get(coord)

    def clear(self) -> None:
        self._nodes.clear()

    def __contains__(self, coord: object) -> bool:
        return coord in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeInstance]:
        return iter(self._nodes.values())

    def nodes(self) -> list[NodeInstance]:
        return list(self._nodes.values())

    def coords(self) -> set[GridCoord]:
        return set(self._nodes)

    def sources(self) -> list[NodeInstance]:
        return [node for node in self._nodes.values() if node.is_source]

    def goals(self) -> list[NodeInstance]:
        return [node for node in self._nodes.values() if node.is_goal]
