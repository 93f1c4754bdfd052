"""Flatten a parsed SGF game tree into a chronological move list.

The walk follows the main line: starting at the root, it visits one child
per node, chosen by a *line policy*.  The default policy,
:func:`first_child`, always takes child 0, which matches the way SGF
editors present the main variation.  Other variations stay in the tree and
can be reached by passing another policy.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

from core.errors import InvalidCoordinate
from input.sgf_parser import GameTree, GameTreeNode, Prop

logger = logging.getLogger(__name__)

# a-z -> 0..25, A-Z -> 26..51
SGF_COORD = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

Point = Tuple[int, int]
LinePolicy = Callable[[GameTree, GameTreeNode], Optional[GameTreeNode]]


class MoveType(str, enum.Enum):
    BLACK = "b"
    WHITE = "w"
    REMOVE = "r"


class SymbolKind(str, enum.Enum):
    SQUARE = "square"
    CIRCLE = "circle"
    TRIANGLE = "triangle"


@dataclass(frozen=True)
class Label:
    x: int
    y: int
    text: str


@dataclass(frozen=True)
class Symbol:
    x: int
    y: int
    kind: SymbolKind


@dataclass(frozen=True)
class Move:
    """A stone placement or removal, with the markup of its node."""

    x: int
    y: int
    color: MoveType
    labels: Tuple[Label, ...] = ()
    symbols: Tuple[Symbol, ...] = ()

    @property
    def vertex(self) -> Point:
        return self.x, self.y

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "color": self.color.value,
            "labels": [{"x": l.x, "y": l.y, "text": l.text} for l in self.labels],
            "symbols": [{"x": s.x, "y": s.y, "kind": s.kind.value} for s in self.symbols],
        }


@dataclass(frozen=True)
class ParsedGame:
    size: int
    moves: Tuple[Move, ...] = field(default=())


# Scan order of the stone producing properties.
STONE_PROPERTIES = (
    (Prop.B, MoveType.BLACK),
    (Prop.W, MoveType.WHITE),
    (Prop.AB, MoveType.BLACK),
    (Prop.AW, MoveType.WHITE),
    (Prop.AE, MoveType.REMOVE),
)

SYMBOL_PROPERTIES = (
    (Prop.TR, SymbolKind.TRIANGLE),
    (Prop.SQ, SymbolKind.SQUARE),
    (Prop.CR, SymbolKind.CIRCLE),
)

_PLAY_PROPERTIES = {Prop.B, Prop.W}


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------

def decode_point(value: str, size: int) -> Point:
    """Decode a two letter SGF point into ``(x, y)``.

    The first letter is the column and the second the row, both counted
    from the top-left corner.  Raises :class:`~core.errors.InvalidCoordinate`
    for anything that is not a point on a ``size`` board.
    """
    if len(value) != 2:
        raise InvalidCoordinate(f"invalid point {value!r}")
    x = SGF_COORD.find(value[0])
    y = SGF_COORD.find(value[1])
    if x < 0 or y < 0:
        raise InvalidCoordinate(f"invalid point {value!r}")
    if x >= size or y >= size:
        raise InvalidCoordinate(f"point {value!r} is off a {size}x{size} board")
    return x, y


def decode_point_list(value: str, size: int) -> List[Point]:
    """Decode a point or a compressed ``aa:cc`` rectangle of points."""
    if ":" not in value:
        return [decode_point(value, size)]
    first, second = value.split(":", 1)
    x1, y1 = decode_point(first, size)
    x2, y2 = decode_point(second, size)
    return [
        (x, y)
        for y in range(min(y1, y2), max(y1, y2) + 1)
        for x in range(min(x1, x2), max(x1, x2) + 1)
    ]


def is_pass(value: str, size: int) -> bool:
    """Return ``True`` for the pass encodings ``[]`` and ``[tt]`` (boards up to 19)."""
    return value == "" or (value == "tt" and size <= 19)


# ---------------------------------------------------------------------------
# Main line walk
# ---------------------------------------------------------------------------

def first_child(tree: GameTree, node: GameTreeNode) -> Optional[GameTreeNode]:
    """Default line policy: follow child 0."""
    return tree.node(node.children[0]) if node.children else None


def main_line(tree: GameTree, policy: LinePolicy = first_child) -> Iterator[GameTreeNode]:
    """Yield the nodes of the line selected by ``policy``, root first."""
    node: Optional[GameTreeNode] = tree.root
    while node is not None:
        yield node
        node = policy(tree, node)


def _node_labels(node: GameTreeNode, size: int) -> Tuple[Label, ...]:
    labels = []
    for raw in node.values(Prop.LB.value):
        point, sep, text = raw.partition(":")
        if not sep:
            logger.warning("Skipping label without text: %r", raw)
            continue
        try:
            x, y = decode_point(point, size)
        except InvalidCoordinate as exc:
            logger.warning("Skipping label %r: %s", raw, exc)
            continue
        labels.append(Label(x, y, text))
    return tuple(labels)


def _node_symbols(node: GameTreeNode, size: int) -> Tuple[Symbol, ...]:
    symbols = []
    for prop, kind in SYMBOL_PROPERTIES:
        for raw in node.values(prop.value):
            try:
                points = decode_point_list(raw, size)
            except InvalidCoordinate as exc:
                logger.warning("Skipping %s marker %r: %s", prop.value, raw, exc)
                continue
            symbols.extend(Symbol(x, y, kind) for x, y in points)
    return tuple(symbols)


def node_moves(node: GameTreeNode, size: int) -> List[Move]:
    """Return the moves produced by a single node.

    Labels and markers belong to the node, so every move of the node carries
    all of them.
    """
    labels = _node_labels(node, size)
    symbols = _node_symbols(node, size)
    moves: List[Move] = []
    for prop, color in STONE_PROPERTIES:
        for raw in node.values(prop.value):
            if prop in _PLAY_PROPERTIES and is_pass(raw, size):
                continue
            try:
                if prop in _PLAY_PROPERTIES:
                    points = [decode_point(raw, size)]
                else:
                    points = decode_point_list(raw, size)
            except InvalidCoordinate as exc:
                logger.warning("Skipping %s value %r: %s", prop.value, raw, exc)
                continue
            moves.extend(Move(x, y, color, labels, symbols) for x, y in points)
    return moves


def extract_moves(tree: GameTree, policy: LinePolicy = first_child) -> ParsedGame:
    """Return the board size and the flattened move list of ``tree``."""
    size = tree.size
    moves: List[Move] = []
    for node in main_line(tree, policy):
        moves.extend(node_moves(node, size))
    return ParsedGame(size=size, moves=tuple(moves))


__all__ = [
    "SGF_COORD",
    "MoveType",
    "SymbolKind",
    "Label",
    "Symbol",
    "Move",
    "ParsedGame",
    "decode_point",
    "decode_point_list",
    "is_pass",
    "first_child",
    "main_line",
    "node_moves",
    "extract_moves",
]
