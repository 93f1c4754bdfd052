"""Single pass parser for SGF game records.

The parser turns SGF text into a :class:`GameTree`.  Nodes live in a flat
list (an arena) and refer to each other by index: every node knows its
parent index and the ordered indices of its children.  Index 0 is the root.
All variations are kept, even though the move extractor only follows the
main line by default.

Grammar handled here::

    GameTree   = "(" Sequence { GameTree } ")"
    Sequence   = Node { Node }
    Node       = ";" { Property }
    Property   = PropIdent PropValue { PropValue }
    PropValue  = "[" text with "\\" escapes "]"

Nested game trees are tracked on an explicit stack.  Whitespace between
tokens is ignored.  Property values are stored with the escapes
resolved, so ``C[a\\]b]`` yields the value ``a]b``.
"""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from core.errors import IoFailure, MalformedRecord, NotARecord

logger = logging.getLogger(__name__)

DEFAULT_BOARD_SIZE = 19
# a-z and A-Z give 52 columns
MIN_BOARD_SIZE = 1
MAX_BOARD_SIZE = 52

_WHITESPACE = re.compile(r"\s*")
_IDENT = re.compile(r"[A-Za-z]+")
_PLAIN_VALUE = re.compile(r"[^\\\]]+")


class Prop(enum.Enum):
    """Property identifiers understood by the extractor and the indexer."""

    SZ = "SZ"
    DT = "DT"
    EV = "EV"
    RO = "RO"
    PB = "PB"
    PW = "PW"
    BR = "BR"
    WR = "WR"
    KM = "KM"
    RE = "RE"
    B = "B"
    W = "W"
    AB = "AB"
    AW = "AW"
    AE = "AE"
    LB = "LB"
    TR = "TR"
    SQ = "SQ"
    CR = "CR"


_KNOWN = {p.value: p for p in Prop}


@dataclass(frozen=True)
class Property:
    """One property of a node.

    ``tag`` is the matching :class:`Prop` member, or ``None`` for an
    identifier outside the known set.  Unknown properties are still kept so
    they can be shown to the user.
    """

    ident: str
    values: Tuple[str, ...]

    @property
    def tag(self) -> Optional[Prop]:
        return _KNOWN.get(self.ident)


@dataclass(frozen=True)
class GameTreeNode:
    """A single node of a parsed game tree."""

    index: int
    parent: Optional[int]
    children: Tuple[int, ...]
    props: Mapping[str, Tuple[str, ...]] = field(repr=False)

    def values(self, ident: str) -> Tuple[str, ...]:
        """Return every value of ``ident`` (empty when absent)."""
        return self.props.get(ident, ())

    def get(self, ident: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value of ``ident`` or ``default``."""
        values = self.props.get(ident)
        return values[0] if values else default

    def has(self, ident: str) -> bool:
        return ident in self.props

    def properties(self) -> Iterator[Property]:
        for ident, values in self.props.items():
            yield Property(ident, values)


@dataclass(frozen=True)
class GameTree:
    """A parsed game: an arena of nodes rooted at index 0."""

    nodes: Tuple[GameTreeNode, ...]

    @property
    def root(self) -> GameTreeNode:
        return self.nodes[0]

    @property
    def size(self) -> int:
        return board_size(self.root)

    def node(self, index: int) -> GameTreeNode:
        return self.nodes[index]

    def children(self, node: GameTreeNode) -> List[GameTreeNode]:
        return [self.nodes[i] for i in node.children]

    def __len__(self) -> int:
        return len(self.nodes)


def board_size(root: GameTreeNode) -> int:
    """Return the board size stored in the root ``SZ`` property.

    ``SZ[19:19]`` style rectangular sizes use the first number.  Missing,
    unreadable or out of range (outside 1..52) values fall back to 19.
    """
    raw = root.get(Prop.SZ.value)
    if raw is None:
        return DEFAULT_BOARD_SIZE
    try:
        size = int(raw.split(":", 1)[0].strip())
    except ValueError:
        logger.warning("Unreadable board size %r, assuming %d", raw, DEFAULT_BOARD_SIZE)
        return DEFAULT_BOARD_SIZE
    if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
        logger.warning("Board size %d out of range, assuming %d", size, DEFAULT_BOARD_SIZE)
        return DEFAULT_BOARD_SIZE
    return size


class _Parser:
    """Single pass, left to right parser over one SGF text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self._reset()

    def _reset(self) -> None:
        self._parents: List[Optional[int]] = []
        self._children: List[List[int]] = []
        self._props: List[Dict[str, List[str]]] = []

    # ------------------------------------------------------------------
    # Low level helpers
    # ------------------------------------------------------------------
    def skip_ws(self) -> None:
        self.pos = _WHITESPACE.match(self.text, self.pos).end()

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _new_node(self, parent: Optional[int]) -> int:
        index = len(self._props)
        self._parents.append(parent)
        self._children.append([])
        self._props.append({})
        if parent is not None:
            self._children[parent].append(index)
        return index

    # ------------------------------------------------------------------
    # Grammar rules
    # ------------------------------------------------------------------
    def game(self) -> GameTree:
        """Parse one game tree and return it as a frozen arena."""
        self._reset()
        self._game_tree(None)
        nodes = tuple(
            GameTreeNode(
                index=i,
                parent=self._parents[i],
                children=tuple(self._children[i]),
                props=MappingProxyType({k: tuple(v) for k, v in self._props[i].items()}),
            )
            for i in range(len(self._props))
        )
        return GameTree(nodes)

    def _game_tree(self, parent: Optional[int]) -> None:
        # Last node of each open game tree, innermost last.  Nesting depth is
        # bounded by memory, not by the call stack.
        open_trees: List[Optional[int]] = []
        while True:
            self.pos += 1  # "("
            self.skip_ws()
            if self.peek() != ";":
                raise MalformedRecord("expected ';' to start a node sequence", self.pos)

            last = parent
            while self.peek() == ";":
                self.pos += 1
                last = self._new_node(last)
                self._properties(last)
                self.skip_ws()
            open_trees.append(last)

            while self.peek() != "(":
                if self.at_end():
                    raise MalformedRecord("game tree is never closed", self.pos)
                if self.peek() != ")":
                    raise MalformedRecord(f"unexpected character {self.peek()!r}", self.pos)
                self.pos += 1
                open_trees.pop()
                if not open_trees:
                    return
                self.skip_ws()
            parent = open_trees[-1]

    def _properties(self, index: int) -> None:
        props = self._props[index]
        while True:
            self.skip_ws()
            match = _IDENT.match(self.text, self.pos)
            if not match:
                return
            # FF[3] style long names such as "AddBlack" keep only the capitals
            ident = "".join(c for c in match.group() if c.isupper())
            if not ident:
                raise MalformedRecord(
                    f"invalid property identifier {match.group()!r}", self.pos
                )
            self.pos = match.end()
            self.skip_ws()
            if self.peek() != "[":
                raise MalformedRecord(f"property {ident} has no value", self.pos)
            values = props.setdefault(ident, [])
            while self.peek() == "[":
                values.append(self._value())
                self.skip_ws()

    def _value(self) -> str:
        opened_at = self.pos
        self.pos += 1  # "["
        text = self.text
        chunks: List[str] = []
        while self.pos < len(text):
            plain = _PLAIN_VALUE.match(text, self.pos)
            if plain:
                chunks.append(plain.group())
                self.pos = plain.end()
                continue
            char = text[self.pos]
            if char == "]":
                self.pos += 1
                return "".join(chunks)
            # backslash: keep the next character, drop escaped line breaks
            self.pos += 1
            if self.pos >= len(text):
                break
            escaped = text[self.pos]
            self.pos += 1
            if escaped == "\r" and self.peek() == "\n":
                self.pos += 1
            elif escaped == "\n" and self.peek() == "\r":
                self.pos += 1
            if escaped not in "\r\n":
                chunks.append(escaped)
        raise MalformedRecord("property value is missing its closing ']'", opened_at)


def _start(text: str) -> _Parser:
    parser = _Parser(text)
    parser.skip_ws()
    if parser.peek() == "\ufeff":
        parser.pos += 1
        parser.skip_ws()
    if parser.peek() != "(":
        raise NotARecord("content does not start with a game tree", parser.pos)
    return parser


def parse_collection(text: str) -> List[GameTree]:
    """Parse every game tree in ``text``.

    Raises :class:`~core.errors.NotARecord` when the content does not start
    with ``(`` and :class:`~core.errors.MalformedRecord` for any other
    grammar violation.  There is no recovery: one error aborts the parse.
    """
    parser = _start(text)
    games: List[GameTree] = []
    while parser.peek() == "(":
        games.append(parser.game())
        parser.skip_ws()
    if not parser.at_end():
        raise MalformedRecord("unexpected content after game tree", parser.pos)
    return games


def parse_sgf(text: str) -> GameTree:
    """Parse ``text`` and return its first game tree."""
    return parse_collection(text)[0]


def parse_sgf_file(path: str) -> GameTree:
    """Read ``path`` and parse its first game tree.

    Offsets of grammar errors are reported in bytes from the start of the
    file.  They are exact for valid UTF-8 and approximate after a byte that
    fails to decode.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as exc:
        raise IoFailure(path, exc.strerror or str(exc)) from exc
    text = data.decode("utf-8", errors="replace")
    try:
        return parse_sgf(text)
    except MalformedRecord as exc:
        if exc.offset is None:
            raise
        byte_offset = len(text[:exc.offset].encode("utf-8"))
        raise type(exc)(exc.reason, byte_offset) from exc


__all__ = [
    "DEFAULT_BOARD_SIZE",
    "MIN_BOARD_SIZE",
    "MAX_BOARD_SIZE",
    "Prop",
    "Property",
    "GameTreeNode",
    "GameTree",
    "board_size",
    "parse_collection",
    "parse_sgf",
    "parse_sgf_file",
]
