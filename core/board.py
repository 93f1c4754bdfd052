"""Replay a move list onto a Go board.

Every call starts from an empty board and applies the requested prefix of
the move list.  Nothing is cached between calls, so the same inputs always
give the same :class:`BoardState`.

Rules applied per move:

* ``REMOVE`` clears the point.  Capture counts are not touched.
* ``BLACK``/``WHITE`` place a stone, then remove every adjacent opposing
  group left without liberties.  The removed stones are credited to the
  player who placed the stone.  Suicide is not checked: a group with no
  liberties after the captures stays on the board.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

from core.errors import OutOfBounds
from core.liberty import Board, dead_neighbor_groups
from input.sgf_parser import MAX_BOARD_SIZE, MIN_BOARD_SIZE
from input.sgf_to_moves import Move, MoveType, ParsedGame

logger = logging.getLogger(__name__)

EMPTY = 0
BLACK = 1
WHITE = -1

_STONE = {MoveType.BLACK: BLACK, MoveType.WHITE: WHITE}
_PLAYER = {BLACK: "black", WHITE: "white"}


@dataclass
class BoardState:
    """Stone map and capture counts after a replay."""

    size: int
    stones: Board
    captures: Dict[str, int] = field(default_factory=lambda: {"black": 0, "white": 0})

    @classmethod
    def empty(cls, size: int) -> "BoardState":
        return cls(size, [[EMPTY] * size for _ in range(size)])

    def at(self, x: int, y: int) -> int:
        return self.stones[y][x]

    def count(self, color: int) -> int:
        return sum(row.count(color) for row in self.stones)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "stones": [list(row) for row in self.stones],
            "captures": dict(self.captures),
        }


def apply_move(state: BoardState, move: Move) -> None:
    """Apply ``move`` to ``state`` in place."""
    size = state.size
    if not (0 <= move.x < size and 0 <= move.y < size):
        raise OutOfBounds(move.x, move.y, size)

    if move.color is MoveType.REMOVE:
        state.stones[move.y][move.x] = EMPTY
        return

    color = _STONE[move.color]
    state.stones[move.y][move.x] = color
    dead = dead_neighbor_groups(state.stones, move.x, move.y)
    for dx, dy in dead:
        state.stones[dy][dx] = EMPTY
    if dead:
        state.captures[_PLAYER[color]] += len(dead)


def replay(size: int, moves: Sequence[Move], upto: Optional[int] = None) -> BoardState:
    """Replay ``moves[:upto]`` on an empty ``size`` board.

    ``upto`` defaults to the whole list.  Values outside ``0..len(moves)``
    and sizes outside ``1..52`` raise ``ValueError``; a move off the board
    raises :class:`~core.errors.OutOfBounds`.
    """
    if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
        raise ValueError(f"board size {size} outside {MIN_BOARD_SIZE}..{MAX_BOARD_SIZE}")
    if upto is None:
        upto = len(moves)
    if upto < 0 or upto > len(moves):
        raise ValueError(f"move index {upto} outside 0..{len(moves)}")
    state = BoardState.empty(size)
    for move in moves[:upto]:
        apply_move(state, move)
    logger.debug("Replayed %d of %d moves on %dx%d board", upto, len(moves), size, size)
    return state


def replay_game(game: ParsedGame, upto: Optional[int] = None) -> BoardState:
    """Replay a :class:`~input.sgf_to_moves.ParsedGame`."""
    return replay(game.size, game.moves, upto)


__all__ = ["EMPTY", "BLACK", "WHITE", "BoardState", "apply_move", "replay", "replay_game"]
