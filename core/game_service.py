"""Detail view of a single stored game record.

Reads the whole file, parses it, flattens the main line and replays it on
demand.  Any error aborts the whole record.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from core.board import BoardState, replay
from input.sgf_parser import parse_sgf_file
from input.sgf_to_moves import Move, extract_moves


@dataclass(frozen=True)
class GameDetail:
    size: int
    moves: Tuple[Move, ...]
    root_properties: Dict[str, Tuple[str, ...]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "moves": [m.to_dict() for m in self.moves],
            "properties": {k: list(v) for k, v in self.root_properties.items()},
        }


def load_game(path: str) -> GameDetail:
    """Parse the record at ``path`` into its size, moves and root properties."""
    tree = parse_sgf_file(path)
    parsed = extract_moves(tree)
    return GameDetail(parsed.size, parsed.moves, dict(tree.root.props))


def board_at(path: str, move: Optional[int] = None) -> BoardState:
    """Return the board after the first ``move`` moves of the record at ``path``."""
    detail = load_game(path)
    return replay(detail.size, detail.moves, move)


__all__ = ["GameDetail", "load_game", "board_at"]
