"""Render a replayed board as plain text for the command line."""
from __future__ import annotations

from core.board import BoardState
from input.sgf_to_moves import SGF_COORD

SYMBOLS = {0: '.', 1: 'X', -1: 'O'}


def board_to_string(state: BoardState) -> str:
    """Return a text diagram of ``state`` labelled with SGF letters."""
    size = state.size
    lines = ['   ' + ' '.join(SGF_COORD[x] for x in range(size))]
    for y in range(size):
        row = [SYMBOLS[state.at(x, y)] for x in range(size)]
        lines.append(f" {SGF_COORD[y]} " + ' '.join(row))
    lines.append(
        f"captures: black {state.captures['black']}, white {state.captures['white']}"
    )
    return '\n'.join(lines)


def render_board(state: BoardState) -> None:
    """Print the board to stdout."""
    print(board_to_string(state))
