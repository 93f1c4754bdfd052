"""Group and liberty helpers for a Go board."""
from __future__ import annotations

from typing import Iterator, List, Set, Tuple

Board = List[List[int]]  # board[y][x]: 0 empty, 1 black, -1 white
Point = Tuple[int, int]


def neighbors(x: int, y: int, size: int) -> Iterator[Point]:
    """Yield the coordinates adjacent to ``(x, y)`` on a ``size`` x ``size`` board."""
    if x > 0:
        yield x - 1, y
    if x < size - 1:
        yield x + 1, y
    if y > 0:
        yield x, y - 1
    if y < size - 1:
        yield x, y + 1


def group_and_liberties(board: Board, x: int, y: int) -> Tuple[Set[Point], Set[Point]]:
    """Return the connected group at ``(x, y)`` and its liberties."""
    color = board[y][x]
    size = len(board)
    group = {(x, y)}
    liberties: Set[Point] = set()
    stack = [(x, y)]
    while stack:
        cx, cy = stack.pop()
        for nx, ny in neighbors(cx, cy, size):
            val = board[ny][nx]
            if val == 0:
                liberties.add((nx, ny))
            elif val == color and (nx, ny) not in group:
                group.add((nx, ny))
                stack.append((nx, ny))
    return group, liberties


def dead_neighbor_groups(board: Board, x: int, y: int) -> Set[Point]:
    """Return the opposing stones next to ``(x, y)`` that have no liberties.

    The stone at ``(x, y)`` decides which color counts as opposing.  Groups
    touching the point from several sides are only counted once.
    """
    color = board[y][x]
    size = len(board)
    dead: Set[Point] = set()
    for nx, ny in neighbors(x, y, size):
        if board[ny][nx] != -color or (nx, ny) in dead:
            continue
        group, liberties = group_and_liberties(board, nx, ny)
        if not liberties:
            dead |= group
    return dead


__all__ = ["neighbors", "group_and_liberties", "dead_neighbor_groups", "Board", "Point"]
