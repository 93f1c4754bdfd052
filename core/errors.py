"""Exception types shared by the SGF parsing and replay code."""
from __future__ import annotations

from typing import Optional


class SgfError(Exception):
    """Base class for every error raised by the SGF core."""


class IoFailure(SgfError):
    """A game record could not be opened or read."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class MalformedRecord(SgfError):
    """The content violates the SGF grammar.

    ``offset`` locates the first violation, or is ``None`` when no single
    position can be blamed.  Parsing a string gives a character offset into
    that string; parsing a file gives a byte offset into the file.
    ``reason`` is the message without the offset suffix.
    """

    def __init__(self, message: str, offset: Optional[int] = None) -> None:
        self.reason = message
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class NotARecord(MalformedRecord):
    """The content does not begin with a game tree marker."""


class InvalidCoordinate(SgfError, ValueError):
    """A point value does not decode to a coordinate on the board."""


class OutOfBounds(SgfError, ValueError):
    """A move targets a point outside the board."""

    def __init__(self, x: int, y: int, size: int) -> None:
        super().__init__(f"point ({x}, {y}) is outside a {size}x{size} board")
        self.x = x
        self.y = y
        self.size = size


__all__ = [
    "SgfError",
    "IoFailure",
    "MalformedRecord",
    "NotARecord",
    "InvalidCoordinate",
    "OutOfBounds",
]
