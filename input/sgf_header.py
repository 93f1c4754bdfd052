"""Fast SGF header scanner used for bulk indexing.

Only the first :data:`MAX_HEADER_BYTES` bytes of a file are read.  Game
information properties are conventionally written in the root node before
any move data, so this is enough for well-formed records.  Records with a
longer header simply come back with some fields unset.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from core.errors import IoFailure

MAX_HEADER_BYTES = 1024

# field name -> SGF property identifier
HEADER_FIELDS = {
    "date": "DT",
    "event": "EV",
    "round": "RO",
    "black_player": "PB",
    "white_player": "PW",
    "black_rank": "BR",
    "white_rank": "WR",
    "komi": "KM",
    "result": "RE",
}

_PATTERNS = {
    ident: re.compile(ident + r"\[([^\]]*?)\]", re.IGNORECASE)
    for ident in HEADER_FIELDS.values()
}


@dataclass(frozen=True)
class HeaderMetadata:
    """Header fields of one game record."""

    date: Optional[str] = None
    event: Optional[str] = None
    round: Optional[str] = None
    black_player: Optional[str] = None
    white_player: Optional[str] = None
    black_rank: Optional[str] = None
    white_rank: Optional[str] = None
    komi: Optional[str] = None
    result: Optional[str] = None

    @property
    def black_wins(self) -> bool:
        return bool(self.result) and self.result.upper().startswith("B+")

    @property
    def white_wins(self) -> bool:
        return bool(self.result) and self.result.upper().startswith("W+")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["black_wins"] = self.black_wins
        data["white_wins"] = self.white_wins
        return data


def _extract_property(content: str, ident: str) -> Optional[str]:
    match = _PATTERNS[ident].search(content)
    return match.group(1).strip() if match else None


def is_record(content: str) -> bool:
    """Return ``True`` when ``content`` starts with the ``(;`` marker.

    Leading whitespace and a byte order mark are ignored.
    """
    return content.lstrip().lstrip("\ufeff").lstrip().startswith("(;")


def parse_header(content: str) -> HeaderMetadata:
    """Extract header fields from ``content``.

    Missing properties leave the matching field as ``None``; this function
    never raises for odd content.
    """
    fields = {
        name: _extract_property(content, ident)
        for name, ident in HEADER_FIELDS.items()
    }
    return HeaderMetadata(**fields)


def read_header(path: str) -> Optional[HeaderMetadata]:
    """Read the header of the SGF file at ``path``.

    Returns ``None`` when the file is not a game record.  Raises
    :class:`~core.errors.IoFailure` when the file cannot be read.
    """
    try:
        with open(path, "rb") as f:
            head = f.read(MAX_HEADER_BYTES)
    except OSError as exc:
        raise IoFailure(path, exc.strerror or str(exc)) from exc

    content = head.decode("utf-8", errors="replace")
    if not is_record(content):
        return None
    return parse_header(content)


__all__ = [
    "MAX_HEADER_BYTES",
    "HEADER_FIELDS",
    "HeaderMetadata",
    "is_record",
    "parse_header",
    "read_header",
]
