"""SQLite storage for indexed game records."""
from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

BATCH_SIZE = 500
DEFAULT_LIMIT = 1000

SORT_COLUMNS = {
    "white": "white",
    "black": "black",
    "event": "event",
    "date": "played_at",
}

_SCHEMA = """
CREATE TABLE IF NOT EXISTS games (
    id TEXT PRIMARY KEY,
    played_at TEXT NOT NULL,
    round TEXT NOT NULL,
    event TEXT NOT NULL,
    komi TEXT NOT NULL,
    white TEXT NOT NULL,
    black TEXT NOT NULL,
    white_rank TEXT NOT NULL,
    black_rank TEXT NOT NULL,
    white_wins INTEGER NOT NULL,
    black_wins INTEGER NOT NULL,
    result TEXT NOT NULL,
    file_path TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

_COLUMNS = (
    "id", "played_at", "round", "event", "komi", "white", "black",
    "white_rank", "black_rank", "white_wins", "black_wins", "result", "file_path",
)


@dataclass
class GameRecord:
    """One row of the ``games`` table."""

    id: str
    played_at: str
    round: str
    event: str
    komi: str
    white: str
    black: str
    white_rank: str
    black_rank: str
    white_wins: bool
    black_wins: bool
    result: str
    file_path: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class GameStore:
    """Thin wrapper around a SQLite database holding :class:`GameRecord` rows."""

    def __init__(self, path: str = ":memory:") -> None:
        self.path = path
        self.conn = sqlite3.connect(path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        with self.conn:
            self.conn.execute(_SCHEMA)

    def close(self) -> None:
        self.conn.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert_games(self, records: Iterable[GameRecord]) -> int:
        """Insert ``records`` in a single transaction and return the count."""
        rows = [
            tuple(int(v) if isinstance(v, bool) else v for v in (getattr(r, c) for c in _COLUMNS))
            for r in records
        ]
        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self.conn:
            self.conn.executemany(
                f"INSERT INTO games ({', '.join(_COLUMNS)}) VALUES ({placeholders})", rows
            )
        return len(rows)

    def delete_games(self, ids: Iterable[str]) -> int:
        ids = list(ids)
        deleted = 0
        with self.conn:
            for i in range(0, len(ids), BATCH_SIZE):
                batch = ids[i:i + BATCH_SIZE]
                marks = ",".join("?" for _ in batch)
                cur = self.conn.execute(f"DELETE FROM games WHERE id IN ({marks})", batch)
                deleted += cur.rowcount
        return deleted

    def clear(self) -> int:
        with self.conn:
            cur = self.conn.execute("DELETE FROM games")
        return cur.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def existing_ids(self) -> Set[str]:
        return {row["id"] for row in self.conn.execute("SELECT id FROM games")}

    def get_game(self, game_id: str) -> Optional[GameRecord]:
        row = self.conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM games WHERE id = ?", (game_id,)
        ).fetchone()
        return _to_record(row) if row else None

    def list_games(
        self,
        query: str = "",
        player_name: bool = True,
        game_name: bool = True,
        year: bool = True,
        sort_by: str = "date",
        sort_order: str = "desc",
        limit: int = DEFAULT_LIMIT,
    ) -> Dict[str, Any]:
        """Return ``{"games": [...], "total": n, "limit": limit}``.

        A four digit ``query`` filters by year when ``year`` is enabled.
        Otherwise the query is matched as a substring against player names
        and/or event and round, depending on the scope flags.
        """
        where = ""
        params: List[Any] = []
        query = (query or "").strip()
        if query:
            if year and re.fullmatch(r"\d{4}", query):
                where = "WHERE substr(played_at, 1, 4) = ?"
                params.append(query)
            else:
                columns = []
                if player_name:
                    columns += ["white", "black"]
                if game_name:
                    columns += ["event", "round"]
                if columns:
                    where = "WHERE " + " OR ".join(f"{c} LIKE ?" for c in columns)
                    params.extend(f"%{query}%" for _ in columns)

        column = SORT_COLUMNS.get(sort_by, "played_at")
        order = "ASC" if sort_order.lower() == "asc" else "DESC"
        rows = self.conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM games {where} ORDER BY {column} {order} LIMIT ?",
            params + [limit],
        ).fetchall()
        total = self.conn.execute(f"SELECT COUNT(*) FROM games {where}", params).fetchone()[0]
        return {"games": [_to_record(r) for r in rows], "total": total, "limit": limit}

    def stats(self) -> Dict[str, int]:
        row = self.conn.execute(
            "SELECT COUNT(*), COALESCE(SUM(black_wins), 0), COALESCE(SUM(white_wins), 0) FROM games"
        ).fetchone()
        return {
            "total_games": row[0],
            "games_with_black_wins": row[1],
            "games_with_white_wins": row[2],
        }


def _to_record(row: sqlite3.Row) -> GameRecord:
    data = dict(row)
    data["white_wins"] = bool(data["white_wins"])
    data["black_wins"] = bool(data["black_wins"])
    return GameRecord(**data)


__all__ = ["BATCH_SIZE", "DEFAULT_LIMIT", "SORT_COLUMNS", "GameRecord", "GameStore"]
