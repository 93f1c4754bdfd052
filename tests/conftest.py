"""Root-level pytest configuration and shared fixtures.

This module provides:
- Automatic sys.path configuration for all tests
- Board factory fixtures
- SGF content and file fixtures
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List, Tuple

import pytest

# ---------------------------------------------------------------------------
# Path Configuration (automatically applied to all tests)
# ---------------------------------------------------------------------------

# Add project root to sys.path so imports work from any test directory
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# ---------------------------------------------------------------------------
# Type Definitions
# ---------------------------------------------------------------------------

Board = List[List[int]]
"""Type alias for Go board representation (0=empty, 1=black, -1=white)."""


# ---------------------------------------------------------------------------
# Board Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_board() -> Callable[[int, List[Tuple[int, int, int]]], Board]:
    """Factory fixture to create boards with stones at specified positions.

    Usage:
        board = make_board(5, [(2, 2, 1), (0, 0, -1)])  # 5x5 with black at (2,2), white at (0,0)
    """
    def _make_board(size: int, stones: List[Tuple[int, int, int]] = None) -> Board:
        board = [[0] * size for _ in range(size)]
        if stones:
            for x, y, color in stones:
                board[y][x] = color
        return board
    return _make_board


# ---------------------------------------------------------------------------
# SGF Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def simple_sgf_content() -> str:
    """Return a simple 9x9 SGF game string."""
    return "(;GM[1]FF[4]SZ[9]KM[7.5]PB[Black]PW[White]RE[B+3.5];B[ee];W[gc];B[cg])"


@pytest.fixture
def header_sgf_content() -> str:
    """Return a 19x19 record with a full game-info header."""
    return (
        "(;GM[1]FF[4]SZ[19]DT[1941-06-21]EV[Honinbo]RO[3]"
        "PB[Shusai]BR[9p]PW[Go Seigen]WR[5p]KM[0]RE[W+R]"
        ";B[pd];W[dp];B[pq])"
    )


@pytest.fixture
def variation_sgf_content() -> str:
    """Return a record whose second move has two variations."""
    return "(;SZ[9];B[ee](;W[gc];B[cg])(;W[cc]))"


@pytest.fixture
def write_sgf(tmp_path: Path) -> Callable[..., str]:
    """Factory fixture writing SGF text to a file and returning its path.

    Usage:
        path = write_sgf("(;SZ[9];B[ee])", name="game.sgf")
    """
    def _write(content: str, name: str = "game.sgf", subdir: str = "") -> str:
        directory = tmp_path / subdir if subdir else tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch) -> str:
    """Provide an isolated config file with a temporary database path."""
    for var in ("PORT", "SGF_FLOW_ENV", "DATABASE_PATH"):
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "server:\n  port: 3012\n  environment: test\n"
        f"database:\n  path: {tmp_path / 'games.db'}\n"
        "sgf_directories: []\n",
        encoding="utf-8",
    )
    return str(path)


# ---------------------------------------------------------------------------
# Pytest Configuration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
