"""FastAPI service exposing the game index, game details and board replay.

Routes:
 - ``/health``                        liveness probe.
 - ``/api/games``                     list indexed games with filters.
 - ``/api/games/{id}``                stored metadata plus size, moves and
                                      root properties of the record.
 - ``/api/games/{id}/board``          stone map after ``move`` moves.
 - ``/api/sgf-directories``           list, add and remove SGF roots.
 - ``/api/sgf-indexer/index``         run the indexer, streaming progress
                                      as server-sent events.
 - ``/api/sgf-indexer/stats``         game counts.
 - ``/api/sgf-indexer/clear``         drop every indexed game.
 - ``/monitoring/health``             JSON from the health-check dashboard.
 - ``/monitoring/status``             HTML status page with recent failures.

It also enables CORS and can be run directly with Uvicorn.
"""

from __future__ import annotations

import datetime
import json
import logging
import os
import queue
import threading
from typing import Any, Dict, Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import BaseModel

from core import config as config_mod
from core import indexer
from core.board import replay
from core.errors import IoFailure, MalformedRecord, OutOfBounds
from core.game_service import load_game
from core.game_store import GameRecord, GameStore
from monitoring.health_check import HealthCheckDashboard, build_default_dashboard

logger = logging.getLogger(__name__)

CONFIG_PATH = os.environ.get("SGF_FLOW_CONFIG")

_store: Optional[GameStore] = None
_store_lock = threading.Lock()
_dashboard: Optional[HealthCheckDashboard] = None


class GameSummary(BaseModel):
    id: str
    player_white: str
    player_black: str
    event: str
    date: str
    result: str
    komi: str
    round: str


class GameListResponse(BaseModel):
    games: List[GameSummary]
    total: int
    limit: int


class GameDetailResponse(BaseModel):
    game: Dict[str, Any]
    size: int
    moves: List[Dict[str, Any]]
    properties: Dict[str, List[str]]


class BoardResponse(BaseModel):
    move: int
    total_moves: int
    size: int
    stones: List[List[int]]
    captures: Dict[str, int]


class DirectoryRequest(BaseModel):
    path: str


class DirectoriesResponse(BaseModel):
    message: Optional[str] = None
    directories: List[str]


class StatsResponse(BaseModel):
    total_games: int
    games_with_black_wins: int
    games_with_white_wins: int


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_config() -> Dict[str, Any]:
    return config_mod.load_config(CONFIG_PATH)


def get_store(config: Dict[str, Any] = Depends(get_config)) -> GameStore:
    """Return the process wide :class:`GameStore`, opening it on first use."""
    global _store
    with _store_lock:
        if _store is None:
            _store = GameStore(config["database"]["path"])
            logger.info("Opened game database at %s", _store.path)
        return _store


def get_dashboard() -> HealthCheckDashboard:
    """Return the process wide health dashboard, so failure history is kept."""
    global _dashboard
    with _store_lock:
        if _dashboard is None:
            _dashboard = build_default_dashboard(CONFIG_PATH)
        return _dashboard


app = FastAPI(title="SGF Flow API")

# Configure very permissive CORS by default
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _summary(record: GameRecord) -> GameSummary:
    return GameSummary(
        id=record.id,
        player_white=record.white,
        player_black=record.black,
        event=record.event,
        date=record.played_at.split("T")[0],
        result=record.result,
        komi=record.komi,
        round=record.round,
    )


def _record_or_404(store: GameStore, game_id: str) -> GameRecord:
    record = store.get_game(game_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No game found with ID: {game_id}")
    return record


def _load_or_error(path: str):
    try:
        return load_game(path)
    except MalformedRecord as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except IoFailure as exc:
        logger.error("Failed to read game record %s: %s", path, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> Dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok", "timestamp": datetime.datetime.now().isoformat()}


@app.get("/api/games", response_model=GameListResponse)
def list_games(
    query: str = "",
    player_name: bool = True,
    game_name: bool = True,
    year: bool = True,
    sort_by: str = Query("date", pattern="^(white|black|event|date)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    store: GameStore = Depends(get_store),
) -> GameListResponse:
    result = store.list_games(query, player_name, game_name, year, sort_by, sort_order)
    return GameListResponse(
        games=[_summary(r) for r in result["games"]],
        total=result["total"],
        limit=result["limit"],
    )


@app.get("/api/games/{game_id}", response_model=GameDetailResponse)
def get_game(game_id: str, store: GameStore = Depends(get_store)) -> GameDetailResponse:
    """Return stored metadata plus the parsed record.

    A record that fails to parse is reported as a single 422 error.
    """
    record = _record_or_404(store, game_id)
    detail = _load_or_error(record.file_path).to_dict()
    return GameDetailResponse(game=record.to_dict(), **detail)


@app.get("/api/games/{game_id}/board", response_model=BoardResponse)
def get_board(
    game_id: str,
    move: Optional[int] = None,
    store: GameStore = Depends(get_store),
) -> BoardResponse:
    """Replay the first ``move`` moves (all when omitted) from an empty board."""
    record = _record_or_404(store, game_id)
    detail = _load_or_error(record.file_path)
    upto = len(detail.moves) if move is None else move
    try:
        state = replay(detail.size, detail.moves, upto)
    except OutOfBounds as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return BoardResponse(move=upto, total_moves=len(detail.moves), **state.to_dict())


@app.get("/api/sgf-directories", response_model=DirectoriesResponse)
def list_directories() -> DirectoriesResponse:
    return DirectoriesResponse(directories=config_mod.get_sgf_directories(CONFIG_PATH))


@app.post("/api/sgf-directories", response_model=DirectoriesResponse, status_code=201)
def add_directory(req: DirectoryRequest) -> DirectoriesResponse:
    try:
        directories = config_mod.add_sgf_directory(req.path, CONFIG_PATH)
    except config_mod.DirectoryNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except config_mod.DirectoryConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return DirectoriesResponse(message="Directory added successfully", directories=directories)


@app.delete("/api/sgf-directories", response_model=DirectoriesResponse)
def remove_directory(req: DirectoryRequest) -> DirectoriesResponse:
    try:
        directories = config_mod.remove_sgf_directory(req.path, CONFIG_PATH)
    except config_mod.DirectoryNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return DirectoriesResponse(message="Directory removed successfully", directories=directories)


def _index_events(store: GameStore, directories: List[str]) -> Iterator[str]:
    """Run the indexer in a worker thread and yield its progress as SSE lines."""
    events: "queue.Queue[Optional[Dict[str, Any]]]" = queue.Queue()

    def worker() -> None:
        try:
            indexer.index_all(store, directories, lambda p: events.put(p.to_dict()))
        except Exception as exc:
            logger.exception("Indexing failed")
            events.put({"phase": "error", "error": str(exc)})
        finally:
            events.put(None)

    yield f"data: {json.dumps({'status': 'connected'})}\n\n"
    threading.Thread(target=worker, daemon=True).start()
    while True:
        event = events.get()
        if event is None:
            break
        yield f"data: {json.dumps(event)}\n\n"


@app.get("/api/sgf-indexer/index")
def run_indexer(
    config: Dict[str, Any] = Depends(get_config),
    store: GameStore = Depends(get_store),
) -> StreamingResponse:
    return StreamingResponse(
        _index_events(store, config["sgf_directories"]),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/api/sgf-indexer/stats", response_model=StatsResponse)
def indexer_stats(store: GameStore = Depends(get_store)) -> StatsResponse:
    return StatsResponse(**store.stats())


@app.delete("/api/sgf-indexer/clear")
def clear_index(store: GameStore = Depends(get_store)) -> Dict[str, Any]:
    deleted = store.clear()
    return {"message": "Database cleared successfully", "deleted_count": deleted}


@app.get("/monitoring/health")
async def monitoring_health(
    dash: HealthCheckDashboard = Depends(get_dashboard),
) -> Dict[str, Any]:
    """Return JSON status collected from the health dashboard."""
    return await dash.api_status()


@app.get("/monitoring/status", response_class=HTMLResponse)
async def monitoring_status(
    dash: HealthCheckDashboard = Depends(get_dashboard),
) -> HTMLResponse:
    """HTML status page of the health dashboard."""
    return await dash.html_status()


if __name__ == "__main__":  # pragma: no cover - manual start
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_config()["server"]["port"])
