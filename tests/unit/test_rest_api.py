import asyncio
import json
import pathlib
import sys

import httpx
import pytest

# Allow importing from project root
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[2]))

from api import rest_api
from core.config import load_config
from core.game_store import GameStore
from core.indexer import file_id, index_all


def _request(method: str, url: str, **kwargs) -> httpx.Response:
    async def _call() -> httpx.Response:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=rest_api.app), base_url="http://test") as client:
            return await client.request(method, url, **kwargs)
    return asyncio.run(_call())


@pytest.fixture
def store(config_file, monkeypatch):
    monkeypatch.setattr(rest_api, "CONFIG_PATH", config_file)
    monkeypatch.setattr(rest_api, "_dashboard", None)
    s = GameStore()
    rest_api.app.dependency_overrides[rest_api.get_store] = lambda: s
    yield s
    rest_api.app.dependency_overrides.clear()
    s.close()


@pytest.fixture
def games_dir(tmp_path, header_sgf_content):
    directory = tmp_path / "games"
    directory.mkdir()
    (directory / "honinbo.sgf").write_text(header_sgf_content, encoding="utf-8")
    (directory / "capture.sgf").write_text(
        "(;SZ[5]DT[2020-01-01]PB[Cap]PW[Tured];W[cc];B[cb];B[bc];B[dc];B[cd])",
        encoding="utf-8",
    )
    return directory


@pytest.fixture
def indexed(store, games_dir):
    index_all(store, [str(games_dir)])
    return {
        "honinbo": file_id(str(games_dir / "honinbo.sgf")),
        "capture": file_id(str(games_dir / "capture.sgf")),
    }


def test_health_endpoint() -> None:
    response = _request("GET", "/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "timestamp" in response.json()


def test_list_games(indexed):
    response = _request("GET", "/api/games")
    data = response.json()

    assert response.status_code == 200
    assert data["total"] == 2
    assert data["limit"] == 1000
    assert [g["player_black"] for g in data["games"]] == ["Cap", "Shusai"]
    assert data["games"][1]["date"] == "1941-06-21"


def test_list_games_query(indexed):
    data = _request("GET", "/api/games", params={"query": "1941"}).json()
    assert [g["event"] for g in data["games"]] == ["Honinbo"]


def test_list_games_bad_sort(store):
    response = _request("GET", "/api/games", params={"sort_by": "komi"})
    assert response.status_code == 422


def test_game_detail(indexed):
    response = _request("GET", f"/api/games/{indexed['honinbo']}")
    data = response.json()

    assert response.status_code == 200
    assert data["size"] == 19
    assert data["game"]["black"] == "Shusai"
    assert data["properties"]["PW"] == ["Go Seigen"]
    assert [(m["x"], m["y"], m["color"]) for m in data["moves"]] == [
        (15, 3, "b"), (3, 15, "w"), (15, 16, "b"),
    ]


def test_game_detail_not_found(store):
    response = _request("GET", "/api/games/nope")
    assert response.status_code == 404


def test_game_detail_malformed(store, indexed, games_dir):
    (games_dir / "honinbo.sgf").write_text("(;PB[Shusai]B[pd]", encoding="utf-8")
    response = _request("GET", f"/api/games/{indexed['honinbo']}")

    assert response.status_code == 422
    assert "offset" in response.json()["detail"]


def test_game_detail_file_gone(store, indexed, games_dir):
    (games_dir / "honinbo.sgf").unlink()
    response = _request("GET", f"/api/games/{indexed['honinbo']}")
    assert response.status_code == 500


def test_board_with_capture(indexed):
    response = _request("GET", f"/api/games/{indexed['capture']}/board")
    data = response.json()

    assert response.status_code == 200
    assert data["move"] == 5
    assert data["total_moves"] == 5
    assert data["stones"][2][2] == 0
    assert data["captures"] == {"black": 1, "white": 0}


def test_board_prefix(indexed):
    data = _request("GET", f"/api/games/{indexed['capture']}/board", params={"move": 1}).json()

    assert data["move"] == 1
    assert data["stones"][2][2] == -1
    assert sum(abs(v) for row in data["stones"] for v in row) == 1


def test_board_move_out_of_range(indexed):
    response = _request("GET", f"/api/games/{indexed['capture']}/board", params={"move": 99})
    assert response.status_code == 400


def test_directories_crud(store, tmp_path):
    target = tmp_path / "more"
    target.mkdir()

    assert _request("GET", "/api/sgf-directories").json()["directories"] == []

    added = _request("POST", "/api/sgf-directories", json={"path": str(target)})
    assert added.status_code == 201
    assert added.json()["directories"] == [str(target).replace("\\", "/")]

    dup = _request("POST", "/api/sgf-directories", json={"path": str(target)})
    assert dup.status_code == 409

    removed = _request("DELETE", "/api/sgf-directories", json={"path": str(target)})
    assert removed.status_code == 200
    assert removed.json()["directories"] == []


def test_add_missing_directory(store, tmp_path):
    response = _request("POST", "/api/sgf-directories", json={"path": str(tmp_path / "missing")})
    assert response.status_code == 404


def test_remove_unknown_directory(store, tmp_path):
    response = _request("DELETE", "/api/sgf-directories", json={"path": str(tmp_path)})
    assert response.status_code == 404


def test_index_stream(store, games_dir):
    added = _request("POST", "/api/sgf-directories", json={"path": str(games_dir)})
    assert added.status_code == 201

    response = _request("GET", "/api/sgf-indexer/index")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")

    events = [
        json.loads(line[len("data: "):])
        for line in response.text.splitlines()
        if line.startswith("data: ")
    ]
    assert events[0] == {"status": "connected"}
    assert events[-1]["phase"] == "complete"
    assert events[-1]["files_indexed"] == 2

    stats = _request("GET", "/api/sgf-indexer/stats").json()
    assert stats == {"total_games": 2, "games_with_black_wins": 0, "games_with_white_wins": 1}


def test_clear(indexed):
    response = _request("DELETE", "/api/sgf-indexer/clear")
    assert response.json() == {"message": "Database cleared successfully", "deleted_count": 2}
    assert _request("GET", "/api/games").json()["total"] == 0


def test_monitoring_health(store, config_file):
    GameStore(load_config(config_file)["database"]["path"]).close()
    data = _request("GET", "/monitoring/health").json()

    assert data["database"]["status"] == "OK"
    assert data["sgf_directories"]["status"] == "WARN"


def test_monitoring_status_page(store, config_file):
    GameStore(load_config(config_file)["database"]["path"]).close()
    response = _request("GET", "/monitoring/status")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Service Status" in response.text
    assert "Recent failures" in response.text
    assert "no SGF directories configured" in response.text


def test_monitoring_history_kept_between_requests(store, config_file):
    GameStore(load_config(config_file)["database"]["path"]).close()
    _request("GET", "/monitoring/health")
    _request("GET", "/monitoring/health")

    assert [h["name"] for h in rest_api._dashboard.history] == ["sgf_directories"] * 2
