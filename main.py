"""Entry point for the SGF Flow command line interface.

Modes:

``index``  scan the configured SGF directories and update the game database.
``show``   parse one SGF file and print its size, moves and root properties.
``board``  replay one SGF file up to ``--move`` and print the board.
``serve``  start the REST API with Uvicorn.
``dirs``   list, add or remove configured SGF directories.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Any, Dict, Optional, Sequence

from core import config as config_mod
from core.board import replay
from core.errors import SgfError
from core.game_service import load_game
from core.game_store import GameStore
from core.indexer import IndexProgress, index_all
from core.show_board import board_to_string


def _run_index(config: Dict[str, Any], perf_log: Optional[str] = None) -> IndexProgress:
    """Run the indexer over the configured directories."""

    store = GameStore(config["database"]["path"])
    try:
        return index_all(store, config["sgf_directories"], perf_output=perf_log)
    finally:
        store.close()


def _run_show(path: str) -> Dict[str, Any]:
    """Return the parsed record at ``path`` as a JSON friendly dict."""

    return load_game(path).to_dict()


def _run_board(path: str, move: Optional[int]) -> str:
    """Replay ``path`` up to ``move`` and return the text diagram."""

    detail = load_game(path)
    return board_to_string(replay(detail.size, detail.moves, move))


def _run_dirs(args: argparse.Namespace) -> Dict[str, Any]:
    if args.add:
        return {"directories": config_mod.add_sgf_directory(args.add, args.config)}
    if args.remove:
        return {"directories": config_mod.remove_sgf_directory(args.remove, args.config)}
    return {"directories": config_mod.get_sgf_directories(args.config)}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``sgf-flow`` command line tool."""
    parser = argparse.ArgumentParser(description="SGF Flow")
    parser.add_argument("--mode", choices=["index", "show", "board", "serve", "dirs"], required=True)
    parser.add_argument("--data", help="SGF file for show and board modes")
    parser.add_argument("--move", type=int, help="Number of moves to replay in board mode")
    parser.add_argument("--config", help="Optional configuration YAML file")
    parser.add_argument("--add", help="Directory to add in dirs mode")
    parser.add_argument("--remove", help="Directory to remove in dirs mode")
    parser.add_argument("--perf-log", help="Write indexing performance stats to this .json or .csv file")

    args = parser.parse_args(list(argv) if argv is not None else None)

    config = config_mod.load_config(args.config)
    log_cfg = config["logging"]
    logging.basicConfig(level=log_cfg["level"], format=log_cfg["format"])
    logging.debug("Loaded config: %s", config)

    if args.mode in ("show", "board") and not args.data:
        parser.error(f"--data is required for {args.mode} mode")

    try:
        if args.mode == "index":
            progress = _run_index(config, args.perf_log)
            print(json.dumps(progress.to_dict(), indent=2))
        elif args.mode == "show":
            print(json.dumps(_run_show(args.data), indent=2))
        elif args.mode == "board":
            print(_run_board(args.data, args.move))
        elif args.mode == "dirs":
            print(json.dumps(_run_dirs(args), indent=2))
        elif args.mode == "serve":
            import uvicorn

            if args.config:
                os.environ["SGF_FLOW_CONFIG"] = args.config
            from api.rest_api import app

            uvicorn.run(app, host="0.0.0.0", port=config["server"]["port"])
    except (SgfError, ValueError) as exc:
        logging.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
