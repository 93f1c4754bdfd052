"""Health checks for the game database and the configured SGF directories.

The REST API keeps one :class:`HealthCheckDashboard` per process and serves
it as JSON (``/monitoring/health``) and as an HTML page
(``/monitoring/status``).  The checks reload the configuration on every
run, so directories added later are picked up.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sqlite3
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, List, Optional
from urllib.parse import quote

from fastapi.responses import HTMLResponse
from jinja2 import Template

from core.config import load_config

logger = logging.getLogger(__name__)

# Type alias for check callables
CheckCallable = Callable[[], Awaitable["CheckResult"] | "CheckResult"]

# Failed results kept for the status page
HISTORY_LIMIT = 100

_STATUS_PAGE = Template(
    """
    <html>
    <head><title>Service Status</title></head>
    <body>
    <h1>Service Status</h1>
    <table border="1" cellpadding="5">
      <tr><th>Check</th><th>Status</th><th>Latency(ms)</th><th>Error</th></tr>
      {% for name, r in results.items() %}
      <tr>
        <td>{{name}}</td>
        <td>{{r.status}}</td>
        <td>{{ '%.2f' % (r.latency*1000) }}</td>
        <td>{{ r.error or '' }}</td>
      </tr>
      {% endfor %}
    </table>
    {% if history %}
    <h2>Recent failures</h2>
    <table border="1" cellpadding="5">
      <tr><th>Time</th><th>Check</th><th>Status</th><th>Error</th></tr>
      {% for h in history|reverse %}
      <tr>
        <td>{{ h.when }}</td>
        <td>{{ h.name }}</td>
        <td>{{ h.result.status }}</td>
        <td>{{ h.result.error or '' }}</td>
      </tr>
      {% endfor %}
    </table>
    {% endif %}
    </body>
    </html>
    """,
    autoescape=True,
)


@dataclass
class CheckResult:
    """Result returned by a health check."""

    status: str
    latency: float
    error: Optional[str] = None


class HealthCheckDashboard:
    """Registry of named health checks and their latest results."""

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.checks: Dict[str, CheckCallable] = {}
        self.results: Dict[str, CheckResult] = {}
        self.history: Deque[Dict[str, Any]] = deque(maxlen=history_limit)

    def register(self, name: str, check: CheckCallable) -> None:
        self.checks[name] = check

    async def run_check(self, name: str) -> CheckResult:
        """Run a single check by name.

        Failed checks are appended to :attr:`history`, which keeps the most
        recent ``history_limit`` entries.
        """
        check = self.checks[name]
        start = time.perf_counter()
        try:
            result = check()
            if asyncio.iscoroutine(result):
                result = await result
            if not isinstance(result, CheckResult):
                raise TypeError("Check must return CheckResult")
        except Exception as exc:  # pragma: no cover - unexpected errors
            result = CheckResult("DOWN", time.perf_counter() - start, str(exc))
        self.results[name] = result
        if result.status != "OK":
            logger.warning("Health check %s is %s: %s", name, result.status, result.error)
            now = time.time()
            self.history.append({
                "time": now,
                "when": time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now)),
                "name": name,
                "result": result,
            })
        return result

    async def run_all(self) -> Dict[str, CheckResult]:
        for name in list(self.checks):
            await self.run_check(name)
        return self.results

    async def api_status(self) -> Dict[str, Any]:
        """JSON status of every check."""
        await self.run_all()
        return {name: asdict(res) for name, res in self.results.items()}

    async def html_status(self) -> HTMLResponse:
        """HTML status page with the latest results and recent failures."""
        await self.run_all()
        return HTMLResponse(_STATUS_PAGE.render(results=self.results, history=list(self.history)))


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

async def check_database(path: str) -> CheckResult:
    """Check that the game table can be queried.

    The database is opened read-only, so a missing file is reported rather
    than created.
    """
    start = time.perf_counter()
    try:
        conn = sqlite3.connect(f"file:{quote(path)}?mode=ro", uri=True)
        try:
            conn.execute("SELECT COUNT(*) FROM games")
        finally:
            conn.close()
    except sqlite3.Error as exc:
        return CheckResult("DOWN", time.perf_counter() - start, str(exc))
    return CheckResult("OK", time.perf_counter() - start)


async def check_sgf_directories(directories: Iterable[str]) -> CheckResult:
    """Check that every configured SGF directory is readable."""
    start = time.perf_counter()
    directories = list(directories)
    if not directories:
        return CheckResult("WARN", time.perf_counter() - start, "no SGF directories configured")
    missing = [d for d in directories if not os.access(d, os.R_OK) or not os.path.isdir(d)]
    if missing:
        return CheckResult("WARN", time.perf_counter() - start, "unreadable: " + ", ".join(missing))
    return CheckResult("OK", time.perf_counter() - start)


def build_default_dashboard(config_path: Optional[str] = None) -> HealthCheckDashboard:
    """Return a dashboard checking the configured database and directories.

    The configuration at ``config_path`` is reloaded for every check run.
    """
    dash = HealthCheckDashboard()
    dash.register("database", lambda: check_database(load_config(config_path)["database"]["path"]))
    dash.register(
        "sgf_directories",
        lambda: check_sgf_directories(load_config(config_path)["sgf_directories"]),
    )
    return dash


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for command line."""
    parser = argparse.ArgumentParser(description="SGF Flow health checks")
    parser.add_argument("--check", help="Run a specific check")
    parser.add_argument("--config", help="Configuration YAML file")
    args = parser.parse_args(argv)

    dash = build_default_dashboard(args.config)

    if args.check:
        result = asyncio.run(dash.run_check(args.check))
        print(asdict(result))
        return

    results = asyncio.run(dash.run_all())
    for name, res in results.items():
        print(name, asdict(res))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
