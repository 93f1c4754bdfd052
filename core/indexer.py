"""Bulk indexing of SGF files found under the configured directories.

Indexing runs in four phases reported through a progress callback:

``scanning``  walk every root directory and collect ``*.sgf`` files;
``indexing``  read the header of every new file and store it in batches;
``cleanup``   drop stored games whose file disappeared;
``complete``  final counts, including performance figures.

Only headers are read here; the full parser is never involved.  A file that
is not a game record and a file that cannot be read are both skipped, but
they are counted separately.
"""
from __future__ import annotations

import datetime
import hashlib
import logging
import os
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.errors import IoFailure
from core.game_store import BATCH_SIZE, GameRecord, GameStore
from input.sgf_header import HeaderMetadata, read_header
from monitoring.performance import PerformanceMonitor

logger = logging.getLogger(__name__)

SGF_EXTENSION = ".sgf"

_DATE = re.compile(r"(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?")


@dataclass
class IndexProgress:
    """Counters reported while indexing."""

    phase: str = "scanning"
    files_scanned: int = 0
    files_indexed: int = 0
    files_skipped: int = 0
    files_removed: int = 0
    not_a_record: int = 0
    io_failures: int = 0
    current_file: Optional[str] = None
    error: Optional[str] = None
    performance: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


ProgressCallback = Callable[[IndexProgress], None]


def file_id(path: str) -> str:
    """Return the stable identifier of the game stored at ``path``."""
    return hashlib.sha256(path.encode("utf-8")).hexdigest()


def scan_directory(root: str) -> List[str]:
    """Return every SGF file below ``root``, sorted.

    Directories that cannot be read are logged and skipped.
    """
    found: List[str] = []

    def _onerror(exc: OSError) -> None:
        logger.error("Error scanning directory %s: %s", exc.filename, exc)

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_onerror):
        for name in filenames:
            if name.lower().endswith(SGF_EXTENSION):
                found.append(os.path.join(dirpath, name))
    return sorted(found)


def parse_date(value: Optional[str], now: Optional[datetime.datetime] = None) -> str:
    """Return an ISO timestamp for an SGF ``DT`` value.

    ``YYYY-MM-DD``, ``YYYY-MM`` and ``YYYY`` are accepted; for multi-date
    values such as ``2001-05-01,02`` the first date wins.  Anything else
    falls back to ``now``.
    """
    fallback = (now or datetime.datetime.now()).isoformat()
    if not value:
        return fallback
    match = _DATE.match(value.strip())
    if not match:
        return fallback
    year, month, day = match.groups()
    try:
        date = datetime.datetime(int(year), int(month or 1), int(day or 1))
    except ValueError:
        return fallback
    return date.isoformat()


def build_record(path: str, metadata: HeaderMetadata) -> GameRecord:
    """Turn header metadata into a storable :class:`GameRecord`."""
    return GameRecord(
        id=file_id(path),
        played_at=parse_date(metadata.date),
        round=metadata.round or "",
        event=metadata.event or "",
        komi=metadata.komi or "",
        white=metadata.white_player or "",
        black=metadata.black_player or "",
        white_rank=metadata.white_rank or "",
        black_rank=metadata.black_rank or "",
        white_wins=metadata.white_wins,
        black_wins=metadata.black_wins,
        result=metadata.result or "",
        file_path=path,
    )


def index_all(
    store: GameStore,
    directories: Iterable[str],
    progress_callback: Optional[ProgressCallback] = None,
    perf_output: Optional[str] = None,
) -> IndexProgress:
    """Index every SGF file below ``directories`` into ``store``.

    Returns the final :class:`IndexProgress`.  Errors other than per-file
    skips are recorded on the progress object, reported, and re-raised.
    When ``perf_output`` is given the performance figures are also written
    there as JSON or CSV, chosen by the file extension.
    """
    progress = IndexProgress()

    def report() -> None:
        if progress_callback is not None:
            progress_callback(progress)

    directories = list(directories)
    with PerformanceMonitor(perf_output) as monitor:
        try:
            _run(store, directories, progress, report)
        except Exception as exc:
            progress.error = str(exc)
            report()
            raise

    progress.phase = "complete"
    progress.current_file = None
    progress.performance = monitor.stats
    logger.info(
        "Indexing complete: %d scanned, %d indexed, %d skipped, %d removed",
        progress.files_scanned,
        progress.files_indexed,
        progress.files_skipped,
        progress.files_removed,
    )
    report()
    return progress


def _run(
    store: GameStore,
    directories: List[str],
    progress: IndexProgress,
    report: Callable[[], None],
) -> None:
    if not directories:
        return

    report()
    all_files: List[str] = []
    for directory in directories:
        all_files.extend(scan_directory(directory))
        progress.files_scanned = len(all_files)
        report()

    existing_ids = store.existing_ids()
    current_ids = set()
    pending: List[GameRecord] = []

    progress.phase = "indexing"
    report()

    for path in all_files:
        fid = file_id(path)
        current_ids.add(fid)
        progress.current_file = path

        if fid in existing_ids:
            progress.files_skipped += 1
            report()
            continue

        try:
            metadata = read_header(path)
        except IoFailure as exc:
            logger.warning("Could not read %s: %s", path, exc)
            progress.io_failures += 1
            progress.files_skipped += 1
            report()
            continue
        if metadata is None:
            logger.debug("Not a game record: %s", path)
            progress.not_a_record += 1
            progress.files_skipped += 1
            report()
            continue

        pending.append(build_record(path, metadata))
        if len(pending) >= BATCH_SIZE:
            progress.files_indexed += store.insert_games(pending)
            pending.clear()
            report()

    if pending:
        progress.files_indexed += store.insert_games(pending)
        report()

    progress.phase = "cleanup"
    report()
    stale = existing_ids - current_ids
    if stale:
        progress.files_removed = store.delete_games(sorted(stale))


__all__ = [
    "SGF_EXTENSION",
    "IndexProgress",
    "file_id",
    "scan_directory",
    "parse_date",
    "build_record",
    "index_all",
]
