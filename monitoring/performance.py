"""Performance measurement for indexing runs.

:class:`PerformanceMonitor` is a context manager recording wall time, CPU
time and resident memory of the current process with ``psutil``.  The
collected metrics can optionally be written to a JSON or CSV file.
"""

from __future__ import annotations

import csv
import json
import os
import time
from typing import Any, Dict, Optional

import psutil

SUPPORTED_FORMATS = (".json", ".csv")


class PerformanceMonitor:
    """Context manager for monitoring CPU time and memory usage.

    Parameters
    ----------
    output : str, optional
        Path to an output file. If provided, metrics will be stored when the
        context exits. The format is determined by the file extension (``.json``
        or ``.csv``), and any other extension raises ``ValueError`` up front.
    """

    def __init__(self, output: Optional[str] = None) -> None:
        if output:
            _check_format(output)
        self.output = output
        self.stats: Dict[str, Any] = {}
        self._process = psutil.Process(os.getpid())
        self._start_cpu = None
        self._start_mem = None
        self._start_time = None

    def __enter__(self) -> "PerformanceMonitor":
        self._start_time = time.time()
        self._start_cpu = self._process.cpu_times()
        self._start_mem = self._process.memory_info().rss
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        end_time = time.time()
        end_cpu = self._process.cpu_times()
        end_mem = self._process.memory_info().rss

        cpu_start = self._start_cpu.user + self._start_cpu.system
        cpu_end = end_cpu.user + end_cpu.system

        self.stats = {
            "duration": end_time - self._start_time,
            "cpu_time": cpu_end - cpu_start,
            "memory_start": self._start_mem,
            "memory_end": end_mem,
            "memory_diff": end_mem - self._start_mem,
        }

        if self.output:
            self.log_performance(self.output)
        return False

    def log_performance(self, output_file: Optional[str] = None) -> Dict[str, Any]:
        """Save the collected metrics and return them.

        Raises ``ValueError`` for an extension other than ``.json`` or ``.csv``.
        """
        path = output_file or self.output
        if not path:
            return self.stats

        ext = _check_format(path)
        if ext == ".json":
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.stats, f, indent=2)
        elif ext == ".csv":
            with open(path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(["metric", "value"])
                for k, v in self.stats.items():
                    writer.writerow([k, v])
        return self.stats


def _check_format(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported output format: {ext}")
    return ext


__all__ = ["SUPPORTED_FORMATS", "PerformanceMonitor"]
