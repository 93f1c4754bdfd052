"""YAML configuration and SGF directory management.

Configuration is looked up in this order:

1. an explicit path passed by the caller;
2. ``config.<env>.yaml`` in the working directory, where ``<env>`` comes
   from ``SGF_FLOW_ENV`` and defaults to ``development``;
3. ``config.yaml`` in the working directory.

When none of them exists the built-in defaults are used.  ``PORT``,
``SGF_FLOW_ENV`` and ``DATABASE_PATH`` override the file values.
"""
from __future__ import annotations

import copy
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {"port": 3012, "environment": "development"},
    "database": {"path": "sgf-flow.db"},
    "logging": {"level": "INFO", "format": "%(levelname)s: %(message)s"},
    "sgf_directories": [],
}


class DirectoryError(ValueError):
    """Base error for SGF directory configuration problems."""


class DirectoryNotFound(DirectoryError):
    """The directory does not exist or is not configured."""


class DirectoryConflict(DirectoryError):
    """The directory duplicates or overlaps a configured directory."""


def _environment() -> str:
    return os.environ.get("SGF_FLOW_ENV", "development")


def config_path(path: Optional[str] = None) -> str:
    """Return the configuration file to use.

    The returned path may not exist yet; saving will create it.
    """
    if path:
        return path
    env_path = os.path.join(os.getcwd(), f"config.{_environment()}.yaml")
    if os.path.exists(env_path):
        return env_path
    default_path = os.path.join(os.getcwd(), "config.yaml")
    if not os.path.exists(default_path):
        logger.debug("No config file found, using defaults")
    return default_path


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def _apply_environment(config: Dict[str, Any]) -> Dict[str, Any]:
    if os.environ.get("PORT"):
        config["server"]["port"] = int(os.environ["PORT"])
    if os.environ.get("SGF_FLOW_ENV"):
        config["server"]["environment"] = os.environ["SGF_FLOW_ENV"]
    if os.environ.get("DATABASE_PATH"):
        config["database"]["path"] = os.environ["DATABASE_PATH"]
    return config


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML configuration merged over :data:`DEFAULT_CONFIG`."""
    filepath = config_path(path)
    config = copy.deepcopy(DEFAULT_CONFIG)
    if os.path.exists(filepath):
        with open(filepath, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {filepath} must contain a mapping")
        _merge(config, data)
    config["sgf_directories"] = list(config.get("sgf_directories") or [])
    return _apply_environment(config)


def save_config(config: Dict[str, Any], path: Optional[str] = None) -> None:
    """Write ``config`` back as YAML."""
    filepath = config_path(path)
    with open(filepath, "w", encoding="utf-8") as fh:
        yaml.safe_dump(config, fh, indent=2, sort_keys=False)


# ---------------------------------------------------------------------------
# SGF directory management
# ---------------------------------------------------------------------------

def normalize_path(dir_path: str) -> str:
    """Return an absolute, normalised path using forward slashes."""
    return os.path.abspath(dir_path).replace(os.sep, "/")


def is_subdirectory(parent: str, child: str) -> bool:
    """Return ``True`` when ``child`` lies strictly below ``parent``."""
    parent = normalize_path(parent)
    child = normalize_path(child)
    if child == parent:
        return False
    return child.startswith(parent.rstrip("/") + "/")


def get_sgf_directories(path: Optional[str] = None) -> List[str]:
    return load_config(path)["sgf_directories"]


def add_sgf_directory(dir_path: str, path: Optional[str] = None) -> List[str]:
    """Add ``dir_path`` to the configured directories and return the new list.

    Raises :class:`DirectoryNotFound` when the directory does not exist and
    :class:`DirectoryConflict` when it is already listed, lies inside a
    listed directory, or contains one.
    """
    normalized = normalize_path(dir_path)
    if not os.path.isdir(normalized):
        raise DirectoryNotFound(f"Directory does not exist: {dir_path}")

    config = load_config(path)
    current = config["sgf_directories"]

    if any(normalize_path(d) == normalized for d in current):
        raise DirectoryConflict(f"Directory already exists in configuration: {dir_path}")
    for existing in current:
        if is_subdirectory(existing, normalized):
            raise DirectoryConflict(
                f'Cannot add directory "{dir_path}" because its parent "{existing}" is already included'
            )
    nested = [d for d in current if is_subdirectory(normalized, d)]
    if nested:
        raise DirectoryConflict(
            f'Cannot add directory "{dir_path}" because it contains existing subdirectories: {", ".join(nested)}'
        )

    config["sgf_directories"] = current + [normalized]
    save_config(config, path)
    logger.info("Added SGF directory %s", normalized)
    return config["sgf_directories"]


def remove_sgf_directory(dir_path: str, path: Optional[str] = None) -> List[str]:
    """Remove ``dir_path`` from the configured directories and return the new list."""
    normalized = normalize_path(dir_path)
    config = load_config(path)
    current = config["sgf_directories"]
    remaining = [d for d in current if normalize_path(d) != normalized]
    if len(remaining) == len(current):
        raise DirectoryNotFound(f"Directory not found in configuration: {dir_path}")
    config["sgf_directories"] = remaining
    save_config(config, path)
    logger.info("Removed SGF directory %s", normalized)
    return remaining


__all__ = [
    "DEFAULT_CONFIG",
    "DirectoryError",
    "DirectoryNotFound",
    "DirectoryConflict",
    "config_path",
    "load_config",
    "save_config",
    "normalize_path",
    "is_subdirectory",
    "get_sgf_directories",
    "add_sgf_directory",
    "remove_sgf_directory",
]
