"""Naming conventions shared by the source package and the cache directory."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "ENTRY_PREFIX",
    "ENTRY_SUFFIX",
    "FIRST_SECONDARY_INDEX",
    "CANONICAL_ENTRY_NAME",
    "EXTRACTED_NAME_EXT",
    "EXTRACTED_SUFFIX",
    "LOCK_FILENAME",
    "secondary_entry_name",
    "parse_entry_index",
    "versioned_prefix",
    "cache_file_name",
]

ENTRY_PREFIX = "classes"
ENTRY_SUFFIX = ".dex"
FIRST_SECONDARY_INDEX = 2

# Entry name inside every cache file; the loader only looks for this name.
CANONICAL_ENTRY_NAME = "classes.dex"

EXTRACTED_NAME_EXT = ".classes"
EXTRACTED_SUFFIX = ".zip"
LOCK_FILENAME = "SecondaryArchives.lock"


def secondary_entry_name(index: int) -> str:
    """Return the source package entry name for secondary archive ``index``."""

    return f"{ENTRY_PREFIX}{index}{ENTRY_SUFFIX}"


def parse_entry_index(name: str) -> int | None:
    """Return the index encoded in ``name`` or ``None`` for non-secondary entries."""

    if not (name.startswith(ENTRY_PREFIX) and name.endswith(ENTRY_SUFFIX)):
        return None
    digits = name[len(ENTRY_PREFIX) : len(name) - len(ENTRY_SUFFIX)]
    if not digits.isdigit() or digits.startswith("0"):
        return None
    index = int(digits)
    if index < FIRST_SECONDARY_INDEX:
        return None
    return index


def versioned_prefix(source: Path) -> str:
    """Return the cache file prefix identifying ``source`` (``<name>.classes``)."""

    return f"{Path(source).name}{EXTRACTED_NAME_EXT}"


def cache_file_name(prefix: str, index: int) -> str:
    return f"{prefix}{index}{EXTRACTED_SUFFIX}"
