# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.errors",
#   "purpose": "Define the exception hierarchy used across discovery, extraction, and verification",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "setup", "name": "Setup Errors", "anchor": "SET", "kind": "api"},
#     {"id": "extraction", "name": "Extraction Errors", "anchor": "EXT", "kind": "api"},
#     {"id": "configuration", "name": "Configuration Errors", "anchor": "CFG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared across secondary archive discovery and extraction.

Fatal failures of a load pass are surfaced as I/O errors: every class below
:class:`SecondaryArchiveError` derives from :class:`OSError` so bootstrap code
that already guards filesystem work with ``except OSError`` keeps working.
Configuration problems are a separate branch rooted at :class:`RuntimeError`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

__all__ = [
    "SecondaryArchiveError",
    "CacheDirectoryError",
    "SourcePackageError",
    "ExtractionFailedError",
    "EntryGapError",
    "ConfigError",
]


class SecondaryArchiveError(OSError):
    """Base exception for fatal secondary archive load failures."""


class CacheDirectoryError(SecondaryArchiveError):
    """Raised when the cache directory cannot be created or is not a directory."""


class SourcePackageError(SecondaryArchiveError):
    """Raised when the source package cannot be opened as a zip archive."""


class ExtractionFailedError(SecondaryArchiveError):
    """Raised when a secondary archive could not be produced within the retry bound."""

    def __init__(self, index: int, path: Path, attempts: int) -> None:
        super().__init__(
            f"Could not create zip file {path} for secondary archive ({index}) "
            f"after {attempts} attempt(s)"
        )
        self.index = index
        self.path = path
        self.attempts = attempts


class EntryGapError(SecondaryArchiveError):
    """Raised by strict discovery when the indexed entries are not contiguous."""

    def __init__(self, gaps: Sequence[int]) -> None:
        self.gaps = tuple(gaps)
        listed = ", ".join(str(index) for index in self.gaps)
        super().__init__(f"Secondary archive indices missing from source package: {listed}")


class ConfigError(RuntimeError):
    """Raised when configuration files or values are invalid."""
