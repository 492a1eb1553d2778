"""Public API for extracting secondary code archives into a versioned cache.

An application package that outgrew a single code archive ships its extra
code as ``classes2.dex``, ``classes3.dex``, ... entries. This package copies
those entries out into standalone single-entry zip containers inside a private
cache directory, once per package version and safely under concurrent
launches, and hands the ordered container paths to a code loader.
"""

from __future__ import annotations

from .api import CodeLoader, install_secondary_archives
from .cache_dir import CacheDirectory
from .discovery import DiscoveryReport, iter_secondary_entries, scan_secondary_entries
from .errors import (
    CacheDirectoryError,
    ConfigError,
    EntryGapError,
    ExtractionFailedError,
    SecondaryArchiveError,
    SourcePackageError,
)
from .extractor import ExtractionResult, SecondaryArchiveExtractor, load_secondary_archives
from .repackager import SingleEntryRepackager
from .settings import ExtractorSettings, LoggingSettings, Settings, load_settings
from .verifier import IntegrityVerifier

__version__ = "0.1.0"

__all__ = [
    "CacheDirectory",
    "CacheDirectoryError",
    "CodeLoader",
    "ConfigError",
    "DiscoveryReport",
    "EntryGapError",
    "ExtractionFailedError",
    "ExtractionResult",
    "ExtractorSettings",
    "IntegrityVerifier",
    "LoggingSettings",
    "SecondaryArchiveError",
    "SecondaryArchiveExtractor",
    "Settings",
    "SingleEntryRepackager",
    "SourcePackageError",
    "install_secondary_archives",
    "iter_secondary_entries",
    "load_secondary_archives",
    "load_settings",
    "scan_secondary_entries",
    "__version__",
]
