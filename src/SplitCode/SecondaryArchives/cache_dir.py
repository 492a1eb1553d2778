# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.cache_dir",
#   "purpose": "Own the cache directory lifecycle: creation, purging, and promotion locking",
#   "sections": [
#     {"id": "cachedirectory", "name": "CacheDirectory", "anchor": "class-cachedirectory", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Cache directory management for extracted secondary archives.

The directory holds one cache file per secondary archive of the current
source package version plus the lock file. Anything else is left over from an
earlier package version (different prefix, or older than the package's
timestamp) and gets purged. Purging is best-effort: a file that refuses to go
is ignored by later prefix/timestamp checks anyway, it only leaks storage.
"""

from __future__ import annotations

import contextlib
import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional

from .errors import CacheDirectoryError
from .layout import LOCK_FILENAME, cache_file_name
from .locks import rename_lock

__all__ = ["CacheDirectory"]

LOGGER = logging.getLogger("SplitCode.SecondaryArchives")


class CacheDirectory:
    """Cache directory owning creation, purging, and the rename lock."""

    def __init__(self, path: Path, *, logger: Optional[logging.Logger] = None) -> None:
        self.path = Path(path)
        self.logger = logger or LOGGER

    def __repr__(self) -> str:
        return f"CacheDirectory({str(self.path)!r})"

    def cache_path(self, prefix: str, index: int) -> Path:
        return self.path / cache_file_name(prefix, index)

    def ensure(self) -> None:
        """Create the directory if needed and confirm it is a directory."""

        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except FileExistsError:
            pass
        except OSError as exc:
            raise CacheDirectoryError(
                f"Failed to create cache directory {self.path}: {exc}"
            ) from exc
        if not self.path.is_dir():
            raise CacheDirectoryError(f"Failed to create cache directory {self.path}")

    def _is_stale(self, entry: os.DirEntry, prefix: str, freshness_ns: int) -> bool:
        if not entry.name.startswith(prefix):
            return True
        try:
            mtime_ns = entry.stat(follow_symlinks=False).st_mtime_ns
        except OSError:
            # Vanished since the listing or unreadable; nothing to compare.
            return False
        return mtime_ns < freshness_ns

    def prepare(self, prefix: str, freshness_ns: int) -> List[Path]:
        """Create the directory and purge entries not matching the current package.

        Args:
            prefix: Versioned cache file prefix of the current source package.
            freshness_ns: Source package modification time in nanoseconds;
                matching files strictly older than this are purged.

        Returns:
            Paths that were removed.

        Raises:
            CacheDirectoryError: If the directory cannot be created or a
                non-directory occupies its path.
        """

        self.ensure()
        try:
            with os.scandir(self.path) as iterator:
                children = list(iterator)
        except OSError as exc:
            self.logger.warning(
                "failed to list cache directory content",
                extra={"stage": "prepare", "cache_dir": str(self.path), "error": str(exc)},
            )
            return []

        removed: List[Path] = []
        for entry in children:
            if entry.name == LOCK_FILENAME:
                continue
            if not self._is_stale(entry, prefix, freshness_ns):
                continue
            target = Path(entry.path)
            try:
                if entry.is_dir(follow_symlinks=False):
                    target.rmdir()
                else:
                    target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                self.logger.warning(
                    "failed to delete old file",
                    extra={"stage": "prepare", "path": str(target), "error": str(exc)},
                )
                continue
            removed.append(target)
        if removed:
            self.logger.info(
                "purged %d stale cache entries",
                len(removed),
                extra={"stage": "prepare", "cache_dir": str(self.path)},
            )
        return removed

    @contextlib.contextmanager
    def rename_lock(self) -> Iterator[Path]:
        """Hold the directory's exclusive rename lock for the ``with`` block."""

        with rename_lock(self.path, logger=self.logger) as lock_file:
            yield lock_file
