# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.extractor",
#   "purpose": "Plan and run extraction of secondary archives into the cache directory",
#   "sections": [
#     {"id": "extractionresult", "name": "ExtractionResult", "anchor": "class-extractionresult", "kind": "class"},
#     {"id": "secondaryarchiveextractor", "name": "SecondaryArchiveExtractor", "anchor": "class-secondaryarchiveextractor", "kind": "class"},
#     {"id": "load-secondary-archives", "name": "load_secondary_archives", "anchor": "function-load-secondary-archives", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Extraction planner for secondary archives.

A load pass prepares the cache directory for the current source package
version, walks the secondary entries in ascending order, and makes sure a
verified cache file exists for each one. Cache files that already exist are
reused untouched, so a second pass over an unchanged package writes nothing.

Each missing cache file gets a bounded number of repackage-and-verify
attempts. Running out of attempts fails the whole pass: callers never see a
partial list.
"""

from __future__ import annotations

import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .cache_dir import CacheDirectory
from .discovery import iter_secondary_entries, scan_secondary_entries
from .errors import EntryGapError, ExtractionFailedError, SourcePackageError
from .layout import versioned_prefix
from .repackager import SingleEntryRepackager
from .settings import ExtractorSettings, get_default_settings
from .verifier import IntegrityVerifier

__all__ = ["ExtractionResult", "SecondaryArchiveExtractor", "load_secondary_archives"]

LOGGER = logging.getLogger("SplitCode.SecondaryArchives")


@dataclass
class ExtractionResult:
    """Outcome of one load pass."""

    paths: List[Path] = field(default_factory=list)
    extracted: List[int] = field(default_factory=list)
    reused: List[int] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "paths": [str(path) for path in self.paths],
            "extracted": list(self.extracted),
            "reused": list(self.reused),
            "removed": [str(path) for path in self.removed],
        }


class SecondaryArchiveExtractor:
    """Expose a source package's secondary archives as cache files.

    Args:
        settings: Extraction knobs; defaults come from the environment.
        logger: Logger receiving structured diagnostics from every component.
        verifier: Replacement integrity verifier, mainly for tests.
    """

    def __init__(
        self,
        settings: Optional[ExtractorSettings] = None,
        *,
        logger: Optional[logging.Logger] = None,
        verifier: Optional[IntegrityVerifier] = None,
    ) -> None:
        self.settings = settings or get_default_settings().extractor
        self.logger = logger or LOGGER
        self.verifier = verifier or IntegrityVerifier(
            logger=self.logger,
            verify_crc=self.settings.verify_crc,
            digest_algorithm=self.settings.digest_algorithm,
            max_digest_lookup_attempts=self.settings.max_digest_lookup_attempts,
        )

    def load(
        self,
        source: Path,
        cache_dir: Path,
        *,
        last_modified_ns: Optional[int] = None,
    ) -> List[Path]:
        """Return the ordered cache file paths for ``source``'s secondary archives."""

        return self.load_detailed(source, cache_dir, last_modified_ns=last_modified_ns).paths

    def load_detailed(
        self,
        source: Path,
        cache_dir: Path,
        *,
        last_modified_ns: Optional[int] = None,
    ) -> ExtractionResult:
        """Run a load pass and report what was extracted, reused, and purged.

        Args:
            source: Source package (zip) path.
            cache_dir: Directory holding the cache files.
            last_modified_ns: Source package timestamp in nanoseconds; read
                from the filesystem when omitted.

        Returns:
            ExtractionResult whose ``paths`` lists cache files in ascending
            index order.

        Raises:
            CacheDirectoryError: If the cache directory cannot be prepared.
            SourcePackageError: If the source package cannot be opened.
            EntryGapError: In strict discovery mode, if indices are missing.
            ExtractionFailedError: If a cache file cannot be produced within
                the configured number of attempts.
        """

        source = Path(source)
        if last_modified_ns is None:
            try:
                last_modified_ns = source.stat().st_mtime_ns
            except OSError as exc:
                raise SourcePackageError(f"Cannot stat source package {source}: {exc}") from exc

        prefix = versioned_prefix(source)
        directory = CacheDirectory(cache_dir, logger=self.logger)
        result = ExtractionResult()
        result.removed = directory.prepare(prefix, last_modified_ns)

        archive = self._open_source(source)
        try:
            repackager = SingleEntryRepackager(
                directory,
                buffer_size=self.settings.buffer_size,
                compression=self.settings.compression.zip_constant(),
                logger=self.logger,
            )
            for index, entry in self._entries(archive):
                target = directory.cache_path(prefix, index)
                result.paths.append(target)
                if target.is_file():
                    result.reused.append(index)
                    continue
                self._extract_with_retry(
                    repackager,
                    archive,
                    entry,
                    index,
                    target,
                    prefix=prefix,
                    last_modified_ns=last_modified_ns,
                )
                result.extracted.append(index)
        finally:
            try:
                archive.close()
            except OSError as exc:
                self.logger.warning(
                    "failed to close source package",
                    extra={"stage": "load", "source": str(source), "error": str(exc)},
                )

        self.logger.info(
            "secondary archives ready",
            extra={
                "stage": "load",
                "source": str(source),
                "count": len(result.paths),
                "extracted": len(result.extracted),
            },
        )
        return result

    def _open_source(self, source: Path) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(source)
        except (OSError, zipfile.BadZipFile) as exc:
            raise SourcePackageError(f"Cannot open source package {source}: {exc}") from exc

    def _entries(self, archive: zipfile.ZipFile) -> List[Tuple[int, zipfile.ZipInfo]]:
        if self.settings.strict_discovery:
            report = scan_secondary_entries(archive, logger=self.logger)
            if report.gaps:
                raise EntryGapError(report.gaps)
            return list(report.entries)
        return list(iter_secondary_entries(archive))

    def _extract_with_retry(
        self,
        repackager: SingleEntryRepackager,
        archive: zipfile.ZipFile,
        entry: zipfile.ZipInfo,
        index: int,
        target: Path,
        *,
        prefix: str,
        last_modified_ns: int,
    ) -> None:
        attempts = self.settings.max_extract_attempts
        last_error: Optional[BaseException] = None
        for attempt in range(1, attempts + 1):
            try:
                repackager.repack(
                    archive, entry, target, prefix=prefix, last_modified_ns=last_modified_ns
                )
            except (OSError, EOFError, zipfile.BadZipFile, zlib.error) as exc:
                last_error = exc
                self.logger.warning(
                    "repackaging failed",
                    extra={
                        "stage": "extract",
                        "index": index,
                        "attempt": attempt,
                        "error": str(exc),
                    },
                )
                verified = False
            else:
                verified = self.verifier.verify(target)

            fingerprint = self.verifier.fingerprint(target) if self.settings.fingerprint else ""
            self.logger.info(
                "extraction %s",
                "succeeded" if verified else "failed",
                extra={
                    "stage": "extract",
                    "index": index,
                    "attempt": attempt,
                    "path": str(target.absolute()),
                    "fingerprint": fingerprint,
                },
            )
            if verified:
                return
            self._discard(target)

        error = ExtractionFailedError(index, target, attempts)
        if last_error is not None:
            raise error from last_error
        raise error

    def _discard(self, target: Path) -> None:
        try:
            target.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.warning(
                "failed to delete invalid cache file",
                extra={"stage": "extract", "path": str(target), "error": str(exc)},
            )


def load_secondary_archives(
    source: Path,
    cache_dir: Path,
    *,
    last_modified_ns: Optional[int] = None,
    settings: Optional[ExtractorSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """Extract ``source``'s secondary archives into ``cache_dir`` and return their paths."""

    extractor = SecondaryArchiveExtractor(settings, logger=logger)
    return extractor.load(source, cache_dir, last_modified_ns=last_modified_ns)
