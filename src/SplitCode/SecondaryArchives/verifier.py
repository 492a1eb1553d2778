"""Integrity checks applied to freshly written cache files."""

from __future__ import annotations

import hashlib
import logging
import zipfile
import zlib
from pathlib import Path
from typing import Optional

__all__ = ["IntegrityVerifier"]

LOGGER = logging.getLogger("SplitCode.SecondaryArchives")

_READ_CHUNK = 8192


class IntegrityVerifier:
    """Accept a cache file only if it opens as a zip archive.

    ``fingerprint`` computes a digest of the whole file for log correlation.
    It never gates acceptance.
    """

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        verify_crc: bool = False,
        digest_algorithm: str = "sha1",
        max_digest_lookup_attempts: int = 2,
    ) -> None:
        self.logger = logger or LOGGER
        self.verify_crc = verify_crc
        self.digest_algorithm = digest_algorithm
        self.max_digest_lookup_attempts = max(1, max_digest_lookup_attempts)

    def verify(self, path: Path) -> bool:
        """Return ``True`` if ``path`` opens and closes as a valid zip archive."""

        path = Path(path)
        try:
            archive = zipfile.ZipFile(path)
        except zipfile.BadZipFile as exc:
            self.logger.warning(
                "file is not a valid zip file",
                extra={"stage": "verify", "path": str(path), "error": str(exc)},
            )
            return False
        except OSError as exc:
            self.logger.warning(
                "I/O error while opening zip file",
                extra={"stage": "verify", "path": str(path), "error": str(exc)},
            )
            return False

        valid = True
        try:
            if self.verify_crc:
                valid = self._check_entries(archive, path)
        finally:
            try:
                archive.close()
            except OSError as exc:
                self.logger.warning(
                    "failed to close zip file",
                    extra={"stage": "verify", "path": str(path), "error": str(exc)},
                )
        return valid

    def _check_entries(self, archive: zipfile.ZipFile, path: Path) -> bool:
        try:
            bad_entry = archive.testzip()
        except (zipfile.BadZipFile, OSError, EOFError, zlib.error) as exc:
            self.logger.warning(
                "zip file entries could not be read",
                extra={"stage": "verify", "path": str(path), "error": str(exc)},
            )
            return False
        if bad_entry is not None:
            self.logger.warning(
                "zip file entry failed CRC check",
                extra={"stage": "verify", "path": str(path), "entry": bad_entry},
            )
            return False
        return True

    def _new_digest(self):
        for _ in range(self.max_digest_lookup_attempts):
            try:
                return hashlib.new(self.digest_algorithm)
            except ValueError:
                continue
        return None

    def fingerprint(self, path: Path) -> str:
        """Return the lowercase hex digest of ``path`` or ``""`` when unavailable."""

        hasher = self._new_digest()
        if hasher is None:
            self.logger.debug(
                "digest algorithm unavailable",
                extra={"stage": "verify", "algorithm": self.digest_algorithm},
            )
            return ""
        try:
            with Path(path).open("rb") as stream:
                for chunk in iter(lambda: stream.read(_READ_CHUNK), b""):
                    hasher.update(chunk)
        except OSError:
            return ""
        return hasher.hexdigest().lower()
