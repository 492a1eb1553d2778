# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.repackager",
#   "purpose": "Repackage one secondary archive entry as a standalone single-entry zip",
#   "sections": [
#     {"id": "singleentryrepackager", "name": "SingleEntryRepackager", "anchor": "class-singleentryrepackager", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Single-entry repackaging of secondary archives.

The loader consumes independently openable containers, so each
``classesN.dex`` entry is streamed out of the source package into a fresh zip
holding a single ``classes.dex`` entry. The new entry keeps the original
entry's timestamp: the loader treats entry time as a freshness signal of its
own, separate from filesystem timestamps.

Writes go to a temporary file beside the target and are promoted with an
atomic rename while the directory's rename lock is held. If another process
promoted its copy first, that copy wins and ours is discarded.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Optional

from .cache_dir import CacheDirectory
from .layout import CANONICAL_ENTRY_NAME, EXTRACTED_SUFFIX

__all__ = ["DEFAULT_BUFFER_SIZE", "SingleEntryRepackager"]

DEFAULT_BUFFER_SIZE = 0x4000


class SingleEntryRepackager:
    """Stream a source entry into a single-entry zip and promote it atomically."""

    def __init__(
        self,
        directory: CacheDirectory,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        compression: int = zipfile.ZIP_DEFLATED,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.directory = directory
        self.buffer_size = buffer_size
        self.compression = compression
        self.logger = logger or directory.logger

    def _write_container(
        self, archive: zipfile.ZipFile, entry: zipfile.ZipInfo, destination: Path
    ) -> None:
        member = zipfile.ZipInfo(CANONICAL_ENTRY_NAME, date_time=entry.date_time)
        member.compress_type = self.compression
        # Entries larger than 2 GiB need zip64 headers written up front.
        force_zip64 = entry.file_size >= zipfile.ZIP64_LIMIT
        with archive.open(entry) as source, open(destination, "wb") as raw:
            with zipfile.ZipFile(raw, "w", compression=self.compression) as container:
                with container.open(member, "w", force_zip64=force_zip64) as sink:
                    shutil.copyfileobj(source, sink, self.buffer_size)
            raw.flush()
            os.fsync(raw.fileno())

    def _set_mtime(self, path: Path, last_modified_ns: int) -> None:
        try:
            stat = path.stat()
            os.utime(path, ns=(stat.st_atime_ns, last_modified_ns))
        except OSError as exc:
            self.logger.error(
                "failed to set time of temporary file; later package updates may not "
                "invalidate it",
                extra={"stage": "extract", "path": str(path), "error": str(exc)},
            )

    def repack(
        self,
        archive: zipfile.ZipFile,
        entry: zipfile.ZipInfo,
        target: Path,
        *,
        prefix: str,
        last_modified_ns: int,
    ) -> bool:
        """Produce ``target`` as a single-entry container holding ``entry``.

        Args:
            archive: Open source package.
            entry: Secondary archive entry within ``archive``.
            target: Final cache file path inside the cache directory.
            prefix: Versioned cache file prefix, reused for the temporary file
                name so concurrent purges leave it alone.
            last_modified_ns: Source package timestamp applied to the file.

        Returns:
            ``True`` when this call's file became ``target``; ``False`` when
            another writer had already put a file there.

        Raises:
            OSError: If reading the entry or writing the container fails.
            zipfile.BadZipFile: If the entry's data fails its CRC check.
            zlib.error: If the entry's compressed data is corrupt.
            EOFError: If the entry's compressed stream is truncated.
        """

        target = Path(target)
        fd, tmp_name = tempfile.mkstemp(
            prefix=prefix, suffix=EXTRACTED_SUFFIX, dir=str(target.parent)
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        self.logger.info(
            "extracting %s",
            entry.filename,
            extra={"stage": "extract", "tmp_path": str(tmp_path)},
        )
        promoted = False
        try:
            self._write_container(archive, entry, tmp_path)
            self._set_mtime(tmp_path, last_modified_ns)
            with self.directory.rename_lock():
                if not target.exists():
                    self.logger.info(
                        "renaming to %s",
                        target,
                        extra={"stage": "extract", "tmp_path": str(tmp_path)},
                    )
                    os.replace(tmp_path, target)
                    promoted = True
                else:
                    self.logger.info(
                        "cache file already produced by another writer",
                        extra={"stage": "extract", "path": str(target)},
                    )
        finally:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                self.logger.warning(
                    "failed to delete temporary file",
                    extra={"stage": "extract", "tmp_path": str(tmp_path), "error": str(exc)},
                )
        return promoted
