"""Builders for source packages used across the secondary archive tests.

Entry payloads are deterministic per index so round-trip assertions can
recompute them.
"""

from __future__ import annotations

import struct
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

# Zip timestamps have two-second resolution; keep seconds even.
ENTRY_DATE_TIME: Tuple[int, int, int, int, int, int] = (2021, 6, 15, 10, 30, 42)


def payload_for(index: int) -> bytes:
    header = f"dex\n035\x00secondary-{index}\n".encode("utf-8")
    return header + bytes(range(256)) * (64 + index)


def build_package(
    path: Path,
    indices: Iterable[int],
    *,
    extra: Optional[Dict[str, bytes]] = None,
    date_time: Tuple[int, int, int, int, int, int] = ENTRY_DATE_TIME,
) -> Path:
    """Write a source package holding ``classes.dex`` plus ``classesN.dex`` entries."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        primary = zipfile.ZipInfo("classes.dex", date_time=date_time)
        archive.writestr(primary, b"dex\n035\x00primary\n")
        for index in indices:
            info = zipfile.ZipInfo(f"classes{index}.dex", date_time=date_time)
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, payload_for(index))
        for name, data in (extra or {}).items():
            archive.writestr(zipfile.ZipInfo(name, date_time=date_time), data)
    return path


def corrupt_entry_data(path: Path, name: str, *, length: int = 40) -> None:
    """Overwrite the start of ``name``'s compressed data with ``0xFF`` bytes.

    The central directory stays intact, so the archive still opens; reading
    the entry fails while inflating.
    """

    with zipfile.ZipFile(path) as archive:
        info = archive.getinfo(name)
    data = bytearray(path.read_bytes())
    # Local header: 30 fixed bytes, then file name and extra field.
    name_len, extra_len = struct.unpack_from("<HH", data, info.header_offset + 26)
    start = info.header_offset + 30 + name_len + extra_len
    count = max(1, min(length, info.compress_size))
    data[start : start + count] = b"\xff" * count
    path.write_bytes(bytes(data))
