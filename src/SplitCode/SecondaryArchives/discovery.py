# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.discovery",
#   "purpose": "Locate secondary archive entries inside a source package",
#   "sections": [
#     {"id": "iter-secondary-entries", "name": "iter_secondary_entries", "anchor": "function-iter-secondary-entries", "kind": "function"},
#     {"id": "discoveryreport", "name": "DiscoveryReport", "anchor": "class-discoveryreport", "kind": "class"},
#     {"id": "scan-secondary-entries", "name": "scan_secondary_entries", "anchor": "function-scan-secondary-entries", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Secondary archive discovery.

Secondary archives are found by probing ``classes2.dex``, ``classes3.dex``,
... in order and stopping at the first absent name. Nothing reads an entry
count up front, so a missing index hides every later one; the cache layout
of earlier releases depends on that behaviour and it stays the default.

:func:`scan_secondary_entries` walks the full central directory instead and
reports gaps, for callers that prefer to fail loudly on a malformed package.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from .layout import FIRST_SECONDARY_INDEX, parse_entry_index, secondary_entry_name

__all__ = ["iter_secondary_entries", "DiscoveryReport", "scan_secondary_entries"]


def iter_secondary_entries(
    archive: zipfile.ZipFile,
) -> Iterator[Tuple[int, zipfile.ZipInfo]]:
    """Yield ``(index, info)`` for the contiguous run of secondary entries."""

    index = FIRST_SECONDARY_INDEX
    while True:
        try:
            info = archive.getinfo(secondary_entry_name(index))
        except KeyError:
            return
        yield index, info
        index += 1


@dataclass(frozen=True)
class DiscoveryReport:
    """Result of a full central directory scan."""

    entries: Tuple[Tuple[int, zipfile.ZipInfo], ...]
    gaps: Tuple[int, ...]
    stray: Tuple[int, ...]

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(index for index, _ in self.entries)

    @property
    def contiguous(self) -> bool:
        return not self.gaps


def scan_secondary_entries(
    archive: zipfile.ZipFile, *, logger: Optional[logging.Logger] = None
) -> DiscoveryReport:
    """Enumerate every ``classesN.dex`` entry and report missing indices.

    Args:
        archive: Open source package.
        logger: Optional logger receiving a warning when gaps are found.

    Returns:
        DiscoveryReport whose ``entries`` matches :func:`iter_secondary_entries`
        exactly, with ``gaps`` listing absent indices below the highest one
        present and ``stray`` listing indices unreachable by sequential probing.
    """

    present = sorted(
        {
            index
            for index in (parse_entry_index(name) for name in archive.namelist())
            if index is not None
        }
    )
    entries = tuple(iter_secondary_entries(archive))
    reachable = {index for index, _ in entries}
    gaps: Tuple[int, ...] = ()
    if present:
        gaps = tuple(
            index
            for index in range(FIRST_SECONDARY_INDEX, present[-1])
            if index not in present
        )
    stray = tuple(index for index in present if index not in reachable)
    if gaps and logger:
        logger.warning(
            "secondary archive indices are not contiguous",
            extra={"stage": "discover", "gaps": list(gaps), "stray": list(stray)},
        )
    return DiscoveryReport(entries=entries, gaps=gaps, stray=stray)
