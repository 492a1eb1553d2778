"""Hand-off of extracted secondary archives to the code loader."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from .extractor import SecondaryArchiveExtractor
from .settings import ExtractorSettings

__all__ = ["CodeLoader", "install_secondary_archives"]


@runtime_checkable
class CodeLoader(Protocol):
    """Makes the code inside extracted containers resolvable, in list order."""

    def install(self, paths: Sequence[Path]) -> None:
        """Register ``paths`` ahead of the application's own code."""


def install_secondary_archives(
    source: Path,
    cache_dir: Path,
    loader: CodeLoader,
    *,
    settings: Optional[ExtractorSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """Extract ``source``'s secondary archives and pass them to ``loader``.

    The loader is called once, with the full ordered list, and only after
    every cache file exists and verified. Nothing is installed when the load
    fails.
    """

    extractor = SecondaryArchiveExtractor(settings, logger=logger)
    paths = extractor.load(source, cache_dir)
    if paths:
        loader.install(list(paths))
    return paths
