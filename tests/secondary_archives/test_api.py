"""Hand-off of cache files to a code loader."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import pytest

from SplitCode.SecondaryArchives.api import CodeLoader, install_secondary_archives
from SplitCode.SecondaryArchives.errors import ExtractionFailedError
from SplitCode.SecondaryArchives.repackager import SingleEntryRepackager


class RecordingLoader:
    def __init__(self) -> None:
        self.calls: List[List[Path]] = []

    def install(self, paths: Sequence[Path]) -> None:
        # Every path must already exist when handed over.
        assert all(Path(path).is_file() for path in paths)
        self.calls.append(list(paths))


def test_recording_loader_satisfies_protocol():
    assert isinstance(RecordingLoader(), CodeLoader)


def test_loader_receives_ordered_paths_once(source_package, cache_dir):
    loader = RecordingLoader()
    paths = install_secondary_archives(source_package, cache_dir, loader)

    assert loader.calls == [paths]
    assert [path.name for path in paths] == ["app.apk.classes2.zip", "app.apk.classes3.zip"]


def test_loader_not_called_without_secondary_archives(make_package, cache_dir):
    loader = RecordingLoader()
    assert install_secondary_archives(make_package(()), cache_dir, loader) == []
    assert loader.calls == []


def test_loader_not_called_when_extraction_fails(source_package, cache_dir, monkeypatch):
    def _broken(self, *args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(SingleEntryRepackager, "repack", _broken)
    loader = RecordingLoader()

    with pytest.raises(ExtractionFailedError):
        install_secondary_archives(source_package, cache_dir, loader)
    assert loader.calls == []
