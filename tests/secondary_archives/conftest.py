"""Shared fixtures for secondary archive tests."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable

import pytest

from SplitCode.SecondaryArchives.logging_utils import LOGGER_NAME
from SplitCode.SecondaryArchives.settings import invalidate_default_settings_cache

from archive_builders import build_package


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    def _make(indices: Iterable[int] = (2, 3), *, name: str = "app.apk", **kwargs) -> Path:
        return build_package(tmp_path / "packages" / name, indices, **kwargs)

    return _make


@pytest.fixture
def source_package(make_package) -> Path:
    return make_package((2, 3))


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "secondary-dexes"


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch):
    for key in list(os.environ):
        if key.upper().startswith("SPLITCODE_"):
            monkeypatch.delenv(key, raising=False)
    invalidate_default_settings_cache()
    logger = logging.getLogger(LOGGER_NAME)
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    saved_propagate = logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in saved_handlers:
            logger.removeHandler(handler)
            if isinstance(handler, logging.FileHandler):
                handler.close()
    logger.setLevel(saved_level)
    logger.propagate = saved_propagate
    invalidate_default_settings_cache()
