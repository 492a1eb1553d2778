"""Naming convention helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from SplitCode.SecondaryArchives.layout import (
    cache_file_name,
    parse_entry_index,
    secondary_entry_name,
    versioned_prefix,
)


def test_secondary_entry_name_uses_fixed_prefix_and_suffix():
    assert secondary_entry_name(2) == "classes2.dex"
    assert secondary_entry_name(17) == "classes17.dex"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("classes2.dex", 2),
        ("classes10.dex", 10),
        ("classes.dex", None),
        ("classes1.dex", None),
        ("classes02.dex", None),
        ("classes2.jar", None),
        ("lib/classes2.dex", None),
        ("resources.arsc", None),
    ],
)
def test_parse_entry_index(name, expected):
    assert parse_entry_index(name) == expected


def test_versioned_prefix_and_cache_file_name():
    prefix = versioned_prefix(Path("/data/app/com.example-1/base.apk"))
    assert prefix == "base.apk.classes"
    assert cache_file_name(prefix, 3) == "base.apk.classes3.zip"
