"""Smoke tests for the developer CLI."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from SplitCode.SecondaryArchives.cli import app
from SplitCode.SecondaryArchives.verifier import IntegrityVerifier

runner = CliRunner()

# Keep console logging out of captured output.
QUIET = ["--log-level", "ERROR"]


def test_extract_prints_paths(source_package, cache_dir):
    result = runner.invoke(app, QUIET + ["extract", str(source_package), str(cache_dir)])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == [
        str(cache_dir / "app.apk.classes2.zip"),
        str(cache_dir / "app.apk.classes3.zip"),
    ]


def test_extract_json_reports_reuse(source_package, cache_dir):
    runner.invoke(app, QUIET + ["extract", str(source_package), str(cache_dir)])
    result = runner.invoke(
        app, QUIET + ["extract", "--json", str(source_package), str(cache_dir)]
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["extracted"] == []
    assert payload["reused"] == [2, 3]
    assert payload["removed"] == []


def test_extract_strict_fails_on_gap(make_package, cache_dir):
    package = make_package((2, 4))
    result = runner.invoke(app, QUIET + ["extract", "--strict", str(package), str(cache_dir)])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_inspect_json_reports_gaps(make_package):
    package = make_package((2, 3, 5))
    result = runner.invoke(app, QUIET + ["inspect", "--json", str(package)])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert [entry["index"] for entry in payload["entries"]] == [2, 3]
    assert payload["entries"][0]["name"] == "classes2.dex"
    assert payload["gaps"] == [4]
    assert payload["stray"] == [5]


def test_inspect_table(source_package):
    result = runner.invoke(app, QUIET + ["inspect", str(source_package)])
    assert result.exit_code == 0, result.output
    assert "classes2.dex" in result.output
    assert "app.apk.classes3.zip" in result.output


def test_verify_reports_status_and_exit_code(source_package, cache_dir, tmp_path):
    runner.invoke(app, QUIET + ["extract", str(source_package), str(cache_dir)])
    good = cache_dir / "app.apk.classes2.zip"

    ok = runner.invoke(app, QUIET + ["verify", str(good)])
    assert ok.exit_code == 0, ok.output
    status, fingerprint, path = ok.output.strip().split("\t")
    assert status == "ok"
    assert fingerprint == IntegrityVerifier().fingerprint(good)
    assert path == str(good)

    bad = tmp_path / "bad.zip"
    bad.write_bytes(b"garbage")
    failed = runner.invoke(app, QUIET + ["verify", str(good), str(bad)])
    assert failed.exit_code == 1
    assert [line.split("\t")[0] for line in failed.output.strip().splitlines()] == [
        "ok",
        "invalid",
    ]


def test_purge_removes_stale_versions(make_package, cache_dir):
    old = make_package((2,), name="app-1.apk")
    new = make_package((2,), name="app-2.apk")
    runner.invoke(app, QUIET + ["extract", str(old), str(cache_dir)])

    result = runner.invoke(app, QUIET + ["purge", str(new), str(cache_dir)])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == [str(cache_dir / "app-1.apk.classes2.zip")]
    assert not (cache_dir / "app-1.apk.classes2.zip").exists()


def test_bad_config_exits_with_error(tmp_path, source_package, cache_dir):
    config = tmp_path / "config.yaml"
    config.write_text("extractor:\n  max_extract_attempts: 0\n", encoding="utf-8")
    result = runner.invoke(
        app, ["--config", str(config), "extract", str(source_package), str(cache_dir)]
    )
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_bad_log_level_exits_with_error(source_package, cache_dir):
    result = runner.invoke(
        app, ["--log-level", "LOUD", "extract", str(source_package), str(cache_dir)]
    )
    assert result.exit_code == 1
