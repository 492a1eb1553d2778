# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.cli",
#   "purpose": "Developer CLI for extracting, inspecting, verifying, and purging secondary archives",
#   "sections": [
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "extract", "name": "extract", "anchor": "function-extract", "kind": "function"},
#     {"id": "inspect", "name": "inspect", "anchor": "function-inspect", "kind": "function"},
#     {"id": "verify", "name": "verify", "anchor": "function-verify", "kind": "function"},
#     {"id": "purge", "name": "purge", "anchor": "function-purge", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Developer CLI for the secondary archive cache.

Commands:
  - extract: Run a load pass and print the cache file paths
  - inspect: Show which secondary entries a source package contains
  - verify: Check cache files and print their fingerprints
  - purge: Remove cache files that do not belong to a source package version
"""

from __future__ import annotations

import json
import logging
import zipfile
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .cache_dir import CacheDirectory
from .discovery import scan_secondary_entries
from .errors import ConfigError, SecondaryArchiveError
from .extractor import SecondaryArchiveExtractor
from .layout import cache_file_name, versioned_prefix
from .logging_utils import setup_logging
from .settings import Settings, load_settings
from .verifier import IntegrityVerifier

app = typer.Typer(help="Secondary archive cache tools", no_args_is_help=True)
console = Console()

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


def _logger(ctx: typer.Context) -> logging.Logger:
    return ctx.obj["logger"]


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
) -> None:
    """Secondary archive cache tools."""

    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        _fail(str(exc))
    if log_level:
        level = log_level.upper()
        if level not in _LOG_LEVELS:
            _fail(f"--log-level must be one of {', '.join(sorted(_LOG_LEVELS))}")
        settings.logging = settings.logging.model_copy(update={"level": level})
    logger = setup_logging(settings.logging)
    ctx.obj = {"settings": settings, "logger": logger}


@app.command()
def extract(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Source package (zip)"),
    cache_dir: Path = typer.Argument(..., help="Cache directory"),
    strict: bool = typer.Option(False, "--strict", help="Fail on non-contiguous indices"),
    as_json: bool = typer.Option(False, "--json", help="Print the detailed result as JSON"),
) -> None:
    """Extract secondary archives and print one cache path per line."""

    settings = _settings(ctx).extractor
    if strict:
        settings = settings.model_copy(update={"strict_discovery": True})
    extractor = SecondaryArchiveExtractor(settings, logger=_logger(ctx))
    try:
        result = extractor.load_detailed(source, cache_dir)
    except SecondaryArchiveError as exc:
        _fail(str(exc))
    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return
    for path in result.paths:
        typer.echo(str(path))


@app.command()
def inspect(
    source: Path = typer.Argument(..., help="Source package (zip)"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """List the secondary entries of a source package and any index gaps."""

    try:
        with zipfile.ZipFile(source) as archive:
            report = scan_secondary_entries(archive)
    except (OSError, zipfile.BadZipFile) as exc:
        _fail(f"Cannot open source package {source}: {exc}")

    if as_json:
        payload = {
            "entries": [
                {"index": index, "name": info.filename, "size": info.file_size}
                for index, info in report.entries
            ],
            "gaps": list(report.gaps),
            "stray": list(report.stray),
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    table = Table(title=f"Secondary archives in {source.name}")
    table.add_column("Index", justify="right")
    table.add_column("Entry")
    table.add_column("Size", justify="right")
    table.add_column("Cache file")
    prefix = versioned_prefix(source)
    for index, info in report.entries:
        table.add_row(
            str(index), info.filename, str(info.file_size), cache_file_name(prefix, index)
        )
    console.print(table)
    if report.gaps:
        console.print(
            f"[yellow]Missing indices: {', '.join(str(i) for i in report.gaps)}; "
            f"unreachable: {', '.join(str(i) for i in report.stray)}[/yellow]"
        )


@app.command()
def verify(
    ctx: typer.Context,
    paths: List[Path] = typer.Argument(..., help="Cache files to verify"),
) -> None:
    """Verify cache files open as zip archives; exit 1 if any does not."""

    settings = _settings(ctx).extractor
    verifier = IntegrityVerifier(
        logger=_logger(ctx),
        verify_crc=settings.verify_crc,
        digest_algorithm=settings.digest_algorithm,
        max_digest_lookup_attempts=settings.max_digest_lookup_attempts,
    )
    invalid = 0
    for path in paths:
        ok = verifier.verify(path)
        if not ok:
            invalid += 1
        typer.echo(f"{'ok' if ok else 'invalid'}\t{verifier.fingerprint(path)}\t{path}")
    if invalid:
        raise typer.Exit(1)


@app.command()
def purge(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Source package whose version is current"),
    cache_dir: Path = typer.Argument(..., help="Cache directory"),
) -> None:
    """Remove cache entries not belonging to the current source package version."""

    try:
        freshness_ns = source.stat().st_mtime_ns
        removed = CacheDirectory(cache_dir, logger=_logger(ctx)).prepare(
            versioned_prefix(source), freshness_ns
        )
    except OSError as exc:
        _fail(str(exc))
    for path in removed:
        typer.echo(str(path))


if __name__ == "__main__":
    app()
