# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.locks",
#   "purpose": "Advisory cross-process lock guarding cache file promotion",
#   "sections": [
#     {"id": "rename-lock", "name": "rename_lock", "anchor": "function-rename-lock", "kind": "function"},
#     {"id": "lock-metrics-snapshot", "name": "lock_metrics_snapshot", "anchor": "function-lock-metrics-snapshot", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""File-based locking for the cache directory.

Responsibilities
----------------
- Provide :func:`rename_lock`, an exclusive advisory lock on the cache
  directory's well-known lock file, held around the check-then-rename step
  that promotes a temporary file into its final cache path.
- Capture acquisition/hold timing via :func:`lock_metrics_snapshot` so
  contention between launches can be diagnosed.

Design Notes
------------
- Locks are :class:`filelock.FileLock` hard locks (``flock``/``LockFileEx``).
  The operating system drops them when the holding process exits, so a
  crashed holder cannot wedge the directory forever.
- Every acquisition builds a fresh lock object with its own file descriptor,
  which makes two threads of one process exclude each other as well. The lock
  is not re-entrant: nesting :func:`rename_lock` on the same directory
  deadlocks.
- There is no timeout; acquisition blocks until the holder releases.
- The lock file is never deleted.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque, Dict, Iterable, Iterator, Optional, Union

from filelock import FileLock

from .layout import LOCK_FILENAME

__all__ = ["lock_path_for", "rename_lock", "lock_metrics_snapshot"]

LOGGER = logging.getLogger("SplitCode.SecondaryArchives.locks")
logging.getLogger("filelock").setLevel(logging.INFO)

_DEFAULT_LOCK_MODE = 0o600

# Timing samples kept for the p95 figures; older samples are dropped.
_MAX_LOCK_SAMPLES = 1024


def _sample_buffer() -> Deque[float]:
    return deque(maxlen=_MAX_LOCK_SAMPLES)


@dataclass
class _LockMetrics:
    acquire_total: int = 0
    release_errors: int = 0
    wait_ms_sum: float = 0.0
    wait_ms_samples: Deque[float] = field(default_factory=_sample_buffer)
    hold_ms_sum: float = 0.0
    hold_ms_samples: Deque[float] = field(default_factory=_sample_buffer)


_metrics_guard = threading.RLock()
_metrics = _LockMetrics()


def lock_path_for(directory: Path) -> Path:
    """Return the lock file guarding ``directory``."""

    return Path(directory) / LOCK_FILENAME


def _record(wait_ms: float, hold_ms: float, *, release_failed: bool) -> None:
    with _metrics_guard:
        _metrics.acquire_total += 1
        _metrics.wait_ms_sum += wait_ms
        _metrics.wait_ms_samples.append(wait_ms)
        _metrics.hold_ms_sum += hold_ms
        _metrics.hold_ms_samples.append(hold_ms)
        if release_failed:
            _metrics.release_errors += 1


def _p95(samples: Iterable[float]) -> float:
    ordered = sorted(value for value in samples if value >= 0)
    if not ordered:
        return 0.0
    index = int(max(len(ordered) - 1, 0) * 0.95)
    return ordered[index]


@contextlib.contextmanager
def rename_lock(directory: Path, *, logger: Optional[logging.Logger] = None) -> Iterator[Path]:
    """Hold the exclusive advisory lock for ``directory``.

    Args:
        directory: Cache directory whose lock file should be locked. It must
            already exist.
        logger: Optional logger for acquire/release diagnostics.

    Yields:
        Path of the lock file while the lock is held.
    """

    log = logger or LOGGER
    lock_file = lock_path_for(directory)
    lock = FileLock(str(lock_file), timeout=-1, mode=_DEFAULT_LOCK_MODE, thread_local=False)
    start = time.monotonic()
    lock.acquire()
    acquired_at = time.monotonic()
    wait_ms = max((acquired_at - start) * 1000.0, 0.0)
    log.debug(
        "lock-acquired wait_ms=%.3f lock_file=%s",
        wait_ms,
        lock_file,
        extra={"stage": "lock"},
    )
    try:
        yield lock_file
    finally:
        release_failed = False
        try:
            lock.release(force=True)
        except OSError as exc:
            release_failed = True
            log.warning(
                "failed to release rename lock",
                extra={"stage": "lock", "lock_file": str(lock_file), "error": str(exc)},
            )
        hold_ms = max((time.monotonic() - acquired_at) * 1000.0, 0.0)
        _record(wait_ms, hold_ms, release_failed=release_failed)
        log.debug(
            "lock-release hold_ms=%.3f wait_ms=%.3f",
            hold_ms,
            wait_ms,
            extra={"stage": "lock"},
        )


def lock_metrics_snapshot(*, reset: bool = False) -> Dict[str, Union[int, float]]:
    """Return a snapshot of collected lock metrics, optionally clearing them."""

    global _metrics  # noqa: PLW0603

    with _metrics_guard:
        snapshot: Dict[str, Union[int, float]] = {
            "acquire_total": _metrics.acquire_total,
            "release_errors": _metrics.release_errors,
            "wait_ms_sum": _metrics.wait_ms_sum,
            "wait_ms_p95": _p95(_metrics.wait_ms_samples),
            "hold_ms_sum": _metrics.hold_ms_sum,
            "hold_ms_p95": _p95(_metrics.hold_ms_samples),
        }
        if reset:
            _metrics = _LockMetrics()
        return snapshot
