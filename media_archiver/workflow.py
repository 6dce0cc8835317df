from __future__ import annotations

import concurrent.futures
import enum
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .config import AppConfig, DEFAULT_STORAGE_CLASS, DEFAULT_UPLOAD_THREADS
from .media_filter import MediaFile, SkipCallback, collect_media_files
from .resolver import KeyResolver
from .storage import StorageClient


class Outcome(enum.Enum):
    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    COLLISION = "collision"
    FAILED = "failed"


@dataclass(frozen=True)
class FileResult:
    media: MediaFile
    outcome: Outcome
    key: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class FailedFile:
    path: Path
    error: str
    key: Optional[str] = None
    collision: bool = False


@dataclass(frozen=True)
class ArchiveSummary:
    scanned_files: int = 0
    uploaded: Mapping[Path, str] = field(default_factory=dict)
    skipped: Mapping[Path, str] = field(default_factory=dict)
    failed: Tuple[FailedFile, ...] = ()

    @property
    def collisions(self) -> Tuple[FailedFile, ...]:
        return tuple(f for f in self.failed if f.collision)

    @property
    def total_outcomes(self) -> int:
        return len(self.uploaded) + len(self.skipped) + len(self.failed)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)


ProgressCallback = Callable[[FileResult], None]


class ResultCollector:
    """Thread-safe sink for per-file results, shared by every worker of one run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: Dict[Path, FileResult] = {}
        self._scan_failures: Dict[Path, FailedFile] = {}

    def record(self, result: FileResult) -> None:
        path = result.media.path
        with self._lock:
            if path in self._results:
                raise ValueError(f"outcome already recorded for {path}")
            self._results[path] = result

    def record_scan_failure(self, path: Path, error: str) -> None:
        """Record a file or directory that could not be read during traversal."""
        with self._lock:
            self._scan_failures.setdefault(path, FailedFile(path=path, error=error))

    @property
    def scan_failures(self) -> int:
        with self._lock:
            return len(self._scan_failures)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results) + len(self._scan_failures)

    def summary(self, scanned_files: int) -> ArchiveSummary:
        with self._lock:
            results = sorted(self._results.values(), key=lambda r: str(r.media.path))
            scan_failures = list(self._scan_failures.values())

        uploaded: Dict[Path, str] = {}
        skipped: Dict[Path, str] = {}
        failed: List[FailedFile] = []
        for result in results:
            path = result.media.path
            if result.outcome is Outcome.UPLOADED:
                uploaded[path] = result.key or ""
            elif result.outcome is Outcome.SKIPPED:
                skipped[path] = result.key or ""
            else:
                failed.append(
                    FailedFile(
                        path=path,
                        error=result.error or "unknown error",
                        key=result.key,
                        collision=result.outcome is Outcome.COLLISION,
                    )
                )
        failed.extend(scan_failures)
        failed.sort(key=lambda f: str(f.path))
        return ArchiveSummary(
            scanned_files=scanned_files,
            uploaded=uploaded,
            skipped=skipped,
            failed=tuple(failed),
        )


class _KeyLocks:
    """Serializes check-then-upload per archive key within this process."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


def run_archive(
    config: AppConfig,
    roots: Sequence[Path],
    storage: Optional[StorageClient] = None,
    progress: bool = True,
    on_skip: Optional[SkipCallback] = None,
) -> ArchiveSummary:
    reporter = _make_archive_reporter(progress)
    started_at = time.monotonic()
    config.ensure_s3_ready()
    if not roots:
        raise ValueError("At least one path to archive is required.")
    for root in roots:
        if not root.exists():
            raise ValueError(f"{root} does not exist")

    collector = ResultCollector()

    def scan_error(path: Path, exc: OSError) -> None:
        _print_error(f"failed: cannot read {path}: {exc}")
        collector.record_scan_failure(path, f"{type(exc).__name__}: {exc}")

    media = collect_media_files(
        roots, config.media_extensions, on_skip=on_skip, on_error=scan_error
    )
    print(f"Archiving {len(media)} files to s3://{config.bucket}", flush=True)
    if not media:
        reporter(f"nothing to do. elapsed={time.monotonic() - started_at:.2f}s")
        return collector.summary(scanned_files=0)

    storage = storage or StorageClient(config)
    resolver = KeyResolver(storage, config.hash_algorithm, config.object_prefix)
    reporter(f"workers={config.upload_threads}, storage_class={config.storage_class}")

    archive_files(
        media,
        resolver=resolver,
        storage=storage,
        collector=collector,
        workers=config.upload_threads,
        storage_class=config.storage_class,
        on_progress=_print_progress_marker if progress else _noop_progress,
    )
    if progress:
        print(flush=True)

    summary = collector.summary(scanned_files=len(media))
    expected = len(media) + collector.scan_failures
    if summary.total_outcomes != expected:
        raise RuntimeError(
            f"recorded {summary.total_outcomes} outcomes, expected {expected}"
        )
    reporter(f"done. elapsed={time.monotonic() - started_at:.2f}s")
    return summary


def archive_files(
    files: Sequence[MediaFile],
    resolver: KeyResolver,
    storage: StorageClient,
    collector: ResultCollector,
    workers: int = DEFAULT_UPLOAD_THREADS,
    storage_class: str = DEFAULT_STORAGE_CLASS,
    on_progress: ProgressCallback | None = None,
) -> None:
    """Archive every file on a fixed-size thread pool and wait for all of them.

    Each file ends up with exactly one result in ``collector``. Errors raised
    while handling one file are recorded as that file's failure and never
    reach the other tasks.
    """
    if not files:
        return

    key_locks = _KeyLocks()
    pool_size = max(1, min(workers, len(files)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=pool_size) as executor:
        futures = [
            executor.submit(
                _archive_one,
                media,
                resolver,
                storage,
                collector,
                key_locks,
                storage_class,
                on_progress or _noop_progress,
            )
            for media in files
        ]
        for future in concurrent.futures.as_completed(futures):
            future.result()


def _archive_one(
    media: MediaFile,
    resolver: KeyResolver,
    storage: StorageClient,
    collector: ResultCollector,
    key_locks: _KeyLocks,
    storage_class: str,
    on_progress: ProgressCallback,
) -> None:
    result = _process_file(media, resolver, storage, key_locks, storage_class)
    if result.outcome is Outcome.COLLISION:
        _print_error(f"!COLLISION! {media.path} -> {result.key}: {result.error}")
    elif result.outcome is Outcome.FAILED:
        _print_error(f"failed: {media.path}: {result.error}")
    collector.record(result)
    on_progress(result)


def _process_file(
    media: MediaFile,
    resolver: KeyResolver,
    storage: StorageClient,
    key_locks: _KeyLocks,
    storage_class: str,
) -> FileResult:
    key = None
    try:
        key, hashed_size = resolver.key_and_size(media)
        with key_locks.hold(key):
            resolution = resolver.lookup(key)
            if resolution.existing is not None:
                remote_size = _content_length(resolution.existing)
                if remote_size != hashed_size:
                    return FileResult(
                        media=media,
                        outcome=Outcome.COLLISION,
                        key=key,
                        error=(
                            f"remote object is {remote_size} bytes, "
                            f"local file is {hashed_size} bytes"
                        ),
                    )
                return FileResult(media=media, outcome=Outcome.SKIPPED, key=key)

            storage.put_file(media.path, key, storage_class)
            return FileResult(media=media, outcome=Outcome.UPLOADED, key=key)
    except Exception as exc:
        return FileResult(
            media=media,
            outcome=Outcome.FAILED,
            key=key,
            error=f"{type(exc).__name__}: {exc}",
        )


def _content_length(metadata: Mapping[str, Any]) -> Optional[int]:
    value = metadata.get("ContentLength")
    if value is None:
        return None
    return int(value)


def _print_progress_marker(_: FileResult) -> None:
    print(".", end="", flush=True)


def _print_error(message: str) -> None:
    print(message, file=sys.stderr, flush=True)


def _make_archive_reporter(enabled: bool) -> Callable[[str], None]:
    if not enabled:
        return _noop_reporter

    def report(message: str) -> None:
        print(f"[archive] {message}", flush=True)

    return report


def _noop_reporter(_: str) -> None:
    return None


def _noop_progress(_: FileResult) -> None:
    return None
