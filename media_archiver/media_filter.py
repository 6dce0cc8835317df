from __future__ import annotations

import os
import stat
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Set

DEFAULT_MEDIA_EXTENSIONS: FrozenSet[str] = frozenset(
    {"jpg", "jpeg", "png", "gif", "mp4", "mov", "avi", "mpeg"}
)

SkipCallback = Callable[[Path], None]
ScanErrorCallback = Callable[[Path, OSError], None]


@dataclass(frozen=True)
class MediaFile:
    path: Path
    size: int
    extension: str


def file_extension(name: str) -> Optional[str]:
    """Return the lowercase text after the final dot, or None when there is none."""
    _, dot, ext = name.rpartition(".")
    if not dot or not ext:
        return None
    return ext.lower()


def is_hidden(path: Path) -> bool:
    if path.name.startswith("."):
        return True
    try:
        attributes = getattr(path.lstat(), "st_file_attributes", 0)
    except OSError:
        return False
    return bool(attributes & getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0))


def collect_media_files(
    roots: Iterable[Path],
    extensions: FrozenSet[str] = DEFAULT_MEDIA_EXTENSIONS,
    on_skip: Optional[SkipCallback] = None,
    on_error: Optional[ScanErrorCallback] = None,
) -> List[MediaFile]:
    """Walk every root and return the eligible media files.

    Roots may be files or directories. Hidden files and hidden directories are
    ignored without a diagnostic; visible files whose extension is missing or
    not in ``extensions`` are reported through ``on_skip`` and excluded. A
    directory that cannot be listed, or a media file that cannot be stat'd, is
    passed to ``on_error`` and traversal continues. A file reachable from
    several roots is listed once. The list is built completely before it is
    returned.
    """
    report_skip = on_skip or _print_unknown_type
    report_error = on_error or _print_scan_error
    allowed = frozenset(ext.lower() for ext in extensions)
    seen: Set[Path] = set()
    media: List[MediaFile] = []

    for root in roots:
        if not root.exists():
            raise FileNotFoundError(f"{root} does not exist")
        for path in _iter_visible_files(root, report_error):
            canonical = path.resolve()
            if canonical in seen:
                continue
            seen.add(canonical)
            ext = file_extension(path.name)
            if ext is None or ext not in allowed:
                report_skip(canonical)
                continue
            try:
                size = canonical.stat().st_size
            except OSError as exc:
                report_error(canonical, exc)
                continue
            media.append(MediaFile(path=canonical, size=size, extension=ext))
    return media


def _iter_visible_files(root: Path, report_error: ScanErrorCallback) -> Iterable[Path]:
    if not root.is_dir():
        if root.is_file() and not is_hidden(root):
            yield root
        return

    def walk_error(exc: OSError) -> None:
        report_error(Path(exc.filename) if exc.filename else root, exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=walk_error):
        base = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if not is_hidden(base / d))
        for name in sorted(filenames):
            path = base / name
            if path.is_file() and not is_hidden(path):
                yield path


def _print_unknown_type(path: Path) -> None:
    print(f"unknown file type, skipping: {path}", file=sys.stderr, flush=True)


def _print_scan_error(path: Path, exc: OSError) -> None:
    print(f"cannot read, skipping: {path}: {exc}", file=sys.stderr, flush=True)
