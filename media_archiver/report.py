from __future__ import annotations

import sys
from typing import List, TextIO

from .workflow import ArchiveSummary

SEPARATOR = "-" * 34


def exit_code(summary: ArchiveSummary) -> int:
    return 1 if summary.has_failures else 0


def format_report(summary: ArchiveSummary) -> List[str]:
    """Render the end-of-run summary, one entry per skipped or failed file."""
    status = "!ERRORS!" if summary.has_failures else "Done."
    headline = (
        f"{status} Archived {len(summary.uploaded)}, skipped {len(summary.skipped)}, "
        f"{len(summary.failed)} failures."
    )
    collisions = len(summary.collisions)
    if collisions:
        headline = f"{headline[:-1]} ({collisions} collisions)."

    lines = [headline]
    if summary.skipped:
        lines.append(SEPARATOR)
        lines.append("Skipped:")
        for path, key in summary.skipped.items():
            lines.append(f"{path} -> {key}")
    if summary.failed:
        lines.append(SEPARATOR)
        lines.append("Failed:")
        for failed in summary.failed:
            if failed.collision:
                lines.append(f"{failed.path} (collision at {failed.key}: {failed.error})")
            else:
                lines.append(f"{failed.path} ({failed.error})")
    return lines


def print_report(summary: ArchiveSummary, stream: TextIO | None = None) -> int:
    out = stream or sys.stdout
    for line in format_report(summary):
        print(line, file=out)
    out.flush()
    return exit_code(summary)
