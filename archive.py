#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from media_archiver.config import AppConfig
from media_archiver.report import print_report
from media_archiver.storage import StorageClient
from media_archiver.workflow import run_archive


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Archive photos and videos to S3-compatible storage, deduplicated by content hash."
    )
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        metavar="PATH",
        help="File or directory to archive. Directories are scanned recursively.",
    )
    parser.add_argument(
        "--bucket",
        default=None,
        help="Target bucket. Default from env S3_BUCKET or AWS_S3_BUCKET.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of files archived in parallel. Default from env UPLOAD_THREADS or 8.",
    )
    parser.add_argument(
        "--storage-class",
        default=None,
        help="Storage class requested for uploaded objects. Default from env S3_STORAGE_CLASS or STANDARD_IA.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Disable progress output and only print the final summary.",
    )
    args = parser.parse_args(argv)
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    return args


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    try:
        config = AppConfig.from_env(
            bucket=args.bucket,
            upload_threads=args.workers,
            storage_class=args.storage_class,
        )
        config.ensure_s3_ready()
        for path in args.paths:
            if not path.exists():
                raise ValueError(f"{path} does not exist")
        summary = run_archive(
            config=config,
            roots=args.paths,
            storage=StorageClient(config),
            progress=not args.quiet,
        )
    except Exception as exc:
        print(f"archive failed: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    raise SystemExit(print_report(summary))


if __name__ == "__main__":
    main()
