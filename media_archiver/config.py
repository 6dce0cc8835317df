from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from .hash_utils import DEFAULT_HASH_ALGORITHM
from .media_filter import DEFAULT_MEDIA_EXTENSIONS

DEFAULT_REGION = "us-east-1"
DEFAULT_STORAGE_CLASS = "STANDARD_IA"
DEFAULT_UPLOAD_THREADS = 8


@dataclass(frozen=True)
class AppConfig:
    bucket: str
    endpoint_url: Optional[str]
    region: str
    access_key_id: Optional[str]
    secret_access_key: Optional[str]
    session_token: Optional[str]
    profile_name: Optional[str]
    request_timeout_seconds: int
    addressing_style: str
    storage_class: str
    object_prefix: str
    hash_algorithm: str
    upload_threads: int
    media_extensions: FrozenSet[str] = DEFAULT_MEDIA_EXTENSIONS

    @classmethod
    def from_env(
        cls,
        bucket: Optional[str] = None,
        upload_threads: Optional[int] = None,
        storage_class: Optional[str] = None,
    ) -> "AppConfig":
        env_bucket = _none_if_empty(os.getenv("S3_BUCKET")) or _none_if_empty(
            os.getenv("AWS_S3_BUCKET")
        )
        return cls(
            bucket=(bucket or env_bucket or "").strip(),
            endpoint_url=_none_if_empty(os.getenv("S3_ENDPOINT_URL")),
            region=os.getenv("S3_REGION", DEFAULT_REGION),
            access_key_id=_none_if_empty(os.getenv("AWS_ACCESS_KEY_ID")),
            secret_access_key=_none_if_empty(os.getenv("AWS_SECRET_ACCESS_KEY")),
            session_token=_none_if_empty(os.getenv("AWS_SESSION_TOKEN")),
            profile_name=_none_if_empty(os.getenv("AWS_PROFILE")),
            request_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 60),
            addressing_style=os.getenv("S3_ADDRESSING_STYLE", "auto"),
            storage_class=storage_class
            or os.getenv("S3_STORAGE_CLASS", DEFAULT_STORAGE_CLASS).strip(),
            object_prefix=os.getenv("OBJECT_PREFIX", "").strip().strip("/"),
            hash_algorithm=os.getenv("ARCHIVE_HASH_ALGORITHM", DEFAULT_HASH_ALGORITHM)
            .strip()
            .lower(),
            upload_threads=max(1, upload_threads)
            if upload_threads is not None
            else _env_int("UPLOAD_THREADS", DEFAULT_UPLOAD_THREADS),
            media_extensions=_env_extensions("MEDIA_EXTENSIONS", DEFAULT_MEDIA_EXTENSIONS),
        )

    def ensure_s3_ready(self) -> None:
        missing: List[str] = []
        if not self.bucket:
            missing.append("S3_BUCKET")
        if not self.profile_name:
            if not self.access_key_id:
                missing.append("AWS_ACCESS_KEY_ID")
            if not self.secret_access_key:
                missing.append("AWS_SECRET_ACCESS_KEY")
        if missing:
            raise ValueError(f"Missing required env: {', '.join(missing)}")
        if not self.storage_class:
            raise ValueError("Storage class must not be empty.")
        if self.hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")
        if hashlib.new(self.hash_algorithm).digest_size == 0:
            raise ValueError(f"Hash algorithm has no fixed digest size: {self.hash_algorithm}")


def _none_if_empty(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = int(raw.strip())
    except ValueError:
        return default
    return max(1, parsed)


def _env_extensions(name: str, default: FrozenSet[str]) -> FrozenSet[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    parsed = frozenset(
        part.strip().lstrip(".").lower() for part in raw.split(",") if part.strip().lstrip(".")
    )
    return parsed or default
