"""Shared fixtures: an in-memory object store and a ready-to-use config."""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from media_archiver.config import AppConfig

_ENV_VARS = (
    "S3_BUCKET",
    "AWS_S3_BUCKET",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_PROFILE",
    "S3_ENDPOINT_URL",
    "S3_REGION",
    "S3_ADDRESSING_STYLE",
    "S3_STORAGE_CLASS",
    "OBJECT_PREFIX",
    "UPLOAD_THREADS",
    "HTTP_TIMEOUT_SECONDS",
    "ARCHIVE_HASH_ALGORITHM",
    "MEDIA_EXTENSIONS",
)


class FakeStore:
    """Thread-safe stand-in for StorageClient keeping objects in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.objects: Dict[str, bytes] = {}
        self.storage_classes: Dict[str, str] = {}
        self.put_keys: List[str] = []
        self.head_errors: Dict[str, Exception] = {}
        self.put_errors: Dict[str, Exception] = {}

    def head_object(self, object_key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            if object_key in self.head_errors:
                raise self.head_errors[object_key]
            data = self.objects.get(object_key)
        if data is None:
            return None
        return {"ContentLength": len(data), "ETag": '"fake"'}

    def put_file(
        self,
        local_path: Path,
        object_key: str,
        storage_class: str,
        content_type: Optional[str] = None,
    ) -> None:
        data = local_path.read_bytes()
        with self._lock:
            if object_key in self.put_errors:
                raise self.put_errors[object_key]
            self.objects[object_key] = data
            self.storage_classes[object_key] = storage_class
            self.put_keys.append(object_key)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        bucket="media-archive",
        endpoint_url=None,
        region="us-east-1",
        access_key_id="AKIDEXAMPLE",
        secret_access_key="secret",
        session_token=None,
        profile_name=None,
        request_timeout_seconds=5,
        addressing_style="auto",
        storage_class="STANDARD_IA",
        object_prefix="",
        hash_algorithm="sha1",
        upload_threads=8,
    )


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def write_file():
    def _write(path: Path, data: bytes) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    return _write
