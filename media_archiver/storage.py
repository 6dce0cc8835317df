from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .config import AppConfig

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StorageClient:
    """Minimal S3 surface used by the archiver: head an object, put a file."""

    def __init__(self, config: AppConfig, client: Any = None) -> None:
        self.config = config
        self._s3_client = client if client is not None else self._create_s3_client()

    def _create_s3_client(self) -> Any:
        kwargs = {
            "service_name": "s3",
            "endpoint_url": self.config.endpoint_url,
            "region_name": self.config.region,
            "config": BotoConfig(
                signature_version="s3v4",
                read_timeout=self.config.request_timeout_seconds,
                connect_timeout=self.config.request_timeout_seconds,
                max_pool_connections=max(10, self.config.upload_threads),
                retries={"max_attempts": 1, "mode": "standard"},
                s3={"addressing_style": self.config.addressing_style},
            ),
        }

        if self.config.access_key_id and self.config.secret_access_key:
            kwargs["aws_access_key_id"] = self.config.access_key_id
            kwargs["aws_secret_access_key"] = self.config.secret_access_key
            if self.config.session_token:
                kwargs["aws_session_token"] = self.config.session_token
            session = boto3.session.Session()
        else:
            session = boto3.session.Session(profile_name=self.config.profile_name)

        try:
            return session.client(**kwargs)
        except Exception as exc:
            raise RuntimeError(
                "Failed to create S3 client. Check credentials/endpoint/SSL environment."
            ) from exc

    def head_object(self, object_key: str) -> Optional[Dict[str, Any]]:
        """Return the object's metadata, or None when the store reports it missing.

        Only an explicit not-found answer maps to None; any other error is raised
        so that an unreachable or forbidden bucket is never mistaken for an empty one.
        """
        try:
            return self._s3_client.head_object(Bucket=self.config.bucket, Key=object_key)
        except ClientError as exc:
            if _is_not_found_error(exc):
                return None
            raise

    def put_file(
        self,
        local_path: Path,
        object_key: str,
        storage_class: str,
        content_type: Optional[str] = None,
    ) -> None:
        extra = {
            "ContentType": content_type or guess_content_type(local_path),
            "StorageClass": storage_class,
        }
        with local_path.open("rb") as body:
            self._s3_client.put_object(
                Bucket=self.config.bucket,
                Key=object_key,
                Body=body,
                **extra,
            )


def guess_content_type(path: Path) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or DEFAULT_CONTENT_TYPE


def _is_not_found_error(exc: Exception) -> bool:
    code = ""
    status_code = None
    if hasattr(exc, "response"):
        response = getattr(exc, "response", {}) or {}
        code = str((response.get("Error") or {}).get("Code", "")).strip()
        status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in {"404", "NoSuchKey", "NotFound"} or status_code == 404
