from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .hash_utils import DEFAULT_HASH_ALGORITHM, hash_file_with_size
from .media_filter import MediaFile
from .storage import StorageClient


@dataclass(frozen=True)
class Resolution:
    key: str
    existing: Optional[Dict[str, Any]]

    @property
    def exists(self) -> bool:
        return self.existing is not None


def build_archive_key(digest: str, extension: str, prefix: str = "") -> str:
    key = f"{digest.lower()}.{extension.lower()}"
    if prefix:
        return f"{prefix.strip('/')}/{key}"
    return key


class KeyResolver:
    def __init__(
        self,
        storage: StorageClient,
        algorithm: str = DEFAULT_HASH_ALGORITHM,
        object_prefix: str = "",
    ) -> None:
        self.storage = storage
        self.algorithm = algorithm
        self.object_prefix = object_prefix

    def key_for(self, media: MediaFile) -> str:
        return self.key_and_size(media)[0]

    def key_and_size(self, media: MediaFile) -> Tuple[str, int]:
        """Hash the file once and return its key with the byte count that produced it."""
        digest, size = hash_file_with_size(media.path, self.algorithm)
        return build_archive_key(digest, media.extension, self.object_prefix), size

    def lookup(self, key: str) -> Resolution:
        return Resolution(key=key, existing=self.storage.head_object(key))

    def resolve(self, media: MediaFile) -> Resolution:
        return self.lookup(self.key_for(media))
