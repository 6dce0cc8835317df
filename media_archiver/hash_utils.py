from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO, Tuple

DEFAULT_HASH_ALGORITHM = "sha1"
CHUNK_SIZE = 1024 * 1024


def hash_stream(stream: BinaryIO, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    """Digest a binary stream chunk by chunk and return the lowercase hex string."""
    return hash_stream_with_size(stream, algorithm)[0]


def hash_stream_with_size(
    stream: BinaryIO, algorithm: str = DEFAULT_HASH_ALGORITHM
) -> Tuple[str, int]:
    """Return the hex digest together with the number of bytes that were hashed."""
    digest = hashlib.new(algorithm)
    size = 0
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            break
        digest.update(chunk)
        size += len(chunk)
    return digest.hexdigest(), size


def hash_file(path: Path, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    return hash_file_with_size(path, algorithm)[0]


def hash_file_with_size(path: Path, algorithm: str = DEFAULT_HASH_ALGORITHM) -> Tuple[str, int]:
    with path.open("rb") as f:
        return hash_stream_with_size(f, algorithm)
