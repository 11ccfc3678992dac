# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
SHA-256 helpers.

The registry index publishes a `cksum` for every crate version; downloaded
tarballs are checked against it before anything gets extracted.
"""

import hashlib
from pathlib import Path

HASH_BUFFER_SIZE = 65536  # 64 KiB


def compute_sha256(file_path: Path) -> str:
    """Return the lowercase hex SHA-256 digest of a file, read in chunks."""
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(HASH_BUFFER_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def verify_checksum(file_path: Path, expected_hash: str) -> bool:
    """Check a file against an expected hex digest (case-insensitive)."""
    return compute_sha256(file_path) == expected_hash.strip().lower()
