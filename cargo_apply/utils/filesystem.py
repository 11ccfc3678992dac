# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Filesystem helpers for cargo-apply.

The result marker is the resumability checkpoint of the whole harness, so it
has to appear on disk all at once or not at all. `atomic_write` gets that by
writing a temp file next to the target, fsyncing it, and renaming it into
place. Rename within one directory is atomic on POSIX; a crash in the middle
leaves at worst a stray `.cargo_apply_tmp_*` file, never a half-written marker.
"""

import os
import tempfile
from pathlib import Path

TEMP_PREFIX = ".cargo_apply_tmp_"


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to `target_path` so that readers see either nothing or all of it.

    Parent directories are created on demand. The temp file lives in the same
    directory as the target so the final rename never crosses filesystems.

    Raises:
        OSError: If writing, syncing, or renaming fails. The temp file is
            removed before the error propagates.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    handle = tempfile.NamedTemporaryFile(
        mode="w",
        encoding=encoding,
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(handle.name)

    try:
        handle.write(content)
        handle.flush()
        os.fsync(handle.fileno())
        handle.close()
        os.replace(temp_path, target_path)
    except BaseException:
        handle.close()
        if temp_path.exists():
            temp_path.unlink()
        raise


def safe_read(file_path: Path, encoding: str = "utf-8") -> str:
    """Read a text file, failing loudly if the path is missing or a directory."""
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    if not file_path.is_file():
        raise IsADirectoryError(f"Expected a file, got a directory: {file_path}")
    return file_path.read_text(encoding=encoding)


def safe_delete(file_path: Path) -> bool:
    """
    Delete a file if it is there. Returns True when something was removed.

    A missing file is not an error. A file that exists but cannot be removed
    (permissions) still raises OSError.
    """
    if file_path.exists():
        file_path.unlink()
        return True
    return False
