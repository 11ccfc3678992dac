# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for filesystem utilities: atomic writes, safe reads, safe deletes, and
the output directory layout.

Atomic writes are tested by verifying that the target file either has the full
new content or doesn't exist at all.
"""

from pathlib import Path

import pytest

from cargo_apply.config.schema import RunConfig
from cargo_apply.utils.filesystem import TEMP_PREFIX, atomic_write, safe_delete, safe_read
from cargo_apply.utils.hashing import compute_sha256, verify_checksum
from cargo_apply.utils.paths import WorkspaceLayout


class TestAtomicWrite:
    def test_writes_content_successfully(self, tmp_path: Path) -> None:
        target = tmp_path / "output.txt"
        atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "results" / "serde=1.0.0" / "results.txt"
        atomic_write(target, "outcome: not_found\n")
        assert target.read_text(encoding="utf-8") == "outcome: not_found\n"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "overwrite.txt"
        atomic_write(target, "first version")
        atomic_write(target, "second version")
        assert target.read_text(encoding="utf-8") == "second version"

    def test_no_leftover_temp_files_on_success(self, tmp_path: Path) -> None:
        atomic_write(tmp_path / "clean.txt", "clean write")
        assert list(tmp_path.glob(f"{TEMP_PREFIX}*")) == []

    def test_failed_write_leaves_nothing(self, tmp_path: Path) -> None:
        target = tmp_path / "never.txt"
        with pytest.raises(UnicodeEncodeError):
            atomic_write(target, "snowman ☃", encoding="ascii")
        assert not target.exists()
        assert list(tmp_path.glob(f"{TEMP_PREFIX}*")) == []


class TestSafeRead:
    def test_reads_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "readable.txt"
        target.write_text("read me", encoding="utf-8")
        assert safe_read(target) == "read me"

    def test_raises_on_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            safe_read(tmp_path / "missing.txt")

    def test_raises_on_directory(self, tmp_path: Path) -> None:
        with pytest.raises(IsADirectoryError):
            safe_read(tmp_path)


class TestSafeDelete:
    def test_deletes_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "deleteme.txt"
        target.write_text("delete me", encoding="utf-8")
        assert safe_delete(target) is True
        assert not target.exists()

    def test_returns_false_for_missing_file(self, tmp_path: Path) -> None:
        assert safe_delete(tmp_path / "nonexistent.txt") is False


class TestChecksums:
    def test_known_digest(self, tmp_path: Path) -> None:
        target = tmp_path / "abc.txt"
        target.write_bytes(b"abc")
        digest = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        assert compute_sha256(target) == digest
        assert verify_checksum(target, digest.upper())
        assert not verify_checksum(target, "0" * 64)


class TestWorkspaceLayout:
    def test_directories_hang_off_out_dir(self, tmp_path: Path) -> None:
        layout = WorkspaceLayout.from_config(RunConfig(out_dir=str(tmp_path / "work")))
        root = tmp_path / "work"
        assert layout.index_dir == root / "index"
        assert layout.index_staging_dir == root / ".index"
        assert layout.cargo_home == root / ".cargo"
        assert layout.stdio_dir == root / "stdio"
        assert layout.results_dir == root / "results"
        assert layout.summary_path == root / "summary.json"

    def test_index_is_not_a_shared_directory(self, tmp_path: Path) -> None:
        layout = WorkspaceLayout.from_config(RunConfig(out_dir=str(tmp_path)))
        assert layout.index_dir not in layout.shared_directories()
        assert layout.results_dir in layout.shared_directories()
