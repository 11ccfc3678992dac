# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the on-disk result store.

We verify:
  - record and capture paths follow the package's string form
  - a written record reads back as the same outcome
  - capture files are truncated on every attempt
  - clear() removes only the record
  - iter_results() walks records in name order and skips bad ones
"""

from pathlib import Path

import pytest

from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.results import store as store_module
from cargo_apply.results.outcome import BuildFailed, NotFound, RecordFormatError, Success
from cargo_apply.results.store import ResultStore
from cargo_apply.utils.paths import WorkspaceLayout


class TestPaths:
    def test_paths_are_keyed_by_string_form(self, store: ResultStore, layout: WorkspaceLayout) -> None:
        pkg = PackageIdentifier("serde", "1.0.0")
        assert store.result_path(pkg) == layout.results_dir / "serde=1.0.0" / "results.txt"
        assert store.stdout_path(pkg) == layout.stdio_dir / "serde=1.0.0" / "stdout"
        assert store.stderr_path(pkg) == layout.stdio_dir / "serde=1.0.0" / "stderr"

    def test_versioned_and_bare_are_distinct(self, store: ResultStore) -> None:
        assert store.result_path(PackageIdentifier("a")) != store.result_path(
            PackageIdentifier("a", "1")
        )


class TestRecords:
    def test_no_record_initially(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("serde")
        assert not store.has_result(pkg)
        assert store.read(pkg) is None

    def test_write_then_read(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("serde")
        outcome = Success(build_time=3.25, test_time=1.0)

        path = store.write(pkg, outcome)

        assert path.is_file()
        assert store.has_result(pkg)
        assert store.read(pkg) == outcome

    def test_record_is_plain_yaml(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("regex")
        store.write(pkg, BuildFailed(message="cargo build exited with status 101"))
        text = store.result_path(pkg).read_text(encoding="utf-8")
        assert text.startswith("outcome: build_failed")

    def test_overwrite_replaces_record(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("regex")
        store.write(pkg, NotFound())
        store.write(pkg, Success(build_time=1.0))
        assert store.read(pkg) == Success(build_time=1.0)

    def test_clear_removes_record(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("regex")
        store.write(pkg, NotFound())
        assert store.clear(pkg) is True
        assert not store.has_result(pkg)
        assert store.clear(pkg) is False

    def test_garbage_record_raises(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("regex")
        path = store.result_path(pkg)
        path.parent.mkdir(parents=True)
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(RecordFormatError):
            store.read(pkg)

    def test_no_temp_files_left_behind(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("regex")
        store.write(pkg, NotFound())
        leftovers = [p for p in store.result_path(pkg).parent.iterdir() if p.name != "results.txt"]
        assert leftovers == []

    def test_record_write_is_the_last_action(
        self, store: ResultStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        events: list[str] = []
        real_write = store_module.atomic_write

        def tracking_write(path: Path, text: str) -> None:
            real_write(path, text)
            events.append("record")

        monkeypatch.setattr(store_module, "atomic_write", tracking_write)
        monkeypatch.setattr(store_module.logger, "debug", lambda *args, **kwargs: events.append("log"))

        store.write(PackageIdentifier("regex"), NotFound())

        assert events == ["log", "record"]


class TestCapture:
    def test_capture_files_are_created_and_truncated(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("serde")
        with store.open_capture(pkg) as capture:
            capture.stdout.write(b"first attempt output\n")
            capture.stderr.write(b"first attempt errors\n")

        with store.open_capture(pkg) as capture:
            capture.stdout.write(b"second\n")

        assert store.stdout_path(pkg).read_bytes() == b"second\n"
        assert store.stderr_path(pkg).read_bytes() == b""

    def test_clear_keeps_capture_files(self, store: ResultStore) -> None:
        pkg = PackageIdentifier("serde")
        with store.open_capture(pkg) as capture:
            capture.stdout.write(b"kept\n")
        store.write(pkg, NotFound())
        store.clear(pkg)
        assert store.stdout_path(pkg).read_bytes() == b"kept\n"


class TestIterResults:
    def test_empty_store_yields_nothing(self, store: ResultStore) -> None:
        assert list(store.iter_results()) == []

    def test_results_in_name_order(self, store: ResultStore) -> None:
        store.write(PackageIdentifier("zlib"), NotFound())
        store.write(PackageIdentifier("anyhow"), Success(build_time=1.0))

        assert [name for name, _ in store.iter_results()] == ["anyhow", "zlib"]

    def test_unreadable_records_are_skipped(self, store: ResultStore, layout: WorkspaceLayout) -> None:
        store.write(PackageIdentifier("good"), NotFound())
        bad: Path = layout.results_dir / "bad" / "results.txt"
        bad.parent.mkdir(parents=True)
        bad.write_text("outcome: exploded\n", encoding="utf-8")

        assert [name for name, _ in store.iter_results()] == ["good"]

    def test_directories_without_record_are_skipped(self, store: ResultStore, layout: WorkspaceLayout) -> None:
        (layout.results_dir / "half-done").mkdir(parents=True)
        assert list(store.iter_results()) == []
