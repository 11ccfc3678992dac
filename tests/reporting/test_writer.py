# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Tests for summary.json / report.txt generation."""

import json

from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.reporting.writer import collect_report, format_report_text, write_summary
from cargo_apply.results.outcome import BuildFailed, Crashed, NotFound, Success
from cargo_apply.results.store import ResultStore
from cargo_apply.utils.paths import WorkspaceLayout


def _populate(store: ResultStore) -> None:
    store.write(PackageIdentifier("anyhow"), Success(build_time=1.0))
    store.write(PackageIdentifier("criterion"), Success(build_time=2.0, bench_failed=True))
    store.write(PackageIdentifier("gone"), NotFound())
    store.write(PackageIdentifier("openssl-sys"), BuildFailed(message="linker error"))
    store.write(PackageIdentifier("weird"), Crashed(message="child process killed by SIGSEGV"))


class TestCollectReport:
    def test_counts_every_kind(self, store: ResultStore) -> None:
        _populate(store)
        report = collect_report(store)

        assert report.total == 5
        assert report.counts["success"] == 2
        assert report.counts["not_found"] == 1
        assert report.counts["build_failed"] == 1
        assert report.counts["crashed"] == 1
        assert report.counts["test_failed"] == 0
        assert report.bench_failures == ["criterion"]

    def test_empty_store(self, store: ResultStore) -> None:
        report = collect_report(store)
        assert report.total == 0
        assert "0.00%" in format_report_text(report)


class TestWriteSummary:
    def test_writes_both_files(self, store: ResultStore, layout: WorkspaceLayout) -> None:
        _populate(store)
        write_summary(store, layout)

        summary = json.loads(layout.summary_path.read_text(encoding="utf-8"))
        assert summary["total"] == 5
        assert summary["packages"]["crashed"] == ["weird"]

        report = layout.report_path.read_text(encoding="utf-8")
        assert "CARGO-APPLY RUN REPORT" in report
        assert "openssl-sys" in report
        assert "--- BENCHMARK FAILURES ---" in report
