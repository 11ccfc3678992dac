# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Run summary writer.

After the loop, every record under results/ is tallied (cached ones
included, so the summary describes the whole output directory rather than
just this invocation) and written next to it:

    <out>/
    ├── summary.json   counts per outcome kind and the packages in each
    └── report.txt     human-readable view of the same data

summary.json is the authoritative output. report.txt is a convenience view.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone

from cargo_apply.logging.logger import get_logger
from cargo_apply.results.outcome import OUTCOME_KINDS
from cargo_apply.results.store import ResultStore
from cargo_apply.utils.filesystem import atomic_write
from cargo_apply.utils.paths import WorkspaceLayout

logger = get_logger(__name__)


@dataclass
class RunReport:
    packages_by_kind: dict[str, list[str]] = field(
        default_factory=lambda: {k: [] for k in OUTCOME_KINDS}
    )
    bench_failures: list[str] = field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        return {kind: len(names) for kind, names in self.packages_by_kind.items()}

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def collect_report(store: ResultStore) -> RunReport:
    """Tally every readable record in the store."""
    report = RunReport()
    for name, outcome in store.iter_results():
        report.packages_by_kind[outcome.kind].append(name)
        if getattr(outcome, "bench_failed", False):
            report.bench_failures.append(name)
    return report


def write_summary(store: ResultStore, layout: WorkspaceLayout) -> RunReport:
    """Write summary.json and report.txt for the output directory."""
    report = collect_report(store)

    payload = {
        "total": report.total,
        "counts": report.counts,
        "packages": report.packages_by_kind,
        "bench_failures": report.bench_failures,
    }
    atomic_write(layout.summary_path, json.dumps(payload, indent=2, sort_keys=True) + "\n")
    atomic_write(layout.report_path, format_report_text(report))

    logger.info(
        "Run summary written",
        extra={"summary": str(layout.summary_path), "total": report.total},
    )
    return report


def format_report_text(report: RunReport) -> str:
    timestamp = datetime.now(tz=timezone.utc).isoformat()
    total = report.total
    lines: list[str] = [
        "=" * 60,
        "CARGO-APPLY RUN REPORT",
        f"Generated: {timestamp}",
        "=" * 60,
        "",
        "--- OUTCOMES ---",
    ]

    for kind in OUTCOME_KINDS:
        count = report.counts[kind]
        share = count / total if total else 0.0
        lines.append(f"{kind:<16} {count:>8}  ({share:.2%})")
    lines.append(f"{'total':<16} {total:>8}")

    if report.bench_failures:
        lines.extend(["", "--- BENCHMARK FAILURES ---"])
        lines.extend(f"  {name}" for name in report.bench_failures)

    for kind in OUTCOME_KINDS:
        if kind == "success" or not report.packages_by_kind[kind]:
            continue
        lines.extend(["", f"--- {kind.upper()} ---"])
        lines.extend(f"  {name}" for name in report.packages_by_kind[kind])

    lines.extend(["", "=" * 60])
    return "\n".join(lines) + "\n"
