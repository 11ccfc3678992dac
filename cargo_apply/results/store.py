# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Result store: the on-disk checkpoint of a run.

For each package the store owns two locations, both named by the package's
string form (`serde` or `serde=1.0.0`):

  stdio/<pkg>/stdout, stdio/<pkg>/stderr   captured output of the attempt
  results/<pkg>/results.txt                the outcome record

The record is the resumability marker. It is written atomically and only
after the capture files have been closed, so its presence always means the
attempt finished and was classified. A run that dies mid-attempt leaves no
record, and the next run retries that package.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, NamedTuple, Optional

import yaml

from cargo_apply.logging.logger import get_logger
from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.results.outcome import (
    Outcome,
    RecordFormatError,
    outcome_from_record,
    outcome_to_record,
)
from cargo_apply.utils.filesystem import atomic_write, safe_delete, safe_read
from cargo_apply.utils.paths import WorkspaceLayout

logger = get_logger(__name__)

RESULT_FILENAME = "results.txt"
STDOUT_FILENAME = "stdout"
STDERR_FILENAME = "stderr"


class CaptureFiles(NamedTuple):
    """Open, truncated capture files for one attempt."""

    stdout: BinaryIO
    stderr: BinaryIO


class ResultStore:
    """Maps package identifiers to their record and stdio capture paths."""

    def __init__(self, layout: WorkspaceLayout) -> None:
        self._layout = layout

    def stdio_dir(self, pkg: PackageIdentifier) -> Path:
        return self._layout.stdio_dir / str(pkg)

    def stdout_path(self, pkg: PackageIdentifier) -> Path:
        return self.stdio_dir(pkg) / STDOUT_FILENAME

    def stderr_path(self, pkg: PackageIdentifier) -> Path:
        return self.stdio_dir(pkg) / STDERR_FILENAME

    def result_path(self, pkg: PackageIdentifier) -> Path:
        return self._layout.results_dir / str(pkg) / RESULT_FILENAME

    def has_result(self, pkg: PackageIdentifier) -> bool:
        """True iff a completion marker exists for `pkg`."""
        return self.result_path(pkg).is_file()

    def write(self, pkg: PackageIdentifier, outcome: Outcome) -> Path:
        """
        Record the outcome of a finished attempt.

        This must be the last filesystem action of the attempt. Callers close
        (or flush) the capture files before calling it.
        """
        path = self.result_path(pkg)
        text = yaml.safe_dump(
            outcome_to_record(outcome),
            default_flow_style=False,
            sort_keys=False,
        )
        logger.debug(
            "Recording result",
            extra={"package": str(pkg), "outcome": outcome.kind, "path": str(path)},
        )
        atomic_write(path, text)
        return path

    def read(self, pkg: PackageIdentifier) -> Optional[Outcome]:
        """
        Load a recorded outcome, or None if the package has no record.

        Raises:
            RecordFormatError: The record exists but cannot be understood.
        """
        path = self.result_path(pkg)
        if not path.is_file():
            return None
        return self._parse(path)

    def clear(self, pkg: PackageIdentifier) -> bool:
        """Delete the record for `pkg`. Returns whether one existed."""
        removed = safe_delete(self.result_path(pkg))
        if removed:
            logger.debug("Result cleared", extra={"package": str(pkg)})
        return removed

    @contextmanager
    def open_capture(self, pkg: PackageIdentifier) -> Iterator[CaptureFiles]:
        """
        Open the package's stdout/stderr capture files for one attempt.

        Both files are truncated: a re-attempt overwrites the previous
        output, never appends to it. The files are closed on exit.
        """
        directory = self.stdio_dir(pkg)
        directory.mkdir(parents=True, exist_ok=True)
        with open(self.stdout_path(pkg), "wb") as out_file, open(
            self.stderr_path(pkg), "wb"
        ) as err_file:
            yield CaptureFiles(stdout=out_file, stderr=err_file)

    def iter_results(self) -> Iterator[tuple[str, Outcome]]:
        """
        Walk every recorded package, in name order.

        Yields (package string, outcome) pairs. Records that cannot be parsed
        are logged and skipped.
        """
        results_dir = self._layout.results_dir
        if not results_dir.is_dir():
            return

        for entry in sorted(results_dir.iterdir()):
            path = entry / RESULT_FILENAME
            if not path.is_file():
                continue
            try:
                yield entry.name, self._parse(path)
            except RecordFormatError as err:
                logger.warning(
                    "Unreadable result record",
                    extra={"path": str(path), "error": str(err)},
                )

    @staticmethod
    def _parse(path: Path) -> Outcome:
        try:
            data = yaml.safe_load(safe_read(path))
        except yaml.YAMLError as err:
            raise RecordFormatError(f"Invalid record {path}: {err}") from err
        if not isinstance(data, dict):
            raise RecordFormatError(f"Record {path} is not a mapping")
        return outcome_from_record(data)
