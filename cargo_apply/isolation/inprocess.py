# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
In-process isolation.

Cheaper than a child process per package, and handy when the attempt is a
Python callable (tests, custom executors). It cannot survive a hard crash of
the interpreter itself, which is why subprocess isolation is the default.
"""

from cargo_apply.isolation.boundary import AttemptFn, IsolationBoundary, contain
from cargo_apply.isolation.redirect import redirect_standard_streams
from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.results.outcome import Outcome
from cargo_apply.results.store import ResultStore


class InProcessIsolation(IsolationBoundary):
    """Run each attempt in this process with fds 1/2 sent to the capture files."""

    def __init__(self, store: ResultStore, attempt_fn: AttemptFn) -> None:
        self._store = store
        self._attempt_fn = attempt_fn

    def attempt(self, pkg: PackageIdentifier) -> Outcome:
        with self._store.open_capture(pkg) as capture:
            with redirect_standard_streams(capture.stdout, capture.stderr):
                return contain(pkg, self._attempt_fn)
