# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The isolation boundary contract and its supervisor.

An isolation boundary takes one package, runs its whole attempt, and always
hands back an Outcome. Nothing the attempt does (raise, call sys.exit, get
killed by a signal) is allowed to travel past it; the run must move on to the
next package regardless.

There are two implementations:
  - SubprocessIsolation (reexec.py) re-runs the harness as a child process.
    This is the default, since a segfault or abort in native code cannot be
    survived in-process.
  - InProcessIsolation (inprocess.py) runs the attempt in this process under
    `contain`, with fds 1/2 redirected to the capture files.

The only exception that still propagates is KeyboardInterrupt: that is the
operator stopping the run, not a package failing.
"""

import traceback
from abc import ABC, abstractmethod
from typing import Callable

from cargo_apply.logging.logger import get_logger
from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.results.outcome import OUTCOME_TYPES, Crashed, Outcome

logger = get_logger(__name__)

GENERIC_CRASH_MESSAGE = "package attempt terminated abnormally"

AttemptFn = Callable[[PackageIdentifier], Outcome]


class IsolationBoundary(ABC):
    """Runs one package attempt such that it always yields an Outcome."""

    @abstractmethod
    def attempt(self, pkg: PackageIdentifier) -> Outcome:
        """
        Run the full attempt for `pkg` and classify it.

        Implementations capture the attempt's stdout/stderr into the package's
        capture files and must not raise (KeyboardInterrupt excepted).
        """
        ...


def _crash_message(exc: BaseException) -> str:
    text = str(exc).strip()
    if isinstance(exc, SystemExit):
        return f"attempt called exit({exc.code!r})"
    if text:
        return f"{type(exc).__name__}: {text}"
    return f"{GENERIC_CRASH_MESSAGE} ({type(exc).__name__})"


def contain(pkg: PackageIdentifier, attempt_fn: AttemptFn) -> Outcome:
    """
    Run `attempt_fn(pkg)` and turn any abnormal termination into Crashed.

    The traceback is printed to stderr, which during an attempt is the
    package's own capture file.
    """
    try:
        outcome = attempt_fn(pkg)
    except KeyboardInterrupt:
        raise
    except BaseException as exc:
        traceback.print_exc()
        logger.error(
            "Package attempt crashed",
            extra={"package": str(pkg), "error": repr(exc)},
        )
        return Crashed(message=_crash_message(exc))

    if not isinstance(outcome, OUTCOME_TYPES):
        return Crashed(message=f"attempt returned {type(outcome).__name__}, not an outcome")
    return outcome
