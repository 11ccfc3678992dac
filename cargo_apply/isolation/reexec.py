# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Out-of-process isolation: the harness re-invokes itself once per package.

Parent side (SubprocessIsolation):
  1. open the package's capture files (truncated)
  2. run `python -m cargo_apply --recurse <flags> -- <pkg>` with its stdout
     and stderr going straight into those files
  3. wait for it, optionally with a deadline
  4. if the child left a record, that is the outcome; otherwise the child
     died before it could classify itself, and the outcome is Crashed with
     the exit status or signal

Child side (run_single_package): run the attempt under `contain`, flush the
streams, write the record, exit 0. A child that is killed by SIGSEGV, SIGABRT
or the OOM killer never gets to the last step, which is exactly what the
parent keys on.

The child runs in its own session so a timeout can take down cargo and rustc
along with it.
"""

import os
import signal
import subprocess
import sys
from typing import Optional, Sequence

from cargo_apply.config.schema import RunConfig
from cargo_apply.isolation.boundary import AttemptFn, IsolationBoundary, contain
from cargo_apply.logging.logger import get_logger
from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.results.outcome import Crashed, Outcome, RecordFormatError
from cargo_apply.results.store import ResultStore

logger = get_logger(__name__)

RECURSE_FLAG = "--recurse"


def default_launcher() -> list[str]:
    return [sys.executable, "-m", "cargo_apply"]


def child_arguments(config: RunConfig, log_level: str) -> list[str]:
    """
    The flags a child needs to attempt one package exactly as this run would.

    Only settings that affect a single attempt are passed. Index handling,
    force and timeouts are the parent's business.
    """
    args = [
        "--out", config.out_dir,
        "--cargo", config.cargo,
        "--log-level", log_level,
    ]
    if config.run_tests:
        args.append("--test")
    if config.run_benchmarks:
        args.append("--bench")
    if config.release:
        args.append("--release")
    return args


def describe_exit(returncode: int) -> str:
    """Human description of why a child ended without a record."""
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = f"signal {-returncode}"
        return f"child process killed by {name}"
    if returncode == 0:
        return "child process exited without recording a result"
    return f"child process exited with status {returncode} without recording a result"


def _kill_session(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    proc.wait()


class SubprocessIsolation(IsolationBoundary):
    """Attempt each package in a fresh child process of the harness."""

    def __init__(
        self,
        config: RunConfig,
        store: ResultStore,
        log_level: str = "INFO",
        launcher: Optional[Sequence[str]] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._log_level = log_level
        self._launcher = list(launcher) if launcher is not None else default_launcher()

    def command_for(self, pkg: PackageIdentifier) -> list[str]:
        return [
            *self._launcher,
            RECURSE_FLAG,
            *child_arguments(self._config, self._log_level),
            "--",
            str(pkg),
        ]

    def attempt(self, pkg: PackageIdentifier) -> Outcome:
        command = self.command_for(pkg)
        timeout = self._config.attempt_timeout_seconds
        timed_out = False

        with self._store.open_capture(pkg) as capture:
            try:
                proc = subprocess.Popen(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=capture.stdout,
                    stderr=capture.stderr,
                    start_new_session=True,
                )
            except OSError as err:
                return Crashed(message=f"could not start child process: {err}")

            try:
                returncode = proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                _kill_session(proc)
                returncode = proc.returncode
                timed_out = True
            except BaseException:
                # Ctrl-C in the parent: do not leave an orphaned build behind.
                _kill_session(proc)
                raise

        try:
            recorded = self._store.read(pkg)
        except RecordFormatError as err:
            return Crashed(message=f"child wrote an unreadable result: {err}")

        if recorded is not None:
            return recorded

        if timed_out:
            logger.warning(
                "Package attempt timed out",
                extra={"package": str(pkg), "timeout_seconds": timeout},
            )
            return Crashed(message=f"timed out after {timeout} seconds")

        return Crashed(message=describe_exit(returncode))


def run_single_package(
    pkg: PackageIdentifier,
    store: ResultStore,
    attempt_fn: AttemptFn,
) -> Outcome:
    """
    Child side of the re-invocation: attempt, then record.

    The stdio of this process already is the package's capture files, so no
    redirection happens here. Streams are flushed before the record is
    written so the record stays the last thing to hit the disk.
    """
    outcome = contain(pkg, attempt_fn)
    sys.stdout.flush()
    sys.stderr.flush()
    store.write(pkg, outcome)
    return outcome
