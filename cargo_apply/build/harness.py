# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build, test and bench harness for resolved packages.

Each stage is one cargo subprocess run against the package's manifest. The
subprocess inherits our stdout and stderr instead of having them captured:
while an attempt is in progress those descriptors already point at the
package's capture files, so cargo's (often very long) output goes straight
to disk without passing through Python.

Only three commands are ever run, all scoped to the package manifest:

  cargo build --lib   library target only, never tests/benches/examples
  cargo test
  cargo bench

No timeout is applied here. A per-attempt deadline, when configured, is
enforced by the isolation boundary around the whole attempt.
"""

import os
import subprocess
import sys
import time
from abc import ABC, abstractmethod

from cargo_apply.build.models import BuildSettings, ResolvedPackage, StageResult
from cargo_apply.logging.logger import get_logger

logger = get_logger(__name__)


class BuildToolchain(ABC):
    """The three stages the attempt sequencer needs from a build system."""

    @abstractmethod
    def compile(self, pkg: ResolvedPackage, release: bool) -> StageResult:
        ...

    @abstractmethod
    def run_tests(self, pkg: ResolvedPackage, release: bool) -> StageResult:
        ...

    @abstractmethod
    def run_benchmarks(self, pkg: ResolvedPackage, release: bool) -> StageResult:
        ...


class CargoToolchain(BuildToolchain):
    """Runs cargo with the run's shared cargo home and target directory."""

    def __init__(self, settings: BuildSettings) -> None:
        self._settings = settings

    def compile(self, pkg: ResolvedPackage, release: bool) -> StageResult:
        return self._run_cargo("build", ["build", "--lib"], pkg, release)

    def run_tests(self, pkg: ResolvedPackage, release: bool) -> StageResult:
        return self._run_cargo("test", ["test"], pkg, release)

    def run_benchmarks(self, pkg: ResolvedPackage, release: bool) -> StageResult:
        # cargo bench always uses the bench profile and rejects --release.
        return self._run_cargo("bench", ["bench"], pkg, release=False)

    def _run_cargo(
        self,
        stage: str,
        args: list[str],
        pkg: ResolvedPackage,
        release: bool,
    ) -> StageResult:
        command = [self._settings.cargo, *args, "--manifest-path", str(pkg.manifest_path)]
        if release:
            command.append("--release")

        env = {**os.environ, **self._settings.environment()}

        # Keep our own buffered output ahead of cargo's in the capture files.
        sys.stdout.flush()
        sys.stderr.flush()

        start = time.monotonic()
        try:
            result = subprocess.run(
                command,
                cwd=str(pkg.source_dir),
                env=env,
                stdin=subprocess.DEVNULL,
                check=False,
            )
        except FileNotFoundError:
            elapsed = time.monotonic() - start
            logger.error(
                "cargo not found, is Rust installed?",
                extra={"cargo": self._settings.cargo, "stage": stage},
            )
            return StageResult(
                success=False,
                exit_code=-1,
                elapsed_seconds=elapsed,
                detail=f"cargo executable not found: {self._settings.cargo}",
            )

        elapsed = time.monotonic() - start
        success = result.returncode == 0

        logger.info(
            "Stage finished",
            extra={
                "stage": stage,
                "package": str(pkg),
                "success": success,
                "exit_code": result.returncode,
                "elapsed_seconds": round(elapsed, 3),
            },
        )

        detail = "" if success else f"cargo {stage} exited with status {result.returncode}"
        return StageResult(
            success=success,
            exit_code=result.returncode,
            elapsed_seconds=elapsed,
            detail=detail,
        )
