# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
One package attempt, stage by stage.

  resolve + download -> build -> [test] -> [bench] -> Success

The first failing stage decides the outcome. Benchmarks are the exception:
a failing `cargo bench` is logged and flagged on the Success, but never turns
a passing package into a failure.

This function runs inside the isolation boundary. It classifies the failures
it knows about and lets anything unexpected propagate, for the boundary to
record as Crashed.
"""

from functools import partial

from cargo_apply.build.harness import BuildToolchain, CargoToolchain
from cargo_apply.build.models import BuildSettings
from cargo_apply.config.schema import RunConfig
from cargo_apply.isolation.boundary import AttemptFn
from cargo_apply.logging.logger import get_logger
from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.registry.exceptions import DownloadError, PackageNotFoundError
from cargo_apply.registry.resolver import PackageResolver, RegistryResolver
from cargo_apply.results.outcome import (
    BuildFailed,
    DownloadFailed,
    NotFound,
    Outcome,
    Success,
    TestFailed,
)
from cargo_apply.utils.paths import WorkspaceLayout

logger = get_logger(__name__)


def perform_attempt(
    pkg: PackageIdentifier,
    config: RunConfig,
    resolver: PackageResolver,
    toolchain: BuildToolchain,
) -> Outcome:
    """Resolve, build, and optionally test and benchmark one package."""
    try:
        resolved = resolver.resolve(pkg)
    except PackageNotFoundError as err:
        logger.warning(str(err), extra={"package": str(pkg), "stage": "resolve"})
        return NotFound()
    except DownloadError as err:
        logger.warning(str(err), extra={"package": str(pkg), "stage": "download"})
        return DownloadFailed(cause=err.cause)

    logger.info("building", extra={"package": str(pkg), "resolved": str(resolved)})
    build = toolchain.compile(resolved, config.release)
    if not build.success:
        return BuildFailed(message=build.detail or f"build of {resolved} failed")

    test_time = None
    if config.run_tests:
        logger.info("testing", extra={"package": str(pkg)})
        tests = toolchain.run_tests(resolved, config.release)
        if not tests.success:
            return TestFailed(message=tests.detail or f"tests of {resolved} failed")
        test_time = tests.elapsed_seconds

    bench_time = None
    bench_failed = False
    if config.run_benchmarks:
        logger.info("benchmarking", extra={"package": str(pkg)})
        bench = toolchain.run_benchmarks(resolved, config.release)
        if bench.success:
            bench_time = bench.elapsed_seconds
        else:
            bench_failed = True
            logger.warning(
                "Benchmarks failed, outcome unaffected",
                extra={"package": str(pkg), "detail": bench.detail},
            )

    return Success(
        build_time=build.elapsed_seconds,
        test_time=test_time,
        bench_time=bench_time,
        bench_failed=bench_failed,
    )


def make_attempt_fn(config: RunConfig, layout: WorkspaceLayout) -> AttemptFn:
    """Bind the registry resolver and cargo toolchain for this run's config."""
    resolver = RegistryResolver(layout)
    toolchain = CargoToolchain(BuildSettings.from_config(config, layout))
    return partial(perform_attempt, config=config, resolver=resolver, toolchain=toolchain)
