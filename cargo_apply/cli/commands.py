# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Command handlers for the cargo-apply CLI.

handle_run is the normal entry: configure, prepare the workspace, assemble
the package set and drive it. handle_recurse is the child side of subprocess
isolation and attempts exactly one package.

No print() calls. Everything goes through the structured logger.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Optional

from cargo_apply.build.attempt import make_attempt_fn
from cargo_apply.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, USER_ERROR
from cargo_apply.config.exceptions import ConfigError
from cargo_apply.config.loader import build_config
from cargo_apply.config.schema import ApplyConfig, RunConfig
from cargo_apply.isolation.boundary import IsolationBoundary
from cargo_apply.isolation.inprocess import InProcessIsolation
from cargo_apply.isolation.reexec import SubprocessIsolation, run_single_package
from cargo_apply.logging.logger import configure_package_loggers, get_logger
from cargo_apply.packages.assembler import assemble_package_set
from cargo_apply.packages.identifier import SpecParseError, parse_package_spec
from cargo_apply.reporting.writer import write_summary
from cargo_apply.results.store import ResultStore
from cargo_apply.runner.driver import Driver
from cargo_apply.runtime.bootstrap import prepare_workspace
from cargo_apply.runtime.exceptions import SetupError
from cargo_apply.utils.paths import WorkspaceLayout

_RUN_FIELDS = (
    "out_dir",
    "run_tests",
    "run_benchmarks",
    "release",
    "force",
    "isolation",
    "index_url",
    "update_index",
    "attempt_timeout_seconds",
    "cargo",
    "git",
)


def _run_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {name: getattr(args, name, None) for name in _RUN_FIELDS}


def _load_config(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[ApplyConfig], logging.Logger]:
    """
    Merge --config with the flags and set up logging from the result.

    Returns a tuple of (exit_code, config, logger). If exit_code is not
    SUCCESS, the caller should return it immediately.
    """
    config_path = Path(args.config) if args.config is not None else None
    try:
        config = build_config(
            config_path,
            run_overrides=_run_overrides(args),
            global_overrides={"log_level": args.log_level, "log_file": args.log_file},
        )
    except ConfigError as err:
        logger = get_logger(f"cargo_apply.cli.{command_name}", log_level=args.log_level or "INFO")
        logger.error("Configuration error", extra={"command": command_name, "error": str(err)})
        return CONFIG_ERROR, None, logger

    log_level = config.global_config.log_level
    log_file = config.global_config.log_file
    logger = get_logger(f"cargo_apply.cli.{command_name}", log_level=log_level)
    try:
        configure_package_loggers(
            log_level,
            log_file=Path(log_file) if log_file is not None else None,
        )
    except OSError as err:
        logger.error("Cannot open log file", extra={"log_file": log_file, "error": str(err)})
        return CONFIG_ERROR, None, logger
    return SUCCESS, config, logger


def _make_boundary(
    config: RunConfig,
    store: ResultStore,
    layout: WorkspaceLayout,
    log_level: str,
) -> IsolationBoundary:
    if config.isolation == "inprocess":
        return InProcessIsolation(store, make_attempt_fn(config, layout))
    return SubprocessIsolation(config, store, log_level=log_level)


def handle_run(args: argparse.Namespace) -> int:
    """Process every requested package, skipping those already recorded."""
    exit_code, apply_config, logger = _load_config(args, "run")
    if exit_code != SUCCESS:
        return exit_code

    config = apply_config.run
    logger.info(
        "Run started",
        extra={"specs": len(args.specs), "out_dir": config.out_dir, "dry_run": args.dry_run},
    )

    try:
        layout = prepare_workspace(config, dry_run=args.dry_run)
        package_set = assemble_package_set(args.specs, layout.index_dir)
    except (SetupError, OSError) as err:
        logger.error("Setup failed", extra={"error": str(err)})
        return RUNTIME_ERROR

    if len(package_set) == 0 and package_set.rejected:
        logger.error(
            "No valid package specifiers",
            extra={"rejected": [err.spec for err in package_set.rejected]},
        )
        return USER_ERROR

    store = ResultStore(layout)
    log_level = apply_config.global_config.log_level
    driver = Driver(config, store, _make_boundary(config, store, layout, log_level))

    if args.dry_run:
        planned = driver.plan(package_set)
        logger.info(
            "Dry run complete",
            extra={
                "packages": len(planned),
                "cached": sum(1 for item in planned if item.cached),
            },
        )
        return SUCCESS

    try:
        summary = driver.run(package_set)
        write_summary(store, layout)
    except KeyboardInterrupt:
        logger.warning("Interrupted, rerun with the same arguments to resume")
        return RUNTIME_ERROR
    except OSError as err:
        logger.error("Runtime error", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    logger.info(
        "Run completed",
        extra={
            "attempted": summary.attempted,
            "cached": summary.cached,
            "rejected": len(package_set.rejected),
        },
    )
    return SUCCESS


def handle_recurse(args: argparse.Namespace) -> int:
    """Attempt one package in this process and record its outcome."""
    exit_code, apply_config, logger = _load_config(args, "recurse")
    if exit_code != SUCCESS:
        return exit_code

    if len(args.specs) != 1:
        logger.error("Re-invocation takes exactly one package", extra={"specs": args.specs})
        return USER_ERROR

    try:
        pkg = parse_package_spec(args.specs[0])
    except SpecParseError as err:
        logger.error(str(err), extra={"spec": err.spec})
        return USER_ERROR

    config = apply_config.run
    layout = WorkspaceLayout.from_config(config)
    store = ResultStore(layout)
    run_single_package(pkg, store, make_attempt_fn(config, layout))
    return SUCCESS
