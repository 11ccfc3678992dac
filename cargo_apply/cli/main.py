# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for cargo-apply.

A single flat command, like cargo subcommands usually are:

    cargo-apply [options] SPEC [SPEC ...]
    cargo-apply --out work --test serde regex=1.5
    cargo-apply --release '*'

There is one hidden form, used only by the harness to re-invoke itself for
a single package in a child process:

    cargo-apply --recurse [options] -- SPEC

`--recurse` is recognised only as the very first token and never appears in
--help.
"""

import argparse
import sys
from typing import NoReturn, Optional, Sequence

from cargo_apply.cli.commands import handle_recurse, handle_run
from cargo_apply.cli.exit_codes import USER_ERROR
from cargo_apply.isolation.reexec import RECURSE_FLAG


class _ArgumentParser(argparse.ArgumentParser):
    """argparse, but bad arguments exit with USER_ERROR instead of 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(USER_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Flags that mirror a config field default to None, so that an unset flag
    never masks the value from a --config file.
    """
    parser = _ArgumentParser(
        prog="cargo-apply",
        description=(
            "Build (and optionally test and benchmark) registry packages one at a "
            "time, recording an outcome for each."
        ),
    )
    parser.add_argument(
        "specs",
        nargs="+",
        metavar="SPEC",
        help="Package to process: `name`, `name=version`, or `*` for the whole index.",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration file.")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level.",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        dest="log_file",
        help="Also write every log entry to this file.",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        dest="out_dir",
        metavar="DIR",
        help="Output directory for the index, caches and results (default: work).",
    )
    parser.add_argument(
        "-t", "--test",
        action="store_true",
        default=None,
        dest="run_tests",
        help="Run `cargo test` after a successful build.",
    )
    parser.add_argument(
        "-b", "--bench",
        action="store_true",
        default=None,
        dest="run_benchmarks",
        help="Run `cargo bench`; benchmark failures never fail a package.",
    )
    parser.add_argument(
        "--release",
        action="store_true",
        default=None,
        help="Build with the optimized profile.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        default=None,
        help="Redo packages that already have a recorded result.",
    )
    parser.add_argument(
        "--isolation",
        type=str,
        default=None,
        choices=["subprocess", "inprocess"],
        help="How each package attempt is contained (default: subprocess).",
    )
    parser.add_argument("--index-url", type=str, default=None, dest="index_url", metavar="URL")
    parser.add_argument(
        "--no-update",
        action="store_false",
        default=None,
        dest="update_index",
        help="Use the existing index mirror as-is.",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        dest="attempt_timeout_seconds",
        metavar="SECONDS",
        help="Wall-clock limit per package attempt (subprocess isolation only).",
    )
    parser.add_argument("--cargo", type=str, default=None, help="cargo executable to use.")
    parser.add_argument("--git", type=str, default=None, help="git executable to use.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="List what would be processed without attempting anything.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    Parse the command line, dispatch to the run handler (or, for a leading
    --recurse, the single-package child handler) and exit with its code.
    """
    arguments = list(sys.argv[1:] if argv is None else argv)

    recurse = bool(arguments) and arguments[0] == RECURSE_FLAG
    if recurse:
        arguments = arguments[1:]

    args = build_parser().parse_args(arguments)
    handler = handle_recurse if recurse else handle_run
    sys.exit(handler(args))


if __name__ == "__main__":
    main()
