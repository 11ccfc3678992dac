# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Environment checks run before any package is touched.

If the interpreter is too old or a required tool is not on PATH, the run
fails up front with a clear SetupError instead of recording tens of thousands
of identical per-package failures.
"""

import platform
import shutil
import sys
from typing import NamedTuple

from cargo_apply.runtime.exceptions import SetupError

# tarfile extraction filters first shipped in 3.11.4.
MINIMUM_PYTHON = (3, 11, 4)


class SystemInfo(NamedTuple):
    """Snapshot of the current system environment."""

    python_version: str
    platform: str
    architecture: str
    hostname: str


def get_python_version() -> tuple[int, int, int]:
    """Return the current Python version as a (major, minor, micro) tuple."""
    return sys.version_info[:3]


def check_minimum_python() -> None:
    """
    Verify we're running Python 3.11.4+.

    Raises:
        SetupError: If the interpreter is older.
    """
    current = get_python_version()
    if current < MINIMUM_PYTHON:
        required = ".".join(str(part) for part in MINIMUM_PYTHON)
        running = ".".join(str(part) for part in current)
        raise SetupError(
            f"cargo-apply requires Python >= {required}, "
            f"but you're running {running}. Please upgrade."
        )


def require_tool(executable: str, purpose: str) -> str:
    """
    Locate an executable on PATH (or accept an explicit path to one).

    Returns:
        The resolved path.

    Raises:
        SetupError: The executable cannot be found.
    """
    found = shutil.which(executable)
    if found is None:
        raise SetupError(f"`{executable}` not found on PATH; it is required to {purpose}")
    return found


def get_system_info() -> SystemInfo:
    """Collect basic system information for the startup log line."""
    return SystemInfo(
        python_version=platform.python_version(),
        platform=platform.system(),
        architecture=platform.machine(),
        hostname=platform.node(),
    )
