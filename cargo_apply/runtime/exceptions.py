# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Fatal setup failures.

Anything that makes the shared environment unusable (output directories,
registry index, toolchain) raises SetupError. The CLI turns it into a
non-zero exit; no package is attempted after it.
"""


class SetupError(Exception):
    """The shared run environment could not be prepared."""
