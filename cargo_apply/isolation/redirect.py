# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Process-level stdout/stderr redirection.

cargo and everything it spawns inherit file descriptors 1 and 2 from us, and
write to them directly. Swapping `sys.stdout` would not catch any of that, so
the redirection happens one level down: the descriptors themselves are
duplicated onto the capture files for the duration of the block and put back
afterwards, on every exit path.
"""

import os
import sys
from contextlib import contextmanager
from typing import BinaryIO, Iterator

STDOUT_FD = 1
STDERR_FD = 2


def _flush_python_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        if stream is not None and not stream.closed:
            stream.flush()


@contextmanager
def redirect_standard_streams(stdout_file: BinaryIO, stderr_file: BinaryIO) -> Iterator[None]:
    """
    Point fds 1 and 2 at the given files until the block exits.

    Python-level buffers are flushed on the way in (so earlier console output
    is not dragged into the capture) and on the way out (so output from inside
    the block is not left behind for the console).
    """
    _flush_python_streams()

    saved_stdout = os.dup(STDOUT_FD)
    saved_stderr = os.dup(STDERR_FD)
    try:
        os.dup2(stdout_file.fileno(), STDOUT_FD)
        os.dup2(stderr_file.fileno(), STDERR_FD)
        yield
    finally:
        try:
            _flush_python_streams()
        finally:
            os.dup2(saved_stdout, STDOUT_FD)
            os.dup2(saved_stderr, STDERR_FD)
            os.close(saved_stdout)
            os.close(saved_stderr)
