# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Package identifiers: `name` or `name=version`.

An identifier is the unit of work for the whole harness. Its string form is
also the directory name its stdio and result record live under, which is why
neither token may contain a path separator.
"""

import re
from dataclasses import dataclass
from typing import Optional

WILDCARD = "*"
VERSION_SEPARATOR = "="

_SPEC_PATTERN = re.compile(
    r"\s*(?P<name>[^=\s/\\]+)(?:\s*=\s*(?P<version>[^=\s/\\]+))?\s*"
)


class SpecParseError(ValueError):
    """A command-line package specifier did not match `name[=version]`."""

    def __init__(self, spec: str) -> None:
        self.spec = spec
        super().__init__(
            f"invalid package name / version `{spec}`, try `foo` or `foo=0.1`"
        )


@dataclass(frozen=True)
class PackageIdentifier:
    """A package name with an optional version requirement."""

    name: str
    version: Optional[str] = None

    def __str__(self) -> str:
        if self.version is None:
            return self.name
        return f"{self.name}{VERSION_SEPARATOR}{self.version}"


def parse_package_spec(spec: str) -> PackageIdentifier:
    """
    Parse one specifier.

    Leading and trailing whitespace is ignored, as is whitespace around `=`.
    `"serde"` gives a bare name, `"serde=1.0.0"` a name plus version.
    Anything else (empty, a missing name, a second `=`) is rejected.

    Raises:
        SpecParseError: If the text is not a valid specifier.
    """
    match = _SPEC_PATTERN.fullmatch(spec)
    if match is None:
        raise SpecParseError(spec)

    name, version = match.group("name"), match.group("version")
    # `.` and `..` would turn into directory traversal under stdio/ and results/.
    if name in (".", "..") or version in (".", ".."):
        raise SpecParseError(spec)

    return PackageIdentifier(name=name, version=version)
