# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Package set assembly.

Turns the positional arguments of a run into the ordered list of packages to
process. Two modes:

  - wildcard (`*` anywhere in the arguments): every package file in the
    mirrored index, with no version, so resolution later picks the newest;
  - explicit: each argument parsed as `name[=version]` on its own. A bad
    argument is reported and dropped; the rest still get processed.

The list keeps input order and keeps duplicates. The driver processes exactly
what it is given.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Sequence

from cargo_apply.logging.logger import get_logger
from cargo_apply.packages.identifier import (
    WILDCARD,
    PackageIdentifier,
    SpecParseError,
    parse_package_spec,
)
from cargo_apply.runtime.exceptions import SetupError

logger = get_logger(__name__)

METADATA_SUFFIX = ".json"
HIDDEN_PREFIX = "."


@dataclass(frozen=True)
class PackageSet:
    """The packages one run will process, plus the specifiers it rejected."""

    packages: list[PackageIdentifier]
    rejected: list[SpecParseError] = field(default_factory=list)
    wildcard: bool = False

    def __len__(self) -> int:
        return len(self.packages)

    def __iter__(self) -> Iterator[PackageIdentifier]:
        return iter(self.packages)


def _is_excluded(entry_name: str) -> bool:
    """Hidden entries (.git, .index, ...) and index metadata (config.json)."""
    return entry_name.startswith(HIDDEN_PREFIX) or entry_name.endswith(METADATA_SUFFIX)


def _raise_walk_error(err: OSError) -> None:
    raise err


def enumerate_index(index_root: Path) -> list[PackageIdentifier]:
    """
    List every package file in a mirrored index.

    Excluded directories are pruned, not just skipped, so nothing under `.git/`
    is ever visited. Entries are visited in name order within each directory,
    which keeps the sequence stable from one run to the next.

    Raises:
        SetupError: If the index is missing or any part of it cannot be read.
    """
    if not index_root.is_dir():
        raise SetupError(f"Registry index not found at {index_root}")

    packages: list[PackageIdentifier] = []
    try:
        for dirpath, dirnames, filenames in os.walk(index_root, onerror=_raise_walk_error):
            dirnames[:] = sorted(d for d in dirnames if not _is_excluded(d))
            for filename in sorted(filenames):
                if _is_excluded(filename):
                    continue
                if not os.path.isfile(os.path.join(dirpath, filename)):
                    continue
                packages.append(PackageIdentifier(name=filename))
    except OSError as err:
        raise SetupError(f"Cannot read registry index at {index_root}: {err}") from err

    return packages


def parse_package_specs(specs: Sequence[str]) -> PackageSet:
    """Parse explicit specifiers, keeping the good ones and reporting the rest."""
    packages: list[PackageIdentifier] = []
    rejected: list[SpecParseError] = []

    for spec in specs:
        try:
            packages.append(parse_package_spec(spec))
        except SpecParseError as err:
            logger.warning(str(err), extra={"spec": spec})
            rejected.append(err)

    return PackageSet(packages=packages, rejected=rejected)


def assemble_package_set(specs: Sequence[str], index_root: Path) -> PackageSet:
    """
    Build the package set for a run.

    Args:
        specs: Positional arguments as given on the command line.
        index_root: Root of the mirrored registry index.

    Returns:
        A PackageSet in input (or index traversal) order.

    Raises:
        SetupError: Wildcard mode and the index cannot be read.
    """
    if any(spec.strip() == WILDCARD for spec in specs):
        packages = enumerate_index(index_root)
        logger.info(
            "Enumerated registry index",
            extra={"index": str(index_root), "packages": len(packages)},
        )
        return PackageSet(packages=packages, wildcard=True)

    return parse_package_specs(specs)
