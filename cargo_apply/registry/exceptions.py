# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Registry resolution errors.

Both carry the identifier that was being resolved, so the diagnostics that end
up in the package's stderr capture say which request failed and why.
"""

from typing import Optional

from cargo_apply.packages.identifier import PackageIdentifier


class RegistryError(Exception):
    """Base for failures while resolving or fetching a package."""

    def __init__(self, pkg: PackageIdentifier, message: str) -> None:
        self.pkg = pkg
        super().__init__(message)


class PackageNotFoundError(RegistryError):
    """No version in the index satisfies the request."""

    def __init__(self, pkg: PackageIdentifier, reason: Optional[str] = None) -> None:
        self.reason = reason
        message = f"crate `{pkg}` not in registry"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(pkg, message)


class DownloadError(RegistryError):
    """A version was chosen but its sources could not be fetched or unpacked."""

    def __init__(self, pkg: PackageIdentifier, cause: str) -> None:
        self.cause = cause
        super().__init__(pkg, f"crate `{pkg}` failed to download: {cause}")
