# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Registry resolution: from `name[=requirement]` to extracted sources on disk.

Steps, each of which can end the attempt:
  1. look the name up in the mirrored index        -> PackageNotFoundError
  2. drop yanked versions, pick the highest one
     matching the requirement                        -> PackageNotFoundError
  3. download the .crate tarball                     -> DownloadError
  4. check its SHA-256 against the index `cksum`     -> DownloadError
  5. extract it, rejecting unsafe members            -> DownloadError

Requirements follow cargo: a bare version such as `1.2` means `^1.2`, and
pre-releases are only considered when the requirement names one. Matching is
done with `semantic_version`.

Downloaded tarballs and extracted trees are cached under the output directory
and reused across runs, keyed by the index checksum.
"""

import shutil
import tarfile
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from semantic_version import SimpleSpec, Version

from cargo_apply.build.models import ResolvedPackage
from cargo_apply.logging.logger import get_logger
from cargo_apply.packages.identifier import PackageIdentifier
from cargo_apply.registry.exceptions import DownloadError, PackageNotFoundError
from cargo_apply.registry.index import IndexEntry, RegistryIndex
from cargo_apply.utils.filesystem import atomic_write
from cargo_apply.utils.hashing import verify_checksum
from cargo_apply.utils.paths import WorkspaceLayout

logger = get_logger(__name__)

_USER_AGENT = "cargo-apply/1.0 (bulk build harness)"
_HTTP_TIMEOUT_SECONDS = 60
_STREAM_CHUNK_SIZE = 65_536  # 64 KiB
_MAX_MEMBER_BYTES = 100 * 1024 * 1024
_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
EXTRACTED_MARKER = ".cargo_apply_extracted"


class PackageResolver(ABC):
    """Turns an identifier into a ResolvedPackage ready to build."""

    @abstractmethod
    def resolve(self, pkg: PackageIdentifier) -> ResolvedPackage:
        """
        Raises:
            PackageNotFoundError: Nothing in the registry matches.
            DownloadError: A match exists but its sources could not be obtained.
        """
        ...


def parse_requirement(requirement: str) -> SimpleSpec:
    """
    Parse a version requirement the way cargo reads one.

    Raises:
        ValueError: The requirement is not valid.
    """
    text = requirement.strip()
    if text and text[0].isdigit():
        text = f"^{text}"
    return SimpleSpec(text)


def select_version(
    entries: list[IndexEntry],
    requirement: Optional[str],
) -> Optional[IndexEntry]:
    """
    Pick the highest non-yanked entry satisfying `requirement`.

    Entries whose version string is not valid semver are ignored.

    Raises:
        ValueError: The requirement itself is not valid.
    """
    spec = parse_requirement(requirement) if requirement is not None else None

    candidates: list[tuple[Version, IndexEntry]] = []
    for entry in entries:
        if entry.yanked:
            continue
        try:
            version = Version(entry.version)
        except ValueError:
            continue
        if spec is None:
            if version.prerelease:
                continue
        elif not spec.match(version):
            continue
        candidates.append((version, entry))

    if not candidates:
        return None
    return max(candidates, key=lambda pair: pair[0])[1]


def _is_safe_tar_member(member: tarfile.TarInfo, extract_dir: Path) -> bool:
    """Reject absolute paths, `..`, links, and oversized files."""
    if member.name.startswith("/") or member.name.startswith("\\"):
        return False
    if ".." in member.name.split("/"):
        return False

    resolved = (extract_dir / member.name).resolve()
    try:
        resolved.relative_to(extract_dir.resolve())
    except ValueError:
        return False

    if member.issym() or member.islnk():
        return False
    if member.isfile() and member.size > _MAX_MEMBER_BYTES:
        return False
    return True


def safe_extract_tarball(tarball_path: Path, extract_dir: Path) -> int:
    """Extract a gzipped tarball member by member. Returns the file count."""
    extract_dir.mkdir(parents=True, exist_ok=True)
    file_count = 0

    with tarfile.open(tarball_path, "r:gz") as tar:
        for member in tar.getmembers():
            if not _is_safe_tar_member(member, extract_dir):
                logger.warning("Skipping unsafe tar member", extra={"member": member.name})
                continue
            tar.extract(member, path=extract_dir, set_attrs=False, filter="data")
            if member.isfile():
                file_count += 1

    return file_count


class RegistryResolver(PackageResolver):
    """Resolves against a mirrored index and fetches tarballs over HTTP."""

    def __init__(
        self,
        layout: WorkspaceLayout,
        index: Optional[RegistryIndex] = None,
        max_retries: int = 3,
        backoff_seconds: float = 2.0,
    ) -> None:
        self._layout = layout
        self._index = index if index is not None else RegistryIndex(layout.index_dir)
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds

    def resolve(self, pkg: PackageIdentifier) -> ResolvedPackage:
        try:
            entries = self._index.entries(pkg.name)
        except OSError as err:
            raise DownloadError(pkg, f"cannot read index entry: {err}") from err

        if entries is None:
            raise PackageNotFoundError(pkg)

        try:
            entry = select_version(entries, pkg.version)
        except ValueError as err:
            raise PackageNotFoundError(pkg, f"invalid version requirement `{pkg.version}`") from err

        if entry is None:
            raise PackageNotFoundError(pkg, "no matching version")

        logger.info(
            "Resolved package",
            extra={"package": str(pkg), "crate": entry.name, "version": entry.version},
        )
        source_dir = self._fetch(pkg, entry)
        return ResolvedPackage(name=entry.name, version=entry.version, source_dir=source_dir)

    def _fetch(self, pkg: PackageIdentifier, entry: IndexEntry) -> Path:
        """Download, verify and extract one version, reusing earlier work."""
        stem = f"{entry.name}-{entry.version}"
        extract_dir = self._layout.sources_dir / stem
        crate_root = extract_dir / stem
        marker = extract_dir / EXTRACTED_MARKER

        if marker.is_file() and marker.read_text(encoding="utf-8").strip() == entry.checksum:
            return crate_root

        try:
            url = self._index.download_url(entry)
        except ValueError as err:
            raise DownloadError(pkg, f"unreadable index config: {err}") from err

        tarball = self._layout.downloads_dir / f"{stem}.crate"
        try:
            if not (tarball.is_file() and entry.checksum and verify_checksum(tarball, entry.checksum)):
                self._download(url, tarball)

            if entry.checksum and not verify_checksum(tarball, entry.checksum):
                tarball.unlink()
                raise DownloadError(pkg, f"checksum mismatch for {url}")

            if extract_dir.exists():
                shutil.rmtree(extract_dir)
            file_count = safe_extract_tarball(tarball, extract_dir)
        except (OSError, tarfile.TarError) as err:
            if extract_dir.exists():
                shutil.rmtree(extract_dir, ignore_errors=True)
            raise DownloadError(pkg, str(err)) from err
        except RuntimeError as err:
            raise DownloadError(pkg, str(err)) from err

        if not (crate_root / "Cargo.toml").is_file():
            raise DownloadError(pkg, f"archive {tarball.name} has no {stem}/Cargo.toml")

        atomic_write(marker, entry.checksum)
        logger.debug(
            "Package sources ready",
            extra={"package": str(pkg), "path": str(crate_root), "files": file_count},
        )
        return crate_root

    def _download(self, url: str, target_path: Path) -> None:
        """Stream `url` to `target_path` via a temp file, retrying transient failures."""
        last_error: Optional[Exception] = None
        backoff = self._backoff_seconds

        for attempt in range(1, self._max_retries + 1):
            try:
                self._stream_once(url, target_path)
                return
            except HTTPError as exc:
                last_error = exc
                if exc.code not in _RETRYABLE_STATUS:
                    raise RuntimeError(f"HTTP {exc.code} fetching {url}") from exc
            except (URLError, OSError) as exc:
                last_error = exc

            logger.warning(
                "Download failed, retrying",
                extra={"url": url, "attempt": attempt, "error": str(last_error)},
            )
            if attempt < self._max_retries:
                time.sleep(backoff)
                backoff *= 2

        raise RuntimeError(
            f"download failed after {self._max_retries} attempts: {url} ({last_error})"
        ) from last_error

    @staticmethod
    def _stream_once(url: str, target_path: Path) -> None:
        target_path.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=str(target_path.parent),
            prefix=".cargo_apply_dl_",
            suffix=".tmp",
            delete=False,
        )
        temp_path = Path(handle.name)

        try:
            request = Request(url, headers={"User-Agent": _USER_AGENT}, method="GET")
            with urlopen(request, timeout=_HTTP_TIMEOUT_SECONDS) as response:
                while True:
                    chunk = response.read(_STREAM_CHUNK_SIZE)
                    if not chunk:
                        break
                    handle.write(chunk)
            handle.flush()
            handle.close()
            temp_path.rename(target_path)
        except BaseException:
            handle.close()
            if temp_path.exists():
                temp_path.unlink()
            raise
