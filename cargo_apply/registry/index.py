# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The mirrored crates.io index.

The index is a git repository with one file per crate. Each line of a crate's
file is a JSON object describing one published version:

  {"name": "serde", "vers": "1.0.0", "cksum": "<sha256>", "yanked": false, ...}

Files are laid out by name length:

  a        -> 1/a
  ab       -> 2/ab
  abc      -> 3/a/abc
  serde    -> se/rd/serde

and the root holds `config.json`, whose `dl` key says where tarballs live.

Mirroring is a plain `git clone` into a staging directory followed by a rename,
so an interrupted clone never leaves a half-populated `index/` behind.
"""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any, NamedTuple, Optional

from cargo_apply.logging.logger import get_logger
from cargo_apply.runtime.exceptions import SetupError

logger = get_logger(__name__)

INDEX_CONFIG_FILENAME = "config.json"
DEFAULT_DOWNLOAD_ROOT = "https://static.crates.io/crates"
_DOWNLOAD_MARKERS = ("{crate}", "{version}", "{prefix}", "{lowerprefix}", "{sha256-checksum}")
_GIT_TIMEOUT_SECONDS = 1800


class IndexEntry(NamedTuple):
    """One published version of a crate, as listed in the index."""

    name: str
    version: str
    checksum: str
    yanked: bool


def _prefix(name: str) -> str:
    if len(name) == 1:
        return "1"
    if len(name) == 2:
        return "2"
    if len(name) == 3:
        return f"3/{name[0]}"
    return f"{name[0:2]}/{name[2:4]}"


def index_relative_path(name: str) -> Path:
    """Where the index keeps the file for `name` (names are stored lowercase)."""
    lowered = name.lower()
    return Path(_prefix(lowered)) / lowered


class RegistryIndex:
    """Read-only view over a mirrored index directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._config: Optional[dict[str, Any]] = None

    def entries(self, name: str) -> Optional[list[IndexEntry]]:
        """
        All versions listed for `name`, in file order.

        Returns None when the index has no file for the name. Lines that are
        not valid JSON are logged and skipped.

        Raises:
            OSError: The file exists but cannot be read.
        """
        path = self.root / index_relative_path(name)
        if not path.is_file():
            return None

        result: list[IndexEntry] = []
        for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                result.append(
                    IndexEntry(
                        name=data["name"],
                        version=data["vers"],
                        checksum=data.get("cksum", ""),
                        yanked=bool(data.get("yanked", False)),
                    )
                )
            except (json.JSONDecodeError, KeyError, TypeError):
                logger.warning(
                    "Skipping malformed index line",
                    extra={"path": str(path), "line": lineno},
                )
        return result

    def download_root(self) -> str:
        if self._config is None:
            config_path = self.root / INDEX_CONFIG_FILENAME
            if config_path.is_file():
                self._config = json.loads(config_path.read_text(encoding="utf-8"))
            else:
                self._config = {}
        return str(self._config.get("dl") or DEFAULT_DOWNLOAD_ROOT)

    def download_url(self, entry: IndexEntry) -> str:
        """
        Tarball URL for one version.

        A `dl` value without any template markers gets `/{crate}/{version}/download`
        appended, matching the registry convention.
        """
        dl = self.download_root()
        if not any(marker in dl for marker in _DOWNLOAD_MARKERS):
            return f"{dl.rstrip('/')}/{entry.name}/{entry.version}/download"

        prefix = _prefix(entry.name)
        return (
            dl.replace("{crate}", entry.name)
            .replace("{version}", entry.version)
            .replace("{prefix}", prefix)
            .replace("{lowerprefix}", prefix.lower())
            .replace("{sha256-checksum}", entry.checksum)
        )


def _run_git(git: str, args: list[str], cwd: Optional[Path] = None) -> None:
    try:
        subprocess.run(
            [git, *args],
            cwd=str(cwd) if cwd is not None else None,
            check=True,
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as err:
        raise SetupError(f"git executable not found: {git}") from err
    except subprocess.CalledProcessError as err:
        raise SetupError(
            f"git {' '.join(args[:1])} failed: {(err.stderr or '').strip()}"
        ) from err
    except subprocess.TimeoutExpired as err:
        raise SetupError(
            f"git {' '.join(args[:1])} timed out after {_GIT_TIMEOUT_SECONDS} seconds"
        ) from err


def mirror_index(
    url: str,
    index_dir: Path,
    staging_dir: Path,
    git: str = "git",
    update: bool = True,
) -> bool:
    """
    Make sure a mirrored index exists at `index_dir`.

    A missing index is cloned into `staging_dir` and renamed into place. An
    existing one is fast-forwarded to the remote head when `update` is set.

    Returns:
        True if a fresh clone was made, False if an existing mirror was kept.

    Raises:
        SetupError: git is missing or any git command fails.
    """
    if index_dir.is_dir():
        if update:
            logger.info("Updating registry index", extra={"index": str(index_dir)})
            _run_git(git, ["fetch", "--depth", "1", "origin"], cwd=index_dir)
            _run_git(git, ["reset", "--hard", "FETCH_HEAD"], cwd=index_dir)
        return False

    if staging_dir.exists():
        shutil.rmtree(staging_dir)

    logger.info("Initializing registry index", extra={"url": url, "index": str(index_dir)})
    _run_git(git, ["clone", "--depth", "1", url, str(staging_dir)])
    staging_dir.rename(index_dir)
    return True
