# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for cargo-apply tests.

Fixtures here are available to every test file automatically.
We keep them minimal: an output directory layout, a result store, and a
helper that lays out a small registry index on disk.
"""

import hashlib
import io
import json
import tarfile
import textwrap
from pathlib import Path
from typing import Callable, Optional

import pytest

from cargo_apply.config.schema import RunConfig
from cargo_apply.registry.index import index_relative_path
from cargo_apply.results.store import ResultStore
from cargo_apply.utils.paths import WorkspaceLayout

REPO_ROOT = Path(__file__).resolve().parent.parent

IndexWriter = Callable[..., Path]
CrateWriter = Callable[..., str]


@pytest.fixture()
def repo_root() -> Path:
    """Checkout root, for tests that launch `python -m cargo_apply`."""
    return REPO_ROOT


@pytest.fixture()
def run_config(tmp_path: Path) -> RunConfig:
    return RunConfig(out_dir=str(tmp_path / "work"), isolation="inprocess", update_index=False)


@pytest.fixture()
def layout(run_config: RunConfig) -> WorkspaceLayout:
    return WorkspaceLayout.from_config(run_config)


@pytest.fixture()
def store(layout: WorkspaceLayout) -> ResultStore:
    return ResultStore(layout)


@pytest.fixture()
def write_index_entry() -> IndexWriter:
    """
    Return a helper that appends versions of a crate to an index directory.

    Usage: write_index_entry(index_root, "serde", ["1.0.0", "1.0.1"], cksum=..., yanked=...)
    """

    def _write(
        index_root: Path,
        name: str,
        versions: list[str],
        cksum: str = "",
        yanked: Optional[set[str]] = None,
    ) -> Path:
        path = index_root / index_relative_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        yanked = yanked or set()
        lines = [
            json.dumps({"name": name, "vers": v, "cksum": cksum, "yanked": v in yanked})
            for v in versions
        ]
        with path.open("a", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture()
def write_crate() -> CrateWriter:
    """
    Return a helper that writes a gzipped .crate tarball and returns its sha256.

    Usage: write_crate(path, "demo-0.1.0", extra={"demo-0.1.0/build.rs": b""})
    """

    def _write(path: Path, stem: str, extra: Optional[dict[str, bytes]] = None) -> str:
        name = stem.rsplit("-", 1)[0]
        files = {
            f"{stem}/Cargo.toml": f'[package]\nname = "{name}"\n'.encode(),
            f"{stem}/src/lib.rs": b"",
        }
        files.update(extra or {})
        path.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(path, "w:gz") as tar:
            for member_name, data in files.items():
                info = tarfile.TarInfo(member_name)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return hashlib.sha256(path.read_bytes()).hexdigest()

    return _write


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """The smallest useful config file, pointing the output into tmp_path."""
    config_content = textwrap.dedent(f"""\
        global:
          config_version: "1.0.0"
          log_level: "DEBUG"
        run:
          out_dir: "{tmp_path / 'configured'}"
          run_tests: true
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML, but with a key the schema does not know."""
    config_content = textwrap.dedent("""\
        run:
          out_dir: work
          parallelism: 8
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file
