# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path layout of the output directory.

Every location the harness reads or writes hangs off `--out`:

  <out>/index/            mirrored registry index
  <out>/.index/           temporary clone target, renamed to index/ when done
  <out>/.cargo/           cargo home shared by every build in the run
  <out>/target/           cargo target dir shared by every build in the run
  <out>/downloads/        fetched .crate tarballs
  <out>/src/              extracted package sources
  <out>/stdio/<pkg>/      captured stdout / stderr per package
  <out>/results/<pkg>/    results.txt marker per package

Components get a `WorkspaceLayout` value rather than joining paths themselves,
so repeated runs always address the same locations.
"""

from dataclasses import dataclass
from pathlib import Path

from cargo_apply.config.schema import RunConfig


def ensure_directory(path: Path) -> Path:
    """Create a directory (and parents) if needed. Returns the path for chaining."""
    path.mkdir(parents=True, exist_ok=True)
    return path


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved locations under one output root."""

    root: Path

    @classmethod
    def from_config(cls, config: RunConfig) -> "WorkspaceLayout":
        return cls(root=Path(config.out_dir))

    @property
    def index_dir(self) -> Path:
        return self.root / "index"

    @property
    def index_staging_dir(self) -> Path:
        return self.root / ".index"

    @property
    def cargo_home(self) -> Path:
        return self.root / ".cargo"

    @property
    def target_dir(self) -> Path:
        return self.root / "target"

    @property
    def downloads_dir(self) -> Path:
        return self.root / "downloads"

    @property
    def sources_dir(self) -> Path:
        return self.root / "src"

    @property
    def stdio_dir(self) -> Path:
        return self.root / "stdio"

    @property
    def results_dir(self) -> Path:
        return self.root / "results"

    @property
    def summary_path(self) -> Path:
        return self.root / "summary.json"

    @property
    def report_path(self) -> Path:
        return self.root / "report.txt"

    def shared_directories(self) -> list[Path]:
        """Directories the setup step creates before the first package."""
        return [
            self.root,
            self.cargo_home,
            self.target_dir,
            self.downloads_dir,
            self.sources_dir,
            self.stdio_dir,
            self.results_dir,
        ]
