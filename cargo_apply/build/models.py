# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Data passed between the registry resolver, the cargo harness, and the
attempt sequencer. All frozen: nothing mutates them once built.
"""

from dataclasses import dataclass
from pathlib import Path

from cargo_apply.config.schema import RunConfig
from cargo_apply.utils.paths import WorkspaceLayout


@dataclass(frozen=True)
class ResolvedPackage:
    """A concrete, downloaded and extracted package version."""

    name: str
    version: str
    source_dir: Path

    @property
    def manifest_path(self) -> Path:
        return self.source_dir / "Cargo.toml"

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"


@dataclass(frozen=True)
class StageResult:
    """What came back from one cargo invocation."""

    success: bool
    exit_code: int
    elapsed_seconds: float
    detail: str = ""


@dataclass(frozen=True)
class BuildSettings:
    """
    Build-tool configuration shared by every package in a run.

    Handed to cargo as environment variables of each invocation. Every build
    reuses one cargo home (registry cache) and one target directory, so a
    dependency compiled for one package is reused by the next.
    """

    cargo: str
    cargo_home: Path
    target_dir: Path

    @classmethod
    def from_config(cls, config: RunConfig, layout: WorkspaceLayout) -> "BuildSettings":
        return cls(
            cargo=config.cargo,
            cargo_home=layout.cargo_home.resolve(),
            target_dir=layout.target_dir.resolve(),
        )

    def environment(self) -> dict[str, str]:
        return {
            "CARGO_HOME": str(self.cargo_home),
            "CARGO_TARGET_DIR": str(self.target_dir),
            "CARGO_TERM_COLOR": "never",
        }
