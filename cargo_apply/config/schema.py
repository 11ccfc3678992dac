# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Configuration schemas for cargo-apply.

Every section is a frozen pydantic model. A run's configuration is built once
(config file merged with command-line flags), validated, and then handed by
value to every component. Nothing reads configuration from global state after
that point, and nothing can mutate it.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown keys fail immediately
  - validate_default=True: defaults are type-checked too
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_INDEX_URL = "https://github.com/rust-lang/crates.io-index"


class GlobalConfig(BaseModel):
    """Cross-cutting settings: schema version and logging."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        default="1.0.0",
        description="Schema version for compatibility tracking",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum level written by every cargo_apply logger",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path that receives a copy of every log entry",
    )


class RunConfig(BaseModel):
    """
    Everything one harness run needs to know.

    The first five fields are the core knobs (output root, optional stages,
    build profile, force). The rest control how the shared environment is
    prepared and how each package attempt is isolated.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    out_dir: str = Field(
        default="work",
        description="Root of all generated state: index, caches, stdio, results",
    )
    run_tests: bool = Field(default=False, description="Run `cargo test` after a successful build")
    run_benchmarks: bool = Field(
        default=False,
        description="Run `cargo bench` after build/test; failures are informational only",
    )
    release: bool = Field(default=False, description="Use the optimized build profile")
    force: bool = Field(
        default=False,
        description="Delete and redo any existing result for a touched package",
    )
    isolation: Literal["subprocess", "inprocess"] = Field(
        default="subprocess",
        description="How each package attempt is contained",
    )
    index_url: str = Field(
        default=DEFAULT_INDEX_URL,
        description="Git URL of the registry index to mirror under <out>/index",
    )
    update_index: bool = Field(
        default=True,
        description="Fetch the latest index before the run when a mirror already exists",
    )
    attempt_timeout_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        description="Wall-clock limit per package attempt (subprocess isolation only); none by default",
    )
    cargo: str = Field(default="cargo", description="cargo executable to invoke")
    git: str = Field(default="git", description="git executable used to mirror the index")


class ApplyConfig(BaseModel):
    """
    Top-level container for a YAML config file.

    Both sections are optional in the file; missing ones take their defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    run: RunConfig = Field(default_factory=RunConfig)
