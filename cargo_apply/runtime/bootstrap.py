# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Run setup: everything shared by all package attempts.

The sequence is:
  1. Validate the environment (Python version, cargo and git on PATH)
  2. Create the output directory tree
  3. Mirror the registry index (clone if missing, otherwise update)

Every step is fatal on failure. Per-package recovery makes no sense when the
shared environment itself is broken, so SetupError goes straight up to the
CLI and the run ends before the first package.
"""

from cargo_apply.config.schema import RunConfig
from cargo_apply.logging.logger import get_logger
from cargo_apply.registry.index import mirror_index
from cargo_apply.runtime.environment import check_minimum_python, get_system_info, require_tool
from cargo_apply.runtime.exceptions import SetupError
from cargo_apply.utils.paths import WorkspaceLayout, ensure_directory

logger = get_logger(__name__)


def _create_directories(layout: WorkspaceLayout) -> None:
    for directory in layout.shared_directories():
        try:
            ensure_directory(directory)
        except OSError as err:
            raise SetupError(f"Cannot create directory {directory}: {err}") from err


def prepare_workspace(config: RunConfig, dry_run: bool = False) -> WorkspaceLayout:
    """
    Get the output directory ready for a run.

    In dry-run mode nothing is created or fetched: the existing tree (if any)
    is used as-is so the caller can report what a real run would do.

    Returns:
        The WorkspaceLayout for `config.out_dir`.

    Raises:
        SetupError: Any step failed.
    """
    check_minimum_python()
    layout = WorkspaceLayout.from_config(config)

    system_info = get_system_info()
    logger.info(
        "Preparing workspace",
        extra={
            "out_dir": str(layout.root),
            "dry_run": dry_run,
            "python_version": system_info.python_version,
            "platform": system_info.platform,
            "architecture": system_info.architecture,
        },
    )

    if dry_run:
        return layout

    require_tool(config.cargo, "build packages")
    needs_git = config.update_index or not layout.index_dir.is_dir()
    if needs_git:
        require_tool(config.git, "mirror the registry index")

    _create_directories(layout)

    cloned = mirror_index(
        config.index_url,
        layout.index_dir,
        layout.index_staging_dir,
        git=config.git,
        update=config.update_index,
    )
    logger.info(
        "Workspace ready",
        extra={"index": str(layout.index_dir), "fresh_clone": cloned},
    )
    return layout
