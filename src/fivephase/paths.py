"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Install root and data directory layout.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .registry import COMMAND_NAMESPACE

CLAUDE_DIR_NAME = '.claude'
DATA_DIR_NAME = '.5'
STATE_FILE_NAME = 'version.json'
CONFIG_FILE_NAME = 'config.json'
SETTINGS_FILE_NAME = 'settings.json'

# A file that every release has shipped; its presence means "installed".
MARKER_FILE = f"{COMMAND_NAMESPACE}/plan-feature.md"


@dataclass(frozen=True)
class InstallLayout:
    """
    Resolved paths for one install root.

    Local installs keep their data directory next to .claude/ in the project
    (<project>/.5); older releases kept it inside .claude/ (<project>/.claude/.5),
    which is the legacy location migrated from. Global installs only ever used
    ~/.claude/.5.
    """
    root: Path
    data_dir: Path
    legacy_data_dir: Optional[Path] = None
    is_global: bool = False

    @property
    def installation_type(self) -> str:
        return 'global' if self.is_global else 'local'

    @property
    def command_dir(self) -> Path:
        return self.root / COMMAND_NAMESPACE

    @property
    def hooks_dir(self) -> Path:
        return self.root / 'hooks'

    @property
    def marker_file(self) -> Path:
        return self.root / MARKER_FILE

    @property
    def settings_file(self) -> Path:
        return self.root / SETTINGS_FILE_NAME

    @property
    def state_file(self) -> Path:
        return self.data_dir / STATE_FILE_NAME

    @property
    def config_file(self) -> Path:
        return self.data_dir / CONFIG_FILE_NAME


def global_claude_dir(home: Optional[Path] = None) -> Path:
    """~/.claude, or $CLAUDE_CONFIG_DIR when set."""
    override = os.environ.get('CLAUDE_CONFIG_DIR')
    if override and home is None:
        return Path(override).expanduser()
    return Path(home or Path.home()) / CLAUDE_DIR_NAME


def resolve_layout(is_global: bool = False, cwd: Optional[Path] = None,
                   home: Optional[Path] = None) -> InstallLayout:
    """Build the layout for a local (project) or global (user) install."""
    if is_global:
        root = global_claude_dir(home)
        return InstallLayout(root=root, data_dir=root / DATA_DIR_NAME, is_global=True)

    project = Path(cwd or Path.cwd()).resolve()
    root = project / CLAUDE_DIR_NAME
    return InstallLayout(
        root=root,
        data_dir=project / DATA_DIR_NAME,
        legacy_data_dir=root / DATA_DIR_NAME,
    )


def workspace_data_dirs(workspace: Path):
    """Candidate data directories for hook scripts running inside a workspace."""
    workspace = Path(workspace)
    return [
        workspace / DATA_DIR_NAME,
        workspace / CLAUDE_DIR_NAME / DATA_DIR_NAME,
        global_claude_dir() / DATA_DIR_NAME,
    ]
