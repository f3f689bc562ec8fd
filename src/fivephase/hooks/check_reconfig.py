"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

SessionStart hook: flags a stale /5:configure run.

When configuredAt in version.json is 30+ days old, or 50+ commits have landed
since configuredAtCommit, a .reconfig-reminder flag file is written next to
version.json; otherwise any old flag is removed. version.json itself is only
read.
"""

import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, TextIO

from . import ALLOW, find_state_file, load_state, read_payload, workspace_dir

logger = logging.getLogger(__name__)

FLAG_FILE_NAME = '.reconfig-reminder'
DAYS_THRESHOLD = 30
COMMIT_THRESHOLD = 50


def days_since(timestamp: str, now: datetime) -> Optional[int]:
    try:
        then = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
    except (AttributeError, ValueError):
        return None
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    return (now - then).days


def commits_since(commit: str, workspace: Path) -> int:
    try:
        result = subprocess.run(
            ['git', 'rev-list', '--count', f'{commit}..HEAD'],
            cwd=str(workspace), capture_output=True, text=True, timeout=3,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git rev-list failed in %s: %s", workspace, e)
        return 0
    if result.returncode != 0:
        return 0
    try:
        return int(result.stdout.strip())
    except ValueError:
        return 0


def should_remind(state: dict, workspace: Path, now: datetime,
                  count_commits: Callable[[str, Path], int] = commits_since) -> Optional[bool]:
    """None when the project was never configured, else whether to remind."""
    configured_at = state.get('configuredAt')
    if not configured_at:
        return None
    days = days_since(configured_at, now)
    if days is None:
        return None

    commits = 0
    commit = state.get('configuredAtCommit')
    if isinstance(commit, str) and commit:
        commits = count_commits(commit, workspace)

    return days >= DAYS_THRESHOLD or commits >= COMMIT_THRESHOLD


def main(stdin: Optional[TextIO] = None, now: Optional[datetime] = None,
         count_commits: Callable[[str, Path], int] = commits_since) -> int:
    payload = read_payload(stdin)
    workspace = workspace_dir(payload)
    state_file = find_state_file(workspace)
    state = load_state(state_file)
    if state is None:
        return ALLOW

    remind = should_remind(state, workspace, now or datetime.now(timezone.utc), count_commits)
    if remind is None:
        return ALLOW

    flag = state_file.parent / FLAG_FILE_NAME
    try:
        if remind:
            flag.write_text('1', encoding='utf-8')
        elif flag.exists():
            flag.unlink()
    except OSError as e:
        logger.debug("Could not update %s: %s", flag, e)
    return ALLOW


if __name__ == '__main__':
    raise SystemExit(main())
