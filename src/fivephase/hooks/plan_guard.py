"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

PreToolUse hook: keeps planning phases from turning into implementation.

While no feature is in progress (.5/features/*/state.json with
"status": "in-progress"), only Explore sub-agents may be started and Write is
limited to the .5/ data directory.
"""

import json
import sys
from pathlib import Path
from typing import Optional, TextIO

from ..paths import CLAUDE_DIR_NAME, DATA_DIR_NAME
from . import ALLOW, BLOCK, read_payload, workspace_dir


def data_dirs(workspace: Path):
    return [workspace / DATA_DIR_NAME, workspace / CLAUDE_DIR_NAME / DATA_DIR_NAME]


def is_inside_data_dir(file_path: str, workspace: Path) -> bool:
    resolved = (workspace / file_path).resolve()
    for data_dir in data_dirs(workspace):
        data_dir = data_dir.resolve()
        if resolved == data_dir or data_dir in resolved.parents:
            return True
    return False


def is_implementation_mode(workspace: Path) -> bool:
    """True if any feature's state.json says it is in progress."""
    for data_dir in data_dirs(workspace):
        features = data_dir / 'features'
        if not features.is_dir():
            continue
        for state_file in sorted(features.glob('*/state.json')):
            try:
                state = json.loads(state_file.read_text(encoding='utf-8'))
            except (OSError, ValueError):
                continue
            if isinstance(state, dict) and state.get('status') == 'in-progress':
                return True
    return False


def check(payload: dict) -> Optional[str]:
    """Return the block message for a tool call, or None to allow it."""
    tool_name = payload.get('tool_name') or ''
    if tool_name not in ('Task', 'Write'):
        return None

    workspace = workspace_dir(payload)
    if is_implementation_mode(workspace):
        return None

    tool_input = payload.get('tool_input')
    if not isinstance(tool_input, dict):
        tool_input = {}

    if tool_name == 'Task':
        agent_type = tool_input.get('subagent_type') or ''
        if agent_type and agent_type != 'Explore':
            return (
                'BLOCKED: Only Explore agents are allowed during planning phases. '
                f'Attempted: subagent_type="{agent_type}". '
                'To use other agent types, start implementation with /5:implement-feature.'
            )

    if tool_name == 'Write':
        file_path = tool_input.get('file_path') or ''
        if file_path and not is_inside_data_dir(file_path, workspace):
            return (
                'BLOCKED: Writing outside .5/ is not allowed during planning phases. '
                f'Attempted: "{file_path}". '
                'Planning commands may only write to .5/features/. '
                'To write source files, start implementation with /5:implement-feature.'
            )

    return None


def main(stdin: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> int:
    payload = read_payload(stdin)
    message = check(payload)
    if message is None:
        return ALLOW
    (stderr if stderr is not None else sys.stderr).write(message)
    return BLOCK


if __name__ == '__main__':
    raise SystemExit(main())
