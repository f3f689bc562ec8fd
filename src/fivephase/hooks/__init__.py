"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Hook scripts run by Claude Code. Each reads one JSON payload on stdin.
Exit status 0 lets the tool call proceed; 2 blocks it with the stderr message.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from ..paths import STATE_FILE_NAME, workspace_data_dirs

ALLOW = 0
BLOCK = 2


def read_payload(stdin: Optional[TextIO] = None) -> Dict[str, Any]:
    """Parse the hook payload; empty or malformed input gives an empty dict."""
    stream = stdin if stdin is not None else sys.stdin
    try:
        raw = stream.read()
    except (OSError, ValueError):
        return {}
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def workspace_dir(payload: Dict[str, Any]) -> Path:
    workspace = payload.get('workspace')
    current = workspace.get('current_dir') if isinstance(workspace, dict) else None
    return Path(payload.get('cwd') or current or os.getcwd())


def find_state_file(workspace: Path) -> Optional[Path]:
    for data_dir in workspace_data_dirs(workspace):
        candidate = data_dir / STATE_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def load_state(path: Optional[Path]) -> Optional[Dict[str, Any]]:
    if path is None:
        return None
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None
