"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Statusline: model | directory | context usage [| update available].
"""

import math
import sys
from pathlib import Path
from typing import Optional, TextIO

import click

from ..versioning import is_newer
from . import ALLOW, find_state_file, load_state, read_payload, workspace_dir

BAR_SEGMENTS = 10


def context_bar(remaining_percentage) -> str:
    """Used-context bar, colored by how full the window is."""
    remaining = round(float(remaining_percentage))
    used = max(0, min(100, 100 - remaining))
    filled = used // BAR_SEGMENTS
    bar = '█' * filled + '░' * (BAR_SEGMENTS - filled)
    text = f"{bar} {used}%"

    if used < 50:
        return click.style(text, fg='green')
    if used < 65:
        return click.style(text, fg='yellow')
    if used < 80:
        return click.style(text, fg=208)
    return click.style(f"💀 {text}", fg='red', blink=True)


def update_notice(state: Optional[dict]) -> str:
    if not state:
        return ''
    latest = state.get('latestAvailableVersion')
    installed = state.get('installedVersion')
    if isinstance(latest, str) and isinstance(installed, str) and is_newer(latest, installed):
        return click.style(f"⬆ 5-phase {latest}", fg='yellow')
    return ''


def _section(payload: dict, key: str) -> dict:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def render(payload: dict) -> str:
    model = _section(payload, 'model').get('display_name') or 'Claude'
    workspace = workspace_dir(payload)
    short_dir = str(workspace).replace(str(Path.home()), '~', 1)

    parts = [click.style(model, fg='cyan'), click.style(short_dir, fg='bright_black')]
    line = ' | '.join(parts)

    remaining = _section(payload, 'context_window').get('remaining_percentage')
    if isinstance(remaining, (int, float)) and not isinstance(remaining, bool) \
            and math.isfinite(remaining):
        line += ' ' + context_bar(remaining)

    notice = update_notice(load_state(find_state_file(workspace)))
    if notice:
        line += ' | ' + notice
    return line


def main(stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    payload = read_payload(stdin)
    if not payload:
        return ALLOW
    out = stdout if stdout is not None else sys.stdout
    out.write(render(payload))
    return ALLOW


if __name__ == '__main__':
    raise SystemExit(main())
