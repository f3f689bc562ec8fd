"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

SessionStart hook: records whether a newer release is published.

Runs at most once per updateCheckFrequency seconds. The result goes into
latestAvailableVersion in version.json, where the statusline picks it up.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, TextIO

from ..state import dump_state
from ..update_check import fetch_latest_version
from ..versioning import is_newer
from . import ALLOW, find_state_file, load_state, read_payload, workspace_dir

logger = logging.getLogger(__name__)


def _parse_time(value) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def is_due(state: dict, now: datetime) -> bool:
    last_run = _parse_time(state.get('updateCheckLastRun'))
    if last_run is None:
        return True
    frequency = state.get('updateCheckFrequency')
    if not isinstance(frequency, (int, float)) or frequency <= 0:
        frequency = 86400
    return (now - last_run).total_seconds() >= frequency


def main(stdin: Optional[TextIO] = None,
         fetch: Optional[Callable[[], Optional[str]]] = None,
         now: Optional[datetime] = None) -> int:
    payload = read_payload(stdin)
    state_file = find_state_file(workspace_dir(payload))
    state = load_state(state_file)
    if state is None or not isinstance(state.get('installedVersion'), str):
        # not installed, legacy, or corrupt: nothing to compare against
        return ALLOW

    now = now or datetime.now(timezone.utc)
    if not is_due(state, now):
        return ALLOW

    if fetch is None:
        fetch = lambda: asyncio.run(fetch_latest_version())
    latest = fetch()

    state['updateCheckLastRun'] = now.isoformat()
    if latest and is_newer(latest, state['installedVersion']):
        state['latestAvailableVersion'] = latest
    else:
        state['latestAvailableVersion'] = None

    try:
        dump_state(state_file, state)
    except OSError as e:
        logger.debug("Could not record update check in %s: %s", state_file, e)
    return ALLOW


if __name__ == '__main__':
    raise SystemExit(main())
