"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

UserPromptSubmit hook: blocks /5: workflow commands until /5:configure has
written .5/config.json. Other prompts, and /5:configure itself, always pass.
"""

import sys
from typing import Optional, TextIO

from ..paths import CONFIG_FILE_NAME, DATA_DIR_NAME
from . import ALLOW, BLOCK, read_payload, workspace_dir

COMMAND_PREFIX = '/5:'
EXEMPT_COMMANDS = ('/5:configure',)

MESSAGE = (
    'Configuration not found. Please run /5:configure first to set up your project.\n\n'
    'The configure command will:\n'
    '  - Detect your project type and build commands\n'
    '  - Set up ticket tracking conventions\n'
    '  - Write project configuration'
)


def needs_config(prompt: str) -> bool:
    command = prompt.strip().split(maxsplit=1)[0] if prompt.strip() else ''
    return command.startswith(COMMAND_PREFIX) and command not in EXEMPT_COMMANDS


def main(stdin: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> int:
    payload = read_payload(stdin)
    prompt = payload.get('prompt')
    if not isinstance(prompt, str) or not needs_config(prompt):
        return ALLOW
    if (workspace_dir(payload) / DATA_DIR_NAME / CONFIG_FILE_NAME).is_file():
        return ALLOW
    (stderr if stderr is not None else sys.stderr).write(MESSAGE)
    return BLOCK


if __name__ == '__main__':
    raise SystemExit(main())
