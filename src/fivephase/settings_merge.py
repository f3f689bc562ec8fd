"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Reconciles the packaged settings.json with the user's .claude/settings.json.

Ordinary keys follow "user always wins": a package value only fills in a key
the user does not have. Hook registration arrays are merged additively by
command identity, so new package hooks get installed without duplicating or
dropping hooks the user registered.
"""

import copy
import json
import logging
import shlex
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .paths import InstallLayout

logger = logging.getLogger(__name__)

REGISTRATION_KEYS = frozenset([
    'hooks',
    'PreToolUse',
    'PostToolUse',
    'UserPromptSubmit',
    'Notification',
    'Stop',
    'SubagentStop',
    'PreCompact',
    'SessionStart',
    'SessionEnd',
])

LOCAL_HOOKS_PREFIX = '.claude/hooks/'

# Interpreter named in the packaged settings.json hook commands.
PACKAGED_INTERPRETER = 'python3'


def registration_identity(entry: Any):
    """
    Logical identity of a registration entry.

    A plain command entry ({"type": "command", "command": ...}) is identified by
    its command. A matcher group ({"matcher": ..., "hooks": [...]}) is identified
    by the commands it runs, so changing the matcher does not register a copy.
    """
    if isinstance(entry, dict):
        command = entry.get('command')
        if isinstance(command, str):
            return command
        nested = entry.get('hooks')
        if isinstance(nested, list):
            commands = tuple(
                h.get('command') for h in nested
                if isinstance(h, dict) and isinstance(h.get('command'), str)
            )
            if commands:
                return commands
    return json.dumps(entry, sort_keys=True)


def merge_registrations(package_entries: List[Any], user_entries: List[Any]) -> List[Any]:
    """User entries first, then package entries whose identity is not yet present."""
    merged = copy.deepcopy(user_entries)
    seen = {registration_identity(e) for e in user_entries}
    for entry in package_entries:
        identity = registration_identity(entry)
        if identity in seen:
            continue
        seen.add(identity)
        merged.append(copy.deepcopy(entry))
    return merged


def merge_settings(package_doc: Dict[str, Any], user_doc: Dict[str, Any]) -> Dict[str, Any]:
    """Merge package_doc into user_doc and return a new document. Inputs are not modified."""
    merged = copy.deepcopy(user_doc)
    for key, package_value in package_doc.items():
        user_value = user_doc.get(key)

        if isinstance(package_value, dict):
            if key in user_doc and not isinstance(user_value, dict):
                continue
            merged[key] = merge_settings(package_value, user_value or {})
        elif key in REGISTRATION_KEYS and isinstance(package_value, list) \
                and isinstance(user_value, list):
            merged[key] = merge_registrations(package_value, user_value)
        elif key not in user_doc:
            merged[key] = copy.deepcopy(package_value)

    return merged


def strip_registrations(package_doc: Dict[str, Any], user_doc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove the package's hook registrations from a user document.

    Only registration entries whose identity matches a package entry, and
    objects still identical to the package's, are dropped. Containers left
    empty by the removal are dropped too; every other key is left alone.
    """
    result = copy.deepcopy(user_doc)
    for key, package_value in package_doc.items():
        if key not in result:
            continue
        user_value = result[key]

        if isinstance(package_value, dict) and user_value == package_value:
            # untouched package object, e.g. statusLine
            del result[key]
        elif isinstance(package_value, dict) and isinstance(user_value, dict):
            stripped = strip_registrations(package_value, user_value)
            if user_value and not stripped:
                del result[key]
            else:
                result[key] = stripped
        elif key in REGISTRATION_KEYS and isinstance(package_value, list) \
                and isinstance(user_value, list):
            package_ids = {registration_identity(e) for e in package_value}
            kept = [e for e in user_value if registration_identity(e) not in package_ids]
            if user_value and not kept:
                del result[key]
            else:
                result[key] = kept

    return result


def load_settings(path: Path) -> Optional[Dict[str, Any]]:
    """Load a settings document; missing, unreadable-as-JSON or non-object files yield None."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        doc = json.loads(path.read_text(encoding='utf-8'))
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning("Ignoring unparseable settings file %s: %s", path, e)
        return None
    if not isinstance(doc, dict):
        logger.warning("Ignoring settings file %s: top level is not an object", path)
        return None
    return doc


def write_settings(path: Path, doc: Dict[str, Any]):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc, indent=2) + '\n', encoding='utf-8')


def hook_interpreter() -> str:
    """Shell-quoted path of the interpreter that can import this package."""
    return shlex.quote(sys.executable) if sys.executable else PACKAGED_INTERPRETER


def render_package_settings(source_settings: Path, layout: InstallLayout,
                            interpreter: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Load the packaged settings.json for a given install root.

    Hook commands ship as "python3 .claude/hooks/...". The interpreter is
    replaced with the one running the installer, since a bare python3 on PATH
    usually cannot import the package (pipx, venv and uv installs). A global
    install is used from any working directory, so its hook paths are also
    made absolute.
    """
    doc = load_settings(source_settings)
    if doc is None:
        return None
    interpreter = interpreter or hook_interpreter()
    hooks_dir = str(layout.hooks_dir) + '/'

    def rewrite(command: str) -> str:
        if command.startswith(PACKAGED_INTERPRETER + ' '):
            command = interpreter + command[len(PACKAGED_INTERPRETER):]
        if layout.is_global:
            command = command.replace(LOCAL_HOOKS_PREFIX, hooks_dir)
        return command

    return _rewrite_commands(doc, rewrite)


def unpinned_package_settings(source_settings: Path, layout: InstallLayout) -> Optional[Dict[str, Any]]:
    """The package document with bare python3 commands, as older releases registered it."""
    return render_package_settings(source_settings, layout, interpreter=PACKAGED_INTERPRETER)


def _rewrite_commands(value: Any, rewrite: Callable[[str], str]) -> Any:
    if isinstance(value, dict):
        return {
            k: (rewrite(v) if k == 'command' and isinstance(v, str)
                else _rewrite_commands(v, rewrite))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_rewrite_commands(v, rewrite) for v in value]
    return value


def reconcile_settings_file(package_doc: Dict[str, Any], target: Path,
                            superseded: Optional[Dict[str, Any]] = None) -> str:
    """
    Apply the package settings to the user's settings file.

    Returns 'installed' when the package document was written verbatim (no
    user document existed) and 'merged' otherwise. Registrations matching
    `superseded` (an older rendering of the package document) are dropped
    before merging so they are replaced instead of duplicated. A user file
    that exists but cannot be parsed is moved aside rather than overwritten,
    since it may hold edits the user wants back.
    """
    target = Path(target)
    user_doc = load_settings(target)

    if user_doc is None:
        if target.exists():
            aside = target.with_name(f"{target.name}.corrupt-{datetime.now().strftime('%Y%m%d-%H%M%S')}")
            target.rename(aside)
            logger.warning("Moved unparseable %s to %s", target, aside)
        write_settings(target, package_doc)
        return 'installed'

    if superseded and superseded != package_doc:
        user_doc = strip_registrations(superseded, user_doc)
    write_settings(target, merge_settings(package_doc, user_doc))
    return 'merged'


def remove_package_settings(package_doc: Dict[str, Any], target: Path) -> bool:
    """
    Strip package registrations from the user's settings file.

    A file left with nothing in it is deleted. Returns True if anything changed.
    """
    target = Path(target)
    user_doc = load_settings(target)
    if user_doc is None:
        return False
    stripped = strip_registrations(package_doc, user_doc)
    if stripped == user_doc:
        return False
    if not stripped:
        target.unlink()
        logger.debug("Removed %s: nothing left after stripping", target)
        return True
    write_settings(target, stripped)
    return True
