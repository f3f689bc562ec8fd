"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Persisted install state (.5/version.json) and install classification.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .fs_sync import copy_tree_merge, remove_tree
from .paths import STATE_FILE_NAME, InstallLayout
from .versioning import compare_versions, parse_version

logger = logging.getLogger(__name__)

DEFAULT_UPDATE_CHECK_FREQUENCY = 86400  # seconds


class InstallStatus(Enum):
    NOT_INSTALLED = 'not-installed'
    LEGACY = 'legacy'
    UP_TO_DATE = 'up-to-date'
    NEEDS_UPDATE = 'needs-update'


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class InstallStateRecord:
    """
    Contents of version.json.

    Keys this installer does not manage (anything written by hooks or by the
    /5:configure command that is not a named field) are carried in `extra` and
    written back unchanged.
    """
    package_version: str
    installed_version: str
    installed_at: str
    last_updated: str
    installation_type: str = 'local'
    latest_available_version: Optional[str] = None
    update_check_last_run: Optional[str] = None
    update_check_frequency: int = DEFAULT_UPDATE_CHECK_FREQUENCY
    configured_at: Optional[str] = None
    configured_at_commit: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = {
        'packageVersion': 'package_version',
        'installedVersion': 'installed_version',
        'installedAt': 'installed_at',
        'lastUpdated': 'last_updated',
        'installationType': 'installation_type',
        'latestAvailableVersion': 'latest_available_version',
        'updateCheckLastRun': 'update_check_last_run',
        'updateCheckFrequency': 'update_check_frequency',
        'configuredAt': 'configured_at',
        'configuredAtCommit': 'configured_at_commit',
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['InstallStateRecord']:
        """Build a record; returns None unless installedVersion is a usable string."""
        installed = data.get('installedVersion')
        if not isinstance(installed, str) or not installed.strip():
            return None

        kwargs = {attr: data[key] for key, attr in cls._KEYS.items() if key in data}
        kwargs.setdefault('package_version', installed)
        kwargs.setdefault('installed_at', '')
        kwargs.setdefault('last_updated', '')
        if not isinstance(kwargs.get('update_check_frequency'), int):
            kwargs['update_check_frequency'] = DEFAULT_UPDATE_CHECK_FREQUENCY
        extra = {k: v for k, v in data.items() if k not in cls._KEYS}
        return cls(extra=extra, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        for key, attr in self._KEYS.items():
            value = getattr(self, attr)
            if value is None and attr not in ('latest_available_version',):
                continue
            data[key] = value
        return data


def dump_state(path: Path, data: Dict[str, Any]):
    """Write a version.json document, creating its directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + '\n', encoding='utf-8')


def _read_json_object(path: Path) -> Optional[Dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError, UnicodeDecodeError) as e:
        logger.warning("Treating unreadable state file %s as absent: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


class InstallStateStore:
    """
    Reads and writes the install state record for one install root.

    Usage:
        store = InstallStateStore(resolve_layout())
        store.migrate()
        status = store.classify('1.3.0')
    """

    def __init__(self, layout: InstallLayout):
        self.layout = layout

    # =========================================================================
    # MIGRATION
    # =========================================================================

    def migrate(self) -> bool:
        """
        Move the legacy data directory into the current location.

        Files already present at the new location win. Runs only when the
        legacy directory exists and the new one has no state file yet, so it is
        safe to call on every invocation.
        """
        legacy = self.layout.legacy_data_dir
        if legacy is None or not legacy.is_dir():
            return False
        if (self.layout.data_dir / STATE_FILE_NAME).exists():
            logger.debug("Not migrating %s: %s already has state", legacy, self.layout.data_dir)
            return False

        copy_tree_merge(legacy, self.layout.data_dir)
        remove_tree(legacy)
        logger.info("Migrated data directory %s -> %s", legacy, self.layout.data_dir)
        return True

    # =========================================================================
    # READ / CLASSIFY
    # =========================================================================

    def read_raw(self) -> Optional[Dict[str, Any]]:
        return _read_json_object(self.layout.state_file)

    def read(self) -> Optional[InstallStateRecord]:
        """The persisted record, or None when absent, corrupt or unversioned."""
        data = self.read_raw()
        if data is None:
            return None
        return InstallStateRecord.from_dict(data)

    def is_installed(self) -> bool:
        return self.layout.marker_file.is_file()

    def installed_version(self) -> Optional[str]:
        record = self.read()
        return record.installed_version if record else None

    def classify(self, package_version: str) -> InstallStatus:
        if not self.is_installed():
            return InstallStatus.NOT_INSTALLED
        record = self.read()
        if record is None:
            return InstallStatus.LEGACY
        if compare_versions(record.installed_version, package_version) >= 0:
            return InstallStatus.UP_TO_DATE
        return InstallStatus.NEEDS_UPDATE

    # =========================================================================
    # WRITE
    # =========================================================================

    def write(self, version: str) -> InstallStateRecord:
        """
        Persist the record for a completed install or upgrade to `version`.

        installedAt and every unrelated field of an existing record are kept;
        lastUpdated is always stamped.
        """
        now = utc_now()
        raw = self.read_raw() or {}
        record = InstallStateRecord.from_dict(raw) if raw else None

        if record is None:
            extra = {k: v for k, v in raw.items() if k not in InstallStateRecord._KEYS}
            record = InstallStateRecord(
                package_version=version,
                installed_version=version,
                installed_at=raw.get('installedAt') or now,
                last_updated=now,
                configured_at=raw.get('configuredAt'),
                configured_at_commit=raw.get('configuredAtCommit'),
                extra=extra,
            )
        elif compare_versions(version, record.installed_version) < 0:
            logger.warning("Refusing to move installedVersion back from %s to %s",
                           record.installed_version, version)
            version = record.installed_version

        record.package_version = version
        record.installed_version = version
        record.installed_at = record.installed_at or now
        record.last_updated = now
        record.installation_type = self.layout.installation_type
        if record.latest_available_version and \
                parse_version(record.latest_available_version) <= parse_version(version):
            record.latest_available_version = None

        dump_state(self.layout.state_file, record.to_dict())
        return record

    # =========================================================================
    # REMOVE
    # =========================================================================

    def remove(self) -> List[Path]:
        """Delete the data directory and any legacy copy. Returns what was removed."""
        removed = []
        for directory in (self.layout.data_dir, self.layout.legacy_data_dir):
            if directory is not None and remove_tree(directory):
                removed.append(directory)
        return removed
