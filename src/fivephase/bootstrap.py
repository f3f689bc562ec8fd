"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Installer with install, upgrade, version check and uninstall support.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from . import __version__
from .errors import SourceError, SyncError, TransitionError
from .fs_sync import copy_file_if_exists, copy_tree, remove_empty_dir, remove_tree
from .paths import CONFIG_FILE_NAME, DATA_DIR_NAME, MARKER_FILE, SETTINGS_FILE_NAME, InstallLayout
from .project_config import initialize_config
from .registry import (
    BASELINE_VERSION,
    COMMAND_NAMESPACE,
    NAMESPACES,
    PARTIAL_NAMESPACES,
    managed_paths,
)
from .settings_merge import (
    reconcile_settings_file,
    remove_package_settings,
    render_package_settings,
    unpinned_package_settings,
)
from .state import InstallStateStore, InstallStatus
from .versioning import is_newer

logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).parent / 'assets'

# confirm(installed_version, package_version) -> proceed?
ConfirmCallback = Callable[[Optional[str], str], bool]


class Outcome(Enum):
    INSTALLED = 'installed'
    UPGRADED = 'upgraded'
    ALREADY_CURRENT = 'already-current'
    CANCELLED = 'cancelled'
    UNINSTALLED = 'uninstalled'
    NOT_INSTALLED = 'not-installed'


@dataclass
class InstallResult:
    outcome: Outcome
    status_before: InstallStatus
    from_version: Optional[str] = None
    to_version: Optional[str] = None
    actions: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)


@dataclass
class VersionReport:
    status: InstallStatus
    installed_version: Optional[str]
    package_version: str
    latest_version: Optional[str] = None

    @property
    def update_available(self) -> bool:
        return self.latest_version is not None and is_newer(self.latest_version, self.installed_version)


class WorkflowInstaller:
    """
    Installer for the 5-phase workflow package.

    Supports:
    - install: fresh install, or upgrade of an existing/legacy install
    - update: same decision table, used by the `upgrade` command
    - uninstall: removes package-owned files only
    - check_version: reports installed, packaged and latest versions

    Usage:
        installer = WorkflowInstaller(resolve_layout(is_global=False))
        installer.install()      # Fresh install or upgrade
        installer.uninstall()    # Clean removal
    """

    def __init__(self, layout: InstallLayout, source_dir: Optional[Path] = None,
                 version: str = __version__, confirm: Optional[ConfirmCallback] = None):
        self.layout = layout
        self.source_dir = Path(source_dir).resolve() if source_dir else ASSETS_DIR
        self.version = version
        self.confirm = confirm
        self.store = InstallStateStore(layout)

    @property
    def root(self) -> Path:
        return self.layout.root

    # =========================================================================
    # INSTALL / UPDATE
    # =========================================================================

    def install(self, force: bool = False) -> InstallResult:
        """
        Bring the install root to the packaged version.

        Args:
            force: Skip the confirmation for a regular upgrade

        Returns:
            InstallResult describing what happened
        """
        self._run('migrate', self.store.migrate)
        status = self.store.classify(self.version)
        installed = self.store.installed_version()
        logger.info("Install root %s is %s (installed=%s, package=%s)",
                    self.root, status.value, installed, self.version)

        if status is InstallStatus.NOT_INSTALLED:
            return self._fresh_install()

        if status is InstallStatus.UP_TO_DATE:
            return InstallResult(Outcome.ALREADY_CURRENT, status, installed, installed)

        if status is InstallStatus.NEEDS_UPDATE and not force and self.confirm is not None:
            if not self.confirm(installed, self.version):
                logger.info("Upgrade %s -> %s declined", installed, self.version)
                return InstallResult(Outcome.CANCELLED, status, installed, installed)

        # Legacy installs are always upgraded: there is no version to keep.
        return self._upgrade(status, installed)

    def update(self, force: bool = False) -> InstallResult:
        """Upgrade an existing install; a missing install gets a fresh install."""
        return self.install(force=force)

    def _fresh_install(self) -> InstallResult:
        self._precheck_source()
        result = InstallResult(Outcome.INSTALLED, InstallStatus.NOT_INSTALLED, None, self.version)

        def copy_namespaces():
            self.root.mkdir(parents=True, exist_ok=True)
            for namespace in NAMESPACES:
                src = self.source_dir / namespace
                if src.is_dir():
                    copy_tree(src, self.root / namespace)
                    result.actions.append(f"Installed {namespace}/")

        self._run('install', copy_namespaces)
        self._reconcile_settings('install', result)
        self._initialize_config('install', result)
        self._run('install', lambda: self.store.write(self.version))
        result.actions.append(f"Recorded version {self.version}")
        return result

    def _upgrade(self, status: InstallStatus, installed: Optional[str]) -> InstallResult:
        self._precheck_source()
        result = InstallResult(Outcome.UPGRADED, status, installed, self.version)
        managed = managed_paths(self.version)

        def replace_commands():
            src = self.source_dir / COMMAND_NAMESPACE
            remove_tree(self.layout.command_dir)
            copy_tree(src, self.layout.command_dir)
            result.actions.append(f"Replaced {COMMAND_NAMESPACE}/")

        def copy_managed_entries():
            for namespace in PARTIAL_NAMESPACES:
                for rel in managed.paths(namespace):
                    src = self.source_dir / rel
                    dst = self.root / rel
                    if src.is_dir():
                        copy_tree(src, dst)
                    elif not copy_file_if_exists(src, dst):
                        logger.warning("Packaged entry %s is missing from %s", rel, self.source_dir)
                        continue
                    result.actions.append(f"Updated {rel}")

        self._run('upgrade', replace_commands)
        self._run('upgrade', copy_managed_entries)
        self._reconcile_settings('upgrade', result)
        self._initialize_config('upgrade', result)
        self._run('upgrade', lambda: self.store.write(self.version))
        result.actions.append(f"Recorded version {self.version}")
        return result

    def _reconcile_settings(self, transition: str, result: InstallResult):
        source = self.source_dir / SETTINGS_FILE_NAME

        def reconcile():
            package_doc = render_package_settings(source, self.layout)
            if package_doc is None:
                return None
            superseded = unpinned_package_settings(source, self.layout)
            return reconcile_settings_file(package_doc, self.layout.settings_file, superseded)

        how = self._run(transition, reconcile)
        if how is None:
            return
        result.actions.append('Installed settings.json' if how == 'installed'
                              else 'Merged settings.json with existing configuration')

    def _initialize_config(self, transition: str, result: InstallResult):
        # project config only makes sense for a project (local) install
        if self.layout.is_global:
            return
        project_dir = self.layout.root.parent
        project_type = self._run(transition, lambda: initialize_config(self.layout.config_file, project_dir))
        if project_type is not None:
            result.actions.append(f"Created {DATA_DIR_NAME}/{CONFIG_FILE_NAME} (project type: {project_type})")

    def _precheck_source(self):
        if not (self.source_dir / MARKER_FILE).is_file():
            raise SourceError(f"Package source {self.source_dir} is incomplete: missing {MARKER_FILE}")

    # =========================================================================
    # UNINSTALL
    # =========================================================================

    def uninstall(self) -> InstallResult:
        """
        Remove the package from the install root.

        Removes:
        - commands/5/ entirely
        - the agents, skills, hooks and templates listed for the installed version
        - package hook registrations from settings.json
        - the data directory, and the legacy data directory if one is left over

        User files anywhere else under .claude/ are not touched.
        """
        self._run('uninstall', self.store.migrate)
        status = self.store.classify(self.version)
        installed = self.store.installed_version()

        if status is InstallStatus.NOT_INSTALLED:
            return InstallResult(Outcome.NOT_INSTALLED, status)

        result = InstallResult(Outcome.UNINSTALLED, status, installed, None)
        # The set that was shipped with what is on disk, not what we ship now.
        managed = managed_paths(installed or BASELINE_VERSION)

        def remove_files():
            if remove_tree(self.layout.command_dir):
                result.actions.append(f"Removed {COMMAND_NAMESPACE}/")
            for rel in managed.all_entries():
                if remove_tree(self.root / rel):
                    result.actions.append(f"Removed {rel}")
            for namespace in NAMESPACES:
                remove_empty_dir(self.root / namespace)

        def list_kept():
            for namespace in NAMESPACES:
                directory = self.root / namespace
                if not directory.is_dir():
                    continue
                for entry in sorted(directory.rglob('*')):
                    rel = entry.relative_to(self.root).as_posix()
                    if entry.is_file() and not managed.is_managed(rel):
                        result.kept.append(rel)

        def clean_settings():
            source = self.source_dir / SETTINGS_FILE_NAME
            changed = False
            for package_doc in (render_package_settings(source, self.layout),
                                unpinned_package_settings(source, self.layout)):
                if package_doc and remove_package_settings(package_doc, self.layout.settings_file):
                    changed = True
            if changed:
                result.actions.append('Removed workflow hooks from settings.json')

        def remove_data():
            for directory in self.store.remove():
                result.actions.append(f"Removed {directory}")

        self._run('uninstall', remove_files)
        self._run('uninstall', list_kept)
        self._run('uninstall', clean_settings)
        self._run('uninstall', remove_data)
        return result

    # =========================================================================
    # VERSION CHECK
    # =========================================================================

    def check_version(self, fetch_latest: Optional[Callable[[], Optional[str]]] = None) -> VersionReport:
        """Report installed and packaged versions, plus the latest published one if asked."""
        self._run('check-version', self.store.migrate)
        status = self.store.classify(self.version)
        report = VersionReport(status, self.store.installed_version(), self.version)

        if fetch_latest is not None:
            try:
                report.latest_version = fetch_latest()
            except Exception as e:
                logger.debug("Latest version lookup failed: %s", e)
                report.latest_version = None
        return report

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _run(self, transition: str, step: Callable):
        try:
            return step()
        except SyncError as e:
            raise TransitionError(transition, e.path, e) from e
        except OSError as e:
            raise TransitionError(transition, e.filename, e) from e
