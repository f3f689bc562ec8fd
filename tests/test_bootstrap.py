"""
Tests for WorkflowInstaller install, upgrade and uninstall transitions.

Runs against the packaged assets and a throwaway project directory.
"""
import json
import shutil

import pytest

from fivephase import __version__
from fivephase.bootstrap import ASSETS_DIR, Outcome, WorkflowInstaller
from fivephase.errors import SourceError, TransitionError
from fivephase.paths import resolve_layout
from fivephase.registry import managed_paths
from fivephase.settings_merge import hook_interpreter
from fivephase.state import InstallStatus


def _snapshot(root):
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob('*')) if p.is_file() and p.name != 'version.json'
    }


def _settings(layout):
    return json.loads(layout.settings_file.read_text())


def _commands(entries):
    return [h['command'] for e in entries for h in e['hooks']]


def _local_hook(name):
    return f"{hook_interpreter()} .claude/hooks/{name}"


def _unpin_settings(layout):
    """Rewrite settings.json the way releases registered hooks before pinning the interpreter."""
    text = layout.settings_file.read_text().replace(hook_interpreter() + ' ', 'python3 ')
    layout.settings_file.write_text(text)


def _release_source(dest, version):
    """Package tree as an older release shipped it: only that release's entries."""
    shutil.copytree(ASSETS_DIR / 'commands', dest / 'commands')
    shutil.copy2(ASSETS_DIR / 'settings.json', dest / 'settings.json')
    for rel in managed_paths(version).all_entries():
        if (ASSETS_DIR / rel).is_dir():
            shutil.copytree(ASSETS_DIR / rel, dest / rel)
        else:
            (dest / rel).parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(ASSETS_DIR / rel, dest / rel)
    return dest


def _install_release(layout, tmp_path, version):
    source = _release_source(tmp_path / f"release-{version}", version)
    return WorkflowInstaller(layout, source_dir=source, version=version).install()


@pytest.fixture
def installer(layout):
    return WorkflowInstaller(layout)


@pytest.fixture
def old_install(layout, tmp_path):
    """A 1.1.0 install with user content mixed into the shared directories."""
    _install_release(layout, tmp_path, '1.1.0')
    root = layout.root
    (root / 'commands' / '5' / 'dropped-command.md').write_text('removed in a later release')
    (root / 'agents' / 'my-agent.md').write_text('user agent')
    (root / 'agents' / 'step-executor.md').write_text('stale package agent')
    (root / 'skills' / 'my-skill').mkdir()
    (root / 'skills' / 'my-skill' / 'SKILL.md').write_text('user skill')
    (root / 'commands' / 'mine.md').write_text('user command')
    settings = _settings(layout)
    settings['model'] = 'opus'
    settings['hooks']['Stop'] = [{'hooks': [{'type': 'command', 'command': 'notify-send done'}]}]
    layout.settings_file.write_text(json.dumps(settings))
    return layout


class TestFreshInstall:
    def test_installs_everything(self, installer, layout):
        result = installer.install()

        assert result.outcome is Outcome.INSTALLED
        assert result.status_before is InstallStatus.NOT_INSTALLED
        assert layout.marker_file.is_file()
        for rel in managed_paths(__version__).all_entries():
            assert (layout.root / rel).exists(), rel
        assert installer.store.read().installed_version == __version__
        assert 'statusLine' in _settings(layout)

    def test_hook_launchers_stay_executable(self, installer, layout):
        installer.install()
        mode = (layout.hooks_dir / 'plan-guard.py').stat().st_mode
        assert mode & 0o111

    def test_second_install_changes_nothing(self, installer, layout):
        installer.install()
        before = _snapshot(layout.root)
        result = installer.install()
        assert result.outcome is Outcome.ALREADY_CURRENT
        assert result.from_version == __version__
        assert _snapshot(layout.root) == before

    def test_existing_user_settings_are_merged(self, installer, layout):
        layout.root.mkdir(parents=True)
        layout.settings_file.write_text(json.dumps({
            'model': 'opus',
            'statusLine': {'type': 'command', 'command': 'my-statusline'},
        }))
        installer.install()
        settings = _settings(layout)
        assert settings['model'] == 'opus'
        assert settings['statusLine']['command'] == 'my-statusline'
        assert _local_hook('plan-guard.py') in _commands(settings['hooks']['PreToolUse'])

    def test_incomplete_source_is_rejected(self, layout, tmp_path):
        source = tmp_path / 'assets'
        (source / 'agents').mkdir(parents=True)
        with pytest.raises(SourceError):
            WorkflowInstaller(layout, source_dir=source).install()
        assert not layout.root.exists()

    def test_global_install(self, isolated_home):
        layout = resolve_layout(is_global=True)
        WorkflowInstaller(layout).install()
        assert layout.root == isolated_home / '.claude'
        assert layout.marker_file.is_file()
        settings = _settings(layout)
        assert settings['statusLine']['command'] == f"{hook_interpreter()} {layout.hooks_dir}/statusline.py"
        assert json.loads(layout.state_file.read_text())['installationType'] == 'global'
        assert not layout.config_file.exists()

    def test_creates_project_config(self, installer, layout, project):
        (project / 'Cargo.toml').write_text('[package]\nname = "demo"\n')
        result = installer.install()
        config = json.loads(layout.config_file.read_text())
        assert config['projectType'] == 'rust'
        assert config['build'] == {'command': 'cargo build', 'testCommand': 'cargo test'}
        assert 'Created .5/config.json (project type: rust)' in result.actions

    def test_existing_project_config_is_kept(self, installer, layout):
        layout.config_file.parent.mkdir(parents=True)
        layout.config_file.write_text('{"projectType": "mine"}')
        installer.install()
        assert json.loads(layout.config_file.read_text()) == {'projectType': 'mine'}

    def test_unreadable_package_settings_reports_transition(self, layout, tmp_path):
        source = tmp_path / 'assets'
        shutil.copytree(ASSETS_DIR, source)
        (source / 'settings.json').unlink()
        (source / 'settings.json').mkdir()

        with pytest.raises(TransitionError) as excinfo:
            WorkflowInstaller(layout, source_dir=source).install()

        assert excinfo.value.transition == 'install'
        assert excinfo.value.path == source.resolve() / 'settings.json'


class TestUpgrade:
    def test_replaces_package_files_and_keeps_user_files(self, old_install):
        layout = old_install
        result = WorkflowInstaller(layout).install(force=True)

        assert result.outcome is Outcome.UPGRADED
        assert (result.from_version, result.to_version) == ('1.1.0', __version__)
        root = layout.root
        assert not (root / 'commands' / '5' / 'dropped-command.md').exists()
        assert (root / 'commands' / 'mine.md').read_text() == 'user command'
        assert (root / 'agents' / 'my-agent.md').read_text() == 'user agent'
        assert (root / 'skills' / 'my-skill' / 'SKILL.md').read_text() == 'user skill'
        assert (root / 'agents' / 'step-executor.md').read_bytes() == \
            (ASSETS_DIR / 'agents' / 'step-executor.md').read_bytes()
        assert (root / 'hooks' / 'config-guard.py').is_file()
        assert (root / 'skills' / 'configure-project' / 'SKILL.md').is_file()

    def test_settings_keep_user_entries(self, old_install):
        WorkflowInstaller(old_install).install(force=True)
        settings = _settings(old_install)
        assert settings['model'] == 'opus'
        assert _commands(settings['hooks']['Stop']) == ['notify-send done']
        session = _commands(settings['hooks']['SessionStart'])
        assert session.count(_local_hook('check-updates.py')) == 1
        assert _local_hook('check-reconfig.py') in session

    def test_state_record_updated(self, old_install):
        before = json.loads(old_install.state_file.read_text())
        WorkflowInstaller(old_install).install(force=True)
        after = json.loads(old_install.state_file.read_text())
        assert after['installedVersion'] == __version__
        assert after['installedAt'] == before['installedAt']

    def test_declined_confirmation_changes_nothing(self, old_install):
        asked = []

        def decline(installed, version):
            asked.append((installed, version))
            return False

        before = _snapshot(old_install.root)
        state_before = old_install.state_file.read_text()
        result = WorkflowInstaller(old_install, confirm=decline).install()

        assert result.outcome is Outcome.CANCELLED
        assert asked == [('1.1.0', __version__)]
        assert _snapshot(old_install.root) == before
        assert old_install.state_file.read_text() == state_before

    def test_force_skips_confirmation(self, old_install):
        def fail(*args):
            raise AssertionError('confirmation should not be asked')

        result = WorkflowInstaller(old_install, confirm=fail).install(force=True)
        assert result.outcome is Outcome.UPGRADED

    def test_legacy_install_is_upgraded_without_asking(self, layout, tmp_path):
        _install_release(layout, tmp_path, '1.0.0')
        shutil.rmtree(layout.data_dir)
        (layout.root / 'agents' / 'my-agent.md').write_text('user agent')

        result = WorkflowInstaller(layout, confirm=lambda *a: False).install()

        assert result.outcome is Outcome.UPGRADED
        assert result.status_before is InstallStatus.LEGACY
        assert result.from_version is None
        assert (layout.root / 'agents' / 'my-agent.md').read_text() == 'user agent'
        assert json.loads(layout.state_file.read_text())['installedVersion'] == __version__

    def test_state_without_installed_version_is_legacy(self, layout, tmp_path):
        _install_release(layout, tmp_path, '1.1.0')
        layout.state_file.write_text(json.dumps({'configuredAt': '2025-02-01T00:00:00+00:00'}))
        installer = WorkflowInstaller(layout, confirm=lambda *a: False)

        assert installer.store.classify(__version__) is InstallStatus.LEGACY
        result = installer.install()

        assert result.outcome is Outcome.UPGRADED
        assert result.status_before is InstallStatus.LEGACY
        state = json.loads(layout.state_file.read_text())
        assert state['installedVersion'] == __version__
        assert state['configuredAt'] == '2025-02-01T00:00:00+00:00'

    def test_bare_python3_registrations_are_replaced(self, old_install):
        _unpin_settings(old_install)
        WorkflowInstaller(old_install).install(force=True)

        settings = _settings(old_install)
        assert _commands(settings['hooks']['SessionStart']) == [
            _local_hook('check-updates.py'),
            _local_hook('check-reconfig.py'),
        ]
        assert _commands(settings['hooks']['PreToolUse']) == [_local_hook('plan-guard.py')]
        assert settings['statusLine']['command'] == _local_hook('statusline.py')
        assert _commands(settings['hooks']['Stop']) == ['notify-send done']

    def test_upgrade_creates_missing_project_config(self, old_install):
        old_install.config_file.unlink()
        WorkflowInstaller(old_install).install(force=True)
        assert json.loads(old_install.config_file.read_text())['projectType'] == 'unknown'

    def test_legacy_data_dir_is_migrated(self, layout, tmp_path):
        _install_release(layout, tmp_path, '1.1.0')
        legacy = layout.legacy_data_dir
        shutil.move(str(layout.data_dir), str(legacy))
        (legacy / 'features').mkdir()
        (legacy / 'features' / 'notes.md').write_text('keep me')

        result = WorkflowInstaller(layout).install(force=True)

        assert result.from_version == '1.1.0'
        assert not legacy.exists()
        assert (layout.data_dir / 'features' / 'notes.md').read_text() == 'keep me'

    def test_update_is_install(self, old_install):
        result = WorkflowInstaller(old_install).update(force=True)
        assert result.outcome is Outcome.UPGRADED

    def test_filesystem_failure_reports_transition_and_path(self, old_install):
        blocker = old_install.root / 'skills' / 'configure-project'
        blocker.write_text('a file where a directory belongs')

        with pytest.raises(TransitionError) as excinfo:
            WorkflowInstaller(old_install).install(force=True)

        assert excinfo.value.transition == 'upgrade'
        assert excinfo.value.path is not None
        assert 'upgrade failed' in str(excinfo.value)
        # the version is only recorded after a complete upgrade
        assert json.loads(old_install.state_file.read_text())['installedVersion'] == '1.1.0'


class TestUninstall:
    def test_removes_package_and_keeps_user_files(self, old_install):
        layout = old_install
        result = WorkflowInstaller(layout).uninstall()

        assert result.outcome is Outcome.UNINSTALLED
        root = layout.root
        assert not layout.command_dir.exists()
        assert (root / 'commands' / 'mine.md').read_text() == 'user command'
        assert (root / 'agents' / 'my-agent.md').read_text() == 'user agent'
        assert (root / 'skills' / 'my-skill' / 'SKILL.md').read_text() == 'user skill'
        assert not (root / 'agents' / 'step-executor.md').exists()
        assert not (root / 'templates').exists()
        assert not (root / 'hooks').exists()
        assert not layout.data_dir.exists()

    def test_settings_keep_only_user_entries(self, old_install):
        WorkflowInstaller(old_install).uninstall()
        settings = _settings(old_install)
        assert settings['model'] == 'opus'
        assert 'statusLine' not in settings
        assert settings['hooks'] == {
            'Stop': [{'hooks': [{'type': 'command', 'command': 'notify-send done'}]}],
        }

    def test_reports_kept_user_files(self, old_install):
        result = WorkflowInstaller(old_install).uninstall()
        assert result.kept == ['commands/mine.md', 'agents/my-agent.md', 'skills/my-skill/SKILL.md']

    def test_bare_python3_registrations_are_removed(self, old_install):
        _unpin_settings(old_install)
        WorkflowInstaller(old_install).uninstall()
        assert _settings(old_install) == {
            'model': 'opus',
            'hooks': {'Stop': [{'hooks': [{'type': 'command', 'command': 'notify-send done'}]}]},
        }

    def test_uses_registry_of_installed_version(self, layout, tmp_path):
        _install_release(layout, tmp_path, '1.1.0')
        # an entry the 1.1.0 release never shipped is the user's
        (layout.hooks_dir / 'plan-guard.py').write_text('user hook with a package name')
        WorkflowInstaller(layout).uninstall()
        assert (layout.hooks_dir / 'plan-guard.py').read_text() == 'user hook with a package name'
        assert not (layout.hooks_dir / 'check-updates.py').exists()

    def test_nothing_installed(self, installer, layout):
        result = installer.uninstall()
        assert result.outcome is Outcome.NOT_INSTALLED
        assert not layout.root.exists()

    def test_install_then_uninstall_leaves_empty_root(self, installer, layout):
        installer.install()
        installer.uninstall()
        assert sorted(p.name for p in layout.root.iterdir()) == []


class TestCheckVersion:
    def test_reports_update(self, old_install):
        report = WorkflowInstaller(old_install).check_version(fetch_latest=lambda: '9.0.0')
        assert report.status is InstallStatus.NEEDS_UPDATE
        assert report.installed_version == '1.1.0'
        assert report.latest_version == '9.0.0'
        assert report.update_available

    def test_lookup_failure_is_no_information(self, installer):
        def boom():
            raise RuntimeError('network down')

        report = installer.check_version(fetch_latest=boom)
        assert report.status is InstallStatus.NOT_INSTALLED
        assert report.latest_version is None
        assert not report.update_available
