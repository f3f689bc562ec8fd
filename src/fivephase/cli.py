"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Command-line interface with Click.
Provides install, upgrade, check-version and uninstall.
"""

import logging
import sys

import click

from . import __version__
from .bootstrap import InstallResult, Outcome, WorkflowInstaller
from .errors import WorkflowError
from .paths import resolve_layout
from .state import InstallStatus
from .update_check import latest_version


def scope_options(f):
    """--local (default) / --global install root selection."""
    f = click.option('--global', '-g', 'scope', flag_value='global',
                     help='Use ~/.claude/ (available across all projects)')(f)
    f = click.option('--local', '-l', 'scope', flag_value='local', default=True,
                     help='Use ./.claude/ (project-specific, default)')(f)
    return f


def _confirm_upgrade(installed, package_version) -> bool:
    return click.confirm(
        f"Upgrade 5-phase workflow from {installed} to {package_version}?", default=True
    )


def _make_installer(scope: str, force: bool = False) -> WorkflowInstaller:
    layout = resolve_layout(is_global=(scope == 'global'))
    confirm = None if force else _confirm_upgrade
    return WorkflowInstaller(layout, confirm=confirm)


def _print_header(action: str, installer: WorkflowInstaller):
    click.echo(f"\n{'='*70}")
    click.echo(f"5-Phase Workflow - {action}")
    click.echo('='*70)
    click.echo(f"\nTarget:  {installer.root}")
    click.echo(f"Version: {installer.version}\n")


def _print_actions(result: InstallResult):
    for action in result.actions:
        click.echo(f"  + {action}")


def _fail(e: WorkflowError):
    click.echo(f"\nError: {e}", err=True)
    click.echo("Re-running the same command after fixing the cause is safe.", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name='5-Phase Workflow')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
def cli(verbose):
    """
    5-Phase Workflow - feature development workflow for Claude Code

    Installs the /5: commands, agents, skills, hooks and templates into a
    .claude directory, upgrades them in place, and removes them again without
    touching files you created.

    \b
    Quick Start:
        five-phase install                 # Install into ./.claude
        five-phase install --global        # Install into ~/.claude
        five-phase check-version           # Show installed/latest versions
        five-phase uninstall               # Remove from ./.claude
    """
    logging.basicConfig(
        format='%(levelname)s %(name)s: %(message)s',
        level=logging.DEBUG if verbose else logging.WARNING,
    )


def _run_install(action: str, scope: str, force: bool):
    installer = _make_installer(scope, force)
    _print_header(action, installer)

    try:
        result = installer.install(force=force)
    except WorkflowError as e:
        _fail(e)

    if result.outcome is Outcome.ALREADY_CURRENT:
        click.echo(f"Already current: version {result.from_version} is installed.")
        return
    if result.outcome is Outcome.CANCELLED:
        click.echo("Upgrade cancelled. Nothing was changed.")
        return

    if result.status_before is InstallStatus.LEGACY:
        click.echo("Found an unversioned installation; upgrading it.")
    _print_actions(result)

    click.echo(f"\n{'='*70}")
    if result.outcome is Outcome.UPGRADED:
        click.echo(f"Upgraded {result.from_version or 'legacy install'} -> {result.to_version}")
    else:
        click.echo("Installation Complete!")
    click.echo('='*70)
    click.echo("\nAvailable commands:")
    click.echo("  /5:plan-feature          - Start feature planning (Phase 1)")
    click.echo("  /5:plan-implementation   - Create implementation plan (Phase 2)")
    click.echo("  /5:implement-feature     - Execute implementation (Phase 3)")
    click.echo("  /5:verify-implementation - Verify implementation (Phase 4)")
    click.echo("  /5:review-code           - Code review (Phase 5)")
    click.echo("  /5:configure             - Interactive project setup")


@cli.command()
@scope_options
@click.option('--force', '-f', is_flag=True, help='Upgrade without asking for confirmation')
def install(scope, force):
    """
    Install the workflow, or upgrade an existing installation.

    \b
    Examples:
        five-phase install
        five-phase install --global
        five-phase install --force
    """
    _run_install('Installation', scope, force)


@cli.command()
@scope_options
@click.option('--force', '-f', is_flag=True, help='Upgrade without asking for confirmation')
def upgrade(scope, force):
    """
    Upgrade an existing installation in place.

    Package-owned files are replaced; agents, skills, hooks and templates you
    added yourself, and your settings, are kept.
    """
    _run_install('Upgrade', scope, force)


@cli.command('check-version')
@scope_options
@click.option('--offline', is_flag=True, help='Do not look up the latest published version')
def check_version(scope, offline):
    """Show the installed, packaged and latest published versions."""
    installer = _make_installer(scope)

    try:
        report = installer.check_version(fetch_latest=None if offline else latest_version)
    except WorkflowError as e:
        _fail(e)

    installed = report.installed_version
    if report.status is InstallStatus.NOT_INSTALLED:
        installed = 'not installed'
    elif report.status is InstallStatus.LEGACY:
        installed = 'unknown (legacy install)'

    click.echo(f"Installed: {installed}")
    click.echo(f"Package:   {report.package_version}")
    if not offline:
        if report.latest_version is None:
            click.echo("Latest:    unavailable")
        elif report.update_available:
            click.echo(f"Latest:    {report.latest_version} (update available)")
        else:
            click.echo(f"Latest:    {report.latest_version}")
    click.echo(f"Status:    {report.status.value}")


@cli.command()
@scope_options
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
def uninstall(scope, yes):
    """
    Remove the workflow from a .claude directory.

    Only files shipped by the package are removed. Your own agents, skills,
    hooks, templates and settings stay in place.
    """
    installer = _make_installer(scope)
    _print_header('Uninstall', installer)

    if not yes and not click.confirm(f"Remove the 5-phase workflow from {installer.root}?", default=False):
        click.echo("Uninstall cancelled.")
        return

    try:
        result = installer.uninstall()
    except WorkflowError as e:
        _fail(e)

    if result.outcome is Outcome.NOT_INSTALLED:
        click.echo("No installation found at this location.")
        return

    _print_actions(result)
    if result.kept:
        click.echo("\nKept your files:")
        for rel in result.kept:
            click.echo(f"  = {rel}")
    click.echo(f"\n{'='*70}")
    click.echo("Uninstall Complete!")
    click.echo('='*70)


def main():
    cli()


if __name__ == '__main__':
    main()
