"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Installer for the workflow package: install, upgrade, version check, uninstall.
"""

__version__ = '1.3.0'

PACKAGE_NAME = 'five-phase-workflow'
