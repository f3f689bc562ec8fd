"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Default .5/config.json for a project, based on the build files it contains.

/5:configure refines this file later; the installer only creates it when it
is missing and never touches an existing one.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

UNKNOWN = 'unknown'

_BASE_CONFIG = {
    'ticket': {
        'pattern': '[A-Z]+-\\d+',
        'extractFromBranch': True,
    },
    'build': {
        'command': 'auto',
        'testCommand': 'auto',
    },
    'reviewTool': 'auto',
}

# project type -> (build command, test command)
BUILD_COMMANDS = {
    'gradle-java': ('./gradlew build -x test -x javadoc --offline', './gradlew test --offline'),
    'maven-java': ('mvn compile', 'mvn test'),
    'javascript': ('npm run build', 'npm test'),
    'nextjs': ('npm run build', 'npm test'),
    'express': ('npm run build || tsc', 'npm test'),
    'nestjs': ('npm run build', 'npm test'),
    'rust': ('cargo build', 'cargo test'),
    'go': ('go build ./...', 'go test ./...'),
    'python': ('python -m py_compile **/*.py', 'pytest'),
    'django': ('python manage.py check', 'python manage.py test'),
    'flask': ('python -m py_compile **/*.py', 'pytest'),
}


def _node_project_type(package_json: Path) -> str:
    try:
        pkg = json.loads(package_json.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        logger.debug("Unreadable %s: %s", package_json, e)
        return 'javascript'
    if not isinstance(pkg, dict):
        return 'javascript'

    deps = pkg.get('dependencies') if isinstance(pkg.get('dependencies'), dict) else {}
    dev_deps = pkg.get('devDependencies') if isinstance(pkg.get('devDependencies'), dict) else {}
    if 'next' in deps or 'next' in dev_deps:
        return 'nextjs'
    if 'express' in deps or 'express' in dev_deps:
        return 'express'
    if '@nestjs/core' in deps:
        return 'nestjs'
    return 'javascript'


def detect_project_type(project_dir: Path) -> str:
    """Guess the project type from the build files in project_dir."""
    project_dir = Path(project_dir)

    def has(*names):
        return any((project_dir / name).exists() for name in names)

    if has('package.json'):
        return _node_project_type(project_dir / 'package.json')
    if has('build.gradle', 'build.gradle.kts'):
        return 'gradle-java'
    if has('pom.xml'):
        return 'maven-java'
    if has('Cargo.toml'):
        return 'rust'
    if has('go.mod'):
        return 'go'
    if has('requirements.txt', 'pyproject.toml'):
        if has('manage.py'):
            return 'django'
        if has('app.py', 'wsgi.py'):
            return 'flask'
        return 'python'
    return UNKNOWN


def default_config(project_type: str) -> Dict[str, Any]:
    config = copy.deepcopy(_BASE_CONFIG)
    if project_type in BUILD_COMMANDS:
        build, test = BUILD_COMMANDS[project_type]
        config['build'] = {'command': build, 'testCommand': test}
    config['projectType'] = project_type
    return config


def initialize_config(config_file: Path, project_dir: Path) -> Optional[str]:
    """
    Write a default config.json if none exists.

    Returns:
        The detected project type, or None when a config was already there
    """
    config_file = Path(config_file)
    if config_file.exists():
        logger.info("Config file %s already exists, leaving it alone", config_file)
        return None

    project_type = detect_project_type(project_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(default_config(project_type), indent=2) + '\n', encoding='utf-8')
    logger.info("Created %s for project type %s", config_file, project_type)
    return project_type
