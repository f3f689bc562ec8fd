"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Exception types raised by the installer.
"""

from pathlib import Path
from typing import Optional


class WorkflowError(Exception):
    """Base class for installer failures reported to the user."""


class SourceError(WorkflowError):
    """The packaged source tree is missing required files."""


class SyncError(WorkflowError):
    """A filesystem primitive failed part way through."""

    def __init__(self, operation: str, path: Path, cause: OSError):
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{operation} failed at {self.path}: {cause}")


class TransitionError(WorkflowError):
    """An install, upgrade or uninstall transition failed."""

    def __init__(self, transition: str, path: Optional[Path], cause: Exception):
        self.transition = transition
        self.path = Path(path) if path is not None else None
        self.cause = cause
        where = f" at {self.path}" if self.path is not None else ""
        detail = cause.cause if isinstance(cause, SyncError) else cause
        super().__init__(f"{transition} failed{where}: {detail}")
