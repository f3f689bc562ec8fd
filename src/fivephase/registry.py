"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Ownership registry: which paths under the install root belong to the package.

The commands/5 subtree is wholly package-owned and replaced on every upgrade.
Under agents/, skills/, hooks/ and templates/ only the entries listed here are
package-owned; anything else in those directories belongs to the user and is
never overwritten or deleted.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Mapping, Tuple

from .versioning import compare_versions

NAMESPACES = ('commands', 'agents', 'skills', 'hooks', 'templates')
PARTIAL_NAMESPACES = ('agents', 'skills', 'hooks', 'templates')

COMMAND_NAMESPACE = 'commands/5'


@dataclass(frozen=True)
class ManagedFileSet:
    """Package-owned paths for one package version, relative to the install root."""
    version: str
    replaceable: Tuple[str, ...] = (COMMAND_NAMESPACE,)
    entries: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def paths(self, namespace: str) -> Tuple[str, ...]:
        """Entries of one partially-owned namespace, as paths relative to the root."""
        return tuple(f"{namespace}/{name}" for name in self.entries.get(namespace, ()))

    def all_entries(self) -> Iterator[str]:
        for namespace in PARTIAL_NAMESPACES:
            yield from self.paths(namespace)

    def is_managed(self, rel_path: str) -> bool:
        rel_path = rel_path.strip('/')
        for subtree in self.replaceable:
            if rel_path == subtree or rel_path.startswith(subtree + '/'):
                return True
        for entry in self.all_entries():
            if rel_path == entry or rel_path.startswith(entry + '/'):
                return True
        return False


# Each release lists only what it added. Entries are never removed from an
# older release; a version's set is the union of every release up to it.
_RELEASES: Tuple[Tuple[str, Dict[str, Tuple[str, ...]]], ...] = (
    ('1.0.0', {
        'agents': (
            'step-executor.md',
            'step-verifier.md',
            'integration-agent.md',
            'verification-agent.md',
            'review-processor.md',
        ),
        'skills': (
            'build-project',
            'run-tests',
            'generate-readme',
        ),
        'hooks': (
            'statusline.py',
        ),
        'templates': (
            'feature-spec.md',
            'implementation-plan.md',
        ),
    }),
    ('1.1.0', {
        'hooks': (
            'check-updates.py',
        ),
        'templates': (
            'verification-report.md',
            'review-findings.md',
        ),
    }),
    ('1.2.0', {
        'hooks': (
            'plan-guard.py',
        ),
    }),
    ('1.3.0', {
        'skills': (
            'configure-project',
        ),
        'hooks': (
            'config-guard.py',
            'check-reconfig.py',
        ),
    }),
)

BASELINE_VERSION = _RELEASES[0][0]


def managed_paths(version: str) -> ManagedFileSet:
    """
    Return the package-owned file set for a package version.

    Versions older than the first release resolve to the baseline release, so
    callers always get a usable set.
    """
    collected: Dict[str, list] = {ns: [] for ns in PARTIAL_NAMESPACES}
    matched = False
    for since, additions in _RELEASES:
        if compare_versions(since, version) > 0:
            break
        matched = True
        for namespace, names in additions.items():
            collected[namespace].extend(names)

    if not matched:
        for namespace, names in _RELEASES[0][1].items():
            collected[namespace].extend(names)

    entries = {
        namespace: tuple(sorted(set(names)))
        for namespace, names in collected.items()
        if names
    }
    return ManagedFileSet(version=version, entries=entries)
