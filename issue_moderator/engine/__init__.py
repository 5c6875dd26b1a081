"""Moderation execution engine.

Key Components:
    - ModuleRegistry: Ordered modules with request factories and project whitelists
    - build_registry: Registers the configured modules
    - ModerationRunner: Runs modules per issue and synchronizes the results
    - IssueOutcome: Per-issue module responses and synchronization report
"""

from issue_moderator.engine.registry import ModuleRegistry, RegisteredModule, build_registry
from issue_moderator.engine.runner import IssueOutcome, ModerationRunner

__all__ = [
    "IssueOutcome",
    "ModerationRunner",
    "ModuleRegistry",
    "RegisteredModule",
    "build_registry",
]
