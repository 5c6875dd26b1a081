"""Configuration system for the moderator.

This package provides type-safe configuration management using Pydantic.

Key Components:
    - ModeratorSettings: Main configuration container with YAML loading support
    - JiraConfig: Tracker connection and credentials
    - CustomFieldsConfig: Ids of the instance's custom fields
    - ModulesConfig: Per-module settings and project whitelists
    - RunnerConfig: Concurrency and issue selection

Example:
    >>> from issue_moderator.config import ModeratorSettings
    >>> settings = ModeratorSettings.from_yaml("moderator.yaml")
    >>> settings.runner.max_concurrent_issues
    4
"""

from issue_moderator.config.settings import (
    AttachmentModuleConfig,
    CustomFieldsConfig,
    IssuesConfig,
    JiraConfig,
    ModeratorSettings,
    ModuleConfig,
    ModulesConfig,
    RunnerConfig,
)

__all__ = [
    "AttachmentModuleConfig",
    "CustomFieldsConfig",
    "IssuesConfig",
    "JiraConfig",
    "ModeratorSettings",
    "ModuleConfig",
    "ModulesConfig",
    "RunnerConfig",
]
