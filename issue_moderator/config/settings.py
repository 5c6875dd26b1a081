"""
Configuration system using Pydantic for type-safe settings management.

This module provides configuration classes for the tracker connection, the
instance's custom field ids, the moderated projects, the rule modules and the
runner.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from issue_moderator.exceptions import ConfigurationError
from issue_moderator.gateway.codec import CustomFieldIds

DEFAULT_PROJECTS = ["MC", "MCTEST", "MCPE", "MCAPI", "MCL", "MCD", "MCE", "BDS"]


class JiraConfig(BaseModel):
    """Jira connection configuration.

    The API token is usually supplied through ``${JIRA_API_TOKEN}`` in the
    YAML file or ``MODERATOR_JIRA__API_TOKEN`` in the environment.
    """

    url: HttpUrl = Field(..., description="Jira site URL")
    email: str = Field(..., description="Account e-mail used for basic auth")
    api_token: SecretStr = Field(..., description="API token used for basic auth")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    max_connections: int = Field(default=10, ge=1, description="HTTP connection pool size")


class CustomFieldsConfig(BaseModel):
    """Ids of the Jira custom fields the rules read and write."""

    chk_field: str | None = Field(default="customfield_10701", description="CHK timestamp field")
    confirmation_field: str | None = Field(default="customfield_10500", description="Confirmation status field")
    mojang_priority_field: str | None = Field(default="customfield_12200", description="Priority option field")
    triaged_time_field: str | None = Field(default="customfield_12201", description="Triaged time field")
    linked_field: str | None = Field(default=None, description="Linked counter field")
    platform_field: str | None = Field(default=None, description="Platform option field")

    def to_field_ids(self) -> CustomFieldIds:
        """Convert to the gateway codec's field id mapping."""
        return CustomFieldIds(
            chk=self.chk_field,
            confirmation_status=self.confirmation_field,
            priority=self.mojang_priority_field,
            triaged_time=self.triaged_time_field,
            linked=self.linked_field,
            platform=self.platform_field,
        )


class IssuesConfig(BaseModel):
    """Which issues are moderated."""

    projects: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PROJECTS), min_length=1, description="Moderated projects"
    )
    max_results: int = Field(default=50, ge=1, le=100, description="Search page size")


class ModuleConfig(BaseModel):
    """Settings shared by every rule module."""

    enabled: bool = Field(default=True, description="Whether the module runs at all")
    whitelist: list[str] | None = Field(
        default=None, description="Projects the module runs on; defaults to issues.projects"
    )


class AttachmentModuleConfig(ModuleConfig):
    """Attachment policy module settings."""

    extension_blacklist: list[str] = Field(
        default_factory=lambda: ["jar", "exe", "com", "bat", "msi", "run", "lnk", "dmg"],
        description="Denied attachment file extensions",
    )

    @field_validator("extension_blacklist")
    @classmethod
    def validate_blacklist(cls, value: list[str]) -> list[str]:
        """Reject an empty deny-list."""
        cleaned = [extension.strip().lstrip(".").lower() for extension in value if extension.strip(". ")]
        if not cleaned:
            raise ValueError("extension_blacklist must contain at least one extension")
        return cleaned


class ModulesConfig(BaseModel):
    """Per-module configuration."""

    attachment: AttachmentModuleConfig = Field(default_factory=AttachmentModuleConfig)
    chk: ModuleConfig = Field(default_factory=ModuleConfig)


class RunnerConfig(BaseModel):
    """Moderation runner behavior."""

    max_concurrent_issues: int = Field(default=4, ge=1, description="Issues moderated at the same time")
    jql: str | None = Field(
        default=None, description="Query selecting issues for `run`; defaults to recently updated issues"
    )
    updated_within_minutes: int = Field(default=10, ge=1, description="Window used by the default query")


class ModeratorSettings(BaseSettings):
    """Main moderator settings.

    This class combines all configuration sections and provides methods
    for loading from YAML files with environment variable interpolation.
    """

    model_config = SettingsConfigDict(
        env_prefix="MODERATOR_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    jira: JiraConfig
    custom_fields: CustomFieldsConfig = Field(default_factory=CustomFieldsConfig)
    issues: IssuesConfig = Field(default_factory=IssuesConfig)
    modules: ModulesConfig = Field(default_factory=ModulesConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)

    def default_jql(self) -> str:
        """Query used by `run` when none is configured."""
        if self.runner.jql:
            return self.runner.jql
        projects = ", ".join(self.issues.projects)
        return f"project IN ({projects}) AND updated >= -{self.runner.updated_within_minutes}m ORDER BY updated ASC"

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> ModeratorSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} syntax for environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ModeratorSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing required fields
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_file.read_text()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except TypeError as e:
            raise ConfigurationError(f"Missing or invalid configuration fields: {e}") from e
        except ValueError as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports two syntaxes:
        - ${VAR_NAME} - Required environment variable (raises if not set)
        - ${VAR_NAME:-default} - Optional with default value

        YAML comment lines (starting with #) are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            if default_value is not None:
                return default_value
            raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
