"""
Registry of the rule modules a moderation pass runs.

Each entry pairs a module with the function that builds its request from an
issue and the set of projects the module is allowed to touch. Modules run in
registration order.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from issue_moderator.config.settings import ModeratorSettings
from issue_moderator.exceptions import ConfigurationError
from issue_moderator.gateway.base import IssueGateway
from issue_moderator.models.domain import Issue
from issue_moderator.modules.attachment import AttachmentModule, AttachmentModuleRequest
from issue_moderator.modules.base import Module
from issue_moderator.modules.chk import ChkModule, ChkModuleRequest

RequestFactory = Callable[[Issue], Any]


@dataclass(frozen=True)
class RegisteredModule:
    """A module together with how and where it is applied.

    Attributes:
        name: Unique name used in logs and reports
        module: The module instance
        request_factory: Builds the module's request from an issue
        projects: Project keys the module runs on; ``None`` for all projects
    """

    name: str
    module: Module[Any]
    request_factory: RequestFactory
    projects: frozenset[str] | None = None

    def applies_to(self, issue: Issue) -> bool:
        return self.projects is None or issue.project.key in self.projects


class ModuleRegistry:
    """Ordered collection of registered modules."""

    def __init__(self) -> None:
        self._entries: dict[str, RegisteredModule] = {}

    def register(
        self,
        name: str,
        module: Module[Any],
        request_factory: RequestFactory,
        projects: Iterable[str] | None = None,
    ) -> RegisteredModule:
        """Add a module.

        Raises:
            ConfigurationError: If a module with the same name is registered.
        """
        if name in self._entries:
            raise ConfigurationError(f"Module already registered: {name}")
        entry = RegisteredModule(
            name=name,
            module=module,
            request_factory=request_factory,
            projects=frozenset(projects) if projects is not None else None,
        )
        self._entries[name] = entry
        return entry

    def modules_for(self, issue: Issue) -> list[RegisteredModule]:
        """Modules whose project whitelist includes the issue's project."""
        return [entry for entry in self._entries.values() if entry.applies_to(issue)]

    @property
    def names(self) -> list[str]:
        return list(self._entries)

    def __iter__(self) -> Iterator[RegisteredModule]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


def attachment_request(issue: Issue) -> AttachmentModuleRequest:
    return AttachmentModuleRequest(attachments=issue.baseline_attachments)


def chk_request(issue: Issue) -> ChkModuleRequest:
    return ChkModuleRequest(
        issue_key=issue.key,
        chk_field=issue.chk,
        confirmation_field=issue.confirmation_status,
    )


def build_registry(settings: ModeratorSettings, gateway: IssueGateway) -> ModuleRegistry:
    """Register every enabled module from configuration.

    A module without its own whitelist runs on all configured projects.
    """
    registry = ModuleRegistry()
    modules = settings.modules
    default_projects = settings.issues.projects

    if modules.attachment.enabled:
        registry.register(
            AttachmentModule.name,
            AttachmentModule(gateway, modules.attachment.extension_blacklist),
            attachment_request,
            modules.attachment.whitelist or default_projects,
        )

    if modules.chk.enabled:
        registry.register(
            ChkModule.name,
            ChkModule(gateway),
            chk_request,
            modules.chk.whitelist or default_projects,
        )

    return registry
