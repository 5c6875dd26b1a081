"""Attachment policy: delete attachments whose file type is not allowed."""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from issue_moderator.exceptions import ConfigurationError, InvalidRequestError
from issue_moderator.gateway.base import IssueGateway
from issue_moderator.models.domain import Attachment
from issue_moderator.modules.base import Module, ModuleResponse, OperationNotNeeded, aggregate, gather_outcomes

log = structlog.get_logger(__name__)

DEFAULT_EXTENSION_BLACKLIST: tuple[str, ...] = ("jar", "exe", "com", "bat", "msi", "run", "lnk", "dmg")


@dataclass(frozen=True)
class AttachmentModuleRequest:
    """Attachments currently on the issue."""

    attachments: tuple[Attachment, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "attachments", tuple(self.attachments))


class AttachmentModule(Module[AttachmentModuleRequest]):
    """Deletes every attachment whose file name ends in a denied extension.

    Matching is case-insensitive and anchored at the extension separator, so
    ``Setup.EXE`` matches ``exe`` but ``flexe`` does not.

    Args:
        gateway: Gateway used to delete attachments
        extension_blacklist: Denied extensions, with or without leading dot

    Raises:
        ConfigurationError: If ``extension_blacklist`` is empty.
    """

    name = "attachment"

    def __init__(
        self,
        gateway: IssueGateway,
        extension_blacklist: Iterable[str] = DEFAULT_EXTENSION_BLACKLIST,
    ) -> None:
        suffixes = tuple(
            "." + extension.strip().lstrip(".").lower() for extension in extension_blacklist if extension.strip(". ")
        )
        if not suffixes:
            raise ConfigurationError("Attachment module requires at least one blacklisted extension")
        self.gateway = gateway
        self.suffixes = suffixes

    def is_denied(self, attachment: Attachment) -> bool:
        """Whether the attachment's file name ends in a denied extension."""
        return attachment.name.lower().endswith(self.suffixes)

    async def invoke(self, request: AttachmentModuleRequest) -> ModuleResponse:
        denied = [attachment for attachment in request.attachments if self.is_denied(attachment)]
        if not denied:
            return OperationNotNeeded()

        for attachment in denied:
            if attachment.id is None:
                raise InvalidRequestError(f"Attachment {attachment.name!r} has no id")

        log.info("deleting_denied_attachments", attachment_ids=[attachment.id for attachment in denied])
        failures = await gather_outcomes(self.gateway.delete_attachment(attachment.id) for attachment in denied)
        return aggregate(failures)
