"""Confirmation hash: stamp the CHK field once an issue is confirmed."""

from dataclasses import dataclass

import structlog

from issue_moderator.gateway.base import IssueGateway
from issue_moderator.gateway.codec import chk_timestamp
from issue_moderator.modules.base import Module, ModuleResponse, OperationNotNeeded, aggregate, capture

log = structlog.get_logger(__name__)

# Confirmation values, compared case-insensitively, that do not count as confirmed
UNCONFIRMED_VALUES = frozenset({"undefined", "unconfirmed"})


@dataclass(frozen=True)
class ChkModuleRequest:
    """Current CHK and confirmation values of an issue.

    Attributes:
        issue_key: Key of the issue to stamp
        chk_field: Current CHK value; ``None`` or empty when not stamped
        confirmation_field: Current confirmation status
    """

    issue_key: str
    chk_field: str | None
    confirmation_field: str | None


class ChkModule(Module[ChkModuleRequest]):
    """Sets CHK to the current time when an unstamped issue gets confirmed."""

    name = "chk"

    def __init__(self, gateway: IssueGateway) -> None:
        self.gateway = gateway

    @staticmethod
    def needs_stamp(request: ChkModuleRequest) -> bool:
        confirmation = request.confirmation_field
        if confirmation is None or confirmation.lower() in UNCONFIRMED_VALUES:
            return False
        return not request.chk_field

    async def invoke(self, request: ChkModuleRequest) -> ModuleResponse:
        if not self.needs_stamp(request):
            return OperationNotNeeded()

        stamp = chk_timestamp()
        log.info("stamping_chk", issue_key=request.issue_key, chk=stamp)
        error = await capture(self.gateway.update_issue_fields(request.issue_key, {"chk": stamp}))
        return aggregate([error] if error else [])
