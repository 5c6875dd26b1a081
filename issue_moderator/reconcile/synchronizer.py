"""
Execution of reconciled operations against an issue gateway.

The synchronizer is the only place where planned operations meet I/O. For one
issue it:

    1. Plans all operations with ``plan()`` (pure, may raise
       ``DuplicateIdentityError``).
    2. Rejects plans containing operations the gateway cannot perform, before
       any remote call is made.
    3. Runs every category concurrently; inside a category operations run one
       after another in planned order (deletes, creates, updates).
    4. Captures each call's outcome. A failed call never stops the next one.
    5. Writes identities assigned by the tracker back into pending entries.

Nothing is retried. A failed operation is reported and the caller decides
whether to re-fetch and run again.
"""

import asyncio
import dataclasses
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any

import structlog

from issue_moderator.exceptions import GatewayError, InvalidRequestError
from issue_moderator.gateway.base import IssueGateway
from issue_moderator.models.domain import Issue
from issue_moderator.modules.base import ModuleResponse, OperationNotNeeded, aggregate
from issue_moderator.reconcile.comment_cache import CommentCache
from issue_moderator.reconcile.engine import plan
from issue_moderator.reconcile.operations import Category, Operation, OperationKind

log = structlog.get_logger(__name__)

_PENDING_ATTRIBUTES: dict[Category, str] = {
    Category.ATTACHMENTS: "pending_attachments",
    Category.COMMENTS: "pending_comments",
    Category.LINKS: "pending_links",
    Category.AFFECTED_VERSIONS: "pending_affected_versions",
    Category.FIX_VERSIONS: "pending_fix_versions",
}

_SUPPORTED: frozenset[tuple[Category, OperationKind]] = frozenset(
    {
        (Category.ATTACHMENTS, OperationKind.DELETE),
        (Category.COMMENTS, OperationKind.CREATE),
        (Category.COMMENTS, OperationKind.UPDATE),
        (Category.COMMENTS, OperationKind.DELETE),
        (Category.LINKS, OperationKind.CREATE),
        (Category.LINKS, OperationKind.DELETE),
        (Category.AFFECTED_VERSIONS, OperationKind.CREATE),
        (Category.AFFECTED_VERSIONS, OperationKind.DELETE),
        (Category.FIX_VERSIONS, OperationKind.CREATE),
        (Category.FIX_VERSIONS, OperationKind.DELETE),
        (Category.FIELDS, OperationKind.UPDATE),
    }
)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one executed operation.

    Attributes:
        operation: The operation that was attempted.
        error: The captured failure, or ``None`` if the call succeeded.
    """

    operation: Operation
    error: GatewayError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SyncReport:
    """Results of synchronizing one issue, in category order."""

    issue_key: str
    results: tuple[OperationResult, ...] = ()

    @property
    def failures(self) -> list[OperationResult]:
        """Results whose operation failed."""
        return [result for result in self.results if not result.succeeded]

    @property
    def errors(self) -> list[GatewayError]:
        return [result.error for result in self.results if result.error is not None]

    def to_response(self) -> ModuleResponse:
        """Summarize the report as a module outcome.

        Returns:
            ``OperationNotNeeded`` when nothing had to be sent, otherwise
            ``Successful`` or ``Failed`` with one error per failed operation.
        """
        if not self.results:
            return OperationNotNeeded()
        return aggregate(self.errors)


class IssueSynchronizer:
    """Applies an issue's pending state to the tracker.

    Args:
        gateway: Gateway used for every remote call
        comment_cache: Optional cache suppressing comments already posted to
            the same issue recently
    """

    def __init__(self, gateway: IssueGateway, comment_cache: CommentCache | None = None) -> None:
        self.gateway = gateway
        self.comment_cache = comment_cache

    async def sync(self, issue: Issue) -> SyncReport:
        """Synchronize ``issue`` with the tracker.

        Args:
            issue: Issue whose pending state should be applied

        Returns:
            Report with one result per planned operation.

        Raises:
            DuplicateIdentityError: If a pending collection holds duplicates.
            InvalidRequestError: If a planned operation cannot be performed,
                such as creating an attachment or writing a field the gateway
                has no mapping for. Raised before any remote call.
        """
        planned = plan(issue)
        if not planned:
            log.debug("sync_not_needed", issue_key=issue.key)
            return SyncReport(issue_key=issue.key)

        for operations in planned.values():
            for operation in operations:
                if (operation.category, operation.kind) not in _SUPPORTED:
                    raise InvalidRequestError(f"Unsupported operation on {issue.key}: {operation.describe()}")
                if operation.category is Category.FIELDS:
                    self.gateway.validate_fields(operation.changes)

        log.info(
            "sync_started",
            issue_key=issue.key,
            operations=sum(len(operations) for operations in planned.values()),
        )

        per_category = await asyncio.gather(
            *(self._run_category(issue, operations) for operations in planned.values())
        )
        results = tuple(result for category_results in per_category for result in category_results)
        report = SyncReport(issue_key=issue.key, results=results)

        log.info(
            "sync_completed",
            issue_key=issue.key,
            succeeded=len(results) - len(report.failures),
            failed=len(report.failures),
        )
        return report

    async def _run_category(self, issue: Issue, operations: list[Operation]) -> list[OperationResult]:
        results = []
        for operation in operations:
            try:
                identity = await self._dispatch(issue, operation)
            except GatewayError as e:
                log.warning(
                    "operation_failed",
                    issue_key=issue.key,
                    operation=operation.describe(),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                results.append(OperationResult(operation, e))
                continue

            if operation.kind is OperationKind.CREATE and identity is not None:
                self._write_back(issue, operation, identity)
            log.debug("operation_applied", issue_key=issue.key, operation=operation.describe())
            results.append(OperationResult(operation))
        return results

    def _dispatch(self, issue: Issue, operation: Operation) -> Awaitable[Any]:
        gateway = self.gateway
        category, kind, entity = operation.category, operation.kind, operation.entity

        if category is Category.FIELDS:
            return gateway.update_issue_fields(issue.key, dict(operation.changes))

        if category is Category.ATTACHMENTS:
            return gateway.delete_attachment(operation.identity)

        if category is Category.COMMENTS:
            if kind is OperationKind.CREATE:
                return self._post_comment(issue, operation)
            if kind is OperationKind.UPDATE:
                return gateway.update_comment(issue.key, operation.identity, dict(operation.changes))
            return gateway.delete_comment(issue.key, operation.identity)

        if category is Category.LINKS:
            if kind is OperationKind.CREATE:
                return gateway.create_link(issue.key, entity)
            return gateway.delete_link(operation.identity)

        # Version sets
        if kind is OperationKind.CREATE:
            return gateway.add_version(issue.key, category.value, entity.version)
        return gateway.remove_version(issue.key, category.value, entity.version)

    async def _post_comment(self, issue: Issue, operation: Operation) -> str:
        if self.comment_cache is not None:
            self.comment_cache.check(issue.key, operation.entity.body)
        return await self.gateway.add_comment(issue.key, operation.entity)

    @staticmethod
    def _write_back(issue: Issue, operation: Operation, identity: str) -> None:
        attribute = _PENDING_ATTRIBUTES.get(operation.category)
        if attribute is None or not hasattr(operation.entity, "id") or operation.entity.id == identity:
            return

        pending = getattr(issue, attribute)
        for index, entry in enumerate(pending):
            if entry is operation.entity:
                pending[index] = dataclasses.replace(entry, id=identity)
                return
