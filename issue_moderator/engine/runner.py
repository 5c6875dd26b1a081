"""
Moderation runner: applies registered modules to issues and synchronizes.

Execution model:
    - For one issue, modules run one after another in registration order,
      each seeing the changes staged by the modules before it. The issue's
      pending state is then synchronized once.
    - Different issues are moderated concurrently, at most
      ``max_concurrent_issues`` at a time.
    - Failed module responses and failed operations are logged and reported.
      Nothing is retried.
    - Programming errors (``ModerationBugError``) are not caught.

Example:
    >>> runner = ModerationRunner(gateway, registry, max_concurrent_issues=4)
    >>> outcomes = await runner.run("project = MC AND updated >= -10m")
    >>> [outcome.issue_key for outcome in outcomes if outcome.failed]
    ['MC-1234']
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from issue_moderator.engine.registry import ModuleRegistry
from issue_moderator.gateway.base import IssueGateway
from issue_moderator.models.domain import Issue
from issue_moderator.modules.base import Failed, ModuleResponse
from issue_moderator.reconcile.comment_cache import CommentCache
from issue_moderator.reconcile.synchronizer import IssueSynchronizer, SyncReport

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IssueOutcome:
    """Everything that happened to one issue during a pass.

    Attributes:
        issue_key: Key of the moderated issue
        responses: Module name to the module's response, in execution order
        sync: Result of synchronizing the staged changes
    """

    issue_key: str
    responses: Mapping[str, ModuleResponse] = field(default_factory=lambda: MappingProxyType({}))
    sync: SyncReport | None = None

    @property
    def failed(self) -> bool:
        """Whether any module or synchronized operation failed."""
        if any(isinstance(response, Failed) for response in self.responses.values()):
            return True
        return self.sync is not None and bool(self.sync.failures)


class ModerationRunner:
    """Runs a module registry over issues fetched through a gateway."""

    def __init__(
        self,
        gateway: IssueGateway,
        registry: ModuleRegistry,
        max_concurrent_issues: int = 4,
        page_size: int = 50,
        comment_cache: CommentCache | None = None,
    ) -> None:
        """Initialize runner.

        Args:
            gateway: Gateway used for fetching and synchronizing
            registry: Modules to apply
            max_concurrent_issues: Upper bound on issues moderated at once
            page_size: Search page size
            comment_cache: Cache shared across passes; a new one by default
        """
        if max_concurrent_issues < 1:
            raise ValueError("max_concurrent_issues must be at least 1")
        self.gateway = gateway
        self.registry = registry
        self.page_size = page_size
        self.comment_cache = comment_cache or CommentCache()
        self.synchronizer = IssueSynchronizer(gateway, self.comment_cache)
        self._semaphore = asyncio.Semaphore(max_concurrent_issues)

    async def moderate(self, issue: Issue) -> IssueOutcome:
        """Apply every applicable module to ``issue``, then synchronize it."""
        with structlog.contextvars.bound_contextvars(issue_key=issue.key):
            responses: dict[str, ModuleResponse] = {}
            for entry in self.registry.modules_for(issue):
                response = await entry.module(entry.request_factory(issue))
                responses[entry.name] = response
                if isinstance(response, Failed):
                    log.warning(
                        "module_failed",
                        module=entry.name,
                        errors=[str(error) for error in response.errors],
                    )
                else:
                    log.debug("module_completed", module=entry.name, response=type(response).__name__)

            report = await self.synchronizer.sync(issue)
            outcome = IssueOutcome(issue_key=issue.key, responses=MappingProxyType(responses), sync=report)
            log.info("issue_moderated", failed=outcome.failed, modules=len(responses))
            return outcome

    async def moderate_key(self, key: str) -> IssueOutcome:
        """Fetch one issue by key and moderate it.

        Raises:
            GatewayError: If the issue cannot be fetched.
        """
        issue = await self.gateway.fetch_issue(key)
        return await self.moderate(issue)

    async def fetch_all(self, jql: str) -> list[Issue]:
        """Fetch every issue matching ``jql``, following the page cursor."""
        issues: list[Issue] = []
        page_token: str | None = None
        while True:
            page = await self.gateway.search_issues(
                jql,
                expand=["changelog"],
                max_results=self.page_size,
                page_token=page_token,
            )
            issues.extend(page.issues)
            if page.next_page_token is None:
                return issues
            page_token = page.next_page_token

    async def run(self, jql: str) -> list[IssueOutcome]:
        """Moderate every issue matching ``jql``.

        The comment cache is rotated once the pass is over, so comments posted
        in this pass are still recognized during the next one. If one issue raises,
        the issues still in flight are cancelled and awaited before the cache
        is rotated.

        Returns:
            One outcome per issue, in search order.
        """
        issues = await self.fetch_all(jql)
        log.info("moderation_pass_started", jql=jql, issues=len(issues))

        async def bounded(issue: Issue) -> IssueOutcome:
            async with self._semaphore:
                return await self.moderate(issue)

        tasks = [asyncio.ensure_future(bounded(issue)) for issue in issues]
        try:
            outcomes = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            self.comment_cache.flush()

        failed = sum(1 for outcome in outcomes if outcome.failed)
        log.info("moderation_pass_completed", issues=len(outcomes), failed=failed)
        return list(outcomes)
