"""
Abstract gateway to the remote issue tracker.

This module defines the capability interface the moderation core uses for all
remote effects. Rule modules call it directly for immediate actions (deleting
an attachment, stamping a field) and the synchronizer calls it to apply
reconciled operations.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from issue_moderator.models.domain import Comment, Issue, Link, Version


@dataclass(frozen=True)
class SearchPage:
    """One page of search results.

    Attributes:
        issues: Issue snapshots in the tracker's order
        next_page_token: Cursor for the following page; ``None`` on the last page
    """

    issues: tuple[Issue, ...]
    next_page_token: str | None = None


class IssueGateway(ABC):
    """Abstract base class for issue tracker gateways.

    Implementations normalize the tracker's API into the domain models defined
    in ``models.domain``. Field names passed to ``update_issue_fields`` are the
    domain names (``"chk"``, ``"confirmation_status"``); each implementation
    maps them to the tracker's own field ids.

    Error contract:
        Every method either completes or raises a ``GatewayError`` subclass:

        - ``ClientError`` when the tracker rejects the request (4xx)
        - ``ServerError`` for any other non-success status
        - ``TransportError`` when no response was received

        Implementations never retry.

    All methods are async to support non-blocking I/O with HTTP clients.
    """

    @abstractmethod
    async def fetch_issue(self, key: str) -> Issue:
        """Fetch a single issue as a fresh snapshot.

        Args:
            key: Issue key (e.g. ``"MC-12345"``)

        Returns:
            Issue whose pending collections are copies of its baseline.

        Raises:
            ClientError: If the issue does not exist or is not visible (404/403).
        """
        pass

    @abstractmethod
    async def search_issues(
        self,
        jql: str,
        fields: Sequence[str] | None = None,
        expand: Sequence[str] | None = None,
        max_results: int = 50,
        page_token: str | None = None,
    ) -> SearchPage:
        """Search issues with a JQL query.

        Pages are addressed by an opaque cursor. A page may hold fewer than
        ``max_results`` issues even when more follow, so callers keep going
        until ``next_page_token`` is ``None``.

        Args:
            jql: Query string
            fields: Field ids to include; ``None`` for the tracker default
            expand: Expansions to request (e.g. ``["changelog"]``)
            max_results: Upper bound on the page size
            page_token: Cursor returned with the previous page; ``None`` for the first

        Returns:
            One page of issue snapshots and the cursor of the next one.
        """
        pass

    @abstractmethod
    async def update_issue_fields(self, key: str, fields: Mapping[str, Any]) -> None:
        """Set scalar fields on an issue.

        Args:
            key: Issue key
            fields: Domain field names mapped to their new values. ``status``
                is applied as a workflow transition.

        Raises:
            ClientError: If a value is rejected or a transition is unavailable.
        """
        pass

    def validate_fields(self, fields: Mapping[str, Any]) -> None:
        """Check that ``update_issue_fields`` could encode ``fields``.

        Performs no I/O. The default accepts everything.

        Raises:
            InvalidRequestError: If a field cannot be written.
        """
        return None

    @abstractmethod
    async def add_comment(self, key: str, comment: Comment) -> str:
        """Post a new comment.

        Args:
            key: Issue key
            comment: Comment to post; its ``id`` is ignored

        Returns:
            Identity assigned to the new comment.
        """
        pass

    @abstractmethod
    async def update_comment(self, key: str, comment_id: str, changes: Mapping[str, Any]) -> None:
        """Edit an existing comment.

        Args:
            key: Issue key
            comment_id: Identity of the comment
            changes: Changed comment fields (``body``, ``visibility_type``,
                ``visibility_value``) with their new values
        """
        pass

    @abstractmethod
    async def delete_comment(self, key: str, comment_id: str) -> None:
        """Delete a comment from an issue."""
        pass

    @abstractmethod
    async def delete_attachment(self, attachment_id: str) -> None:
        """Delete an attachment.

        Args:
            attachment_id: Identity of the attachment
        """
        pass

    @abstractmethod
    async def create_link(self, key: str, link: Link) -> str | None:
        """Link an issue to another issue.

        Args:
            key: Key of the issue owning the link
            link: Link to create; ``outwards`` decides which side ``key`` is on

        Returns:
            Identity of the new link, or ``None`` when the tracker does not
            report one.
        """
        pass

    @abstractmethod
    async def delete_link(self, link_id: str) -> None:
        """Delete an issue link."""
        pass

    @abstractmethod
    async def add_version(self, key: str, category: str, version: Version) -> None:
        """Add a version to one of an issue's version sets.

        Args:
            key: Issue key
            category: ``"affected_versions"`` or ``"fix_versions"``
            version: Version to add
        """
        pass

    @abstractmethod
    async def remove_version(self, key: str, category: str, version: Version) -> None:
        """Remove a version from one of an issue's version sets.

        Args:
            key: Issue key
            category: ``"affected_versions"`` or ``"fix_versions"``
            version: Version to remove
        """
        pass
