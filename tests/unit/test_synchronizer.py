"""Tests for issue_moderator/reconcile/synchronizer.py and comment_cache.py."""

from unittest.mock import AsyncMock

import httpx
import pytest

from issue_moderator.exceptions import (
    ClientError,
    DuplicateCommentError,
    DuplicateIdentityError,
    InvalidRequestError,
    ServerError,
)
from issue_moderator.gateway.jira_rest import JiraRestGateway
from issue_moderator.models.domain import Attachment, Comment, Issue, Link, LinkedIssue
from issue_moderator.modules.base import Failed, OperationNotNeeded, Successful
from issue_moderator.reconcile.comment_cache import CommentCache
from issue_moderator.reconcile.synchronizer import IssueSynchronizer, SyncReport

# =============================================================================
# CommentCache
# =============================================================================


class TestCommentCache:
    """Tests for the two-generation comment cache."""

    def test_first_post_is_recorded(self):
        """Should accept a body the first time and remember it."""
        cache = CommentCache()

        cache.check("MC-1", "Hello")

        assert cache.has_been_posted("MC-1", "Hello")

    def test_duplicate_in_same_pass_raises(self):
        """Should reject the same body on the same issue."""
        cache = CommentCache()
        cache.check("MC-1", "Hello")

        with pytest.raises(DuplicateCommentError) as exc_info:
            cache.check("MC-1", "Hello")

        assert exc_info.value.issue_key == "MC-1"

    def test_other_issue_is_independent(self):
        """Should allow the same body on a different issue."""
        cache = CommentCache()
        cache.check("MC-1", "Hello")

        cache.check("MC-2", "Hello")

    def test_previous_pass_is_remembered(self):
        """Should still reject a body posted in the previous pass."""
        cache = CommentCache()
        cache.check("MC-1", "Hello")
        cache.flush()

        with pytest.raises(DuplicateCommentError):
            cache.check("MC-1", "Hello")

    def test_two_flushes_forget(self):
        """Should forget bodies older than the previous pass."""
        cache = CommentCache()
        cache.check("MC-1", "Hello")
        cache.flush()
        cache.flush()

        assert not cache.has_been_posted("MC-1", "Hello")


# =============================================================================
# IssueSynchronizer
# =============================================================================


class TestIssueSynchronizer:
    """Tests for executing planned operations."""

    @pytest.mark.asyncio
    async def test_unmodified_issue_makes_no_calls(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should not touch the gateway when nothing changed."""
        report = await IssueSynchronizer(mock_gateway).sync(sample_issue)

        assert report.results == ()
        assert isinstance(report.to_response(), OperationNotNeeded)
        assert mock_gateway.method_calls == []

    @pytest.mark.asyncio
    async def test_dispatches_each_category(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should call the matching gateway method for each operation."""
        sample_issue.pending_attachments[1].exists = False
        sample_issue.pending_links[0].exists = False
        sample_issue.pending_affected_versions[0].exists = False
        sample_issue.pending_comments[0].body = "Edited"
        sample_issue.status = "Resolved"

        report = await IssueSynchronizer(mock_gateway).sync(sample_issue)

        mock_gateway.delete_attachment.assert_awaited_once_with("10002")
        mock_gateway.delete_link.assert_awaited_once_with("30001")
        mock_gateway.remove_version.assert_awaited_once_with(
            "MC-4", "affected_versions", sample_issue.baseline_affected_versions[0].version
        )
        mock_gateway.update_comment.assert_awaited_once_with("MC-4", "20001", {"body": "Edited"})
        mock_gateway.update_issue_fields.assert_awaited_once_with("MC-4", {"status": "Resolved"})
        assert isinstance(report.to_response(), Successful)

    @pytest.mark.asyncio
    async def test_continues_after_failure(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should attempt every operation even when one fails."""
        sample_issue.pending_attachments[0].exists = False
        sample_issue.pending_attachments[1].exists = False
        mock_gateway.delete_attachment.side_effect = [ClientError("Forbidden", status_code=403), None]

        report = await IssueSynchronizer(mock_gateway).sync(sample_issue)

        assert mock_gateway.delete_attachment.await_count == 2
        assert len(report.failures) == 1
        assert report.failures[0].operation.identity == "10001"
        response = report.to_response()
        assert isinstance(response, Failed)
        assert len(response.errors) == 1

    @pytest.mark.asyncio
    async def test_created_identity_is_written_back(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should store the tracker-assigned id in the pending entry."""
        sample_issue.pending_comments.append(Comment.new("Thanks for the report."))
        sample_issue.pending_links.append(
            Link(id=None, type="Relates", outwards=True, issue=LinkedIssue(key="MC-2"))
        )

        await IssueSynchronizer(mock_gateway).sync(sample_issue)

        assert sample_issue.pending_comments[-1].id == "29999"
        assert sample_issue.pending_links[-1].id == "39999"

    @pytest.mark.asyncio
    async def test_failed_create_keeps_entry_new(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should leave the identity unset when the create failed."""
        sample_issue.pending_comments.append(Comment.new("Thanks for the report."))
        mock_gateway.add_comment.side_effect = ServerError("Unexpected code 503", status_code=503)

        report = await IssueSynchronizer(mock_gateway).sync(sample_issue)

        assert sample_issue.pending_comments[-1].id is None
        assert isinstance(report.failures[0].error, ServerError)

    @pytest.mark.asyncio
    async def test_duplicate_comment_is_suppressed(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should report a duplicate comment as failed without posting it."""
        cache = CommentCache()
        cache.check("MC-4", "Thanks for the report.")
        sample_issue.pending_comments.append(Comment.new("Thanks for the report."))

        report = await IssueSynchronizer(mock_gateway, cache).sync(sample_issue)

        mock_gateway.add_comment.assert_not_awaited()
        assert isinstance(report.failures[0].error, DuplicateCommentError)

    @pytest.mark.asyncio
    async def test_operations_within_category_run_in_order(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should delete before creating inside a category."""
        calls = []
        mock_gateway.delete_link.side_effect = lambda *args: calls.append("delete")
        mock_gateway.create_link.side_effect = lambda *args: calls.append("create")
        sample_issue.pending_links.insert(
            0, Link(id=None, type="Relates", outwards=True, issue=LinkedIssue(key="MC-2"))
        )
        sample_issue.pending_links[1].exists = False

        await IssueSynchronizer(mock_gateway).sync(sample_issue)

        assert calls == ["delete", "create"]
        assert sample_issue.pending_links[0].id is None

    @pytest.mark.asyncio
    async def test_attachment_create_is_rejected_before_io(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should refuse unsupported operations without calling the gateway."""
        sample_issue.pending_attachments.append(Attachment(id=None, name="log.txt"))
        sample_issue.pending_attachments[0].exists = False

        with pytest.raises(InvalidRequestError):
            await IssueSynchronizer(mock_gateway).sync(sample_issue)

        mock_gateway.delete_attachment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fields_are_validated_before_io(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should have the gateway check field changes before any call."""
        mock_gateway.validate_fields.side_effect = InvalidRequestError("No custom field configured for 'linked'")
        sample_issue.pending_attachments[1].exists = False
        sample_issue.linked = 2.0

        with pytest.raises(InvalidRequestError):
            await IssueSynchronizer(mock_gateway).sync(sample_issue)

        mock_gateway.validate_fields.assert_called_once_with({"linked": 2.0})
        mock_gateway.delete_attachment.assert_not_awaited()
        mock_gateway.update_issue_fields.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unmapped_field_sends_nothing(self, sample_issue: Issue):
        """Should reject a field without a configured id before deleting anything."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        gateway = JiraRestGateway(
            base_url="https://example.atlassian.net",
            email="bot@example.com",
            api_token="token-123",
            transport=httpx.MockTransport(handler),
        )
        sample_issue.pending_attachments[1].exists = False
        sample_issue.linked = 2.0

        with pytest.raises(InvalidRequestError, match="linked"):
            await IssueSynchronizer(gateway).sync(sample_issue)

        assert requests == []

    @pytest.mark.asyncio
    async def test_duplicate_identity_propagates(self, sample_issue: Issue, mock_gateway: AsyncMock):
        """Should let programming errors escape."""
        sample_issue.pending_links.append(sample_issue.pending_links[0])

        with pytest.raises(DuplicateIdentityError):
            await IssueSynchronizer(mock_gateway).sync(sample_issue)


class TestSyncReport:
    """Tests for SyncReport summaries."""

    def test_empty_report_is_not_needed(self):
        """Should map an empty report to OperationNotNeeded."""
        assert isinstance(SyncReport(issue_key="MC-1").to_response(), OperationNotNeeded)
