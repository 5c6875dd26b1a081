"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from issue_moderator.gateway.base import IssueGateway
from issue_moderator.models.domain import (
    Attachment,
    Comment,
    Issue,
    Link,
    LinkedIssue,
    Project,
    User,
    Version,
)


@pytest.fixture
def project() -> Project:
    """Sample project with two versions."""
    return Project(
        key="MC",
        versions=(
            Version(id="100", name="1.20"),
            Version(id="101", name="1.21"),
        ),
    )


@pytest.fixture
def reporter() -> User:
    """Sample reporter account."""
    return User(account_id="acc-1", display_name="Reporter")


@pytest.fixture
def sample_issue(project: Project, reporter: User) -> Issue:
    """Issue snapshot with one entry in every collection."""
    created = datetime(2025, 2, 13, 12, 32, 46, tzinfo=timezone.utc)
    return Issue.from_snapshot(
        key="MC-4",
        project=project,
        status="Open",
        summary="Game crashes on start",
        reporter=reporter,
        created=created,
        confirmation_status="Unconfirmed",
        attachments=[
            Attachment(id="10001", name="crash-report.txt", created=created),
            Attachment(id="10002", name="installer.exe", created=created),
        ],
        comments=[Comment(id="20001", body="Same here.", author=reporter, created=created)],
        links=[Link(id="30001", type="Duplicate", outwards=True, issue=LinkedIssue(key="MC-1"))],
        affected_versions=[project.versions[0]],
        fix_versions=[],
    )


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Gateway test double; every call succeeds unless configured otherwise."""
    gateway = AsyncMock(spec=IssueGateway)
    gateway.add_comment.return_value = "29999"
    gateway.create_link.return_value = "39999"
    return gateway
