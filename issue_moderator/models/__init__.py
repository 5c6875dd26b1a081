"""Core domain models for the moderation system.

This package defines the value types describing a tracker issue and the
entities it owns, together with the baseline/pending change-tracking overlay
that rule modules write into.

Key Models:
    - Issue: Root aggregate with baseline tuples and pending lists
    - Attachment, Comment, Link: Issue-owned entities with remote identities
    - VersionEntry: Membership of a Version in an affected/fix version set
    - ChangeLogItem: Append-only history entry
    - User, Project, Version, LinkedIssue: Immutable reference values

Example:
    >>> from issue_moderator.models import Issue, Project
    >>> issue = Issue.from_snapshot(key="MC-1", project=Project(key="MC"), status="Open")
    >>> issue.changed_fields()
    {}
"""

from issue_moderator.models.domain import (
    SCALAR_FIELDS,
    Attachment,
    ChangeLogItem,
    Comment,
    Issue,
    Link,
    LinkedIssue,
    Project,
    User,
    Version,
    VersionEntry,
)

__all__ = [
    "SCALAR_FIELDS",
    "Attachment",
    "ChangeLogItem",
    "Comment",
    "Issue",
    "Link",
    "LinkedIssue",
    "Project",
    "User",
    "Version",
    "VersionEntry",
]
