"""
Domain models for the moderation system.

This module contains the value types a moderation pass works with. They are
the normalized internal representation of a tracker issue, converted from the
Jira REST payloads by the gateway codec.

Change Tracking:
    Every collection on ``Issue`` that a rule may change comes as a pair:

    * ``baseline_<name>``: a tuple holding the collection exactly as it was
      fetched. It is never mutated.
    * ``pending_<name>``: a list holding the desired state. Rules append new
      entries (without an ``id``) or flip ``exists`` to ``False`` on copies of
      baseline entries to request deletion.

    Removing an entry from a pending list does *not* request deletion; intent
    to delete must be expressed through ``exists``.

Example:
    Building a snapshot and staging a change::

        issue = Issue.from_snapshot(
            key="MC-4",
            project=Project(key="MC"),
            status="Open",
            attachments=[Attachment(id="10001", name="crash.txt")],
        )
        issue.pending_attachments[0].exists = False
        issue.pending_comments.append(Comment.new("Removed unsafe attachment."))
"""

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class User:
    """A tracker account."""

    account_id: str | None
    """Remote account identifier; ``None`` for anonymized users."""

    display_name: str | None = None
    """Name shown in the tracker UI."""

    groups: tuple[str, ...] = ()
    """Group memberships, used by rules that treat staff differently."""

    is_new_user: bool = False
    """Whether the account was created recently."""


@dataclass(frozen=True)
class Version:
    """A project version that can be listed as affected or fixed."""

    id: str
    name: str
    released: bool = False
    archived: bool = False
    release_date: datetime | None = None


@dataclass(frozen=True)
class Project:
    """The project an issue belongs to."""

    key: str
    versions: tuple[Version, ...] = ()
    private_security: str | None = None
    """Security level id used when a rule makes an issue private."""


@dataclass
class VersionEntry:
    """Membership of a version in an issue's affected or fix version set.

    ``exists`` is the only mutable field: setting it to ``False`` on a
    pending entry removes the version from the set on synchronization.
    """

    version: Version
    exists: bool = True

    @property
    def id(self) -> str:
        """Identity of the entry, shared with the wrapped version."""
        return self.version.id


@dataclass
class Attachment:
    """A file attached to an issue.

    ``exists`` is the only field a rule may change.
    """

    id: str | None
    name: str
    created: datetime | None = None
    mime_type: str = "application/octet-stream"
    content_url: str | None = None
    uploader: User | None = None
    exists: bool = True


@dataclass
class Comment:
    """A comment on an issue.

    ``body``, ``visibility_type`` and ``visibility_value`` are mutable so
    rules can edit or restrict existing comments. Comments created by a rule
    have ``id=None`` until the gateway has posted them.
    """

    id: str | None
    body: str
    author: User | None = None
    created: datetime | None = None
    updated: datetime | None = None
    visibility_type: str | None = None
    visibility_value: str | None = None

    @classmethod
    def new(
        cls,
        body: str,
        visibility_type: str | None = None,
        visibility_value: str | None = None,
    ) -> "Comment":
        """Create a comment that has not been posted yet."""
        return cls(
            id=None,
            body=body,
            visibility_type=visibility_type,
            visibility_value=visibility_value,
        )


@dataclass(frozen=True)
class LinkedIssue:
    """The issue on the other end of a link."""

    key: str
    status: str | None = None


@dataclass
class Link:
    """A typed, directed link between two issues.

    ``exists`` is the only field a rule may change.
    """

    id: str | None
    type: str
    outwards: bool
    issue: LinkedIssue
    exists: bool = True


@dataclass
class ChangeLogItem:
    """One field change from the issue history.

    History is append-only. ``changed_to`` and ``changed_to_string`` are left
    mutable for rules that annotate what a revert restored.
    """

    created: datetime
    field: str
    changed_from: str | None
    changed_from_string: str | None
    changed_to: str | None
    changed_to_string: str | None
    author: User | None = None


SCALAR_FIELDS: tuple[str, ...] = (
    "summary",
    "status",
    "description",
    "environment",
    "security_level",
    "resolution",
    "chk",
    "confirmation_status",
    "linked",
    "priority",
    "platform",
)
"""Directly mutable scalar fields of ``Issue`` that are synchronized."""


def _copies(entries: Iterable[Any]) -> list[Any]:
    return [copy.copy(entry) for entry in entries]


@dataclass
class Issue:
    """A tracker issue snapshot with a pending-change overlay.

    An ``Issue`` is built once per moderation pass from a remote fetch, threaded
    through the rule modules (which mutate scalar fields and ``pending_*``
    lists), handed to the synchronizer and then discarded.

    Scalar fields listed in ``SCALAR_FIELDS`` are compared against
    ``baseline_fields`` (captured at construction) to detect changes.
    """

    key: str
    project: Project
    status: str
    summary: str | None = None
    description: str | None = None
    environment: str | None = None
    security_level: str | None = None
    reporter: User | None = None
    resolution: str | None = None
    created: datetime | None = None
    updated: datetime | None = None
    resolved: datetime | None = None
    chk: str | None = None
    confirmation_status: str | None = None
    linked: float | None = None
    priority: str | None = None
    triaged_time: str | None = None
    platform: str | None = None

    baseline_attachments: tuple[Attachment, ...] = ()
    pending_attachments: list[Attachment] = field(default_factory=list)
    baseline_comments: tuple[Comment, ...] = ()
    pending_comments: list[Comment] = field(default_factory=list)
    baseline_links: tuple[Link, ...] = ()
    pending_links: list[Link] = field(default_factory=list)
    baseline_affected_versions: tuple[VersionEntry, ...] = ()
    pending_affected_versions: list[VersionEntry] = field(default_factory=list)
    baseline_fix_versions: tuple[VersionEntry, ...] = ()
    pending_fix_versions: list[VersionEntry] = field(default_factory=list)

    changelog: tuple[ChangeLogItem, ...] = ()
    baseline_fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.baseline_fields:
            self.baseline_fields = MappingProxyType({name: getattr(self, name) for name in SCALAR_FIELDS})

    @classmethod
    def from_snapshot(
        cls,
        key: str,
        project: Project,
        status: str,
        attachments: Iterable[Attachment] = (),
        comments: Iterable[Comment] = (),
        links: Iterable[Link] = (),
        affected_versions: Iterable[Version] = (),
        fix_versions: Iterable[Version] = (),
        changelog: Iterable[ChangeLogItem] = (),
        **scalars: Any,
    ) -> "Issue":
        """Build an issue whose pending state starts as a copy of the baseline.

        Args:
            key: Issue key (e.g. ``"MC-12345"``)
            project: Owning project
            status: Current workflow status name
            attachments: Attachments as fetched
            comments: Comments as fetched
            links: Issue links as fetched
            affected_versions: Affected versions as fetched
            fix_versions: Fix versions as fetched
            changelog: History items as fetched
            **scalars: Any other ``Issue`` scalar field

        Returns:
            Issue with baseline tuples and independent pending copies.
        """
        baseline_attachments = tuple(attachments)
        baseline_comments = tuple(comments)
        baseline_links = tuple(links)
        baseline_affected = tuple(VersionEntry(version) for version in affected_versions)
        baseline_fix = tuple(VersionEntry(version) for version in fix_versions)

        return cls(
            key=key,
            project=project,
            status=status,
            baseline_attachments=baseline_attachments,
            pending_attachments=_copies(baseline_attachments),
            baseline_comments=baseline_comments,
            pending_comments=_copies(baseline_comments),
            baseline_links=baseline_links,
            pending_links=_copies(baseline_links),
            baseline_affected_versions=baseline_affected,
            pending_affected_versions=_copies(baseline_affected),
            baseline_fix_versions=baseline_fix,
            pending_fix_versions=_copies(baseline_fix),
            changelog=tuple(changelog),
            **scalars,
        )

    def changed_fields(self) -> dict[str, Any]:
        """Return scalar fields whose value differs from the baseline."""
        return {
            name: getattr(self, name)
            for name in SCALAR_FIELDS
            if getattr(self, name) != self.baseline_fields.get(name)
        }

