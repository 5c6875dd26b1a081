"""
Conversion between Jira REST payloads and domain models.

Jira Cloud returns timestamps with colon-less offsets
(``2025-02-13T12:32:46.327+0100``), rich text in Atlassian Document Format
(ADF) and custom fields under instance-specific ids. This module hides those
details from the rest of the system: everything it returns is a plain domain
value, and everything it produces is ready to be sent as JSON.

Example:
    >>> parse_datetime("2025-02-13T12:32:46.327+0100").isoformat()
    '2025-02-13T12:32:46.327000+01:00'
    >>> chk_timestamp(datetime(2026, 10, 19, 12, 30, 5, tzinfo=timezone.utc))
    '2026-10-19T12:30:05.123-0000'
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

import httpx

from issue_moderator.models.domain import (
    Attachment,
    ChangeLogItem,
    Comment,
    Issue,
    Link,
    LinkedIssue,
    Project,
    User,
    Version,
)

_COLONLESS_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


@dataclass(frozen=True)
class CustomFieldIds:
    """Jira field ids backing the domain's custom fields.

    A ``None`` id means the instance does not have the field; it is then
    neither read nor written.
    """

    chk: str | None = "customfield_10701"
    confirmation_status: str | None = "customfield_10500"
    priority: str | None = "customfield_12200"
    triaged_time: str | None = "customfield_12201"
    linked: str | None = None
    platform: str | None = None

    def requested_fields(self) -> list[str]:
        """Custom field ids to include in search requests."""
        return [value for value in vars(self).values() if value]


# Custom fields whose value is an option object ({"value": ...})
_OPTION_FIELDS = frozenset({"confirmation_status", "priority", "platform"})


# =============================================================================
# Scalars
# =============================================================================


def parse_datetime(value: str | None) -> datetime | None:
    """Parse a Jira timestamp.

    Accepts colon-less offsets (``+0100``), colon offsets (``+01:00``) and a
    ``Z`` suffix.

    Raises:
        ValueError: If ``value`` is not a timestamp.
    """
    if not value:
        return None
    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    else:
        normalized = _COLONLESS_OFFSET.sub(r"\1:\2", normalized)
    return datetime.fromisoformat(normalized)


def format_datetime(value: datetime) -> str:
    """Format a timestamp the way Jira writes them.

    Always ``yyyy-MM-ddTHH:mm:ss.SSS±hhmm``. Naive values are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    millis = value.microsecond // 1000
    return f"{value.strftime('%Y-%m-%dT%H:%M:%S')}.{millis:03d}{value.strftime('%z')}"


def parse_date(value: str | None) -> datetime | None:
    """Parse a ``yyyy-MM-dd`` date (version release dates) as UTC midnight."""
    if not value:
        return None
    parsed = date.fromisoformat(value)
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


def chk_timestamp(now: datetime | None = None) -> str:
    """Value written to the CHK field when an issue is confirmed.

    The instant is converted to UTC, its sub-second part is forced to
    ``.123`` and the zone is written as ``-0000``.

    Args:
        now: Instant to stamp; defaults to the current time

    Returns:
        Timestamp such as ``2026-10-19T12:30:05.123-0000``.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    instant = now.astimezone(timezone.utc)
    return f"{instant.strftime('%Y-%m-%dT%H:%M:%S')}.123-0000"


def parse_uri(value: str | None) -> httpx.URL | None:
    """Parse a URI-valued field (``self``, ``content``).

    Raises:
        httpx.InvalidURL: If ``value`` is not a valid URL.
    """
    if value is None:
        return None
    return httpx.URL(value)


def format_uri(value: httpx.URL | None) -> str | None:
    return str(value) if value is not None else None


# =============================================================================
# Rich text
# =============================================================================


def adf_to_text(node: Any) -> str:
    """Flatten an ADF document to plain text.

    Paragraph-like blocks are separated by newlines. Plain strings are
    returned unchanged so API v2 payloads can be read too.
    """
    if node is None:
        return ""
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return "".join(adf_to_text(child) for child in node)

    node_type = node.get("type")
    if node_type == "text":
        return node.get("text", "")
    if node_type == "hardBreak":
        return "\n"

    content = node.get("content", [])
    if node_type == "doc":
        return "\n".join(adf_to_text(child) for child in content)
    return adf_to_text(content)


def text_to_adf(text: str) -> dict[str, Any]:
    """Wrap plain text as a single-paragraph ADF document."""
    paragraph: dict[str, Any] = {"type": "paragraph", "content": []}
    if text:
        paragraph["content"].append({"type": "text", "text": text})
    return {"type": "doc", "version": 1, "content": [paragraph]}


# =============================================================================
# Payload -> domain
# =============================================================================


def _name(value: Mapping[str, Any] | None, key: str = "name") -> str | None:
    if not value:
        return None
    return value.get(key)


def user_from_json(payload: Mapping[str, Any] | None) -> User | None:
    if payload is None:
        return None
    groups = payload.get("groups", {}).get("items", [])
    return User(
        account_id=payload.get("accountId"),
        display_name=payload.get("displayName"),
        groups=tuple(group["name"] for group in groups if "name" in group),
    )


def version_from_json(payload: Mapping[str, Any]) -> Version:
    return Version(
        id=str(payload["id"]),
        name=payload.get("name", ""),
        released=payload.get("released", False),
        archived=payload.get("archived", False),
        release_date=parse_date(payload.get("releaseDate")),
    )


def attachment_from_json(payload: Mapping[str, Any]) -> Attachment:
    return Attachment(
        id=str(payload["id"]),
        name=payload["filename"],
        created=parse_datetime(payload.get("created")),
        mime_type=payload.get("mimeType") or "application/octet-stream",
        content_url=format_uri(parse_uri(payload.get("content"))),
        uploader=user_from_json(payload.get("author")),
    )


def comment_from_json(payload: Mapping[str, Any]) -> Comment:
    visibility = payload.get("visibility") or {}
    return Comment(
        id=str(payload["id"]),
        body=adf_to_text(payload.get("body")),
        author=user_from_json(payload.get("author")),
        created=parse_datetime(payload.get("created")),
        updated=parse_datetime(payload.get("updated")),
        visibility_type=visibility.get("type"),
        visibility_value=visibility.get("value"),
    )


def link_from_json(payload: Mapping[str, Any]) -> Link:
    """Map an issue link as seen from the issue that owns it.

    Jira names the *other* issue: ``outwardIssue`` is present when the owning
    issue is on the inward side of the link type, i.e. the link points out.
    """
    outwards = payload.get("outwardIssue") is not None
    other = payload["outwardIssue"] if outwards else payload["inwardIssue"]
    link_type = payload.get("type") or {}
    return Link(
        id=str(payload["id"]) if payload.get("id") is not None else None,
        type=link_type.get("name", ""),
        outwards=outwards,
        issue=LinkedIssue(
            key=other["key"],
            status=_name((other.get("fields") or {}).get("status")),
        ),
    )


def changelog_from_json(payload: Mapping[str, Any] | None) -> list[ChangeLogItem]:
    """Flatten changelog histories into one item per changed field."""
    if not payload:
        return []
    items = []
    for history in payload.get("histories", []):
        created = parse_datetime(history["created"])
        author = user_from_json(history.get("author"))
        for detail in history.get("items", []):
            items.append(
                ChangeLogItem(
                    created=created,
                    field=detail["field"],
                    changed_from=detail.get("from"),
                    changed_from_string=detail.get("fromString"),
                    changed_to=detail.get("to"),
                    changed_to_string=detail.get("toString"),
                    author=author,
                )
            )
    return items


def _custom(fields: Mapping[str, Any], field_id: str | None, option: bool = False) -> Any:
    if not field_id:
        return None
    value = fields.get(field_id)
    if option and isinstance(value, Mapping):
        return value.get("value")
    return value


def issue_from_json(payload: Mapping[str, Any], custom_fields: CustomFieldIds | None = None) -> Issue:
    """Build a domain snapshot from an issue bean.

    Args:
        payload: Issue bean as returned by ``GET issue/{key}`` or ``search``,
            optionally with the ``changelog`` expansion
        custom_fields: Ids of the instance's custom fields

    Returns:
        Issue whose pending collections are copies of its baseline.

    Raises:
        KeyError: If the payload lacks ``key`` or ``fields``.
    """
    ids = custom_fields or CustomFieldIds()
    fields = payload["fields"]
    key = payload["key"]

    project_key = _name(fields.get("project"), "key") or key.rsplit("-", 1)[0]
    comment_container = fields.get("comment") or {}
    linked = _custom(fields, ids.linked)

    return Issue.from_snapshot(
        key=key,
        project=Project(key=project_key),
        status=_name(fields.get("status")) or "",
        attachments=[attachment_from_json(item) for item in fields.get("attachment") or []],
        comments=[comment_from_json(item) for item in comment_container.get("comments", [])],
        links=[link_from_json(item) for item in fields.get("issuelinks") or []],
        affected_versions=[version_from_json(item) for item in fields.get("versions") or []],
        fix_versions=[version_from_json(item) for item in fields.get("fixVersions") or []],
        changelog=changelog_from_json(payload.get("changelog")),
        summary=fields.get("summary"),
        description=adf_to_text(fields["description"]) if fields.get("description") is not None else None,
        environment=adf_to_text(fields["environment"]) if fields.get("environment") is not None else None,
        security_level=_name(fields.get("security"), "id"),
        reporter=user_from_json(fields.get("reporter")),
        resolution=_name(fields.get("resolution")),
        created=parse_datetime(fields.get("created")),
        updated=parse_datetime(fields.get("updated")),
        resolved=parse_datetime(fields.get("resolutiondate")),
        chk=_custom(fields, ids.chk),
        confirmation_status=_custom(fields, ids.confirmation_status, option=True),
        linked=float(linked) if linked is not None else None,
        priority=_custom(fields, ids.priority, option=True),
        triaged_time=_custom(fields, ids.triaged_time),
        platform=_custom(fields, ids.platform, option=True),
    )


# =============================================================================
# Domain -> payload
# =============================================================================


def comment_to_json(
    body: str,
    visibility_type: str | None = None,
    visibility_value: str | None = None,
) -> dict[str, Any]:
    """Request body for adding or editing a comment."""
    payload: dict[str, Any] = {"body": text_to_adf(body)}
    if visibility_type and visibility_value:
        payload["visibility"] = {"type": visibility_type, "value": visibility_value}
    return payload


def fields_to_json(changes: Mapping[str, Any], custom_fields: CustomFieldIds | None = None) -> dict[str, Any]:
    """Map changed domain fields to the ``fields`` object of an edit request.

    ``status`` is not a field in Jira and must be applied as a transition;
    it is rejected here.

    Raises:
        ValueError: If a field cannot be written through an edit request.
    """
    ids = custom_fields or CustomFieldIds()
    payload: dict[str, Any] = {}

    for name, value in changes.items():
        if name == "summary":
            payload[name] = value
        elif name in ("description", "environment"):
            payload[name] = text_to_adf(value) if value is not None else None
        elif name == "security_level":
            payload["security"] = {"id": value} if value is not None else None
        elif name == "resolution":
            payload["resolution"] = {"name": value} if value is not None else None
        elif name in ("chk", "confirmation_status", "linked", "priority", "platform", "triaged_time"):
            field_id = getattr(ids, name)
            if not field_id:
                raise ValueError(f"No custom field configured for {name!r}")
            if name in _OPTION_FIELDS and value is not None:
                payload[field_id] = {"value": value}
            else:
                payload[field_id] = value
        else:
            raise ValueError(f"Field {name!r} cannot be edited")

    return payload
