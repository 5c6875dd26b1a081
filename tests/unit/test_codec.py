"""Tests for issue_moderator/gateway/codec.py - Jira payload conversion."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from issue_moderator.gateway.codec import (
    CustomFieldIds,
    adf_to_text,
    chk_timestamp,
    comment_to_json,
    fields_to_json,
    format_datetime,
    format_uri,
    issue_from_json,
    parse_date,
    parse_datetime,
    parse_uri,
    text_to_adf,
)


def _issue_payload() -> dict:
    return {
        "id": "10000",
        "key": "MC-4",
        "fields": {
            "project": {"key": "MC"},
            "summary": "Game crashes on start",
            "status": {"name": "Open"},
            "description": {
                "type": "doc",
                "version": 1,
                "content": [
                    {"type": "paragraph", "content": [{"type": "text", "text": "Steps:"}]},
                    {"type": "paragraph", "content": [{"type": "text", "text": "1. Start the game"}]},
                ],
            },
            "environment": "Windows 11",
            "security": {"id": "10318"},
            "resolution": None,
            "reporter": {"accountId": "acc-1", "displayName": "Reporter"},
            "created": "2025-02-13T12:32:46.327+0100",
            "updated": "2025-02-14T08:00:00.000+0000",
            "customfield_10701": None,
            "customfield_10500": {"value": "Confirmed"},
            "customfield_12200": {"value": "Normal"},
            "attachment": [
                {
                    "id": "10001",
                    "filename": "installer.exe",
                    "created": "2025-02-13T12:33:00.000+0100",
                    "mimeType": "application/x-msdownload",
                    "content": "https://example.atlassian.net/rest/api/3/attachment/content/10001",
                    "size": 1024,
                }
            ],
            "comment": {
                "comments": [
                    {
                        "id": "20001",
                        "body": {
                            "type": "doc",
                            "version": 1,
                            "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Same here."}]}],
                        },
                        "created": "2025-02-13T13:00:00.000+0100",
                        "visibility": {"type": "group", "value": "staff"},
                    }
                ]
            },
            "issuelinks": [
                {
                    "id": "30001",
                    "type": {"name": "Duplicate"},
                    "outwardIssue": {"key": "MC-1", "fields": {"status": {"name": "Resolved"}}},
                },
                {
                    "id": "30002",
                    "type": {"name": "Relates"},
                    "inwardIssue": {"key": "MC-9"},
                },
            ],
            "versions": [{"id": "100", "name": "1.20", "released": True, "releaseDate": "2023-06-07"}],
            "fixVersions": [],
        },
        "changelog": {
            "histories": [
                {
                    "created": "2025-02-13T14:00:00.000+0100",
                    "author": {"accountId": "acc-2"},
                    "items": [
                        {"field": "status", "from": "1", "fromString": "Open", "to": "5", "toString": "Resolved"},
                        {"field": "resolution", "to": "6", "toString": "Invalid"},
                    ],
                }
            ]
        },
    }


# =============================================================================
# Scalars
# =============================================================================


class TestDatetimes:
    """Tests for timestamp parsing and formatting."""

    def test_parse_colonless_offset(self):
        """Should parse offsets written without a colon."""
        value = parse_datetime("2025-02-13T12:32:46.327+0100")

        assert value == datetime(2025, 2, 13, 12, 32, 46, 327000, tzinfo=timezone(timedelta(hours=1)))

    @pytest.mark.parametrize("text", ["2025-02-13T11:32:46.327Z", "2025-02-13T12:32:46.327+01:00"])
    def test_parse_other_offsets(self, text: str):
        """Should parse a Z suffix and colon offsets to the same instant."""
        assert parse_datetime(text) == parse_datetime("2025-02-13T12:32:46.327+0100")

    def test_parse_empty(self):
        """Should return None for missing values."""
        assert parse_datetime(None) is None
        assert parse_datetime("") is None

    def test_parse_invalid(self):
        """Should raise ValueError for garbage."""
        with pytest.raises(ValueError):
            parse_datetime("yesterday")

    def test_format_round_trips(self):
        """Should write the colon-less form Jira reads."""
        text = "2025-02-13T12:32:46.327+0100"

        assert format_datetime(parse_datetime(text)) == text

    def test_format_naive_as_utc(self):
        """Should treat naive timestamps as UTC."""
        assert format_datetime(datetime(2025, 1, 2, 3, 4, 5)) == "2025-01-02T03:04:05.000+0000"

    def test_parse_date(self):
        """Should parse release dates as UTC midnight."""
        assert parse_date("2023-06-07") == datetime(2023, 6, 7, tzinfo=timezone.utc)


class TestChkTimestamp:
    """Tests for the CHK stamp format."""

    def test_forced_milliseconds_and_suffix(self):
        """Should force .123 milliseconds and a -0000 suffix."""
        now = datetime(2026, 10, 19, 12, 30, 5, 987654, tzinfo=timezone.utc)

        assert chk_timestamp(now) == "2026-10-19T12:30:05.123-0000"

    def test_converts_to_utc(self):
        """Should convert non-UTC instants to UTC first."""
        now = datetime(2026, 10, 19, 14, 30, 5, tzinfo=timezone(timedelta(hours=2)))

        assert chk_timestamp(now) == "2026-10-19T12:30:05.123-0000"

    def test_defaults_to_now(self):
        """Should stamp the current time when no instant is given."""
        assert chk_timestamp().endswith(".123-0000")


class TestUris:
    """Tests for URI fields."""

    def test_round_trip(self):
        """Should parse and format URI fields unchanged."""
        text = "https://example.atlassian.net/rest/api/3/attachment/10001"

        assert format_uri(parse_uri(text)) == text

    def test_none(self):
        """Should pass missing values through."""
        assert parse_uri(None) is None
        assert format_uri(None) is None

    def test_invalid(self):
        """Should reject invalid URLs."""
        with pytest.raises(httpx.InvalidURL):
            parse_uri("https://example.com:notaport/")


# =============================================================================
# Rich text
# =============================================================================


class TestAdf:
    """Tests for ADF conversion."""

    def test_flatten_paragraphs(self):
        """Should join paragraphs with newlines."""
        doc = _issue_payload()["fields"]["description"]

        assert adf_to_text(doc) == "Steps:\n1. Start the game"

    def test_plain_string_passes_through(self):
        """Should accept plain-text bodies."""
        assert adf_to_text("plain") == "plain"

    def test_hard_break(self):
        """Should render hard breaks as newlines."""
        doc = {
            "type": "doc",
            "content": [
                {
                    "type": "paragraph",
                    "content": [
                        {"type": "text", "text": "a"},
                        {"type": "hardBreak"},
                        {"type": "text", "text": "b"},
                    ],
                }
            ],
        }

        assert adf_to_text(doc) == "a\nb"

    def test_wrap_and_flatten(self):
        """Should wrap text in a single paragraph document."""
        doc = text_to_adf("Hello")

        assert doc["type"] == "doc"
        assert len(doc["content"]) == 1
        assert adf_to_text(doc) == "Hello"


# =============================================================================
# Issue mapping
# =============================================================================


class TestIssueFromJson:
    """Tests for mapping issue beans to domain snapshots."""

    def test_scalars(self):
        """Should map scalar and custom fields."""
        issue = issue_from_json(_issue_payload())

        assert issue.key == "MC-4"
        assert issue.project.key == "MC"
        assert issue.status == "Open"
        assert issue.summary == "Game crashes on start"
        assert issue.description == "Steps:\n1. Start the game"
        assert issue.environment == "Windows 11"
        assert issue.security_level == "10318"
        assert issue.resolution is None
        assert issue.chk is None
        assert issue.confirmation_status == "Confirmed"
        assert issue.priority == "Normal"
        assert issue.reporter.account_id == "acc-1"
        assert issue.created.utcoffset() == timedelta(hours=1)

    def test_collections(self):
        """Should map attachments, comments, links and versions."""
        issue = issue_from_json(_issue_payload())

        assert [a.name for a in issue.baseline_attachments] == ["installer.exe"]
        assert issue.baseline_attachments[0].content_url.endswith("/attachment/content/10001")
        assert issue.baseline_comments[0].body == "Same here."
        assert issue.baseline_comments[0].visibility_value == "staff"
        assert [(link.id, link.outwards, link.issue.key) for link in issue.baseline_links] == [
            ("30001", True, "MC-1"),
            ("30002", False, "MC-9"),
        ]
        assert issue.baseline_links[0].issue.status == "Resolved"
        assert [entry.id for entry in issue.baseline_affected_versions] == ["100"]
        assert issue.baseline_fix_versions == ()

    def test_changelog_is_flattened(self):
        """Should produce one item per changed field."""
        issue = issue_from_json(_issue_payload())

        assert [item.field for item in issue.changelog] == ["status", "resolution"]
        assert issue.changelog[0].changed_to_string == "Resolved"
        assert issue.changelog[1].changed_from is None

    def test_pending_starts_as_copy(self):
        """Should build pending lists as independent copies of the baseline."""
        issue = issue_from_json(_issue_payload())

        assert issue.pending_attachments == list(issue.baseline_attachments)
        assert issue.pending_attachments[0] is not issue.baseline_attachments[0]
        assert issue.changed_fields() == {}

    def test_custom_field_ids(self):
        """Should read custom fields from the configured ids."""
        payload = _issue_payload()
        payload["fields"]["customfield_99999"] = "2025-01-01T00:00:00.123-0000"

        issue = issue_from_json(payload, CustomFieldIds(chk="customfield_99999"))

        assert issue.chk == "2025-01-01T00:00:00.123-0000"


# =============================================================================
# Request bodies
# =============================================================================


class TestRequestBodies:
    """Tests for payloads sent to Jira."""

    def test_comment_with_visibility(self):
        """Should include visibility only when fully specified."""
        assert comment_to_json("Hi", "group", "staff")["visibility"] == {"type": "group", "value": "staff"}
        assert "visibility" not in comment_to_json("Hi")

    def test_fields(self):
        """Should map domain field names to Jira fields."""
        payload = fields_to_json(
            {
                "chk": "2026-10-19T12:30:05.123-0000",
                "confirmation_status": "Confirmed",
                "security_level": "10318",
                "summary": "New",
            }
        )

        assert payload == {
            "customfield_10701": "2026-10-19T12:30:05.123-0000",
            "customfield_10500": {"value": "Confirmed"},
            "security": {"id": "10318"},
            "summary": "New",
        }

    def test_status_is_not_a_field(self):
        """Should refuse status, which needs a transition."""
        with pytest.raises(ValueError):
            fields_to_json({"status": "Resolved"})

    def test_unconfigured_custom_field(self):
        """Should refuse custom fields without an id."""
        with pytest.raises(ValueError):
            fields_to_json({"linked": 2.0})
