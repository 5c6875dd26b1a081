"""Jira Cloud gateway implementation using direct REST API calls."""

from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import structlog

from issue_moderator.exceptions import (
    ClientError,
    GatewayError,
    InvalidRequestError,
    ServerError,
    TransportError,
)
from issue_moderator.gateway import codec
from issue_moderator.gateway.base import IssueGateway, SearchPage
from issue_moderator.gateway.codec import CustomFieldIds
from issue_moderator.models.domain import Comment, Issue, Link, Version
from issue_moderator.utils.connection_pool import HTTPConnectionPool

log = structlog.get_logger(__name__)

# Version categories as named in Jira's edit API
_VERSION_FIELDS = {
    "affected_versions": "versions",
    "fix_versions": "fixVersions",
}


class JiraRestGateway(IssueGateway):
    """Jira implementation of ``IssueGateway`` over REST API v3.

    Every request goes through one pooled ``httpx.AsyncClient`` with basic
    auth (account e-mail and API token) attached.
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        custom_fields: CustomFieldIds | None = None,
        max_connections: int = 10,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Jira gateway.

        Args:
            base_url: Jira site URL (e.g., https://example.atlassian.net)
            email: Account e-mail used for basic auth
            api_token: API token used for basic auth
            custom_fields: Ids of the instance's custom fields
            max_connections: Connection pool size
            timeout: Request timeout in seconds
            transport: Optional transport replacing the network
        """
        self.base_url = base_url.rstrip("/")
        self.api_base = f"{self.base_url}/rest/api/3"
        self.custom_fields = custom_fields or CustomFieldIds()
        self._pool = HTTPConnectionPool(
            base_url=self.api_base,
            auth=httpx.BasicAuth(email, api_token.strip() if api_token else api_token),
            max_connections=max_connections,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def connect(self) -> None:
        """Open the connection pool."""
        await self._pool.initialize()
        log.info("jira_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the connection pool."""
        await self._pool.close()

    async def __aenter__(self) -> "JiraRestGateway":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and classify any failure.

        Raises:
            ClientError: For HTTP 400-499.
            ServerError: For any other non-success status.
            TransportError: If no response was received.
        """
        try:
            response = await self._pool.request(method, path, **kwargs)
        except httpx.TransportError as e:
            log.error("jira_transport_error", method=method, path=path, error=str(e))
            raise TransportError(f"{method} {path} failed: {e}", cause=e) from e

        if response.is_success:
            return response

        status = response.status_code
        log.warning("jira_request_failed", method=method, path=path, status_code=status)
        if 400 <= status <= 499:
            raise ClientError(
                f"Request failed - [{status}] {method} {response.request.url}",
                status_code=status,
                body=response.text,
                response=response,
            )
        raise ServerError(f"Unexpected code {status}", status_code=status, body=response.text, response=response)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(
                "Response body is not valid JSON",
                status_code=response.status_code,
                body=response.text,
                response=response,
            ) from e

    # -------------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------------

    async def fetch_issue(self, key: str) -> Issue:
        """Fetch an issue with all fields and its changelog."""
        log.info("fetch_issue", issue_key=key)

        response = await self._send("GET", f"/issue/{key}", params={"fields": "*all", "expand": "changelog"})
        return codec.issue_from_json(self._json(response), self.custom_fields)

    async def search_issues(
        self,
        jql: str,
        fields: Sequence[str] | None = None,
        expand: Sequence[str] | None = None,
        max_results: int = 50,
        page_token: str | None = None,
    ) -> SearchPage:
        """Search issues via ``POST search/jql``, one cursor page at a time."""
        log.info("search_issues", jql=jql, max_results=max_results, page_token=page_token)

        payload: dict[str, Any] = {
            "jql": jql,
            "fields": list(fields) if fields else ["*all"],
            "maxResults": max_results,
        }
        if expand:
            payload["expand"] = ",".join(expand)
        if page_token:
            payload["nextPageToken"] = page_token

        response = await self._send("POST", "/search/jql", json=payload)
        data = self._json(response)
        issues = tuple(codec.issue_from_json(item, self.custom_fields) for item in data.get("issues", []))
        next_token = data.get("nextPageToken")
        if not next_token or data.get("isLast") is True:
            next_token = None
        return SearchPage(issues=issues, next_page_token=next_token)

    async def update_issue_fields(self, key: str, fields: Mapping[str, Any]) -> None:
        """Apply changed scalar fields.

        ``status`` is applied through the matching workflow transition, with
        ``resolution`` sent along when both change. Everything else is sent as
        one edit request.

        Raises:
            InvalidRequestError: If a field cannot be written.
            GatewayError: If no transition leads to the requested status.
        """
        log.info("update_issue_fields", issue_key=key, fields=sorted(fields))

        edits = dict(fields)
        status = edits.pop("status", None)
        transition_fields: dict[str, Any] = {}
        if status is not None and "resolution" in edits:
            transition_fields = self._fields_payload({"resolution": edits.pop("resolution")})

        if edits:
            await self._send("PUT", f"/issue/{key}", json={"fields": self._fields_payload(edits)})

        if status is not None:
            await self._transition(key, status, transition_fields)

    def validate_fields(self, fields: Mapping[str, Any]) -> None:
        """Encode ``fields`` without sending them; ``status`` goes through a transition."""
        self._fields_payload({name: value for name, value in fields.items() if name != "status"})

    def _fields_payload(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        try:
            return codec.fields_to_json(changes, self.custom_fields)
        except ValueError as e:
            raise InvalidRequestError(str(e)) from e

    async def _transition(self, key: str, status: str, fields: dict[str, Any]) -> None:
        response = await self._send("GET", f"/issue/{key}/transitions")
        transitions = self._json(response).get("transitions", [])

        match = next(
            (t for t in transitions if (t.get("to") or {}).get("name") == status or t.get("name") == status),
            None,
        )
        if match is None:
            raise GatewayError(f"No transition to status {status!r} available on {key}")

        body: dict[str, Any] = {"transition": {"id": match["id"]}}
        if fields:
            body["fields"] = fields
        await self._send("POST", f"/issue/{key}/transitions", json=body)
        log.info("issue_transitioned", issue_key=key, status=status)

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    async def add_comment(self, key: str, comment: Comment) -> str:
        """Post a comment and return its new id."""
        log.info("add_comment", issue_key=key)

        payload = codec.comment_to_json(comment.body, comment.visibility_type, comment.visibility_value)
        response = await self._send("POST", f"/issue/{key}/comment", json=payload)
        return str(self._json(response)["id"])

    async def update_comment(self, key: str, comment_id: str, changes: Mapping[str, Any]) -> None:
        """Edit a comment.

        Jira requires the body on every edit, so the current comment is
        fetched first when only the visibility changes.
        """
        log.info("update_comment", issue_key=key, comment_id=comment_id, fields=sorted(changes))

        if "body" in changes and {"visibility_type", "visibility_value"} <= changes.keys():
            current = Comment(id=comment_id, body="")
        else:
            response = await self._send("GET", f"/issue/{key}/comment/{comment_id}")
            current = codec.comment_from_json(self._json(response))

        payload = codec.comment_to_json(
            changes.get("body", current.body),
            changes.get("visibility_type", current.visibility_type),
            changes.get("visibility_value", current.visibility_value),
        )
        await self._send("PUT", f"/issue/{key}/comment/{comment_id}", json=payload)

    async def delete_comment(self, key: str, comment_id: str) -> None:
        log.info("delete_comment", issue_key=key, comment_id=comment_id)
        await self._send("DELETE", f"/issue/{key}/comment/{comment_id}")

    # -------------------------------------------------------------------------
    # Attachments, links and versions
    # -------------------------------------------------------------------------

    async def delete_attachment(self, attachment_id: str) -> None:
        log.info("delete_attachment", attachment_id=attachment_id)
        await self._send("DELETE", f"/attachment/{attachment_id}")

    async def create_link(self, key: str, link: Link) -> str | None:
        """Create an issue link.

        Returns:
            The link id taken from the ``Location`` header, or ``None`` when
            Jira does not send one.
        """
        log.info("create_link", issue_key=key, link_type=link.type, other=link.issue.key)

        this, other = {"key": key}, {"key": link.issue.key}
        payload = {
            "type": {"name": link.type},
            "inwardIssue": this if link.outwards else other,
            "outwardIssue": other if link.outwards else this,
        }
        response = await self._send("POST", "/issueLink", json=payload)

        location = response.headers.get("Location")
        if not location:
            return None
        return location.rstrip("/").rsplit("/", 1)[-1]

    async def delete_link(self, link_id: str) -> None:
        log.info("delete_link", link_id=link_id)
        await self._send("DELETE", f"/issueLink/{link_id}")

    async def add_version(self, key: str, category: str, version: Version) -> None:
        await self._edit_versions(key, category, "add", version)

    async def remove_version(self, key: str, category: str, version: Version) -> None:
        await self._edit_versions(key, category, "remove", version)

    async def _edit_versions(self, key: str, category: str, verb: str, version: Version) -> None:
        field = _VERSION_FIELDS.get(category)
        if field is None:
            raise InvalidRequestError(f"Unknown version category: {category}")

        log.info("edit_versions", issue_key=key, field=field, verb=verb, version_id=version.id)
        payload = {"update": {field: [{verb: {"id": version.id}}]}}
        await self._send("PUT", f"/issue/{key}", json=payload)
