"""Custom exception hierarchy for the issue-moderator system.

Two families of errors live here and they are handled very differently:

* ``GatewayError`` and its subclasses describe *expected* environmental
  failures (the tracker rejected a request, the network dropped). They are
  captured at the point of the gateway call and turned into values
  (``Failed`` module responses, failed ``OperationResult`` entries). They must
  never escape a module boundary.
* ``ModerationBugError`` and its subclasses describe bugs in rule modules
  (duplicate identities in a pending list, malformed requests). They are
  raised and left to propagate so the problem is loud and visible.

Exception Hierarchy:
    IssueModeratorError (base)
    ├── ConfigurationError
    ├── GatewayError
    │   ├── ClientError
    │   ├── ServerError
    │   ├── TransportError
    │   └── DuplicateCommentError
    └── ModerationBugError
        ├── DuplicateIdentityError
        └── InvalidRequestError

Example Usage:
    >>> from issue_moderator.exceptions import ClientError
    >>> try:
    ...     await gateway.delete_attachment("10042")
    ... except ClientError as e:
    ...     if e.status_code == 404:
    ...         log.info("attachment_already_gone")
"""

from typing import Any


class IssueModeratorError(Exception):
    """Base exception for all issue-moderator errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(IssueModeratorError):
    """Configuration-related errors.

    Raised when configuration files are invalid, missing, or contain
    incompatible settings.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Missing required configuration fields
        - An attachment module configured with an empty extension blacklist
    """

    pass


# =============================================================================
# Gateway Errors
# =============================================================================


class GatewayError(IssueModeratorError):
    """Base class for failures of a remote tracker operation.

    Every gateway call either succeeds or raises one of these. The core never
    retries; callers decide whether a failure warrants a re-fetch and re-run.
    """

    pass


class _ResponseError(GatewayError):
    """Gateway error carrying the tracker's HTTP response."""

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        response: Any = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code returned by the tracker
            body: Raw response body text
            response: Underlying transport response object (``httpx.Response``)
        """
        self.status_code = status_code
        self.body = body
        self.response = response
        super().__init__(f"{message} (HTTP {status_code})")
        self.message = message


class ClientError(_ResponseError):
    """The tracker rejected the request (HTTP 400-499).

    ``status_code`` lets callers tell a malformed request (400) from a
    permission problem (403) or a missing entity (404) without a richer
    taxonomy.
    """

    pass


class ServerError(_ResponseError):
    """The tracker failed to process the request (HTTP 5xx or unexpected)."""

    pass


class TransportError(GatewayError):
    """The request never produced a response (connection refused, timeout)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            cause: The transport exception that triggered this error
        """
        self.cause = cause
        super().__init__(message)


class DuplicateCommentError(GatewayError):
    """A comment body was already posted to the same issue recently.

    Raised by the synchronizer instead of posting the same message twice.
    """

    def __init__(self, issue_key: str, body: str) -> None:
        """Initialize exception.

        Args:
            issue_key: Key of the issue the comment targets
            body: The comment body that was suppressed
        """
        self.issue_key = issue_key
        self.body = body
        super().__init__(f"Comment has already been posted to {issue_key}")


# =============================================================================
# Programming Errors
# =============================================================================


class ModerationBugError(IssueModeratorError):
    """A rule module handed the core something it should never produce.

    These are not environmental conditions and are never converted into
    ``Failed`` responses.
    """

    pass


class DuplicateIdentityError(ModerationBugError):
    """Two entries in one pending collection share a remote identity.

    Attributes:
        category: Name of the entity category (e.g. ``"attachments"``)
        identity: The duplicated identity
    """

    def __init__(self, category: str, identity: str) -> None:
        """Initialize exception.

        Args:
            category: Entity category containing the duplicate
            identity: The duplicated identity value
        """
        self.category = category
        self.identity = identity
        super().__init__(f"Duplicate identity {identity!r} in pending {category}")


class InvalidRequestError(ModerationBugError):
    """A module request value is malformed."""

    pass
