"""Two-generation record of comment bodies posted per issue.

The runner flushes the cache once per moderation pass. A body is considered a
duplicate when it was posted to the same issue during the current pass or the
pass before it; anything older has rotated out.
"""

import structlog

from issue_moderator.exceptions import DuplicateCommentError

log = structlog.get_logger(__name__)


class CommentCache:
    """Remembers which comment bodies were posted to which issue.

    Example:
        >>> cache = CommentCache()
        >>> cache.check("MC-1", "Please attach a log.")
        >>> cache.check("MC-1", "Please attach a log.")
        Traceback (most recent call last):
        ...
        DuplicateCommentError: Comment has already been posted to MC-1
    """

    def __init__(self) -> None:
        self._current: dict[str, set[str]] = {}
        self._previous: dict[str, set[str]] = {}

    def has_been_posted(self, issue_key: str, body: str) -> bool:
        """Whether ``body`` was recorded for ``issue_key`` in either generation."""
        return body in self._previous.get(issue_key, ()) or body in self._current.get(issue_key, ())

    def check(self, issue_key: str, body: str) -> None:
        """Record ``body`` for ``issue_key`` unless it is a duplicate.

        Raises:
            DuplicateCommentError: If the body was already posted to the issue
                in this pass or the previous one.
        """
        if self.has_been_posted(issue_key, body):
            log.info("duplicate_comment_suppressed", issue_key=issue_key)
            raise DuplicateCommentError(issue_key, body)
        self._current.setdefault(issue_key, set()).add(body)

    def flush(self) -> None:
        """Rotate generations: the current pass becomes the previous one."""
        self._previous = self._current
        self._current = {}
