"""Change reconciliation between issue snapshots and the tracker.

This package turns the baseline/pending overlay of an ``Issue`` into remote
operations and applies them through an ``IssueGateway``.

Key Components:
    - reconcile: Pure per-category diff producing ordered operations
    - diff_fields: Issue-level update for changed scalar fields
    - plan: All operations for one issue, grouped by category
    - IssueSynchronizer: Executes a plan and reports per-operation results
    - CommentCache: Suppresses comments already posted to the same issue

Example:
    >>> from issue_moderator.reconcile import IssueSynchronizer
    >>> report = await IssueSynchronizer(gateway).sync(issue)
    >>> report.to_response()
    Successful()
"""

from issue_moderator.reconcile.comment_cache import CommentCache
from issue_moderator.reconcile.engine import CATEGORY_ORDER, diff_fields, plan, reconcile
from issue_moderator.reconcile.operations import Category, Operation, OperationKind
from issue_moderator.reconcile.synchronizer import IssueSynchronizer, OperationResult, SyncReport

__all__ = [
    "CATEGORY_ORDER",
    "Category",
    "CommentCache",
    "IssueSynchronizer",
    "Operation",
    "OperationKind",
    "OperationResult",
    "SyncReport",
    "diff_fields",
    "plan",
    "reconcile",
]
