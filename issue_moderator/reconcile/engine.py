"""
Pure diff from baseline/pending collections to remote operations.

Algorithm (applied per category, categories never interact):

    1. Pending entries whose identity is present in the baseline are
       *identified*; everything else is *new*.
    2. Every new entry that still ``exists`` yields one CREATE. A new entry
       marked ``exists=False`` yields nothing.
    3. Every identified entry with ``exists=False`` yields one DELETE.
       Baseline entries missing from the pending list are left alone.
    4. Every identified entry that still exists and whose declared mutable
       fields differ from its baseline entry yields one UPDATE carrying only
       the changed fields.
    5. DELETEs come first, then CREATEs, then UPDATEs. Within a group the
       pending order is preserved.

Matching is by identity, never by position, so reordering a pending list
cannot produce operations. Running the engine against a baseline equal to the
previous pending state yields no operations.

Example:
    >>> issue.pending_attachments[0].exists = False
    >>> [op.describe() for op in reconcile(
    ...     Category.ATTACHMENTS, issue.baseline_attachments, issue.pending_attachments
    ... )]
    ['delete attachments 10001']
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from issue_moderator.exceptions import DuplicateIdentityError
from issue_moderator.models.domain import Issue
from issue_moderator.reconcile.operations import Category, Operation, OperationKind


@dataclass(frozen=True)
class CategorySpec:
    """How entries of one category are compared.

    Attributes:
        category: The category described.
        mutable_fields: Entity fields a rule may change on an identified
            entry; only these are compared when looking for updates.
    """

    category: Category
    mutable_fields: tuple[str, ...] = ()


CATEGORY_SPECS: dict[Category, CategorySpec] = {
    Category.ATTACHMENTS: CategorySpec(Category.ATTACHMENTS),
    Category.COMMENTS: CategorySpec(
        Category.COMMENTS,
        mutable_fields=("body", "visibility_type", "visibility_value"),
    ),
    Category.LINKS: CategorySpec(Category.LINKS),
    Category.AFFECTED_VERSIONS: CategorySpec(Category.AFFECTED_VERSIONS),
    Category.FIX_VERSIONS: CategorySpec(Category.FIX_VERSIONS),
}

CATEGORY_ORDER: tuple[Category, ...] = (
    Category.ATTACHMENTS,
    Category.COMMENTS,
    Category.LINKS,
    Category.AFFECTED_VERSIONS,
    Category.FIX_VERSIONS,
    Category.FIELDS,
)


def _exists(entry: Any) -> bool:
    # Comments carry no deletion flag
    return getattr(entry, "exists", True)


def reconcile(
    category: Category,
    baseline: Iterable[Any],
    pending: Sequence[Any],
) -> list[Operation]:
    """Compute the operations converging ``baseline`` to ``pending``.

    Args:
        category: Category of the entries; selects the comparison rules.
        baseline: Entries as last fetched from the tracker.
        pending: Desired entries as left by the rule modules.

    Returns:
        Ordered operations: deletes, then creates, then updates.

    Raises:
        DuplicateIdentityError: If two pending entries share an identity.
        KeyError: If ``category`` is ``Category.FIELDS``; use ``diff_fields``.
    """
    spec = CATEGORY_SPECS[category]
    known = {entry.id: entry for entry in baseline if entry.id is not None}
    seen: set[str] = set()

    deletes: list[Operation] = []
    creates: list[Operation] = []
    updates: list[Operation] = []

    for entry in pending:
        identity = entry.id
        if identity is not None:
            if identity in seen:
                raise DuplicateIdentityError(category.value, identity)
            seen.add(identity)

        original = known.get(identity) if identity is not None else None

        if original is None:
            if _exists(entry):
                creates.append(Operation(category, OperationKind.CREATE, entity=entry, identity=identity))
            continue

        if not _exists(entry):
            deletes.append(Operation(category, OperationKind.DELETE, entity=entry, identity=identity))
            continue

        changes = {
            name: getattr(entry, name)
            for name in spec.mutable_fields
            if getattr(entry, name) != getattr(original, name)
        }
        if changes:
            updates.append(
                Operation(
                    category,
                    OperationKind.UPDATE,
                    entity=entry,
                    identity=identity,
                    changes=MappingProxyType(changes),
                )
            )

    return deletes + creates + updates


def diff_fields(issue: Issue) -> list[Operation]:
    """Issue-level update for scalar fields changed since the snapshot.

    Returns:
        An empty list, or a single ``FIELDS`` update identified by the issue
        key and carrying every changed scalar field.
    """
    changes = issue.changed_fields()
    if not changes:
        return []
    return [
        Operation(
            Category.FIELDS,
            OperationKind.UPDATE,
            identity=issue.key,
            changes=MappingProxyType(changes),
        )
    ]


def plan(issue: Issue) -> dict[Category, list[Operation]]:
    """All operations needed to synchronize ``issue``, grouped by category.

    Categories without net change are omitted, so an unmodified issue yields
    an empty dict.
    """
    collections = {
        Category.ATTACHMENTS: (issue.baseline_attachments, issue.pending_attachments),
        Category.COMMENTS: (issue.baseline_comments, issue.pending_comments),
        Category.LINKS: (issue.baseline_links, issue.pending_links),
        Category.AFFECTED_VERSIONS: (issue.baseline_affected_versions, issue.pending_affected_versions),
        Category.FIX_VERSIONS: (issue.baseline_fix_versions, issue.pending_fix_versions),
    }

    planned: dict[Category, list[Operation]] = {}
    for category in CATEGORY_ORDER:
        if category is Category.FIELDS:
            operations = diff_fields(issue)
        else:
            baseline, pending = collections[category]
            operations = reconcile(category, baseline, pending)
        if operations:
            planned[category] = operations
    return planned
