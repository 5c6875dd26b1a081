"""Operation value types produced by the reconciliation engine.

An ``Operation`` describes one remote call needed to converge the tracker to
an issue's pending state. Operations are plain values: the engine that builds
them performs no I/O, and the synchronizer that executes them never mutates
them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class Category(str, Enum):
    """Entity categories reconciled independently of each other."""

    ATTACHMENTS = "attachments"
    COMMENTS = "comments"
    LINKS = "links"
    AFFECTED_VERSIONS = "affected_versions"
    FIX_VERSIONS = "fix_versions"
    FIELDS = "fields"
    """Scalar issue fields; produces at most one issue-level update."""


class OperationKind(str, Enum):
    """Kind of remote mutation.

    Declaration order is the execution order within a category: deletes run
    before creates, creates before updates.
    """

    DELETE = "delete"
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class Operation:
    """One remote mutation for one entity.

    Attributes:
        category: Entity category the operation belongs to.
        kind: Whether the entity is created, deleted or updated.
        entity: The pending entry the operation was derived from. ``None`` for
            issue-level field updates.
        identity: Remote identity of the entity. ``None`` for entities that
            do not exist remotely yet.
        changes: For updates, the changed fields and their new values.
    """

    category: Category
    kind: OperationKind
    entity: Any = None
    identity: str | None = None
    changes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def describe(self) -> str:
        """Short human-readable form used in logs and reports."""
        target = self.identity if self.identity is not None else "<new>"
        return f"{self.kind.value} {self.category.value} {target}"
