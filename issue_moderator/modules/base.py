"""
Base class and outcome types for moderation modules.

A module is a stateless rule. It receives a rule-specific, immutable request
value and answers with exactly one of three outcomes:

    - ``Successful``: the rule's condition held and every resulting remote
      operation succeeded.
    - ``OperationNotNeeded``: the precondition did not hold; nothing was sent
      to the tracker.
    - ``Failed``: the condition held but at least one remote operation
      failed. ``errors`` holds one entry per failed sub-operation.

Module Contract:
    - Expected failures (``GatewayError`` and subclasses) are captured where
      the gateway is called and returned as ``Failed``. They never escape
      ``invoke``.
    - Programming errors (``ModerationBugError``) are raised, never converted.
    - Independent sub-operations are all attempted; one failure does not stop
      its siblings.
    - Modules keep configuration only. Nothing is stored between invocations,
      so the caller may safely invoke again after re-fetching.

Example:
    >>> class CloseModule(Module[CloseRequest]):
    ...     async def invoke(self, request: CloseRequest) -> ModuleResponse:
    ...         if request.status == "Closed":
    ...             return OperationNotNeeded()
    ...         error = await capture(self.gateway.update_issue_fields(request.key, {"status": "Closed"}))
    ...         return aggregate([error] if error else [])
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from issue_moderator.exceptions import GatewayError, InvalidRequestError

log = structlog.get_logger(__name__)

RequestT = TypeVar("RequestT")


@dataclass(frozen=True)
class ModuleResponse:
    """Base type of the three module outcomes."""

    @property
    def succeeded(self) -> bool:
        """Whether the outcome is ``Successful``."""
        return isinstance(self, Successful)


@dataclass(frozen=True)
class Successful(ModuleResponse):
    """The condition held and all remote operations succeeded."""


@dataclass(frozen=True)
class OperationNotNeeded(ModuleResponse):
    """The precondition did not hold; no remote effect."""


@dataclass(frozen=True)
class Failed(ModuleResponse):
    """The condition held but one or more remote operations failed.

    Attributes:
        errors: One captured error per failed sub-operation.
    """

    errors: tuple[GatewayError, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", tuple(self.errors))
        if not self.errors:
            raise InvalidRequestError("Failed response requires at least one error")


async def capture(call: Awaitable[Any]) -> GatewayError | None:
    """Await a gateway call and return its failure as a value.

    Args:
        call: Awaitable gateway call.

    Returns:
        ``None`` on success, otherwise the raised ``GatewayError``. Any other
        exception propagates.
    """
    try:
        await call
    except GatewayError as e:
        log.warning("gateway_call_failed", error=str(e), error_type=type(e).__name__)
        return e
    return None


async def gather_outcomes(calls: Iterable[Awaitable[Any]]) -> list[GatewayError]:
    """Attempt every call in order and collect all failures.

    Calls are awaited one after another; a failing call never prevents the
    following ones from being attempted.
    """
    failures: list[GatewayError] = []
    for call in calls:
        error = await capture(call)
        if error is not None:
            failures.append(error)
    return failures


def aggregate(errors: Iterable[GatewayError]) -> ModuleResponse:
    """Fold captured failures into ``Successful`` or ``Failed``."""
    collected = tuple(errors)
    if collected:
        return Failed(collected)
    return Successful()


class Module(ABC, Generic[RequestT]):
    """Abstract base class for all moderation modules.

    Subclasses implement ``invoke()``. Instances are created once and reused
    for every issue, so they must not store anything request-specific.

    Attributes:
        name: Registry name of the module; defaults to the class name.
    """

    name: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("name"):
            cls.name = cls.__name__

    @abstractmethod
    async def invoke(self, request: RequestT) -> ModuleResponse:
        """Evaluate the rule against ``request``.

        Args:
            request: Immutable, rule-specific request value.

        Returns:
            ``Successful``, ``OperationNotNeeded`` or ``Failed``.

        Raises:
            ModerationBugError: If the request is malformed.
        """
        pass

    async def __call__(self, request: RequestT) -> ModuleResponse:
        return await self.invoke(request)
