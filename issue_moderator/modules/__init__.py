"""Moderation rules and the framework they are built on.

Key Components:
    - Module: Abstract base class for stateless rules
    - ModuleResponse: Successful, OperationNotNeeded or Failed
    - AttachmentModule: Deletes attachments with denied file extensions
    - ChkModule: Stamps the CHK field of newly confirmed issues

Example:
    >>> from issue_moderator.modules import AttachmentModule, AttachmentModuleRequest
    >>> module = AttachmentModule(gateway)
    >>> response = await module(AttachmentModuleRequest(attachments=issue.baseline_attachments))
"""

from issue_moderator.modules.attachment import (
    DEFAULT_EXTENSION_BLACKLIST,
    AttachmentModule,
    AttachmentModuleRequest,
)
from issue_moderator.modules.base import (
    Failed,
    Module,
    ModuleResponse,
    OperationNotNeeded,
    Successful,
    aggregate,
    capture,
    gather_outcomes,
)
from issue_moderator.modules.chk import ChkModule, ChkModuleRequest

__all__ = [
    "DEFAULT_EXTENSION_BLACKLIST",
    "AttachmentModule",
    "AttachmentModuleRequest",
    "ChkModule",
    "ChkModuleRequest",
    "Failed",
    "Module",
    "ModuleResponse",
    "OperationNotNeeded",
    "Successful",
    "aggregate",
    "capture",
    "gather_outcomes",
]
