"""
Operation results and error taxonomy for folder monitoring.

Lifecycle operations (add/remove/toggle) never raise to their caller; they
return an OperationResult carrying one of these codes. describe_error turns a
code into the plain-text message shown to the operator.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .folder_mapping import FolderMapping


class ErrorCode(str, Enum):
    """Failure cases surfaced by the monitoring core."""
    DUPLICATE_FOLDER = "duplicate_folder"
    FOLDER_INACCESSIBLE = "folder_inaccessible"
    NOT_FOUND = "not_found"
    POLL_TRANSIENT_FAILURE = "poll_transient_failure"
    RETRY_BUDGET_EXHAUSTED = "retry_budget_exhausted"
    PERSISTENCE_FAILURE = "persistence_failure"


_DESCRIPTIONS = {
    ErrorCode.DUPLICATE_FOLDER: (
        "Folder is already being monitored",
        "Use stopfolder first if you want to re-map it to another chat.",
    ),
    ErrorCode.FOLDER_INACCESSIBLE: (
        "Cannot access the specified folder",
        "Check that the folder ID is correct and shared with the bot's storage account with read permission.",
    ),
    ErrorCode.NOT_FOUND: (
        "No auto-fetch mapping found",
        "Use showfolders to see all mappings.",
    ),
    ErrorCode.POLL_TRANSIENT_FAILURE: (
        "Checking the folder failed",
        "The monitor will retry on its next cycle.",
    ),
    ErrorCode.RETRY_BUDGET_EXHAUSTED: (
        "Monitoring paused after repeated failures",
        "Fix folder access or chat delivery, then resume the folder.",
    ),
    ErrorCode.PERSISTENCE_FAILURE: (
        "Mapping state could not be saved",
        "Check disk space and permissions of the data directory.",
    ),
}


def describe_error(code: ErrorCode, detail: Optional[str] = None) -> str:
    """
    Build an operator-facing description of a failure.

    Args:
        code: Error taxonomy case
        detail: Optional extra context (folder id, backend message)

    Returns:
        "<description>[: detail]. <remediation>"
    """
    description, remediation = _DESCRIPTIONS[code]
    if detail:
        description = f"{description}: {detail}"
    return f"{description}. {remediation}"


class OperationResult(BaseModel):
    """Outcome of a lifecycle operation."""

    success: bool
    error_code: Optional[ErrorCode] = None
    error: Optional[str] = None
    mapping: Optional[FolderMapping] = None

    @classmethod
    def ok(cls, mapping: Optional[FolderMapping] = None) -> "OperationResult":
        return cls(success=True, mapping=mapping)

    @classmethod
    def fail(cls, code: ErrorCode, detail: Optional[str] = None) -> "OperationResult":
        return cls(success=False, error_code=code, error=describe_error(code, detail))
