"""Domain models module."""

from .folder_mapping import FolderMapping, default_nickname, utcnow
from .operation import ErrorCode, OperationResult, describe_error
from .remote_file import RemoteFile

__all__ = [
    "FolderMapping",
    "RemoteFile",
    "ErrorCode",
    "OperationResult",
    "describe_error",
    "default_nickname",
    "utcnow",
]
