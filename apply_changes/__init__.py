"""
apply_changes — review and apply assistant-proposed file edits.

Public API for library usage::

    from apply_changes import ReviewQueue, LocalFileSystem

    queue = ReviewQueue(LocalFileSystem("."))
    report = queue.load_text(response_text)
    queue.accept_all()
"""

from .errors import (
    ApplyChangesError, ApplyWarning, FileSystemError, NotFoundError,
    ParseError, PatchError, PatchErrorKind, SyntaxCheckError,
    ValidationError, ValidationErrorKind, VerificationWarning,
)
from .models import (
    Command, FileOperation, Hunk, OperationState, OperationType,
)
from .editing import Patcher, parse_commands, patch
from .executor import BatchReport, BulkResult, ReviewQueue
from .filesystem import FileSystem, LocalFileSystem, MemoryFileSystem

__all__ = [
    "ApplyChangesError", "ApplyWarning", "FileSystemError", "NotFoundError",
    "ParseError", "PatchError", "PatchErrorKind", "SyntaxCheckError",
    "ValidationError", "ValidationErrorKind", "VerificationWarning",
    "Command", "FileOperation", "Hunk", "OperationState", "OperationType",
    "Patcher", "parse_commands", "patch",
    "BatchReport", "BulkResult", "ReviewQueue",
    "FileSystem", "LocalFileSystem", "MemoryFileSystem",
]
