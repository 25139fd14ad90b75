"""
Error taxonomy.

Parse problems are collected as ``ParseError`` records and never raised.
Everything that aborts a single queue action derives from
``ApplyChangesError``.  Non-fatal findings after a write are ``ApplyWarning``
records returned by ``ReviewQueue.accept``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ApplyChangesError(Exception):
    """Base class for errors raised by the apply-changes engine."""


@dataclass(frozen=True)
class ParseError:
    """A malformed or unrecognized edit block that was skipped."""

    line: int          # 1-indexed line of the offending marker
    message: str
    snippet: str = ""

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}"


class ValidationErrorKind(str, Enum):
    UNSAFE_PATH = "unsafe_path"
    EMPTY_PATH = "empty_path"
    MISSING_CONTENT = "missing_content"
    MISSING_HUNKS = "missing_hunks"
    MALFORMED_HUNK = "malformed_hunk"
    UNSUPPORTED_OPERATION = "unsupported_operation"


class ValidationError(ApplyChangesError):
    """A command that cannot become an actionable operation."""

    def __init__(self, kind: ValidationErrorKind, message: str,
                 file_path: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.file_path = file_path


class PatchErrorKind(str, Enum):
    NO_MATCH = "no_match"
    AMBIGUOUS_MATCH = "ambiguous_match"
    OUT_OF_RANGE = "out_of_range"


class PatchError(ApplyChangesError):
    """Raised when a hunk cannot be located in the current content."""

    def __init__(self, kind: PatchErrorKind, hunk_index: int,
                 message: str = "") -> None:
        super().__init__(message or f"hunk #{hunk_index + 1}: {kind.value}")
        self.kind = kind
        self.hunk_index = hunk_index


class FileSystemError(ApplyChangesError):
    """A read, write or delete failed in the file-system collaborator."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class NotFoundError(FileSystemError):
    """The requested file does not exist."""


class SyntaxCheckError(ApplyChangesError):
    """The new content does not parse and syntax checking is blocking."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Syntax error in {path}: {detail}")
        self.path = path
        self.detail = detail


class OperationStateError(ApplyChangesError):
    """The queue index does not refer to an entry."""


@dataclass(frozen=True)
class ApplyWarning:
    """Non-fatal finding reported after an operation was applied."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class VerificationWarning(ApplyWarning):
    """File content read back after a diff write differs from what was written."""

    expected_length: Optional[int] = None
    actual_length: Optional[int] = None


@dataclass(frozen=True)
class SyntaxCheckWarning(ApplyWarning):
    """The written content has syntax errors."""
