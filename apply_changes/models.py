"""
Data model — parsed commands, diff hunks, typed edits and review-queue entries.

A ``Command`` is what the parser saw in the text.  The validator turns it
into one of the typed ``Edit`` variants, so that e.g. a delete can never
carry file content.  ``FileOperation`` is the mutable review-queue entry
owned by :class:`apply_changes.executor.ReviewQueue`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .errors import ApplyChangesError, ValidationError


class OperationType(str, Enum):
    """Supported file operations."""

    CREATE = "CREATE"
    UPDATE_FULL = "UPDATE_FULL"
    UPDATE_DIFF = "UPDATE_DIFF"
    DELETE = "DELETE"

    @classmethod
    def lookup(cls, raw: str) -> Optional["OperationType"]:
        """Return the member for *raw* (case-insensitive), or None."""
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class Command:
    """A single edit block as extracted from the source text.

    ``operation_type`` is kept as the raw (upper-cased) tag so that an
    unknown operation still reaches the review queue and can be reported.
    """

    operation_type: str
    file_path: str
    new_code: Optional[str] = None
    file_message: Optional[str] = None
    old_code: Optional[str] = None
    source_order: int = 0

    @property
    def kind(self) -> Optional[OperationType]:
        return OperationType.lookup(self.operation_type)


@dataclass(frozen=True)
class Hunk:
    """One contiguous edit unit of a diff operation."""

    context_before: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    added: tuple[str, ...] = ()
    context_after: tuple[str, ...] = ()
    line_hint: Optional[int] = None    # 1-indexed

    @property
    def window(self) -> tuple[str, ...]:
        """The lines that must be found in the current content."""
        return self.context_before + self.removed + self.context_after

    @property
    def replacement(self) -> tuple[str, ...]:
        return self.context_before + self.added + self.context_after

    @property
    def is_insertion(self) -> bool:
        return not self.window


# ---------------------------------------------------------------------------
# Typed edits (one variant per operation type)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreateFile:
    path: str
    content: str

    operation = OperationType.CREATE


@dataclass(frozen=True)
class ReplaceFile:
    path: str
    content: str

    operation = OperationType.UPDATE_FULL


@dataclass(frozen=True)
class PatchFile:
    path: str
    hunks: tuple[Hunk, ...]
    body: str = ""

    operation = OperationType.UPDATE_DIFF


@dataclass(frozen=True)
class DeleteFile:
    path: str

    operation = OperationType.DELETE


Edit = Union[CreateFile, ReplaceFile, PatchFile, DeleteFile]


# ---------------------------------------------------------------------------
# Review-queue entry
# ---------------------------------------------------------------------------

class OperationState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class FileOperation:
    """A review-queue entry: the command, its typed edit and its state.

    ``edit`` is None when validation failed; ``error`` then holds the
    reason and the entry is visible but not actionable.
    """

    command: Command
    edit: Optional[Edit] = None
    error: Optional[ValidationError] = None
    state: OperationState = OperationState.PENDING
    old_code: Optional[str] = None
    applied_content: Optional[str] = field(default=None, repr=False)
    last_error: Optional[ApplyChangesError] = field(default=None, repr=False)

    @property
    def accepted(self) -> bool:
        return self.state is OperationState.ACCEPTED

    @property
    def rejected(self) -> bool:
        return self.state is OperationState.REJECTED

    @property
    def is_terminal(self) -> bool:
        return self.state is not OperationState.PENDING

    @property
    def is_actionable(self) -> bool:
        return self.edit is not None

    @property
    def file_path(self) -> str:
        if self.edit is not None:
            return self.edit.path
        return self.command.file_path

    @property
    def operation_type(self) -> str:
        if self.edit is not None:
            return self.edit.operation.value
        return self.command.operation_type

    @property
    def file_message(self) -> Optional[str]:
        return self.command.file_message

    @property
    def new_code(self) -> Optional[str]:
        return self.command.new_code

    @property
    def source_order(self) -> int:
        return self.command.source_order
