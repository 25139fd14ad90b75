"""
Review queue — owns the ``FileOperation`` entries of one batch and drives
accept/reject against a ``FileSystem`` collaborator.

Each entry is ``pending`` until it is accepted or rejected; both are
terminal and repeated calls are no-ops.  A failed accept leaves the entry
pending with the error raised to the caller, so it can be retried or
rejected.  Entries are independent: nothing one entry does blocks, reorders
or rolls back another.  Loading a new batch drops the old queue outright.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Sequence

from .editing.command_parser import CommandParser
from .editing.patcher import Patcher
from .editing.syntax import SYNTAX_BLOCK, SYNTAX_MODES, SYNTAX_OFF, check_syntax
from .editing.validator import OperationValidator
from .errors import (
    ApplyChangesError, ApplyWarning, FileSystemError, NotFoundError,
    OperationStateError, ParseError, PatchError, SyntaxCheckError,
    SyntaxCheckWarning, ValidationError, VerificationWarning,
)
from .filesystem import FileSystem
from .models import (
    CreateFile, DeleteFile, Edit, FileOperation, OperationState, PatchFile,
    ReplaceFile,
)

logger = logging.getLogger(__name__)

SyntaxChecker = Callable[[str, str], Optional[str]]


@dataclass
class BatchReport:
    """Outcome of loading a text blob into the queue."""
    operations: list[FileOperation] = field(default_factory=list)
    parse_errors: list[ParseError] = field(default_factory=list)

    @property
    def validation_errors(self) -> list[ValidationError]:
        return [op.error for op in self.operations if op.error is not None]

    @property
    def actionable(self) -> int:
        return sum(1 for op in self.operations if op.is_actionable)


@dataclass
class BulkResult:
    """Outcome of :meth:`ReviewQueue.accept_all`."""
    applied: list[int] = field(default_factory=list)
    failed: dict[int, ApplyChangesError] = field(default_factory=dict)
    warnings: list[ApplyWarning] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


class ReviewQueue:
    """Indexable owner of the current batch of file operations."""

    def __init__(
        self,
        fs: FileSystem,
        patcher: Patcher | None = None,
        verify_writes: bool = True,
        syntax_mode: str = SYNTAX_OFF,
        syntax_checker: SyntaxChecker | None = None,
        on_applied: Callable[[FileOperation], None] | None = None,
    ) -> None:
        if syntax_mode not in SYNTAX_MODES:
            raise ValueError(f"syntax_mode must be one of {SYNTAX_MODES}, got {syntax_mode!r}")
        self._fs = fs
        self._patcher = patcher or Patcher()
        self._verify_writes = verify_writes
        self._syntax_mode = syntax_mode
        self._syntax_checker = syntax_checker or check_syntax
        self._on_applied = on_applied
        self._parser = CommandParser()
        self._validator = OperationValidator()
        self._ops: list[FileOperation] = []

    # ------------------------------------------------------------------
    # Batch handling
    # ------------------------------------------------------------------

    def load_text(self, text: str) -> BatchReport:
        """Parse *text*, validate every block and replace the queue with it."""
        commands, parse_errors = self._parser.parse(text)
        operations = self._validator.build_queue(commands)
        self.load_batch(operations)
        return BatchReport(operations=list(operations), parse_errors=parse_errors)

    def load_batch(self, operations: Sequence[FileOperation]) -> None:
        """Discard the current queue, whatever its state, and load *operations*."""
        if self._ops:
            logger.info("[Review] Discarding %d queued operation(s)", len(self._ops))
        self._ops = list(operations)
        logger.info("[Review] Loaded %d operation(s)", len(self._ops))

    def __len__(self) -> int:
        return len(self._ops)

    def __iter__(self) -> Iterator[FileOperation]:
        return iter(list(self._ops))

    def __getitem__(self, index: int) -> FileOperation:
        return self.get(index)

    @property
    def operations(self) -> list[FileOperation]:
        return list(self._ops)

    def get(self, index: int) -> FileOperation:
        if not 0 <= index < len(self._ops):
            raise OperationStateError(
                f"No operation at index {index} (queue has {len(self._ops)})")
        return self._ops[index]

    def pending(self) -> list[int]:
        """Indices of actionable entries that are still pending."""
        return [i for i, op in enumerate(self._ops)
                if not op.is_terminal and op.is_actionable]

    def summary(self) -> dict[str, int]:
        counts = {"total": len(self._ops), "pending": 0, "accepted": 0,
                  "rejected": 0, "invalid": 0}
        for op in self._ops:
            counts[op.state.value] += 1
            if not op.is_actionable:
                counts["invalid"] += 1
        return counts

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def accept(self, index: int) -> list[ApplyWarning]:
        """Apply the entry at *index* and mark it accepted.

        Returns non-fatal warnings.  Raises the ``ValidationError`` of an
        invalid entry, or the ``PatchError`` / ``FileSystemError`` /
        ``SyntaxCheckError`` that stopped the apply; the entry then stays
        pending.
        """
        op = self.get(index)
        if op.is_terminal:
            logger.debug("[Review] #%d already %s, ignoring accept",
                         index, op.state.value)
            return []

        if op.edit is None:
            op.last_error = op.error
            raise op.error

        try:
            old_code, written, warnings = self._apply(op.edit)
        except ApplyChangesError as exc:
            op.last_error = exc
            logger.warning("[Review] Failed to %s %s: %s",
                           op.operation_type.lower(), op.file_path, exc)
            raise

        op.old_code = old_code
        op.applied_content = written
        op.last_error = None
        op.state = OperationState.ACCEPTED
        logger.info("[Review] Accepted #%d %s %s", index,
                    op.operation_type, op.file_path)
        for warning in warnings:
            logger.warning("[Review] %s", warning)

        if self._on_applied is not None:
            try:
                self._on_applied(op)
            except Exception as exc:
                logger.warning("[Review] Post-apply callback failed for %s: %s",
                               op.file_path, exc)
        return warnings

    def reject(self, index: int) -> None:
        op = self.get(index)
        if op.is_terminal:
            logger.debug("[Review] #%d already %s, ignoring reject",
                         index, op.state.value)
            return
        op.state = OperationState.REJECTED
        logger.info("[Review] Rejected #%d %s", index, op.file_path)

    def accept_all(self) -> BulkResult:
        """Accept every pending actionable entry in queue order.

        A failure is recorded and the loop moves on to the next entry.
        """
        result = BulkResult()
        for index in self.pending():
            try:
                result.warnings.extend(self.accept(index))
            except ApplyChangesError as exc:
                result.failed[index] = exc
            else:
                result.applied.append(index)
        return result

    def reject_all(self) -> list[int]:
        indices = [i for i, op in enumerate(self._ops) if not op.is_terminal]
        for index in indices:
            self.reject(index)
        return indices

    # ------------------------------------------------------------------
    # Review helpers
    # ------------------------------------------------------------------

    def diff_pair(self, index: int) -> tuple[str, str]:
        """``(old_code, new_code)`` for rendering the entry at *index*.

        Computed from the current file content; an UPDATE_DIFF whose hunks
        no longer match raises ``PatchError``.
        """
        op = self.get(index)
        edit = op.edit
        if edit is None:
            return "", op.new_code or ""
        if op.accepted:
            return op.old_code or "", op.applied_content or ""

        if isinstance(edit, CreateFile):
            return "", edit.content
        if isinstance(edit, ReplaceFile):
            return self._read_optional(edit.path), edit.content
        if isinstance(edit, PatchFile):
            current = self._read(edit.path)
            return current, self._patcher.apply(current, edit.hunks).content
        return self._read_optional(edit.path), ""

    def failed_diff_paths(self) -> list[str]:
        """Paths of pending diff entries whose last accept failed to match."""
        paths: list[str] = []
        for op in self._ops:
            if (isinstance(op.edit, PatchFile) and not op.is_terminal
                    and isinstance(op.last_error, PatchError)
                    and op.file_path not in paths):
                paths.append(op.file_path)
        return paths

    def build_retry_prompt(self, paths: Sequence[str] | None = None) -> str:
        """Text asking the assistant to regenerate diffs for *paths*.

        Defaults to :meth:`failed_diff_paths`.  Each file is included with
        its current content so the new hunks can match it.
        """
        paths = list(paths) if paths is not None else self.failed_diff_paths()
        if not paths:
            return ""

        sections = [
            "# Failed UPDATE_DIFF Files",
            "The diffs for the files below could not be applied. "
            "Their current contents are:\n",
        ]
        for path in paths:
            try:
                content = self._read(path)
            except FileSystemError as exc:
                sections.append(f"# {path}\n({exc})")
                continue
            sections.append(f"# {path}\n```\n{content}\n```")
        sections.append(
            "\nPlease generate new UPDATE_DIFF blocks that match this content."
        )
        return "\n".join(sections)

    # ------------------------------------------------------------------
    # Applying edits
    # ------------------------------------------------------------------

    def _apply(self, edit: Edit) -> tuple[Optional[str], Optional[str], list[ApplyWarning]]:
        """Perform *edit*; returns (old content, written content, warnings)."""
        if isinstance(edit, CreateFile):
            warnings = self._check_syntax(edit.path, edit.content)
            self._write(edit.path, edit.content)
            return None, edit.content, warnings

        if isinstance(edit, ReplaceFile):
            old = self._read_optional(edit.path)
            warnings = self._check_syntax(edit.path, edit.content)
            self._write(edit.path, edit.content)
            return old, edit.content, warnings

        if isinstance(edit, PatchFile):
            old = self._read(edit.path)
            result = self._patcher.apply(old, edit.hunks)
            if result.used_fuzzy:
                logger.info("[Review] %s patched with fuzzy matching", edit.path)
            warnings = self._check_syntax(edit.path, result.content)
            self._write(edit.path, result.content)
            if self._verify_writes:
                warnings.extend(self._verify(edit.path, result.content))
            return old, result.content, warnings

        if isinstance(edit, DeleteFile):
            self._call(self._fs.delete, edit.path)
            return None, None, []

        raise TypeError(f"Unknown edit type: {type(edit).__name__}")

    def _verify(self, path: str, expected: str) -> list[ApplyWarning]:
        try:
            actual = self._read(path)
        except FileSystemError as exc:
            return [VerificationWarning(
                path=path,
                message=f"Could not verify file content after update: {exc}",
                expected_length=len(expected),
            )]
        if actual != expected:
            return [VerificationWarning(
                path=path,
                message="File content verification failed after diff update",
                expected_length=len(expected),
                actual_length=len(actual),
            )]
        return []

    def _check_syntax(self, path: str, content: str) -> list[ApplyWarning]:
        if self._syntax_mode == SYNTAX_OFF:
            return []
        detail = self._syntax_checker(path, content)
        if detail is None:
            return []
        if self._syntax_mode == SYNTAX_BLOCK:
            raise SyntaxCheckError(path, detail)
        return [SyntaxCheckWarning(path=path, message=f"Syntax error: {detail}")]

    # ------------------------------------------------------------------
    # File-system calls
    # ------------------------------------------------------------------

    @staticmethod
    def _call(func, *args):
        """Invoke a collaborator method, wrapping raw ``OSError``s."""
        try:
            return func(*args)
        except FileSystemError:
            raise
        except OSError as exc:
            path = args[0] if args else ""
            raise FileSystemError(str(exc), path) from exc

    def _read(self, path: str) -> str:
        return self._call(self._fs.read, path)

    def _read_optional(self, path: str) -> str:
        try:
            return self._read(path)
        except NotFoundError:
            return ""

    def _write(self, path: str, content: str) -> None:
        self._call(self._fs.write, path, content)
