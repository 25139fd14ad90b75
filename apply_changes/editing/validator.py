"""
Operation validator — normalizes paths and turns ``Command`` records into
typed edits.

Every command produces exactly one review-queue entry: either an actionable
``FileOperation`` or one flagged with the ``ValidationError`` that explains
why it cannot be applied.
"""

from __future__ import annotations

import logging
import re

from ..errors import ValidationError, ValidationErrorKind
from ..models import (
    Command, CreateFile, DeleteFile, Edit, FileOperation, OperationType,
    PatchFile, ReplaceFile,
)
from .hunk_parser import HunkParser

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:$")


def normalize_path(raw: str) -> str:
    """Return *raw* as a relative, forward-slash, traversal-free path.

    Leading slashes are stripped, backslashes become forward slashes and
    empty or ``.`` segments are collapsed.  Idempotent.

    Raises
    ------
    ValidationError
        ``UNSAFE_PATH`` for a ``..`` segment or a drive-qualified path,
        ``EMPTY_PATH`` when nothing is left.
    """
    path = (raw or "").strip().replace("\\", "/")
    segments = [s for s in path.split("/") if s not in ("", ".")]

    if ".." in segments:
        raise ValidationError(
            ValidationErrorKind.UNSAFE_PATH,
            f"Path escapes the project root: {raw!r}",
            raw,
        )
    if segments and _DRIVE_RE.match(segments[0]):
        raise ValidationError(
            ValidationErrorKind.UNSAFE_PATH,
            f"Drive-qualified paths are not allowed: {raw!r}",
            raw,
        )
    if not segments:
        raise ValidationError(
            ValidationErrorKind.EMPTY_PATH,
            f"Empty file path: {raw!r}",
            raw,
        )
    return "/".join(segments)


class OperationValidator:
    """Check commands against the per-operation field table."""

    def __init__(self, hunk_parser: HunkParser | None = None) -> None:
        self._hunk_parser = hunk_parser or HunkParser()

    def validate(self, command: Command) -> FileOperation:
        """Return an actionable ``FileOperation`` or raise ``ValidationError``."""
        return FileOperation(command=command, edit=self._to_edit(command))

    def build_entry(self, command: Command) -> FileOperation:
        """Like :meth:`validate`, but flag the entry instead of raising."""
        try:
            return self.validate(command)
        except ValidationError as exc:
            logger.warning("[Validator] %s %s rejected: %s",
                           command.operation_type, command.file_path, exc)
            return FileOperation(command=command, error=exc)

    def build_queue(self, commands: list[Command]) -> list[FileOperation]:
        return [self.build_entry(cmd) for cmd in commands]

    # ------------------------------------------------------------------

    def _to_edit(self, command: Command) -> Edit:
        kind = command.kind
        if kind is None:
            raise ValidationError(
                ValidationErrorKind.UNSUPPORTED_OPERATION,
                f"Unsupported operation {command.operation_type!r} "
                f"for {command.file_path}",
                command.file_path,
            )

        path = normalize_path(command.file_path)

        if kind is OperationType.DELETE:
            if command.new_code and command.new_code.strip():
                logger.warning("[Validator] Ignoring body content of DELETE %s", path)
            return DeleteFile(path=path)

        if kind is OperationType.UPDATE_DIFF:
            if command.new_code is None or not command.new_code.strip():
                raise ValidationError(
                    ValidationErrorKind.MISSING_HUNKS,
                    f"UPDATE_DIFF for {path} has no diff body",
                    path,
                )
            hunks = self._hunk_parser.parse(command.new_code, path)
            return PatchFile(path=path, hunks=tuple(hunks), body=command.new_code)

        if command.new_code is None:
            raise ValidationError(
                ValidationErrorKind.MISSING_CONTENT,
                f"{kind.value} for {path} has no file content",
                path,
            )
        if kind is OperationType.CREATE:
            return CreateFile(path=path, content=command.new_code)
        return ReplaceFile(path=path, content=command.new_code)


def validate_command(command: Command) -> FileOperation:
    """Module-level shortcut for ``OperationValidator().validate(command)``."""
    return OperationValidator().validate(command)
