"""
Hunk parser — turns the body of an UPDATE_DIFF block into ``Hunk`` records.

Three notations are understood and may be mixed in one body:

* unified diff hunks (``@@ -12,3 +12,4 @@`` followed by `` ``/``-``/``+`` lines)
* ``<<<<<<< SEARCH`` / ``=======`` / ``>>>>>>> REPLACE`` blocks
* ``<<<<<<< ORIGINAL (line N)`` / ``=======`` / ``>>>>>>> UPDATED`` blocks
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..errors import ValidationError, ValidationErrorKind
from ..models import Hunk

logger = logging.getLogger(__name__)

# Patterns
_BLOCK_START = re.compile(
    r"^<{7}\s*(SEARCH|ORIGINAL)(?:\s*\(\s*line\s+(\d+)\s*\))?\s*$"
)
_SEPARATOR = re.compile(r"^={7}\s*$")
_BLOCK_END = re.compile(r"^>{7}\s*(REPLACE|UPDATED)\s*$")
_UNIFIED_HEADER = re.compile(r"^@@\s*-(\d+)(?:,\d+)?\s+\+\d+(?:,\d+)?\s*@@")
_FILE_HEADERS = ("--- ", "+++ ", "diff --git", "index ")


class HunkParser:
    """Parse diff-hunk bodies in any of the supported notations."""

    def parse(self, body: str, file_path: str = "") -> list[Hunk]:
        """Return the hunks of *body* in the order they appear.

        Raises
        ------
        ValidationError
            ``MALFORMED_HUNK`` for a broken hunk, ``MISSING_HUNKS`` when the
            body contains no hunk at all.
        """
        lines = body.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        hunks: list[Hunk] = []
        unified: Optional[list[tuple[str, str]]] = None
        unified_hint: Optional[int] = None
        seen_hunk = False

        i = 0
        while i < len(lines):
            line = lines[i]

            start = _BLOCK_START.match(line)
            if start:
                if unified is not None:
                    hunks.append(self._build_unified(unified, unified_hint,
                                                     len(hunks), file_path))
                    unified = None
                hunk, i = self._parse_block(lines, i, start, len(hunks), file_path)
                hunks.append(hunk)
                seen_hunk = True
                continue

            if line.startswith("@@"):
                if unified is not None:
                    hunks.append(self._build_unified(unified, unified_hint,
                                                     len(hunks), file_path))
                header = _UNIFIED_HEADER.match(line)
                unified_hint = max(1, int(header.group(1))) if header else None
                unified = []
                seen_hunk = True
                i += 1
                continue

            if unified is None:
                # Outside any hunk: skip file headers and prose, but an
                # unheaded run of +/- lines is an implicit hunk
                if not seen_hunk and line.startswith(_FILE_HEADERS):
                    i += 1
                    continue
                if line.startswith(("+", "-")):
                    unified = []
                    unified_hint = None
                    seen_hunk = True
                else:
                    i += 1
                    continue

            if line.startswith("\\"):
                # "\ No newline at end of file"
                i += 1
                continue
            if line.startswith(("+", "-", " ")):
                unified.append((line[0], line[1:]))
            else:
                unified.append((" ", line))
            i += 1

        if unified is not None:
            hunks.append(self._build_unified(unified, unified_hint,
                                             len(hunks), file_path))

        if not hunks:
            raise ValidationError(
                ValidationErrorKind.MISSING_HUNKS,
                f"No diff hunks found for {file_path or 'UPDATE_DIFF block'}",
                file_path,
            )
        logger.debug("[Hunks] Parsed %d hunk(s) for %s", len(hunks), file_path)
        return hunks

    # ------------------------------------------------------------------
    # Conflict-marker blocks
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_block(lines: list[str], i: int, start: re.Match,
                     index: int, file_path: str) -> tuple[Hunk, int]:
        """Parse a SEARCH/REPLACE or ORIGINAL/UPDATED block starting at *i*.

        Returns the hunk and the index of the first line after the block.
        """
        line_hint = int(start.group(2)) if start.group(2) else None
        search: list[str] = []
        replace: list[str] = []
        j = i + 1
        while j < len(lines) and not _SEPARATOR.match(lines[j]):
            if _BLOCK_START.match(lines[j]) or _BLOCK_END.match(lines[j]):
                break
            search.append(lines[j])
            j += 1

        if j >= len(lines) or not _SEPARATOR.match(lines[j]):
            raise ValidationError(
                ValidationErrorKind.MALFORMED_HUNK,
                f"Hunk #{index + 1} in {file_path or 'diff'}: "
                f"missing '=======' separator",
                file_path,
            )

        j += 1
        while j < len(lines):
            if _BLOCK_END.match(lines[j]):
                j += 1
                break
            if _BLOCK_START.match(lines[j]):
                break
            replace.append(lines[j])
            j += 1

        if not any(l.strip() for l in search) and line_hint is None:
            raise ValidationError(
                ValidationErrorKind.MALFORMED_HUNK,
                f"Hunk #{index + 1} in {file_path or 'diff'}: "
                f"search block cannot be empty",
                file_path,
            )
        if not any(l.strip() for l in search):
            search = []

        return Hunk(removed=tuple(search), added=tuple(replace),
                    line_hint=line_hint), j

    # ------------------------------------------------------------------
    # Unified hunks
    # ------------------------------------------------------------------

    @staticmethod
    def _build_unified(entries: list[tuple[str, str]], line_hint: Optional[int],
                       index: int, file_path: str) -> Hunk:
        # Bare empty lines at the tail are formatting, not context
        while entries and entries[-1] == (" ", ""):
            entries.pop()

        changes = [k for k, (tag, _) in enumerate(entries) if tag in "+-"]
        if not changes:
            raise ValidationError(
                ValidationErrorKind.MALFORMED_HUNK,
                f"Hunk #{index + 1} in {file_path or 'diff'}: "
                f"no added or removed lines",
                file_path,
            )

        first, last = changes[0], changes[-1]
        removed: list[str] = []
        added: list[str] = []
        for tag, text in entries[first:last + 1]:
            if tag == "-":
                removed.append(text)
            elif tag == "+":
                added.append(text)
            else:
                removed.append(text)
                added.append(text)

        return Hunk(
            context_before=tuple(text for _, text in entries[:first]),
            removed=tuple(removed),
            added=tuple(added),
            context_after=tuple(text for _, text in entries[last + 1:]),
            line_hint=line_hint,
        )


def parse_hunks(body: str, file_path: str = "") -> list[Hunk]:
    """Module-level shortcut for ``HunkParser().parse(body)``."""
    return HunkParser().parse(body, file_path)
