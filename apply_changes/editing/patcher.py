"""
Patcher — locates diff hunks in file content and splices in the changes.

Pure functions over strings: no file I/O and no mutation of the hunks or of
any review-queue entry.  Hunks are applied in order, each against the result
of the previous one; the first failure aborts the whole patch.

Matching
--------
* **strict** — ``context_before + removed + context_after`` must equal a
  contiguous run of lines exactly.  One hit is used; zero hits is
  ``NO_MATCH``, several hits is ``AMBIGUOUS_MATCH``.
* **fuzzy** — only after a strict ``NO_MATCH`` and only when enabled.  Lines
  are compared with surrounding whitespace stripped, using
  ``difflib.SequenceMatcher.ratio()``; every line of a candidate window must
  reach ``fuzzy_threshold`` (default 0.85) and the window with the highest
  mean ratio wins.  Ties go to the window nearest ``line_hint``, else the
  earliest one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Optional, Sequence

from ..errors import PatchError, PatchErrorKind
from ..models import Hunk

logger = logging.getLogger(__name__)

FUZZY_THRESHOLD = 0.85

MODE_STRICT = "strict"
MODE_FUZZY = "fuzzy"
MODE_INSERT = "insert"


@dataclass(frozen=True)
class HunkMatch:
    """Where a hunk was applied."""
    index: int
    start: int          # 0-indexed first line of the matched window
    length: int
    mode: str = MODE_STRICT
    score: float = 1.0

    @property
    def line(self) -> int:
        return self.start + 1


@dataclass
class PatchResult:
    content: str
    matches: list[HunkMatch] = field(default_factory=list)

    @property
    def used_fuzzy(self) -> bool:
        return any(m.mode == MODE_FUZZY for m in self.matches)


def _split(content: str, newline: str) -> tuple[list[str], bool]:
    if not content:
        return [], True
    trailing = content.endswith(newline)
    body = content[:-len(newline)] if trailing else content
    return body.split(newline), trailing


def _join(lines: list[str], trailing: bool, newline: str) -> str:
    if not lines:
        return ""
    return newline.join(lines) + (newline if trailing else "")


class Patcher:
    """Apply hunks to file content with strict and optional fuzzy matching."""

    def __init__(self, fuzzy: bool = False,
                 fuzzy_threshold: float = FUZZY_THRESHOLD) -> None:
        if not 0.0 < fuzzy_threshold <= 1.0:
            raise ValueError(f"fuzzy_threshold must be in (0, 1], got {fuzzy_threshold}")
        self.fuzzy = fuzzy
        self.fuzzy_threshold = fuzzy_threshold

    def apply(self, content: str, hunks: Sequence[Hunk]) -> PatchResult:
        """Apply *hunks* in order and return the new content.

        Raises
        ------
        PatchError
            For the first hunk that cannot be placed; nothing is returned in
            that case, so callers never see partially patched content.
        """
        newline = "\r\n" if "\r\n" in content else "\n"
        lines, trailing = _split(content, newline)
        matches: list[HunkMatch] = []

        for index, hunk in enumerate(hunks):
            match = self._locate(lines, hunk, index)
            lines = self._splice(lines, hunk, match)
            matches.append(match)
            logger.debug(
                "[Patch] Hunk #%d applied at line %d (%s, score %.3f)",
                index + 1, match.line, match.mode, match.score,
            )

        return PatchResult(content=_join(lines, trailing, newline), matches=matches)

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    def _locate(self, lines: list[str], hunk: Hunk, index: int) -> HunkMatch:
        window = list(hunk.window)
        if not window:
            return self._locate_insertion(lines, hunk, index)

        if len(window) > len(lines):
            raise PatchError(
                PatchErrorKind.OUT_OF_RANGE, index,
                f"Hunk #{index + 1} spans {len(window)} lines but the file "
                f"has only {len(lines)}",
            )

        size = len(window)
        hits = [
            start for start in range(len(lines) - size + 1)
            if lines[start] == window[0] and lines[start:start + size] == window
        ]
        if len(hits) == 1:
            return HunkMatch(index=index, start=hits[0], length=size)
        if len(hits) > 1:
            raise PatchError(
                PatchErrorKind.AMBIGUOUS_MATCH, index,
                f"Hunk #{index + 1} matches {len(hits)} locations "
                f"(lines {', '.join(str(h + 1) for h in hits[:5])})",
            )

        if not self.fuzzy:
            raise PatchError(
                PatchErrorKind.NO_MATCH, index,
                f"Hunk #{index + 1} not found in file content. "
                f"The file may have changed since the diff was generated.",
            )
        return self._locate_fuzzy(lines, hunk, index)

    @staticmethod
    def _locate_insertion(lines: list[str], hunk: Hunk, index: int) -> HunkMatch:
        if hunk.line_hint is None:
            if not lines:
                return HunkMatch(index=index, start=0, length=0, mode=MODE_INSERT)
            raise PatchError(
                PatchErrorKind.AMBIGUOUS_MATCH, index,
                f"Hunk #{index + 1} has no context and no line number",
            )
        if not 1 <= hunk.line_hint <= len(lines) + 1:
            raise PatchError(
                PatchErrorKind.OUT_OF_RANGE, index,
                f"Hunk #{index + 1} inserts at line {hunk.line_hint} but the "
                f"file has {len(lines)} lines",
            )
        return HunkMatch(index=index, start=hunk.line_hint - 1, length=0,
                         mode=MODE_INSERT)

    def _locate_fuzzy(self, lines: list[str], hunk: Hunk, index: int) -> HunkMatch:
        target = [w.strip() for w in hunk.window]
        size = len(target)

        best_score = -1.0
        tied: list[int] = []
        for start in range(len(lines) - size + 1):
            score = self._window_score(lines, start, target)
            if score is None:
                continue
            if score > best_score + 1e-9:
                best_score = score
                tied = [start]
            elif abs(score - best_score) <= 1e-9:
                tied.append(start)

        if not tied:
            raise PatchError(
                PatchErrorKind.NO_MATCH, index,
                f"Hunk #{index + 1} not found in file content, even with "
                f"fuzzy matching (threshold {self.fuzzy_threshold:.2f})",
            )

        if hunk.line_hint is not None:
            chosen = min(tied, key=lambda s: (abs(s + 1 - hunk.line_hint), s))
        else:
            chosen = tied[0]

        logger.info(
            "[Patch] Hunk #%d fuzzy-matched at line %d (score %.3f, %d candidate(s))",
            index + 1, chosen + 1, best_score, len(tied),
        )
        return HunkMatch(index=index, start=chosen, length=size,
                         mode=MODE_FUZZY, score=best_score)

    def _window_score(self, lines: list[str], start: int,
                      target: list[str]) -> Optional[float]:
        """Mean per-line similarity, or None if any line is below threshold."""
        threshold = self.fuzzy_threshold
        total = 0.0
        for offset, want in enumerate(target):
            have = lines[start + offset].strip()
            if have == want:
                total += 1.0
                continue
            if not have or not want:
                return None
            matcher = SequenceMatcher(None, have, want, autojunk=False)
            if matcher.real_quick_ratio() < threshold or matcher.quick_ratio() < threshold:
                return None
            ratio = matcher.ratio()
            if ratio < threshold:
                return None
            total += ratio
        return total / len(target)

    # ------------------------------------------------------------------
    # Splicing
    # ------------------------------------------------------------------

    @staticmethod
    def _splice(lines: list[str], hunk: Hunk, match: HunkMatch) -> list[str]:
        """Replace the matched window, keeping the file's own context lines."""
        start, end = match.start, match.start + match.length
        if match.mode == MODE_INSERT:
            return lines[:start] + list(hunk.added) + lines[start:]

        before = lines[start:start + len(hunk.context_before)]
        after = lines[end - len(hunk.context_after):end] if hunk.context_after else []
        return lines[:start] + before + list(hunk.added) + after + lines[end:]


def patch(content: str, hunks: Sequence[Hunk], fuzzy: bool = False,
          fuzzy_threshold: float = FUZZY_THRESHOLD) -> str:
    """Return *content* with *hunks* applied; raises ``PatchError`` on failure."""
    return Patcher(fuzzy=fuzzy, fuzzy_threshold=fuzzy_threshold).apply(content, hunks).content
