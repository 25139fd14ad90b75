"""
Command parser — extracts ``<file ...>`` edit blocks from assistant output.

Accepted block shapes::

    <file operation="CREATE" path="src/new.ts" message="Add constant">
    export const x = 1;
    </file>

    <file operation="DELETE" path="src/old.ts" />

    <file>
    <file_operation>UPDATE_FULL</file_operation>
    <file_path>src/app.ts</file_path>
    <file_code><![CDATA[
    ...
    ]]></file_code>
    </file>

The open marker must start a line and the close marker must end one.
Markers inside ``<![CDATA[ ... ]]>`` sections are ignored, nested markers are
balanced, and a close marker followed by further close markers before the
next block is treated as body content, so generated code that happens to
contain ``</file>`` is not cut short.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import NamedTuple, Optional

from ..errors import ParseError
from ..models import Command

logger = logging.getLogger(__name__)

# Markers
_OPEN_RE = re.compile(
    r"""^[ \t]*<file((?:\s+[\w:-]+\s*=\s*(?:"[^"]*"|'[^']*'))*)\s*(/?)>""",
    re.MULTILINE,
)
_CLOSE_RE = re.compile(r"</file\s*>(?=[ \t]*(?:\n|$))")
_ATTR_RE = re.compile(r"""([\w:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")

_CDATA_START = "<![CDATA["
_CDATA_END = "]]>"

# Escaped variants of the block markers: \<file ...\>, &lt;file ...&gt;, ...
_ESCAPED_MARKER_RE = re.compile(
    r"(?:\\<|&amp;lt;|&lt;)(/?(?:file|ath)\b[^<>\n]*?)(?:\\>|&amp;gt;|&gt;|>)"
)

# Legacy child elements
_CODE_OPEN_RE = re.compile(r"<file_code\s*>")
_CODE_CLOSE = "</file_code>"

_OPERATION_KEYS = ("operation", "file_operation")
_PATH_KEYS = ("path", "file_path")
_MESSAGE_KEYS = ("message", "file_message")


class ParseResult(NamedTuple):
    """Commands in source order plus diagnostics for skipped blocks."""
    commands: list[Command]
    errors: list[ParseError]


@dataclass
class _Marker:
    start: int
    end: int
    is_open: bool
    self_closing: bool = False
    attrs: str = ""


def _line_of(text: str, pos: int) -> int:
    return text.count("\n", 0, pos) + 1


def _snippet(text: str, pos: int, width: int = 60) -> str:
    line_end = text.find("\n", pos)
    if line_end == -1:
        line_end = len(text)
    return text[pos:min(line_end, pos + width)].strip()


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def unescape_markers(text: str) -> str:
    """Unescape block markers only; the content between them is untouched."""
    return _ESCAPED_MARKER_RE.sub(
        lambda m: "<" + html.unescape(m.group(1).replace('\\"', '"')) + ">",
        text,
    )


def _cdata_spans(text: str) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    pos = 0
    while True:
        start = text.find(_CDATA_START, pos)
        if start == -1:
            break
        end = text.find(_CDATA_END, start + len(_CDATA_START))
        if end == -1:
            break
        end += len(_CDATA_END)
        spans.append((start, end))
        pos = end
    return spans


def _in_spans(pos: int, spans: list[tuple[int, int]]) -> bool:
    for start, end in spans:
        if start <= pos < end:
            return True
        if start > pos:
            break
    return False


def _strip_cdata(text: str) -> str:
    """Unwrap a body that consists of exactly one CDATA section."""
    stripped = text.strip()
    if (stripped.startswith(_CDATA_START) and stripped.endswith(_CDATA_END)
            and stripped.find(_CDATA_END) == len(stripped) - len(_CDATA_END)):
        return _trim_body(stripped[len(_CDATA_START):-len(_CDATA_END)])
    return text


def _trim_body(body: str) -> str:
    """Drop the newline after the open marker and the one before the close."""
    lead = re.match(r"[ \t]*\n", body)
    if lead:
        body = body[lead.end():]
    idx = body.rfind("\n")
    if idx != -1 and not body[idx + 1:].strip(" \t"):
        body = body[:idx]
    elif not body.strip(" \t"):
        body = ""
    return body


def _parse_attrs(raw: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for m in _ATTR_RE.finditer(raw):
        value = m.group(2) if m.group(2) is not None else m.group(3)
        attrs[m.group(1).lower()] = html.unescape(value)
    return attrs


def _pick(attrs: dict[str, str], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = attrs.get(key)
        if value is not None and value.strip():
            return value.strip()
    return None


def _element(text: str, name: str) -> Optional[str]:
    m = re.search(rf"<{name}\s*>(.*?)</{name}\s*>", text, re.DOTALL)
    if not m:
        return None
    value = html.unescape(_strip_cdata(m.group(1))).strip()
    return value or None


class CommandParser:
    """Parse edit blocks out of freeform assistant text."""

    def parse(self, text: str) -> ParseResult:
        """Return every well-formed block as a ``Command``, in source order.

        Never raises for malformed input: bad blocks are skipped and
        reported in ``ParseResult.errors``.
        """
        commands: list[Command] = []
        errors: list[ParseError] = []
        if not text:
            return ParseResult(commands, errors)

        text = normalize_line_endings(text)
        if not _OPEN_RE.search(text):
            text = unescape_markers(text)

        markers = self._scan_markers(text)
        i = 0
        while i < len(markers):
            marker = markers[i]
            if not marker.is_open:
                logger.debug("[Parser] Ignoring stray close marker at line %d",
                             _line_of(text, marker.start))
                i += 1
                continue

            if marker.self_closing:
                self._emit(text, marker, None, commands, errors)
                i += 1
                continue

            close_idx = self._find_close(markers, i)
            if close_idx is None:
                line = _line_of(text, marker.start)
                errors.append(ParseError(
                    line=line,
                    message="Unterminated <file> block (no matching </file>)",
                    snippet=_snippet(text, marker.start),
                ))
                logger.warning("[Parser] Unterminated block at line %d", line)
                i += 1
                continue

            body = _trim_body(text[marker.end:markers[close_idx].start])
            self._emit(text, marker, body, commands, errors)
            i = close_idx + 1

        logger.info("[Parser] Parsed %d command(s), %d error(s)",
                    len(commands), len(errors))
        return ParseResult(commands, errors)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _scan_markers(text: str) -> list[_Marker]:
        spans = _cdata_spans(text)
        markers: list[_Marker] = []
        for m in _OPEN_RE.finditer(text):
            # Report the position of "<", not of the indentation
            start = text.index("<", m.start())
            if _in_spans(start, spans):
                continue
            markers.append(_Marker(
                start=start, end=m.end(), is_open=True,
                self_closing=bool(m.group(2)), attrs=m.group(1),
            ))
        for m in _CLOSE_RE.finditer(text):
            if _in_spans(m.start(), spans):
                continue
            markers.append(_Marker(start=m.start(), end=m.end(), is_open=False))
        markers.sort(key=lambda mk: mk.start)
        return markers

    @staticmethod
    def _find_close(markers: list[_Marker], open_idx: int) -> Optional[int]:
        """Index of the close marker that ends the block opened at *open_idx*."""
        depth = 1
        close_idx: Optional[int] = None
        j = open_idx + 1
        while j < len(markers):
            mk = markers[j]
            if mk.is_open:
                if not mk.self_closing:
                    depth += 1
            else:
                depth -= 1
                if depth == 0:
                    close_idx = j
                    break
            j += 1
        if close_idx is None:
            # Unbalanced open markers in the body are text: end the block at
            # the first close marker that precedes another block or the end
            for j in range(open_idx + 1, len(markers)):
                if markers[j].is_open:
                    continue
                if j + 1 == len(markers) or markers[j + 1].is_open:
                    logger.debug("[Parser] Treating unmatched open marker(s) "
                                 "as body text up to marker %d", j)
                    return j
            return None

        # Close markers up to the next block belong to this body
        while close_idx + 1 < len(markers) and not markers[close_idx + 1].is_open:
            close_idx += 1
        return close_idx

    @staticmethod
    def _emit(text: str, marker: _Marker, body: Optional[str],
              commands: list[Command], errors: list[ParseError]) -> None:
        attrs = _parse_attrs(marker.attrs)
        operation = _pick(attrs, _OPERATION_KEYS)
        path = _pick(attrs, _PATH_KEYS)
        message = _pick(attrs, _MESSAGE_KEYS)
        code = body

        if (operation is None or path is None) and body:
            # Legacy element form: metadata lives in child elements
            code_open = _CODE_OPEN_RE.search(body)
            head = body[:code_open.start()] if code_open else body
            operation = operation or _element(head, "file_operation")
            path = path or _element(head, "file_path")
            message = message or _element(head, "file_message")
            if code_open:
                code_close = body.rfind(_CODE_CLOSE)
                if code_close < code_open.end():
                    code_close = len(body)
                code = _trim_body(body[code_open.end():code_close])
            else:
                code = None

        line = _line_of(text, marker.start)
        missing = [name for name, value in (("operation", operation), ("path", path))
                   if value is None]
        if missing:
            errors.append(ParseError(
                line=line,
                message=f"Block is missing required {' and '.join(missing)}",
                snippet=_snippet(text, marker.start),
            ))
            logger.warning("[Parser] Skipping block at line %d: missing %s",
                           line, ", ".join(missing))
            return

        if code is not None:
            code = _strip_cdata(code)
        commands.append(Command(
            operation_type=operation.upper(),
            file_path=path,
            new_code=code,
            file_message=message,
            source_order=len(commands),
        ))
        logger.debug("[Parser] Block %d: %s %s (line %d)",
                     len(commands) - 1, operation.upper(), path, line)


def parse_commands(text: str) -> ParseResult:
    """Module-level shortcut for ``CommandParser().parse(text)``."""
    return CommandParser().parse(text)
