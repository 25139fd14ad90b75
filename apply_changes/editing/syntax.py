"""
Syntax check — parse new file content with tree-sitter before/after writing.

Uses tree-sitter >= 0.22 with the individual grammar packages.  Files with
an unknown extension, or whose grammar package is not installed, are not
checked.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}

SYNTAX_OFF = "off"
SYNTAX_WARN = "warn"
SYNTAX_BLOCK = "block"
SYNTAX_MODES = (SYNTAX_OFF, SYNTAX_WARN, SYNTAX_BLOCK)


def detect_language(file_path: str) -> Optional[str]:
    """Return the tree-sitter language name for *file_path*, or None."""
    ext = os.path.splitext(file_path)[1].lower()
    return EXTENSION_TO_LANGUAGE.get(ext)


def _get_lang_func(language: str):
    """Return the grammar's ``language()`` function, or None if not installed."""
    try:
        if language == "python":
            import tree_sitter_python as m  # type: ignore
            return m.language
        elif language == "javascript":
            import tree_sitter_javascript as m  # type: ignore
            return m.language
        elif language == "typescript":
            import tree_sitter_typescript as m  # type: ignore
            return m.language_typescript
        elif language == "tsx":
            import tree_sitter_typescript as m  # type: ignore
            return m.language_tsx
    except ImportError:
        pass
    return None


_PARSER_CACHE: dict[str, object] = {}


def _get_parser(language: str):
    """Return a cached tree-sitter Parser for *language*, or None."""
    if language in _PARSER_CACHE:
        return _PARSER_CACHE[language]
    func = _get_lang_func(language)
    if func is None:
        logger.debug("[Syntax] No grammar installed for %s", language)
        return None
    try:
        import tree_sitter as ts  # type: ignore
        parser = ts.Parser(ts.Language(func()))
    except (ImportError, ValueError, TypeError) as exc:
        logger.warning("[Syntax] Cannot create tree-sitter parser for %s: %s",
                       language, exc)
        return None
    _PARSER_CACHE[language] = parser
    return parser


def _first_error(node) -> Optional[object]:
    """Depth-first search for the first ERROR or MISSING node."""
    if node.type == "ERROR" or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = _first_error(child)
        if found is not None:
            return found
    return node


def check_syntax(file_path: str, content: str) -> Optional[str]:
    """Return a short description of the first syntax error, or None.

    None also means "not checked" (unsupported extension or no grammar).
    """
    language = detect_language(file_path)
    if language is None:
        return None
    parser = _get_parser(language)
    if parser is None:
        return None

    tree = parser.parse(content.encode("utf-8"))
    root = tree.root_node
    if not root.has_error:
        return None

    node = _first_error(root)
    row, col = node.start_point
    kind = "missing token" if node.is_missing else "unexpected input"
    detail = f"{kind} at line {row + 1}, column {col + 1}"
    logger.debug("[Syntax] %s: %s", file_path, detail)
    return detail
