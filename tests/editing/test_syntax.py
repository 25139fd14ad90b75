"""Tests for the tree-sitter syntax check."""

import pytest

from apply_changes.editing.syntax import check_syntax, detect_language


class TestDetectLanguage:
    @pytest.mark.parametrize("path, expected", [
        ("a.py", "python"),
        ("src/App.TSX", "tsx"),
        ("lib/index.mjs", "javascript"),
        ("types.ts", "typescript"),
        ("README.md", None),
        ("Makefile", None),
    ])
    def test_by_extension(self, path, expected):
        assert detect_language(path) == expected


class TestCheckSyntax:
    def test_unsupported_extension_is_not_checked(self):
        assert check_syntax("notes.txt", "this is ( not code") is None

    def test_valid_python(self):
        pytest.importorskip("tree_sitter")
        pytest.importorskip("tree_sitter_python")
        assert check_syntax("a.py", "def f(x):\n    return x + 1\n") is None

    def test_invalid_python(self):
        pytest.importorskip("tree_sitter")
        pytest.importorskip("tree_sitter_python")
        detail = check_syntax("a.py", "x = 1\ndef f(:\n    pass\n")
        assert detail is not None
        assert "line" in detail

    def test_invalid_javascript(self):
        pytest.importorskip("tree_sitter")
        pytest.importorskip("tree_sitter_javascript")
        assert check_syntax("a.js", "function f( {\n") is not None
        assert check_syntax("a.js", "const x = 1;\n") is None
