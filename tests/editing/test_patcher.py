"""Tests for the Patcher."""

import pytest

from apply_changes.editing.patcher import (
    MODE_FUZZY, MODE_INSERT, MODE_STRICT, Patcher, patch,
)
from apply_changes.errors import PatchError, PatchErrorKind
from apply_changes.models import Hunk


FOO_TO_BAR = Hunk(removed=("foo();",), added=("bar();",))


class TestStrictPatch:
    def test_single_replacement(self):
        assert patch("a\nfoo();\nb\n", [FOO_TO_BAR]) == "a\nbar();\nb\n"

    def test_match_location_is_reported(self):
        result = Patcher().apply("a\nfoo();\nb\n", [FOO_TO_BAR])
        assert result.matches[0].line == 2
        assert result.matches[0].mode == MODE_STRICT
        assert not result.used_fuzzy

    def test_reapply_fails_with_no_match(self):
        patched = patch("a\nfoo();\nb\n", [FOO_TO_BAR])
        with pytest.raises(PatchError) as exc_info:
            patch(patched, [FOO_TO_BAR])
        assert exc_info.value.kind is PatchErrorKind.NO_MATCH
        assert exc_info.value.hunk_index == 0

    def test_hunks_apply_in_order(self):
        first = Hunk(removed=("b",), added=("B",))
        second = Hunk(context_before=("B",), removed=("c",), added=("C",))
        content = "a\nb\nc\n"

        assert patch(content, [first, second]) == "a\nB\nC\n"

        with pytest.raises(PatchError) as exc_info:
            patch(content, [second, first])
        assert exc_info.value.kind is PatchErrorKind.NO_MATCH
        assert exc_info.value.hunk_index == 0

    def test_failure_reports_failing_hunk_index(self):
        ok = Hunk(removed=("a",), added=("A",))
        missing = Hunk(removed=("zzz",), added=("y",))
        with pytest.raises(PatchError) as exc_info:
            patch("a\nb\n", [ok, missing])
        assert exc_info.value.hunk_index == 1

    def test_context_lines_are_kept(self):
        hunk = Hunk(context_before=("def f():",), removed=("    return 1",),
                    added=("    return 2",), context_after=("",))
        content = "def f():\n    return 1\n\ndef g():\n    return 1\n"
        assert patch(content, [hunk]) == "def f():\n    return 2\n\ndef g():\n    return 1\n"

    def test_whitespace_is_significant(self):
        with pytest.raises(PatchError) as exc_info:
            patch("a\n  foo();\nb\n", [FOO_TO_BAR])
        assert exc_info.value.kind is PatchErrorKind.NO_MATCH

    def test_ambiguous_match(self):
        with pytest.raises(PatchError) as exc_info:
            patch("foo();\nx\nfoo();\n", [FOO_TO_BAR])
        assert exc_info.value.kind is PatchErrorKind.AMBIGUOUS_MATCH

    def test_ambiguity_is_not_resolved_by_fuzzy(self):
        with pytest.raises(PatchError) as exc_info:
            patch("foo();\nx\nfoo();\n", [FOO_TO_BAR], fuzzy=True)
        assert exc_info.value.kind is PatchErrorKind.AMBIGUOUS_MATCH

    def test_window_longer_than_file(self):
        hunk = Hunk(context_before=("a", "b"), removed=("c",), added=("C",))
        with pytest.raises(PatchError) as exc_info:
            patch("a\n", [hunk])
        assert exc_info.value.kind is PatchErrorKind.OUT_OF_RANGE

    def test_deletion(self):
        hunk = Hunk(removed=("dead()",), added=())
        assert patch("a\ndead()\nb\n", [hunk]) == "a\nb\n"


class TestLineEndings:
    def test_crlf_preserved(self):
        assert patch("a\r\nfoo();\r\nb\r\n", [FOO_TO_BAR]) == "a\r\nbar();\r\nb\r\n"

    def test_missing_trailing_newline_preserved(self):
        assert patch("a\nfoo();", [FOO_TO_BAR]) == "a\nbar();"


class TestInsertion:
    def test_insert_at_line(self):
        hunk = Hunk(added=("new",), line_hint=2)
        result = Patcher().apply("a\nb\n", [hunk])
        assert result.content == "a\nnew\nb\n"
        assert result.matches[0].mode == MODE_INSERT

    def test_append_after_last_line(self):
        assert patch("a\nb\n", [Hunk(added=("c",), line_hint=3)]) == "a\nb\nc\n"

    def test_insert_out_of_range(self):
        with pytest.raises(PatchError) as exc_info:
            patch("a\nb\n", [Hunk(added=("x",), line_hint=5)])
        assert exc_info.value.kind is PatchErrorKind.OUT_OF_RANGE

    def test_insert_without_position(self):
        with pytest.raises(PatchError) as exc_info:
            patch("a\n", [Hunk(added=("x",))])
        assert exc_info.value.kind is PatchErrorKind.AMBIGUOUS_MATCH

    def test_insert_into_empty_content(self):
        assert patch("", [Hunk(added=("x",))]) == "x\n"


class TestFuzzyPatch:
    HUNK = Hunk(context_before=("def f():",), removed=("    x = 1",),
                added=("    x = 2",), context_after=("    return x",))

    def test_trailing_whitespace_matches_like_exact(self):
        exact = "def f():\n    x = 1\n    return x\n"
        drifted = "def f():\n    x = 1   \n    return x\n"

        expected = patch(exact, [self.HUNK])
        result = Patcher(fuzzy=True).apply(drifted, [self.HUNK])

        assert result.used_fuzzy
        assert result.matches[0].score == pytest.approx(1.0)
        assert result.content == expected == "def f():\n    x = 2\n    return x\n"

    def test_drifted_context_keeps_file_text(self):
        drifted = "def f():  \n    x = 1\n    return x\t\n"
        result = patch(drifted, [self.HUNK], fuzzy=True)
        assert result == "def f():  \n    x = 2\n    return x\t\n"

    def test_strict_mode_rejects_drift(self):
        with pytest.raises(PatchError) as exc_info:
            patch("def f():\n    x = 1 \n    return x\n", [self.HUNK])
        assert exc_info.value.kind is PatchErrorKind.NO_MATCH

    def test_minor_textual_drift(self):
        hunk = Hunk(removed=("return  value",), added=("return other",))
        result = Patcher(fuzzy=True).apply("x\n    return value\n", [hunk])
        assert result.content == "x\nreturn other\n"
        assert result.matches[0].mode == MODE_FUZZY
        assert 0.85 <= result.matches[0].score < 1.0

    def test_below_threshold_is_no_match(self):
        with pytest.raises(PatchError) as exc_info:
            patch("completely different\n", [FOO_TO_BAR], fuzzy=True)
        assert exc_info.value.kind is PatchErrorKind.NO_MATCH

    def test_tie_prefers_line_hint(self):
        hunk = Hunk(removed=("x = 1",), added=("x = 2",), line_hint=3)
        content = "  x = 1\nmid\n    x = 1\n"
        result = Patcher(fuzzy=True).apply(content, [hunk])
        assert result.content == "  x = 1\nmid\nx = 2\n"

    def test_tie_without_hint_takes_earliest(self):
        hunk = Hunk(removed=("x = 1",), added=("x = 2",))
        content = "  x = 1\nmid\n    x = 1\n"
        assert patch(content, [hunk], fuzzy=True) == "x = 2\nmid\n    x = 1\n"

    def test_threshold_is_configurable(self):
        hunk = Hunk(removed=("return  value",), added=("return other",))
        with pytest.raises(PatchError):
            patch("return value\n", [hunk], fuzzy=True, fuzzy_threshold=0.99)

    @pytest.mark.parametrize("threshold", [0.0, -0.5, 1.5])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ValueError):
            Patcher(fuzzy=True, fuzzy_threshold=threshold)
