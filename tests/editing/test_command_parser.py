"""Tests for the CommandParser."""

from apply_changes.editing.command_parser import (
    CommandParser, normalize_line_endings, parse_commands, unescape_markers,
)


class TestBasicBlocks:
    def test_blocks_in_source_order(self):
        text = (
            "Here are the changes:\n"
            '<file operation="CREATE" path="a.py" message="Add a">\n'
            "x = 1\n"
            "</file>\n"
            "Some prose in between.\n"
            '<file operation="DELETE" path="b.py" />\n'
        )
        commands, errors = parse_commands(text)

        assert errors == []
        assert len(commands) == 2
        assert commands[0].operation_type == "CREATE"
        assert commands[0].file_path == "a.py"
        assert commands[0].file_message == "Add a"
        assert commands[0].new_code == "x = 1"
        assert commands[0].source_order == 0
        assert commands[1].operation_type == "DELETE"
        assert commands[1].file_path == "b.py"
        assert commands[1].new_code is None
        assert commands[1].source_order == 1

    def test_empty_text(self):
        commands, errors = CommandParser().parse("")
        assert commands == []
        assert errors == []

    def test_empty_body_is_empty_content(self):
        text = '<file operation="CREATE" path="pkg/__init__.py">\n</file>\n'
        commands, errors = parse_commands(text)
        assert errors == []
        assert commands[0].new_code == ""

    def test_text_without_blocks(self):
        commands, errors = parse_commands("Nothing to apply here.\n")
        assert commands == []
        assert errors == []

    def test_operation_is_upper_cased(self):
        commands, _ = parse_commands('<file operation="update_full" path="a.txt">\nhi\n</file>\n')
        assert commands[0].operation_type == "UPDATE_FULL"

    def test_attribute_aliases_and_entities(self):
        text = ("<file file_operation='CREATE' file_path='docs/a.md' "
                "file_message='Fix &amp; test'>\nbody\n</file>\n")
        commands, _ = parse_commands(text)
        assert commands[0].file_path == "docs/a.md"
        assert commands[0].file_message == "Fix & test"

    def test_unknown_operation_still_produces_command(self):
        commands, errors = parse_commands('<file operation="rename" path="a.py" />\n')
        assert errors == []
        assert commands[0].operation_type == "RENAME"
        assert commands[0].kind is None

    def test_duplicate_paths_are_not_merged(self):
        text = (
            '<file operation="UPDATE_FULL" path="a.py">\none\n</file>\n'
            '<file operation="UPDATE_FULL" path="a.py">\ntwo\n</file>\n'
        )
        commands, _ = parse_commands(text)
        assert [c.new_code for c in commands] == ["one", "two"]

    def test_crlf_is_normalized(self):
        text = '<file operation="CREATE" path="a.txt">\r\nline1\r\nline2\r\n</file>\r\n'
        commands, _ = parse_commands(text)
        assert commands[0].new_code == "line1\nline2"

    def test_indented_markers(self):
        text = '  <file operation="CREATE" path="a.txt">\n  x\n  </file>\n'
        commands, _ = parse_commands(text)
        assert commands[0].new_code == "  x"


class TestDelimiterLikeContent:
    def test_close_marker_inside_body_is_kept(self):
        body = "<template>\n</file>\nstill body"
        text = (
            f'<file operation="UPDATE_FULL" path="t.html">\n{body}\n</file>\n'
            '<file operation="DELETE" path="x.txt" />\n'
        )
        commands, errors = parse_commands(text)

        assert errors == []
        assert len(commands) == 2
        assert commands[0].new_code == body

    def test_nested_block_is_body_content(self):
        body = 'Example:\n<file operation="DELETE" path="x">\n</file>'
        text = f'<file operation="CREATE" path="doc.md">\n{body}\n</file>\n'
        commands, errors = parse_commands(text)

        assert errors == []
        assert len(commands) == 1
        assert commands[0].new_code == body

    def test_inline_marker_text_is_not_a_delimiter(self):
        body = 's = "</file> and <file path=\\"x\\">"\nprint(s)'
        text = f'<file operation="CREATE" path="a.py">\n{body}\n</file>\n'
        commands, _ = parse_commands(text)
        assert commands[0].new_code == body

    def test_cdata_section_is_opaque_and_unwrapped(self):
        text = (
            '<file operation="CREATE" path="a.txt">\n'
            "<![CDATA[\n"
            "line1\n"
            "</file>\n"
            "line2\n"
            "]]>\n"
            "</file>\n"
        )
        commands, errors = parse_commands(text)

        assert errors == []
        assert len(commands) == 1
        assert commands[0].new_code == "line1\n</file>\nline2"

    def test_body_whitespace_is_preserved(self):
        body = "\n    indented\n\n\ttabbed  \n"
        text = f'<file operation="CREATE" path="a.txt">\n{body}\n</file>\n'
        commands, _ = parse_commands(text)
        assert commands[0].new_code == body

    def test_unmatched_inner_open_marker_is_body_text(self):
        body = ('TEXT = """\n'
                '<file operation="CREATE" path="a.txt">\n'
                'no close here\n'
                '"""')
        text = (
            f'<file operation="CREATE" path="tests/test_x.py">\n{body}\n</file>\n'
            '<file operation="DELETE" path="old.py" />\n'
        )
        commands, errors = parse_commands(text)

        assert errors == []
        assert [(c.operation_type, c.file_path) for c in commands] == [
            ("CREATE", "tests/test_x.py"), ("DELETE", "old.py"),
        ]
        assert commands[0].new_code == body

    def test_unmatched_inner_open_marker_keeps_following_blocks(self):
        text = (
            '<file operation="CREATE" path="doc.md">\n'
            '<file operation="CREATE" path="sample.txt">\n'
            "</file>\n"
            '<file operation="UPDATE_FULL" path="b.py">\n'
            "y = 2\n"
            "</file>\n"
        )
        commands, errors = parse_commands(text)

        assert errors == []
        assert [c.file_path for c in commands] == ["doc.md", "b.py"]
        assert commands[0].new_code == '<file operation="CREATE" path="sample.txt">'
        assert commands[1].new_code == "y = 2"


class TestLegacyElementForm:
    def test_child_elements(self):
        text = (
            '<ath command="apply changes">\n'
            "<file>\n"
            "<file_message>Fix it</file_message>\n"
            "<file_operation>UPDATE_FULL</file_operation>\n"
            "<file_path>src/app.ts</file_path>\n"
            "<file_code><![CDATA[\n"
            "const a = 1;\n"
            "]]></file_code>\n"
            "</file>\n"
            "</ath>\n"
        )
        commands, errors = parse_commands(text)

        assert errors == []
        assert len(commands) == 1
        assert commands[0].operation_type == "UPDATE_FULL"
        assert commands[0].file_path == "src/app.ts"
        assert commands[0].file_message == "Fix it"
        assert commands[0].new_code == "const a = 1;"

    def test_delete_without_code(self):
        text = (
            "<file>\n"
            "<file_operation>DELETE</file_operation>\n"
            "<file_path>old.py</file_path>\n"
            "</file>\n"
        )
        commands, _ = parse_commands(text)
        assert commands[0].operation_type == "DELETE"
        assert commands[0].new_code is None


class TestEscapedMarkers:
    def test_html_escaped_markers(self):
        text = ('&lt;file operation="CREATE" path="a.html"&gt;\n'
                "&lt;div&gt;hi&lt;/div&gt;\n"
                "&lt;/file&gt;\n")
        commands, errors = parse_commands(text)

        assert errors == []
        assert commands[0].file_path == "a.html"
        # Content between the markers is left alone
        assert commands[0].new_code == "&lt;div&gt;hi&lt;/div&gt;"

    def test_backslash_escaped_markers(self):
        text = '\\<file operation="DELETE" path="a.py" /\\>\n'
        commands, _ = parse_commands(text)
        assert commands[0].operation_type == "DELETE"

    def test_escapes_ignored_when_literal_markers_present(self):
        text = ('<file operation="CREATE" path="doc.md">\n'
                "Write &lt;file&gt; tags like this.\n"
                "</file>\n")
        commands, _ = parse_commands(text)
        assert commands[0].new_code == "Write &lt;file&gt; tags like this."

    def test_unescape_markers_only_touches_markers(self):
        assert unescape_markers("&lt;/file&gt; &lt;b&gt;") == "</file> &lt;b&gt;"

    def test_normalize_line_endings(self):
        assert normalize_line_endings("a\r\nb\rc\n") == "a\nb\nc\n"


class TestParseErrors:
    def test_unterminated_block_is_skipped(self):
        text = (
            '<file operation="CREATE" path="a.py">\n'
            "no close marker\n"
            '<file operation="DELETE" path="b.py" />\n'
        )
        commands, errors = parse_commands(text)

        assert len(errors) == 1
        assert errors[0].line == 1
        assert "Unterminated" in errors[0].message
        assert [c.file_path for c in commands] == ["b.py"]

    def test_missing_path(self):
        commands, errors = parse_commands('<file operation="CREATE">\nx\n</file>\n')
        assert commands == []
        assert len(errors) == 1
        assert "path" in errors[0].message

    def test_missing_operation(self):
        commands, errors = parse_commands('<file path="a.py" />\n')
        assert commands == []
        assert "operation" in errors[0].message

    def test_error_does_not_shift_source_order(self):
        text = (
            '<file path="bad.py" />\n'
            '<file operation="DELETE" path="good.py" />\n'
        )
        commands, errors = parse_commands(text)
        assert len(errors) == 1
        assert errors[0].line == 1
        assert commands[0].source_order == 0
