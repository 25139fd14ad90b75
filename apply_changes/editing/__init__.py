"""Edit-block parsing, validation and hunk patching."""

from .command_parser import CommandParser, ParseResult, parse_commands
from .hunk_parser import HunkParser, parse_hunks
from .validator import OperationValidator, normalize_path, validate_command
from .patcher import FUZZY_THRESHOLD, HunkMatch, Patcher, PatchResult, patch
from .syntax import check_syntax

__all__ = [
    "CommandParser", "ParseResult", "parse_commands",
    "HunkParser", "parse_hunks",
    "OperationValidator", "normalize_path", "validate_command",
    "FUZZY_THRESHOLD", "HunkMatch", "Patcher", "PatchResult", "patch",
    "check_syntax",
]
