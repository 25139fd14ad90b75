"""
CLI entry point — argument parsing and main execution flow.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from .cli_display import (
    print_operations, print_parse_errors, print_summary, print_warnings,
    setup_logger,
)
from .config import Config
from .diff_display import review_queue
from .editing.patcher import Patcher
from .editing.syntax import SYNTAX_MODES
from .errors import ApplyChangesError
from .executor import ReviewQueue
from .filesystem import LocalFileSystem
from .history import decision_entry, log_decision, read_history_stats
from .models import FileOperation

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apply-changes",
        description="Review and apply <file> edit blocks to a project")
    parser.add_argument("input", nargs="?", default="-",
                        help="File holding the edit blocks ('-' or omitted: stdin)")
    parser.add_argument("--root", default=None,
                        help="Project root the paths are relative to (default: from config)")
    parser.add_argument("--config", default=None,
                        help="Path to .apply_changes.yaml config file")
    match = parser.add_mutually_exclusive_group()
    match.add_argument("--fuzzy", action="store_true",
                       help="Allow whitespace-tolerant matching of diff hunks")
    match.add_argument("--strict", action="store_true",
                       help="Exact matching of diff hunks only")
    parser.add_argument("--threshold", type=float, default=None,
                        help="Per-line similarity threshold for fuzzy matching")
    parser.add_argument("--auto", action="store_true",
                        help="Non-interactive mode: accept every valid operation")
    parser.add_argument("--list", action="store_true",
                        help="Parse and list the operations without writing anything")
    parser.add_argument("--tui", action="store_true",
                        help="Review in the Textual interface instead of the console")
    parser.add_argument("--syntax-check", choices=SYNTAX_MODES, default=None,
                        help="Syntax-check written files (default: from config)")
    parser.add_argument("--no-verify", action="store_true",
                        help="Skip re-reading files after a diff update")
    parser.add_argument("--no-history", action="store_true",
                        help="Do not record decisions in the history log")
    parser.add_argument("--retry-prompt", metavar="FILE", default=None,
                        help="Write a regeneration prompt for failed diffs to FILE")
    parser.add_argument("--stats", action="store_true",
                        help="Print decision-history statistics and exit")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Echo log messages to stderr")
    return parser


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(source, "r", encoding="utf-8") as f:
        return f.read()


def _under_root(root: str, path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(root, path)


def _print_stats(history_dir: str) -> None:
    stats = read_history_stats(history_dir=history_dir)
    print(f"\n  Decisions: {stats['total']}")
    if not stats["total"]:
        return
    print(f"  Accepted:  {stats['accept_rate']:.1f}%")
    print(f"  Rejected:  {stats['reject_rate']:.1f}%")
    print(f"  Failed:    {stats['failure_rate']:.1f}%")
    for operation, count in stats["operations"].items():
        print(f"    {operation:<11} {count}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    # ── 0. Load config ──
    cfg = Config.load(args.config)

    # CLI overrides
    root = args.root or cfg.PROJECT_ROOT
    fuzzy = cfg.FUZZY
    if args.fuzzy:
        fuzzy = True
    elif args.strict:
        fuzzy = False
    threshold = cfg.FUZZY_THRESHOLD if args.threshold is None else args.threshold
    if not 0.0 < threshold <= 1.0:
        parser.error("--threshold must be in (0, 1]")
    syntax_mode = args.syntax_check or cfg.SYNTAX_CHECK
    verify_writes = cfg.VERIFY_WRITES and not args.no_verify
    history_dir = _under_root(root, cfg.HISTORY_DIR)
    record_history = cfg.HISTORY and not args.no_history and not args.list

    if args.stats:
        _print_stats(history_dir)
        return 0

    # ── 1. Logging ──
    setup_logger(_under_root(root, cfg.LOG_DIR), verbose=args.verbose)
    log.info("Project root: %s (fuzzy=%s, threshold=%.2f, syntax=%s)",
             root, fuzzy, threshold, syntax_mode)

    # ── 2. Read the edit blocks ──
    try:
        text = _read_input(args.input)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"\n  [ERROR] Cannot read {args.input}: {exc}\n")
        return 1

    # ── 3. Build the queue ──
    queue = ReviewQueue(
        LocalFileSystem(root),
        patcher=Patcher(fuzzy=fuzzy, fuzzy_threshold=threshold),
        verify_writes=verify_writes,
        syntax_mode=syntax_mode,
    )
    report = queue.load_text(text)
    print_parse_errors(report.parse_errors)
    if not report.operations:
        if report.parse_errors:
            print("\n  No usable edit blocks: every block failed to parse.")
            return 1
        print("\n  No edit blocks found.")
        return 2

    print(f"\n  Found {len(report.operations)} operation(s):")
    print_operations(report.operations)

    if args.list:
        return 1 if report.parse_errors or report.validation_errors else 0

    def on_decision(op: FileOperation, decision: str,
                    error: ApplyChangesError | None = None) -> None:
        if record_history:
            log_decision(decision_entry(op, decision, error), history_dir)

    # ── 4. Review / apply ──
    if args.auto:
        result = queue.accept_all()
        for index in result.applied:
            on_decision(queue[index], "accepted")
        for index, exc in result.failed.items():
            on_decision(queue[index], "failed", exc)
        print_warnings(result.warnings)
    else:
        review_queue(queue, use_tui=args.tui, on_decision=on_decision)

    print("\n  Result:")
    print_operations(queue.operations)
    counts = queue.summary()
    print_summary(counts)

    # ── 5. Retry prompt for diffs that did not match ──
    if args.retry_prompt:
        prompt = queue.build_retry_prompt()
        if prompt:
            with open(args.retry_prompt, "w", encoding="utf-8") as f:
                f.write(prompt)
            print(f"  Retry prompt for {len(queue.failed_diff_paths())} file(s) "
                  f"written to {args.retry_prompt}")

    if report.parse_errors or counts["invalid"] or queue.pending():
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
