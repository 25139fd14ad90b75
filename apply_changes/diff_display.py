"""
Diff display — unified diffs for queued operations, plus interactive review.

The Textual-based review app walks the queue one operation at a time so the
user can accept or reject each change; a plain console loop is used when
Textual is unavailable.
"""

from __future__ import annotations

import difflib
import logging
from typing import Callable, Optional

from .cli_display import format_operation_line, print_warnings
from .errors import ApplyChangesError
from .executor import ReviewQueue
from .models import FileOperation

logger = logging.getLogger(__name__)

# (operation, "accepted" | "rejected" | "failed", error)
DecisionCallback = Callable[[FileOperation, str, Optional[ApplyChangesError]], None]


def compute_diff(filepath: str, old_content: str, new_content: str) -> str | None:
    """Return a unified diff string, or None when the content is unchanged."""
    if old_content == new_content:
        return None

    diff = difflib.unified_diff(
        old_content.splitlines(), new_content.splitlines(),
        fromfile=f"a/{filepath}" if old_content else "/dev/null",
        tofile=f"b/{filepath}" if new_content else "/dev/null",
        lineterm="",
    )
    diff_text = "\n".join(diff)
    return diff_text if diff_text.strip() else None


def operation_diff(queue: ReviewQueue, index: int) -> str | None:
    """Unified diff for the queue entry at *index*.

    Raises the ``ApplyChangesError`` that prevents computing the new content
    (e.g. a diff whose hunks no longer match).
    """
    op = queue[index]
    old, new = queue.diff_pair(index)
    return compute_diff(op.file_path, old, new)


_ANSI_STYLES = {
    "header": "\033[1m",    # bold
    "hunk": "\033[36m",     # cyan
    "added": "\033[32m",    # green
    "removed": "\033[31m",  # red
}
_RICH_STYLES = {
    "header": "bold white",
    "hunk": "cyan",
    "added": "green",
    "removed": "red",
}


def _line_kind(line: str) -> str | None:
    if line.startswith(("+++", "---")):
        return "header"
    if line.startswith("@@"):
        return "hunk"
    if line.startswith("+"):
        return "added"
    if line.startswith("-"):
        return "removed"
    return None


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a unified diff string.

    Green for additions (+), red for deletions (-), cyan for @@ hunks.
    """
    colored: list[str] = []
    for line in diff_text.splitlines():
        kind = _line_kind(line)
        colored.append(f"{_ANSI_STYLES[kind]}{line}\033[0m" if kind else line)
    return "\n".join(colored)


def _escape_markup(text: str) -> str:
    return text.replace("[", "\\[")


def format_rich_diff(diff_text: str) -> str:
    """Convert unified diff text to Rich markup for Textual display."""
    markup: list[str] = []
    for line in diff_text.splitlines():
        kind = _line_kind(line)
        escaped = _escape_markup(line)
        if kind:
            style = _RICH_STYLES[kind]
            markup.append(f"[{style}]{escaped}[/{style}]")
        else:
            markup.append(escaped)
    return "\n".join(markup)


def show_operation(queue: ReviewQueue, index: int) -> None:
    """Print the header and colored diff of one queue entry."""
    op = queue[index]
    print(f"\n{'─' * 60}")
    print(format_operation_line(index, op))
    if op.error is not None:
        return
    try:
        diff_text = operation_diff(queue, index)
    except ApplyChangesError as exc:
        print(f"  \033[31mCannot preview: {exc}\033[0m")
        return
    print(format_colored_diff(diff_text) if diff_text else "  (no changes)")


def _notify(callback: DecisionCallback | None, op: FileOperation, decision: str,
            error: ApplyChangesError | None = None) -> None:
    if callback is not None:
        callback(op, decision, error)


# ══════════════════════════════════════════════════════════════════
#  Interactive review
# ══════════════════════════════════════════════════════════════════

def review_queue(queue: ReviewQueue, use_tui: bool = False,
                 on_decision: DecisionCallback | None = None) -> None:
    """Walk the pending operations and let the user accept or reject each."""
    if not queue.pending():
        return

    if use_tui:
        try:
            _textual_review(queue, on_decision)
            return
        except ImportError:
            logger.warning("Textual not installed, falling back to console review.")
        except Exception as e:
            logger.warning(f"Textual review failed: {e}")

    console_review(queue, on_decision)


def console_review(queue: ReviewQueue,
                   on_decision: DecisionCallback | None = None) -> None:
    """Console accept/reject loop over the pending entries."""
    print("\n" + "=" * 60)
    print("  REVIEW CHANGES")
    print("=" * 60)

    for index in queue.pending():
        op = queue[index]
        show_operation(queue, index)

        while not op.is_terminal:
            try:
                choice = input("  [A]ccept | [R]eject | [S]kip | [Q]uit: ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                print()
                return
            if choice in ("a", "accept"):
                try:
                    warnings = queue.accept(index)
                except ApplyChangesError as exc:
                    print(f"  \033[31mFailed: {exc}\033[0m")
                    _notify(on_decision, op, "failed", exc)
                    continue
                print_warnings(warnings)
                print(f"  \033[32mApplied {op.file_path}\033[0m")
                _notify(on_decision, op, "accepted")
            elif choice in ("r", "reject"):
                queue.reject(index)
                _notify(on_decision, op, "rejected")
            elif choice in ("s", "skip"):
                break
            elif choice in ("q", "quit"):
                return
            else:
                print("  Invalid choice. Use A, R, S or Q.")


def _textual_review(queue: ReviewQueue,
                    on_decision: DecisionCallback | None) -> None:
    """Launch a Textual app that reviews the queue one entry at a time."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, VerticalScroll
    from textual.widgets import Button, Footer, Static

    class ReviewApp(App):
        """Interactive per-operation diff viewer with accept/reject."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #diff-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        #action-buttons {
            dock: bottom;
            height: 3;
            align: center middle;
            padding: 0 2;
        }
        #action-buttons Button {
            margin: 0 1;
            min-width: 14;
        }
        #status {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("a", "accept", "Accept"),
            Binding("r", "reject", "Reject"),
            Binding("n,right", "next", "Next"),
            Binding("p,left", "previous", "Previous"),
            Binding("q,escape", "quit", "Quit"),
        ]

        def __init__(self) -> None:
            super().__init__()
            pending = queue.pending()
            self._index = pending[0] if pending else 0
            self._message = ""

        def compose(self) -> ComposeResult:
            yield Static("", id="title-bar")
            with VerticalScroll(id="diff-scroll"):
                yield Static("", id="diff-body")
            yield Static("", id="status")
            with Horizontal(id="action-buttons"):
                yield Button("◀ Prev", id="prev-btn")
                yield Button("✔ Accept", id="accept-btn", variant="success")
                yield Button("✕ Reject", id="reject-btn", variant="error")
                yield Button("Next ▶", id="next-btn")
            yield Footer()

        def on_mount(self) -> None:
            self._refresh_view()

        def _refresh_view(self) -> None:
            op = queue[self._index]
            self.query_one("#title-bar", Static).update(
                f" ━━  {self._index + 1}/{len(queue)}  {op.operation_type}  "
                f"{_escape_markup(op.file_path)}  ━━ "
            )
            self.query_one("#diff-body", Static).update(self._body_markup(op))
            counts = queue.summary()
            status = (f"{counts['accepted']} accepted | {counts['rejected']} rejected"
                      f" | {counts['pending']} pending")
            if self._message:
                status = f"{self._message}  —  {status}"
            self.query_one("#status", Static).update(status)

        def _body_markup(self, op: FileOperation) -> str:
            header = ""
            if op.file_message:
                header = f"[bold yellow]{_escape_markup(op.file_message)}[/bold yellow]\n\n"
            if op.error is not None:
                return header + f"[red]{_escape_markup(str(op.error))}[/red]"
            if op.is_terminal:
                header += f"[bold]({op.state.value})[/bold]\n\n"
            try:
                diff_text = operation_diff(queue, self._index)
            except ApplyChangesError as exc:
                return header + f"[red]Cannot preview: {_escape_markup(str(exc))}[/red]"
            return header + (format_rich_diff(diff_text) if diff_text else "(no changes)")

        def _advance(self) -> None:
            later = [i for i in queue.pending() if i > self._index]
            if later:
                self._index = later[0]
            elif not queue.pending():
                self.exit()
                return
            self._refresh_view()

        def on_button_pressed(self, event: Button.Pressed) -> None:
            actions = {
                "accept-btn": self.action_accept,
                "reject-btn": self.action_reject,
                "prev-btn": self.action_previous,
                "next-btn": self.action_next,
            }
            handler = actions.get(event.button.id or "")
            if handler is not None:
                handler()

        def action_accept(self) -> None:
            op = queue[self._index]
            if op.is_terminal:
                return
            try:
                warnings = queue.accept(self._index)
            except ApplyChangesError as exc:
                self._message = f"[red]Failed: {_escape_markup(str(exc))}[/red]"
                _notify(on_decision, op, "failed", exc)
                self._refresh_view()
                return
            self._message = f"[green]Applied {_escape_markup(op.file_path)}[/green]"
            if warnings:
                self._message += f" [yellow]({len(warnings)} warning(s))[/yellow]"
            _notify(on_decision, op, "accepted")
            self._advance()

        def action_reject(self) -> None:
            op = queue[self._index]
            if op.is_terminal:
                return
            queue.reject(self._index)
            self._message = f"Rejected {_escape_markup(op.file_path)}"
            _notify(on_decision, op, "rejected")
            self._advance()

        def action_next(self) -> None:
            if self._index + 1 < len(queue):
                self._index += 1
                self._message = ""
                self._refresh_view()

        def action_previous(self) -> None:
            if self._index > 0:
                self._index -= 1
                self._message = ""
                self._refresh_view()

    ReviewApp().run()
