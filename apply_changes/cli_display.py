import logging
import os
from datetime import datetime

from .errors import ApplyWarning, ParseError
from .models import FileOperation, OperationState


def setup_logger(log_dir: str = ".apply_changes/logs",
                 verbose: bool = False) -> logging.Logger:
    """Creates a file logger. All verbose output goes here.

    With *verbose*, INFO and above are also echoed to stderr.
    """
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"apply_{timestamp}.log")

    logger = logging.getLogger("apply_changes")
    logger.setLevel(logging.DEBUG)

    # File handler captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    if verbose:
        sh = logging.StreamHandler()
        sh.setLevel(logging.INFO)
        sh.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(sh)

    return logger


ICONS = {
    "pending":  "○",
    "accepted": "✔",
    "rejected": "–",
    "failed":   "✘",
    "invalid":  "!",
}

_COLORS = {
    "pending":  "\033[33m",   # yellow
    "accepted": "\033[32m",   # green
    "rejected": "\033[90m",   # grey
    "failed":   "\033[31m",   # red
    "invalid":  "\033[31m",
}
_RESET = "\033[0m"


def operation_status(op: FileOperation) -> str:
    if not op.is_actionable:
        return "invalid"
    if op.state is OperationState.PENDING and op.last_error is not None:
        return "failed"
    return op.state.value


def format_operation_line(index: int, op: FileOperation, color: bool = True) -> str:
    """One-line summary: icon, index, operation, path, message / error."""
    status = operation_status(op)
    icon = ICONS[status]
    line = f"{icon} [{index + 1}] {op.operation_type:<11} {op.file_path}"
    if op.error is not None:
        line += f"  ({op.error})"
    elif op.last_error is not None and not op.is_terminal:
        line += f"  ({op.last_error})"
    elif op.file_message:
        line += f"  — {op.file_message}"
    if color:
        return f"{_COLORS[status]}{line}{_RESET}"
    return line


def print_parse_errors(errors: list[ParseError]) -> None:
    for err in errors:
        print(f"  \033[31m[parse] {err}\033[0m")
        if err.snippet:
            print(f"          {err.snippet}")


def print_operations(operations: list[FileOperation], color: bool = True) -> None:
    for index, op in enumerate(operations):
        print("  " + format_operation_line(index, op, color=color))


def print_warnings(warnings: list[ApplyWarning]) -> None:
    for warning in warnings:
        print(f"  \033[33m[warn] {warning}\033[0m")


def print_summary(counts: dict[str, int]) -> None:
    parts = [f"{counts.get(key, 0)} {key}"
             for key in ("accepted", "rejected", "pending", "invalid")
             if counts.get(key, 0)]
    print(f"\n  {counts.get('total', 0)} operation(s): {', '.join(parts) or 'none'}")
