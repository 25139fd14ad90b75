"""
Decision history — records accept / reject / failure decisions in a JSONL log.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone

from .errors import ApplyChangesError
from .models import FileOperation

logger = logging.getLogger(__name__)

_HISTORY_DIR = ".apply_changes"
_HISTORY_FILE = "apply_history.jsonl"


def _history_path(history_dir: str | None = None) -> str:
    """Return the path to the history file."""
    base = history_dir or os.path.join(os.getcwd(), _HISTORY_DIR)
    return os.path.join(base, _HISTORY_FILE)


def decision_entry(op: FileOperation, decision: str,
                   error: ApplyChangesError | None = None) -> dict:
    """Build the history record for one queue decision."""
    entry = {
        "file": op.file_path,
        "operation": op.operation_type,
        "decision": decision,
    }
    if op.file_message:
        entry["message"] = op.file_message
    if error is not None:
        entry["error"] = str(error)
        entry["error_type"] = type(error).__name__
    return entry


def log_decision(data: dict, history_dir: str | None = None) -> None:
    """Append a single decision entry to the JSONL log.

    Parameters
    ----------
    data:
        Fields to log (file, operation, decision, error, etc.).
    history_dir:
        Directory holding the log. Defaults to ``.apply_changes`` under CWD.
    """
    path = _history_path(history_dir)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[History] Failed to write history: %s", exc)


def read_history_stats(
    last_n: int = 100,
    history_dir: str | None = None,
) -> dict:
    """Compute statistics over the most recent decisions.

    Parameters
    ----------
    last_n:
        Number of most-recent entries to include.
    history_dir:
        Directory holding the log.

    Returns
    -------
    dict
        total, accept_rate, reject_rate, failure_rate (percentages) and
        per-operation counts under ``operations``.
    """
    path = _history_path(history_dir)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError as exc:
            logger.warning("[History] Failed to read history: %s", exc)

    entries = entries[-last_n:] if last_n > 0 else []

    if not entries:
        return {
            "total": 0,
            "accept_rate": 0.0,
            "reject_rate": 0.0,
            "failure_rate": 0.0,
            "operations": {},
        }

    total = len(entries)
    decisions = Counter(e.get("decision", "unknown") for e in entries)
    operations = Counter(e.get("operation", "unknown") for e in entries)

    return {
        "total": total,
        "accept_rate": decisions["accepted"] / total * 100,
        "reject_rate": decisions["rejected"] / total * 100,
        "failure_rate": decisions["failed"] / total * 100,
        "operations": dict(operations.most_common()),
    }
