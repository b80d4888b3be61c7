"""Generation logging for JSONL-based observability.

Provides real-time JSONL logging of generation events including:
- Generation start (project, provider, model)
- Each completion attempt
- API errors and schema violations
- Final outcome
- Exceptions caught at the generation boundary

Logs are written with immediate flush (os.fsync) so a hung request still
leaves a readable trail.
"""

import json
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .models import LogEntryType


class GenerationLogger:
    """JSONL generation logger with real-time flush.

    Example output:
        {"type": "generation_start", "timestamp": "...", "provider": "openai", ...}
        {"type": "attempt", "timestamp": "...", "attempt": 1, "message_count": 3}
        {"type": "validation_failed", "timestamp": "...", "attempt": 1, ...}
        {"type": "generation_success", "timestamp": "...", "attempts": 2}
    """

    def __init__(self, log_dir: Path | str, generation_id: Optional[str] = None):
        """Initialize the logger.

        Args:
            log_dir: Directory for log files (created if missing).
            generation_id: Identifier used in the file name (default: timestamp + short uuid).
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.generation_id = generation_id or (
            f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6]}"
        )
        self.log_file = self.log_dir / f"generation-{self.generation_id}.jsonl"
        self._started_at = datetime.now()
        self._file_handle: Optional[Any] = None

    def _write_entry(self, entry: dict) -> None:
        """Write a log entry with immediate flush."""
        if "timestamp" not in entry:
            entry["timestamp"] = datetime.now().isoformat()

        if self._file_handle is None:
            self._file_handle = open(self.log_file, "a", encoding="utf-8")

        self._file_handle.write(json.dumps(entry, default=str) + "\n")
        self._file_handle.flush()

        try:
            os.fsync(self._file_handle.fileno())
        except (OSError, AttributeError):
            pass  # Some systems don't support fsync

    def log_generation_start(self, project: str, provider: str, model: str) -> None:
        """Log the start of a generation."""
        self._write_entry({
            "type": LogEntryType.GENERATION_START.value,
            "generation_id": self.generation_id,
            "project": project,
            "provider": provider,
            "model": model,
        })

    def log_attempt(self, attempt: int, message_count: int) -> None:
        """Log the start of a completion attempt."""
        self._write_entry({
            "type": LogEntryType.ATTEMPT.value,
            "attempt": attempt,
            "message_count": message_count,
        })

    def log_api_error(self, attempt: int, error: str) -> None:
        """Log an attempt that returned no usable function call."""
        self._write_entry({
            "type": LogEntryType.API_ERROR.value,
            "attempt": attempt,
            "message": error,
        })

    def log_validation_failed(self, attempt: int, error_message: str, violation_count: int) -> None:
        """Log schema violations for an attempt."""
        self._write_entry({
            "type": LogEntryType.VALIDATION_FAILED.value,
            "attempt": attempt,
            "violation_count": violation_count,
            "message": error_message,
        })

    def log_generation_end(self, success: bool, attempts: int, error: Optional[str] = None) -> None:
        """Log the outcome and close the file."""
        entry_type = (
            LogEntryType.GENERATION_SUCCESS if success else LogEntryType.GENERATION_FAILED
        )
        duration = (datetime.now() - self._started_at).total_seconds()
        entry: dict[str, Any] = {
            "type": entry_type.value,
            "attempts": attempts,
            "duration_seconds": round(duration, 3),
        }
        if error:
            entry["message"] = error
        self._write_entry(entry)
        self.close()

    def log_exception(self, error: BaseException) -> None:
        """Log an exception converted into a failed result."""
        self._write_entry({
            "type": LogEntryType.EXCEPTION.value,
            "error_type": type(error).__name__,
            "message": str(error),
        })
        self.close()

    def close(self) -> None:
        """Close the log file handle."""
        if self._file_handle is not None:
            self._file_handle.close()
            self._file_handle = None

    def __enter__(self) -> "GenerationLogger":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def read_generation_log(log_path: Path) -> list[dict]:
    """Read all entries from a generation log.

    Malformed lines are skipped.
    """
    entries: list[dict] = []
    if not log_path.exists():
        return entries

    with open(log_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue

    return entries


def get_generation_summary(log_path: Path) -> Optional[dict]:
    """Summarize a generation from its log file.

    Returns:
        Summary dict or None if the log is missing or empty.
    """
    entries = read_generation_log(log_path)
    if not entries:
        return None

    summary: dict[str, Any] = {
        "generation_id": None,
        "project": None,
        "provider": None,
        "model": None,
        "started_at": None,
        "ended_at": None,
        "outcome": None,
        "attempts": 0,
        "errors": [],
    }

    for entry in entries:
        entry_type = entry.get("type")

        if entry_type == LogEntryType.GENERATION_START.value:
            summary["generation_id"] = entry.get("generation_id")
            summary["project"] = entry.get("project")
            summary["provider"] = entry.get("provider")
            summary["model"] = entry.get("model")
            summary["started_at"] = entry.get("timestamp")

        elif entry_type == LogEntryType.ATTEMPT.value:
            summary["attempts"] = max(summary["attempts"], entry.get("attempt", 0))

        elif entry_type in (LogEntryType.API_ERROR.value, LogEntryType.VALIDATION_FAILED.value):
            summary["errors"].append({
                "attempt": entry.get("attempt"),
                "type": entry_type,
                "message": entry.get("message"),
            })

        elif entry_type == LogEntryType.GENERATION_SUCCESS.value:
            summary["ended_at"] = entry.get("timestamp")
            summary["outcome"] = "success"

        elif entry_type == LogEntryType.GENERATION_FAILED.value:
            summary["ended_at"] = entry.get("timestamp")
            summary["outcome"] = "failure"

        elif entry_type == LogEntryType.EXCEPTION.value:
            summary["ended_at"] = entry.get("timestamp")
            summary["outcome"] = "exception"
            summary["errors"].append({
                "attempt": None,
                "type": entry_type,
                "message": entry.get("message"),
            })

    return summary
