"""
History Tracker
================

Integrity score of every full scan, oldest first, kept in a JSON file
so the trend survives restarts.
"""

import json
import os
import threading
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from barricade.classification.summary import SecuritySummary
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class HistoryEntry:
    """Score snapshot of one scan.

    Attributes:
        date: ISO timestamp of the scan.
        score: Integrity score at that time.
        threats: Number of malicious files found.
    """

    date: str
    score: int
    threats: int

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls(date=str(data["date"]), score=int(data["score"]), threats=int(data["threats"]))


class SecurityHistory:
    """Bounded, append-only score history."""

    MAX_HISTORY_SIZE = 1000

    def __init__(self, history_file: Path):
        """Load any existing history.

        Args:
            history_file: JSON file holding ``{"entries": [...]}``.
        """
        self.history_file = Path(history_file)
        self._lock = threading.Lock()
        self._entries: List[HistoryEntry] = self._read()

    def _read(self) -> List[HistoryEntry]:
        if not self.history_file.exists():
            return []
        try:
            with open(self.history_file, "r", encoding="utf-8") as f:
                raw = json.load(f).get("entries", [])
            entries = [HistoryEntry.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable history file {self.history_file}: {e}")
            return []
        logger.debug(f"Loaded {len(entries)} history entries")
        return entries

    def _write(self) -> None:
        """Replace the file atomically; caller holds the lock."""
        del self._entries[:-self.MAX_HISTORY_SIZE]
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.history_file.with_name(self.history_file.name + ".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump({"entries": [e.to_dict() for e in self._entries]}, f, indent=2)
        os.replace(temp_path, self.history_file)

    def record(self, summary: SecuritySummary, when: Optional[datetime] = None) -> HistoryEntry:
        """Append the score of a completed scan.

        Args:
            summary: Summary of the scanned working set.
            when: Scan time (default: now).

        Returns:
            The appended entry.

        Raises:
            OSError: If the history file cannot be written; the entry is
                still kept in memory.
        """
        entry = HistoryEntry(
            date=(when or datetime.now(timezone.utc)).isoformat(),
            score=summary.integrity_score,
            threats=summary.malicious_count,
        )
        with self._lock:
            self._entries.append(entry)
            self._write()

        logger.debug(f"Recorded score {entry.score} ({entry.threats} threats)")
        return entry

    def get_recent(self, count: int = 7) -> List[HistoryEntry]:
        """Up to ``count`` most recent entries, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            return self._entries[-count:]

    def score_change(self) -> int:
        """Score difference between the last two scans (0 with fewer than two)."""
        with self._lock:
            if len(self._entries) < 2:
                return 0
            return self._entries[-1].score - self._entries[-2].score

    def total_threats(self) -> int:
        with self._lock:
            return sum(entry.threats for entry in self._entries)

    def clear_history(self) -> None:
        with self._lock:
            self._entries.clear()
            self._write()
        logger.info("Security history cleared")

    def __len__(self) -> int:
        return len(self._entries)
