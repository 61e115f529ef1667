import json
import os
import time
from typing import Dict, List, Optional

from study_models import HistoryEntry

MAX_HISTORY_ENTRIES = 10
SESSION_HISTORY_KEY = "exegesis_history"


class StudyHistory:
    """Recent study requests, most recent first, one entry per (passage, translation)."""

    def __init__(self, entries=None, max_entries: int = MAX_HISTORY_ENTRIES):
        self.max_entries = max_entries
        self.entries: List[HistoryEntry] = list(entries or [])[:max_entries]

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def add(self, request, timestamp: Optional[int] = None) -> "StudyHistory":
        """Returns a new history with the request on top."""
        if timestamp is None:
            timestamp = int(time.time() * 1000)

        new_entry = HistoryEntry(
            passage=request.passage,
            translation=request.translation,
            depth=request.depth,
            timestamp=timestamp,
        )
        remaining = [
            entry
            for entry in self.entries
            if not (
                entry.passage == new_entry.passage
                and entry.translation == new_entry.translation
            )
        ]
        return StudyHistory([new_entry] + remaining, self.max_entries)

    def filter(self, term: str) -> List[HistoryEntry]:
        search = (term or "").strip().lower()
        if not search:
            return list(self.entries)
        return [
            entry
            for entry in self.entries
            if search in entry.passage.lower()
            or search in entry.translation.value.lower()
        ]

    def to_list(self) -> List[Dict]:
        return [entry.to_dict() for entry in self.entries]

    @classmethod
    def from_list(cls, items, max_entries: int = MAX_HISTORY_ENTRIES) -> "StudyHistory":
        if not isinstance(items, list):
            raise ValueError("Stored history is not a list.")
        return cls([HistoryEntry.from_dict(item) for item in items], max_entries)


class SessionHistoryStore:
    """Keeps the history in a Flask session (or any dict-like object)."""

    def __init__(self, session, key: str = SESSION_HISTORY_KEY):
        self.session = session
        self.key = key

    def load(self):
        return self.session.get(self.key, [])

    def save(self, items):
        # Item assignment marks a Flask session as modified.
        self.session[self.key] = items


class JsonFileHistoryStore:
    """Keeps the history in a JSON file, used by the command-line tool."""

    def __init__(self, path: str):
        self.path = path

    def load(self):
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, items):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(items, f, ensure_ascii=False, indent=2)


def load_history(store, logger) -> StudyHistory:
    """Loads the stored history; anything unreadable counts as no history."""
    try:
        return StudyHistory.from_list(store.load())
    except (OSError, ValueError, TypeError, KeyError) as e:
        logger.warning(f"Failed to load study history, starting empty: {e}")
        return StudyHistory()


def save_history(store, history: StudyHistory, logger) -> bool:
    try:
        store.save(history.to_list())
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning(f"Failed to save study history: {e}")
        return False
