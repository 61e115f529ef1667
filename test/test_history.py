import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock

from history import (
    MAX_HISTORY_ENTRIES,
    SESSION_HISTORY_KEY,
    JsonFileHistoryStore,
    SessionHistoryStore,
    StudyHistory,
    load_history,
    save_history,
)
from study_models import Depth, HistoryEntry, StudyRequest, Translation


class TestStudyHistory(unittest.TestCase):
    def test_add_puts_entry_on_top(self):
        history = StudyHistory()
        history = history.add(StudyRequest("Jo 1:1", Translation.NVI, Depth.QUICK), timestamp=1)
        history = history.add(StudyRequest("Rm 8:28", Translation.ARC, Depth.SERMON), timestamp=2)

        self.assertEqual([e.passage for e in history], ["Rm 8:28", "Jo 1:1"])
        self.assertEqual(history.entries[0].timestamp, 2)
        self.assertEqual(history.entries[0].depth, Depth.SERMON)

    def test_add_returns_a_new_history(self):
        original = StudyHistory()
        updated = original.add(StudyRequest("Jo 1:1"), timestamp=1)

        self.assertEqual(len(original), 0)
        self.assertEqual(len(updated), 1)

    def test_capped_at_ten_most_recent(self):
        history = StudyHistory()
        for chapter in range(1, 12):
            history = history.add(StudyRequest(f"Salmos {chapter}"), timestamp=chapter)

        self.assertEqual(len(history), MAX_HISTORY_ENTRIES)
        self.assertEqual(history.entries[0].passage, "Salmos 11")
        self.assertNotIn("Salmos 1", [e.passage for e in history])

    def test_duplicate_moves_to_top(self):
        history = StudyHistory()
        history = history.add(StudyRequest("Jo 1:1", Translation.NVI, Depth.QUICK), timestamp=1)
        history = history.add(StudyRequest("Rm 8:28"), timestamp=2)
        history = history.add(StudyRequest("Jo 1:1", Translation.NVI, Depth.ACADEMIC), timestamp=3)

        self.assertEqual(len(history), 2)
        self.assertEqual(history.entries[0].passage, "Jo 1:1")
        self.assertEqual(history.entries[0].depth, Depth.ACADEMIC)
        self.assertEqual(history.entries[0].timestamp, 3)

    def test_same_passage_in_other_translation_is_kept(self):
        history = StudyHistory()
        history = history.add(StudyRequest("Jo 1:1", Translation.NVI), timestamp=1)
        history = history.add(StudyRequest("Jo 1:1", Translation.KJV), timestamp=2)

        self.assertEqual(len(history), 2)

    def test_no_duplicate_pairs(self):
        history = StudyHistory()
        requests = [
            StudyRequest("Jo 1:1", Translation.NVI),
            StudyRequest("Jo 1:1", Translation.NVI, Depth.SERMON),
            StudyRequest("Rm 8:28", Translation.ARC),
            StudyRequest("Jo 1:1", Translation.NVI),
        ]
        for i, request in enumerate(requests):
            history = history.add(request, timestamp=i)

        pairs = [(e.passage, e.translation) for e in history]
        self.assertEqual(len(pairs), len(set(pairs)))

    def test_filter_matches_passage_or_translation(self):
        history = StudyHistory()
        history = history.add(StudyRequest("Mateus 3:11", Translation.NVI), timestamp=1)
        history = history.add(StudyRequest("Romanos 8:28", Translation.ARC), timestamp=2)

        self.assertEqual([e.passage for e in history.filter("mateus")], ["Mateus 3:11"])
        self.assertEqual([e.passage for e in history.filter("arc")], ["Romanos 8:28"])
        self.assertEqual(len(history.filter("  ")), 2)
        self.assertEqual(history.filter("apocalipse"), [])

    def test_list_round_trip(self):
        history = StudyHistory().add(StudyRequest("Jo 1:1", Translation.ESV, Depth.ACADEMIC), timestamp=42)

        data = history.to_list()

        self.assertEqual(
            data,
            [{"passage": "Jo 1:1", "translation": "ESV", "depth": "academic", "timestamp": 42}],
        )
        self.assertEqual(StudyHistory.from_list(data).entries, history.entries)

    def test_from_list_accepts_legacy_depth_codes(self):
        history = StudyHistory.from_list(
            [{"passage": "Jo 1:1", "translation": "nvi", "depth": "sermao", "timestamp": 1}]
        )
        self.assertEqual(history.entries[0].depth, Depth.SERMON)
        self.assertEqual(history.entries[0].translation, Translation.NVI)

    def test_from_list_rejects_non_list(self):
        with self.assertRaises(ValueError):
            StudyHistory.from_list({"passage": "Jo 1:1"})


class TestHistoryStores(unittest.TestCase):
    def setUp(self):
        self.logger = MagicMock()

    def test_session_store_round_trip(self):
        session = {}
        store = SessionHistoryStore(session)
        history = StudyHistory().add(StudyRequest("Jo 1:1"), timestamp=1)

        self.assertTrue(save_history(store, history, self.logger))

        self.assertIn(SESSION_HISTORY_KEY, session)
        self.assertEqual(load_history(store, self.logger).entries, history.entries)

    def test_missing_history_is_empty(self):
        history = load_history(SessionHistoryStore({}), self.logger)
        self.assertEqual(len(history), 0)
        self.logger.warning.assert_not_called()

    def test_corrupted_history_is_discarded(self):
        corrupted = [
            "not a list",
            [{"passage": "Jo 1:1"}],
            [{"passage": "Jo 1:1", "translation": "XYZ", "timestamp": 1}],
            [None],
        ]
        for stored in corrupted:
            with self.subTest(stored=stored):
                logger = MagicMock()
                store = SessionHistoryStore({SESSION_HISTORY_KEY: stored})

                history = load_history(store, logger)

                self.assertEqual(len(history), 0)
                logger.warning.assert_called_once()

    def test_save_failure_is_reported_not_raised(self):
        store = MagicMock()
        store.save.side_effect = OSError("quota exceeded")

        saved = save_history(store, StudyHistory(), self.logger)

        self.assertFalse(saved)
        self.logger.warning.assert_called_once()

    def test_json_file_store(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "history.json")
            store = JsonFileHistoryStore(path)
            self.assertEqual(len(load_history(store, self.logger)), 0)

            history = StudyHistory().add(StudyRequest("Salmos 23", Translation.ACF), timestamp=7)
            self.assertTrue(save_history(store, history, self.logger))

            with open(path, encoding="utf-8") as f:
                self.assertEqual(json.load(f)[0]["passage"], "Salmos 23")
            self.assertEqual(load_history(store, self.logger).entries, history.entries)

    def test_json_file_store_with_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "history.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{broken")

            history = load_history(JsonFileHistoryStore(path), self.logger)

            self.assertEqual(len(history), 0)
            self.logger.warning.assert_called_once()


class TestHistoryEntry(unittest.TestCase):
    def test_request_view(self):
        entry = HistoryEntry("Jo 1:1", Translation.NVT, Depth.QUICK, 5)
        self.assertEqual(entry.request, StudyRequest("Jo 1:1", Translation.NVT, Depth.QUICK))


if __name__ == "__main__":
    unittest.main()
