"""Tests for the dashboard data service."""

import asyncio
import random
import unittest

from youtube_scraper.analytics.dashboard import DashboardService, build_projections
from youtube_scraper.analytics.selection import SelectionState
from youtube_scraper.models.comment import CommentRecord
from youtube_scraper.notifications import error_message, progress_message, results_message
from youtube_scraper.storage.kv_store import ANALYSIS_RESULTS_KEY, MemoryStore

RESULTS = {"comments": [
    {"id": "1", "text": "Amazing editing 🔥", "timestamp": 1700000000, "sentiment": "positive",
     "sentimentStrength": "strong", "topic": "Editing", "emojis": ["🔥"]},
    {"id": "2", "text": "Audio too quiet", "timestamp": 1700000040, "sentiment": "negative",
     "sentimentStrength": "weak", "topic": "Audio"},
    {"id": "3", "text": "Amazing", "timestamp": 1700000005, "sentiment": "positive"},
]}


class TestBuildProjections(unittest.TestCase):
    def test_all_projections_from_one_record_set(self):
        records = [
            CommentRecord(id="a", text="lovely lovely music", sentiment="positive", timestamp=60),
            CommentRecord(id="b", text="boring", sentiment="negative", timestamp=95),
        ]

        projections = build_projections(records, SelectionState("positive"), rng=random.Random(1))

        self.assertEqual(projections.total_count, 2)
        self.assertEqual(projections.sentiment_counts, {"positive": 1, "neutral": 0, "negative": 1})
        self.assertEqual([b.bin for b in projections.time_series], [60, 90])
        self.assertEqual(projections.tokens[0].word, "lovely")
        self.assertEqual(projections.breakdown.sentiment, "positive")

    def test_empty_record_set(self):
        projections = build_projections([])
        self.assertEqual(projections.total_count, 0)
        self.assertIsNone(projections.summary)
        self.assertEqual(projections.tokens, [])
        self.assertIsNone(projections.breakdown)


class TestDashboardService(unittest.TestCase):
    """Test cases for the DashboardService class."""

    def setUp(self):
        self.store = MemoryStore({ANALYSIS_RESULTS_KEY: RESULTS})
        self.service = DashboardService(self.store)

    def test_load_normalizes_records(self):
        records = asyncio.run(self.service.load())

        self.assertEqual(len(records), 3)
        self.assertEqual(records[2].sentiment_strength, "weak")
        self.assertEqual(records[2].topic, "General")

    def test_select_recomputes_breakdown(self):
        asyncio.run(self.service.load())

        projections = self.service.select("positive")

        self.assertEqual(projections.breakdown.strong_count, 1)
        self.assertEqual(projections.breakdown.weak_count, 1)
        self.assertEqual(projections.breakdown.strong_percent, 50.0)

        projections = self.service.toggle("positive")
        self.assertIsNone(projections.breakdown)

    def test_load_from_empty_store(self):
        service = DashboardService(MemoryStore())
        self.assertEqual(asyncio.run(service.load()), [])
        self.assertEqual(service.projections().total_count, 0)

    def test_results_notification_triggers_refresh(self):
        async def scenario():
            await self.store.set({ANALYSIS_RESULTS_KEY: {"comments": RESULTS["comments"][:1]}})
            return await self.service.handle_notification(results_message(RESULTS))

        projections = asyncio.run(scenario())

        self.assertEqual(projections.total_count, 1)
        self.assertIsNone(self.service.error)

    def test_error_notification_keeps_records(self):
        asyncio.run(self.service.load())

        result = asyncio.run(self.service.handle_notification(error_message("YouTube API key not set.")))

        self.assertIsNone(result)
        self.assertEqual(self.service.error, "YouTube API key not set.")
        self.assertEqual(len(self.service.records), 3)

    def test_progress_notification_ignored(self):
        self.assertIsNone(asyncio.run(self.service.handle_notification(progress_message(5))))


if __name__ == "__main__":
    unittest.main()
