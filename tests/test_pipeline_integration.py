"""End-to-end run from trigger to dashboard projections, wired from configuration."""

import pytest

from youtube_scraper.analytics.dashboard import DashboardService
from youtube_scraper.config import Config
from youtube_scraper.ingestion import FETCH_COMMENTS, create_coordinator
from youtube_scraper.notifications import QueueNotifier
from youtube_scraper.storage.kv_store import API_KEY, JsonFileStore
from tests.fakes import FakeResponse, FakeSession, listing, reply_item, thread_item

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

SENTIMENTS = {
    "c1": ("positive", "strong"),
    "r1": ("positive", "weak"),
    "c2": ("negative", "strong"),
}


def youtube_and_analysis(method, url, data):
    if method == "POST":
        return FakeResponse(200, {"comments": [
            dict(c, sentiment=SENTIMENTS[c["id"]][0], sentimentStrength=SENTIMENTS[c["id"]][1], topic="Music")
            for c in data["comments"]
        ]})
    if "parentId" in data:
        return listing([reply_item("r1", text="Agreed, amazing vocals 🎤", published_at="2024-03-01T10:00:40Z")])
    if data.get("pageToken") == "p2":
        return listing([thread_item("c2", text="Mixing sounds muddy", published_at="2024-03-01T10:01:05Z")])
    return listing(
        [thread_item("c1", text="Amazing vocals 🔥", published_at="2024-03-01T10:00:10Z", reply_count=1)],
        "p2",
    )


@pytest.fixture
def config(tmp_path):
    cfg = Config()
    cfg.store_path = str(tmp_path / "store.json")
    cfg.rate_limit.page_delay_sec = 0
    return cfg


@pytest.fixture
def no_sleep(mocker):
    return mocker.patch("asyncio.sleep", mocker.AsyncMock())


@pytest.mark.asyncio
async def test_run_publishes_results_for_dashboard(config, no_sleep):
    """A run over two pages with one reply ends in stored, displayable results."""
    store = JsonFileStore(config.store_path)
    await store.set({API_KEY: "test-key"})
    notifier = QueueNotifier()
    session = FakeSession(handler=youtube_and_analysis)

    coordinator = create_coordinator(config, session, store, notifier=notifier)
    response = await coordinator.handle_message({"action": FETCH_COMMENTS, "videoId": VIDEO_URL})

    assert response == {"success": True, "totalCount": 3}

    messages = notifier.drain()
    assert [m.get("processedCount") for m in messages[:2]] == [2, 3]
    assert messages[-1]["action"] == "updateUI"
    assert "error" not in messages[-1]

    dashboard = DashboardService(store)
    projections = await dashboard.handle_notification(messages[-1])

    assert projections.total_count == 3
    assert projections.sentiment_counts == {"positive": 2, "neutral": 0, "negative": 1}
    assert [row.topic for row in projections.topic_sentiment] == ["Music"]
    assert [b.bin for b in projections.time_series] == [1709287200, 1709287230, 1709287260]
    assert projections.tokens[0].word == "amazing"
    assert {e.emoji for e in projections.emojis} == {"🔥", "🎤"}

    projections = dashboard.select("positive")
    assert projections.breakdown.strong_percent == 50.0
    assert projections.breakdown.weak_percent == 50.0


@pytest.mark.asyncio
async def test_unreachable_source_reports_one_error(config, no_sleep):
    """Every attempt fails: one error response, one error notification, nothing stored."""
    store = JsonFileStore(config.store_path)
    await store.set({API_KEY: "test-key"})
    notifier = QueueNotifier()
    session = FakeSession(handler=lambda method, url, data: FakeResponse(503, "Service Unavailable"))

    coordinator = create_coordinator(config, session, store, notifier=notifier)
    response = await coordinator.handle_message({"action": FETCH_COMMENTS, "videoId": VIDEO_URL})

    assert "HTTP 503: Service Unavailable" in response["error"]
    assert len(session.get_requests()) == config.retry.max_attempts
    assert notifier.drain() == [{"action": "updateUI", "error": response["error"]}]
    assert await store.get("analysisResults") is None
    # Waits of base and 2x base between the three attempts
    backoff_waits = [c.args[0] for c in no_sleep.call_args_list if c.args[0] >= config.retry.base_delay_sec]
    assert backoff_waits == [1.0, 2.0]
