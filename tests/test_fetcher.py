"""Tests for the resilient fetcher."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp

from youtube_scraper.collector.fetcher import (
    ERROR_SNIPPET_LEN,
    ResilientFetcher,
    describe_http_error,
    redact_url,
)
from youtube_scraper.exceptions import FetchExhausted
from tests.fakes import FakeResponse, FakeSession


class TestHelpers(unittest.TestCase):
    """Test cases for URL redaction and error descriptions."""

    def test_redact_url_masks_key(self):
        url = redact_url("https://api.example/x", {"part": "snippet", "key": "SECRET"})
        self.assertNotIn("SECRET", url)
        self.assertIn("key=%2A%2A%2A", url)
        self.assertIn("part=snippet", url)

    def test_redact_url_without_params(self):
        self.assertEqual(redact_url("https://api.example/x"), "https://api.example/x")

    def test_structured_error_message(self):
        body = '{"error": {"code": 403, "message": "Comments are disabled."}}'
        self.assertEqual(
            describe_http_error(403, body),
            "YouTube API error: Comments are disabled.",
        )

    def test_unstructured_error_is_truncated(self):
        body = "x" * 1000
        reason = describe_http_error(502, body)
        self.assertEqual(reason, "HTTP 502: " + "x" * ERROR_SNIPPET_LEN)


class TestResilientFetcher(unittest.TestCase):
    """Test cases for the ResilientFetcher class."""

    def test_fetch_json_success(self):
        session = FakeSession([FakeResponse(200, {"items": [], "nextPageToken": "b"})])
        fetcher = ResilientFetcher(session, max_attempts=3, base_delay=1.0)

        result = asyncio.run(fetcher.fetch_json("https://api.example/x", {"key": "k"}))

        self.assertEqual(result, {"items": [], "nextPageToken": "b"})
        self.assertEqual(session.requests, [("GET", "https://api.example/x", {"key": "k"})])

    def test_retries_then_succeeds_with_linear_delays(self):
        """Two failed attempts are followed by waits of base then 2x base."""
        session = FakeSession([
            FakeResponse(500, "server error"),
            aiohttp.ClientConnectionError("connection reset"),
            FakeResponse(200, {"items": [{"id": "a"}]}),
        ])
        fetcher = ResilientFetcher(session, max_attempts=3, base_delay=2.0)

        with patch("asyncio.sleep", AsyncMock()) as mock_sleep:
            result = asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertEqual(result, {"items": [{"id": "a"}]})
        self.assertEqual(len(session.requests), 3)
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [2.0, 4.0])

    def test_always_failing_source(self):
        """Exactly max_attempts requests and max_attempts - 1 waits."""
        session = FakeSession(handler=lambda method, url, params: FakeResponse(503, "unavailable"))
        fetcher = ResilientFetcher(session, max_attempts=3, base_delay=1.0)

        with patch("asyncio.sleep", AsyncMock()) as mock_sleep:
            with self.assertRaises(FetchExhausted) as ctx:
                asyncio.run(fetcher.fetch_json("https://api.example/x", {"key": "SECRET"}))

        self.assertEqual(len(session.requests), 3)
        self.assertEqual(mock_sleep.call_count, 2)
        self.assertEqual(ctx.exception.last_reason, "HTTP 503: unavailable")
        self.assertNotIn("SECRET", str(ctx.exception))

    def test_structured_error_surfaces_message(self):
        body = {"error": {"message": "The API key is invalid."}}
        session = FakeSession(handler=lambda method, url, params: FakeResponse(400, body))
        fetcher = ResilientFetcher(session, max_attempts=2, base_delay=0)

        with patch("asyncio.sleep", AsyncMock()):
            with self.assertRaises(FetchExhausted) as ctx:
                asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertEqual(ctx.exception.last_reason, "YouTube API error: The API key is invalid.")

    def test_malformed_json_is_retried(self):
        session = FakeSession([
            FakeResponse(200, "<html>not json</html>"),
            FakeResponse(200, {"items": []}),
        ])
        fetcher = ResilientFetcher(session, max_attempts=3, base_delay=1.0)

        with patch("asyncio.sleep", AsyncMock()) as mock_sleep:
            result = asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertEqual(result, {"items": []})
        mock_sleep.assert_called_once_with(1.0)

    def test_non_object_json_is_malformed(self):
        session = FakeSession([FakeResponse(200, "[1, 2, 3]")])
        fetcher = ResilientFetcher(session, max_attempts=1, base_delay=0)

        with self.assertRaises(FetchExhausted) as ctx:
            asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertTrue(ctx.exception.last_reason.startswith("Malformed response"))

    def test_undecodable_body_is_retried(self):
        session = FakeSession([
            FakeResponse(200, b'{"items": "\xff\xfe"}'),
            FakeResponse(200, {"items": []}),
        ])
        fetcher = ResilientFetcher(session, max_attempts=3, base_delay=1.0)

        with patch("asyncio.sleep", AsyncMock()) as mock_sleep:
            result = asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertEqual(result, {"items": []})
        mock_sleep.assert_called_once_with(1.0)

    def test_always_undecodable_body_exhausts(self):
        session = FakeSession(handler=lambda method, url, params: FakeResponse(200, b"\xff\xfe\xfd"))
        fetcher = ResilientFetcher(session, max_attempts=2, base_delay=0)

        with patch("asyncio.sleep", AsyncMock()):
            with self.assertRaises(FetchExhausted) as ctx:
                asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertEqual(len(session.requests), 2)
        self.assertTrue(ctx.exception.last_reason.startswith("Malformed response"))

    def test_undecodable_error_body_keeps_status(self):
        session = FakeSession([FakeResponse(502, b"bad gateway \xff")])
        fetcher = ResilientFetcher(session, max_attempts=1, base_delay=0)

        with self.assertRaises(FetchExhausted) as ctx:
            asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertTrue(ctx.exception.last_reason.startswith("HTTP 502: bad gateway"))

    def test_rate_limiter_called_per_attempt(self):
        session = FakeSession([FakeResponse(500, "x"), FakeResponse(200, {})])
        rate_limiter = MagicMock()
        rate_limiter.pre_request = AsyncMock()
        fetcher = ResilientFetcher(session, max_attempts=2, base_delay=0, rate_limiter=rate_limiter)

        with patch("asyncio.sleep", AsyncMock()):
            asyncio.run(fetcher.fetch_json("https://api.example/x"))

        self.assertEqual(rate_limiter.pre_request.call_count, 2)

    def test_errors_recorded_on_exporter(self):
        session = FakeSession([FakeResponse(503, "x"), FakeResponse(200, {})])
        exporter = MagicMock()
        fetcher = ResilientFetcher(session, max_attempts=2, base_delay=0, prometheus_exporter=exporter)

        with patch("asyncio.sleep", AsyncMock()):
            asyncio.run(fetcher.fetch_json("https://api.example/x"))

        exporter.record_api_error.assert_called_once_with("5xx")
        self.assertEqual(exporter.time_request.call_count, 2)


if __name__ == "__main__":
    unittest.main()
