"""Tests for the requests-backed fetcher and response values."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import requests
from requests.structures import CaseInsensitiveDict

from depth_crawler.fetch import FetchError, HttpFetcher, Response, failure_reason


def _mock_response(status=200, headers=None, content=b""):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = CaseInsensitiveDict(headers or {})
    resp.content = content
    return resp


class TestResponse:

    def test_ok_range(self):
        assert Response(url="u", status=200).ok
        assert Response(url="u", status=299).ok
        assert not Response(url="u", status=301).ok
        assert not Response(url="u", status=404).ok

    def test_size_prefers_content_length(self):
        resp = Response(url="u", status=200, headers={"Content-Length": "1024"}, data=b"abc")
        assert resp.size == 1024

    def test_size_header_lookup_is_case_insensitive(self):
        resp = Response(url="u", status=200, headers={"content-length": "7"}, data=b"")
        assert resp.size == 7

    def test_size_falls_back_to_body(self):
        assert Response(url="u", status=200, data=b"hello").size == 5
        assert Response(url="u", status=200, headers={"Content-Length": "lots"}, data=b"hi").size == 2

    def test_size_zero_content_length_uses_body(self):
        assert Response(url="u", status=200, headers={"Content-Length": "0"}, data=b"abc").size == 3

    def test_size_empty(self):
        assert Response(url="u", status=200).size == 0

    def test_text_body_is_encoded(self):
        resp = Response(url="u", status=200, data="héllo")
        assert resp.data == "héllo".encode("utf-8")
        assert resp.size == 6


def test_fetch_error_is_never_ok():
    err = FetchError(url="http://a.test", reason="timeout")
    assert not err.ok
    assert failure_reason(err) == "timeout"
    assert failure_reason(Response(url="u", status=503)) == "HTTP 503"


class TestHttpFetcher:

    def test_success(self):
        session = requests.Session()
        fetcher = HttpFetcher(timeout_s=3.0, user_agent="TestAgent/0.1", session=session)
        with patch.object(session, "get", return_value=_mock_response(
            200, {"Content-Length": "5"}, b"hello"
        )) as get:
            outcome = fetcher.fetch("http://a.test/x")

        get.assert_called_once_with("http://a.test/x", timeout=3.0, allow_redirects=True)
        assert session.headers["User-Agent"] == "TestAgent/0.1"
        assert isinstance(outcome, Response)
        assert outcome.ok
        assert outcome.status == 200
        assert outcome.data == b"hello"
        assert outcome.size == 5

    def test_error_status_is_a_response(self):
        session = requests.Session()
        fetcher = HttpFetcher(session=session)
        with patch.object(session, "get", return_value=_mock_response(404, {}, b"not found")):
            outcome = fetcher.fetch("http://a.test/missing")

        assert isinstance(outcome, Response)
        assert outcome.status == 404
        assert not outcome.ok

    def test_network_failure_does_not_raise(self):
        session = requests.Session()
        fetcher = HttpFetcher(session=session)
        with patch.object(session, "get", side_effect=requests.ConnectionError("refused")):
            outcome = fetcher.fetch("http://down.test")

        assert isinstance(outcome, FetchError)
        assert outcome.url == "http://down.test"
        assert "ConnectionError" in outcome.reason
        assert not outcome.ok

    def test_timeout_does_not_raise(self):
        session = requests.Session()
        fetcher = HttpFetcher(timeout_s=0.5, session=session)
        with patch.object(session, "get", side_effect=requests.Timeout("slow")):
            outcome = fetcher.fetch("http://slow.test")

        assert isinstance(outcome, FetchError)
        assert "Timeout" in outcome.reason

    def test_context_manager_closes_session(self):
        session = MagicMock(spec=requests.Session)
        session.headers = {}
        with HttpFetcher(session=session):
            pass
        session.close.assert_called_once()
