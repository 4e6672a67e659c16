"""Tests for the external checker.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made.  Transport failures are simulated with ``side_effect``.
"""

from __future__ import annotations

import queue
import threading

import httpx
import pytest
import respx

from deadlinks.checker import (
    END_OF_STREAM,
    ExternalChecker,
    VisitedSet,
    build_client,
    check_reference,
    is_alive_status,
    probe,
)
from deadlinks.models import LinkReference, VerdictKind


def _ref(url: str, source: str = "docs/a.md") -> LinkReference:
    return LinkReference(url=url, title="", source_path=source)


def _channel(*references: LinkReference) -> queue.Queue:
    channel: queue.Queue = queue.Queue()
    for sequence, reference in enumerate(references):
        channel.put((sequence, reference))
    channel.put(END_OF_STREAM)
    return channel


# ---------------------------------------------------------------------------
# VisitedSet
# ---------------------------------------------------------------------------

class TestVisitedSet:
    def test_claim_is_true_only_once(self) -> None:
        visited = VisitedSet()
        assert visited.claim("https://a.example") is True
        assert visited.claim("https://a.example") is False
        assert "https://a.example" in visited
        assert len(visited) == 1

    def test_keeps_claim_order(self) -> None:
        visited = VisitedSet()
        for url in ("https://b.example", "https://a.example", "https://b.example"):
            visited.claim(url)
        assert visited.urls() == ["https://b.example", "https://a.example"]

    def test_concurrent_claims_have_a_single_winner(self) -> None:
        visited = VisitedSet()
        barrier = threading.Barrier(16)
        wins: list[bool] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            result = visited.claim("https://race.example")
            with lock:
                wins.append(result)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert wins.count(True) == 1
        assert len(wins) == 16


# ---------------------------------------------------------------------------
# Single probe
# ---------------------------------------------------------------------------

class TestProbe:
    @pytest.mark.parametrize(
        ("status", "alive"),
        [(200, True), (204, True), (301, True), (399, True), (400, False), (404, False), (500, False), (199, False)],
    )
    def test_is_alive_status(self, status: int, alive: bool) -> None:
        assert is_alive_status(status) is alive

    def test_ok_response_is_alive(self, make_settings) -> None:
        with respx.mock:
            respx.get("https://ok.example/").mock(return_value=httpx.Response(200))
            with build_client(make_settings()) as client:
                verdict = check_reference(client, _ref("https://ok.example/"))

        assert verdict.kind is VerdictKind.ALIVE
        assert verdict.status_code == 200

    def test_not_found_is_dead(self, make_settings) -> None:
        with respx.mock:
            respx.get("https://gone.example/").mock(return_value=httpx.Response(404))
            with build_client(make_settings()) as client:
                verdict = check_reference(client, _ref("https://gone.example/"))

        assert verdict.kind is VerdictKind.DEAD_EXTERNAL
        assert verdict.status_code == 404
        assert verdict.reason == "HTTP 404"

    def test_connection_refused_is_dead_without_status(self, make_settings) -> None:
        with respx.mock:
            respx.get("https://refused.example/").mock(
                side_effect=httpx.ConnectError("connection refused")
            )
            with build_client(make_settings()) as client:
                verdict = check_reference(client, _ref("https://refused.example/"))

        assert verdict.kind is VerdictKind.DEAD_EXTERNAL
        assert verdict.status_code is None
        assert verdict.reason == "ConnectError"

    def test_timeout_is_dead(self, make_settings) -> None:
        with respx.mock:
            respx.get("https://slow.example/").mock(side_effect=httpx.ReadTimeout("slow"))
            with build_client(make_settings()) as client:
                status, reason = probe(client, "https://slow.example/")

        assert status is None
        assert reason == "timeout"

    def test_redirects_are_followed(self, make_settings) -> None:
        with respx.mock:
            respx.get("https://old.example/").mock(
                return_value=httpx.Response(301, headers={"Location": "https://new.example/"})
            )
            respx.get("https://new.example/").mock(return_value=httpx.Response(200))
            with build_client(make_settings()) as client:
                status, reason = probe(client, "https://old.example/")

        assert (status, reason) == (200, None)

    def test_no_retry_on_failure(self, make_settings) -> None:
        with respx.mock:
            route = respx.get("https://flaky.example/").mock(return_value=httpx.Response(503))
            with build_client(make_settings()) as client:
                check_reference(client, _ref("https://flaky.example/"))

        assert route.call_count == 1

    @pytest.mark.parametrize("url", ["https://xn--/", "http://[::1/"])
    def test_malformed_url_is_dead_without_status(self, make_settings, url: str) -> None:
        # The URL fails before any request is sent; respx rejects anything else.
        with respx.mock:
            with build_client(make_settings()) as client:
                verdict = check_reference(client, _ref(url))

        assert verdict.kind is VerdictKind.DEAD_EXTERNAL
        assert verdict.status_code is None
        assert verdict.reason


# ---------------------------------------------------------------------------
# ExternalChecker.run
# ---------------------------------------------------------------------------

class TestExternalCheckerRun:
    def test_each_distinct_url_is_probed_once(self, make_settings) -> None:
        shared = "https://shared.example/"
        channel = _channel(
            _ref(shared, "a.md"),
            _ref("https://other.example/", "a.md"),
            _ref(shared, "b.md"),
            _ref(shared, "c.md"),
        )

        with respx.mock:
            shared_route = respx.get(shared).mock(return_value=httpx.Response(200))
            other_route = respx.get("https://other.example/").mock(
                return_value=httpx.Response(404)
            )
            checker = ExternalChecker(make_settings())
            results = checker.run(channel)

        assert shared_route.call_count == 1
        assert other_route.call_count == 1
        assert [(seq, v.reference.url, v.kind) for seq, v in results] == [
            (0, shared, VerdictKind.ALIVE),
            (1, "https://other.example/", VerdictKind.DEAD_EXTERNAL),
            (2, shared, VerdictKind.ALIVE),
            (3, shared, VerdictKind.ALIVE),
        ]
        # Every reference keeps its own source; the status is shared.
        assert [v.reference.source_path for _, v in results] == ["a.md", "a.md", "b.md", "c.md"]
        assert {v.status_code for seq, v in results if seq != 1} == {200}
        assert checker.visited.urls() == [shared, "https://other.example/"]

    def test_worker_pool_keeps_dedup(self, make_settings) -> None:
        urls = [f"https://site{i}.example/" for i in range(8)]
        references = [_ref(url) for url in urls] * 3
        channel = _channel(*references)

        with respx.mock:
            routes = [respx.get(url).mock(return_value=httpx.Response(200)) for url in urls]
            checker = ExternalChecker(make_settings(checker_concurrency=4))
            results = checker.run(channel)

        assert all(route.call_count == 1 for route in routes)
        assert [seq for seq, _ in results] == list(range(24))
        assert [v.reference.url for _, v in results] == urls * 3

    def test_empty_channel(self, make_settings) -> None:
        checker = ExternalChecker(make_settings())
        assert checker.run(_channel()) == []

    def test_cancelled_checker_drains_without_probing(self, make_settings) -> None:
        checker = ExternalChecker(make_settings())
        checker.cancel()
        # respx would reject any unmocked request
        with respx.mock:
            results = checker.run(_channel(_ref("https://never.example/")))
        assert results == []

    def test_uses_injected_client_and_leaves_it_open(self, make_settings) -> None:
        with respx.mock:
            respx.get("https://ok.example/").mock(return_value=httpx.Response(200))
            client = build_client(make_settings())
            ExternalChecker(make_settings(), client=client).run(
                _channel(_ref("https://ok.example/"))
            )
            assert client.is_closed is False
            client.close()
