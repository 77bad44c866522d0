"""
Tests for the Overpass API client (requests is patched, no network access)
"""

import pytest
import requests

from lanesignals.config import APIConfig
from lanesignals.raw import OverpassClient
from lanesignals.raw.overpass import build_highway_query


class FakeResponse:

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload or {"elements": []}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self.payload


@pytest.fixture
def client():
    return OverpassClient(APIConfig(retry_delay=0.0, min_request_interval=0.0))


def patch_post(monkeypatch, responses):
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append(data["data"])
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(requests, "post", fake_post)
    return calls


def test_query_contains_bbox_and_restrictions():
    query = build_highway_query(52.5, 13.4, 52.51, 13.42, 90)

    assert "[timeout:90]" in query
    assert 'way["highway"](52.5,13.4,52.51,13.42)' in query
    assert 'relation["type"="restriction"](bw.roads)' in query
    assert "out body;" in query


def test_fetch_bbox(client, monkeypatch):
    payload = {"elements": [{"type": "node", "id": 1, "lat": 52.5, "lon": 13.4}]}
    calls = patch_post(monkeypatch, [FakeResponse(payload=payload)])

    assert client.fetch_bbox(52.5, 13.4, 52.51, 13.42) == payload
    assert len(calls) == 1


def test_retries_on_too_many_requests(client, monkeypatch):
    calls = patch_post(monkeypatch, [FakeResponse(429), FakeResponse(payload={"elements": [1]})])

    assert client.query("[out:json];") == {"elements": [1]}
    assert len(calls) == 2


def test_client_error_not_retried(client, monkeypatch):
    calls = patch_post(monkeypatch, [FakeResponse(400)])

    with pytest.raises(RuntimeError, match="HTTP error 400"):
        client.query("[out:json];")
    assert len(calls) == 1


def test_timeout_after_all_retries(client, monkeypatch):
    patch_post(monkeypatch, [requests.exceptions.Timeout()] * 3)

    with pytest.raises(RuntimeError, match="timeout"):
        client.query("[out:json];")
