"""Tests for startup resolution between owner and visitor modes.

Run with: pytest tests/test_bootstrap.py -v
"""

from unittest.mock import patch

import httpx
import pytest

from bootstrap import Mode, fetch_manifest, resolve_bootstrap
from schemas import Asset, Event, Settings
from seed import SEED_EVENTS

MANIFEST = {
    "lastUpdated": "2026-05-01T10:00:00+00:00",
    "events": [
        {"id": "p1", "title": "Published Gala", "price": 40, "status": "published"},
        {"id": "p2", "title": "Open Day", "status": "published"},
    ],
    "settings": {"id": "global", "brandColor": "#222222", "paymentProvider": "none", "paymentConfig": {}},
}


def make_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), base_url="http://site.test")


def serving(payload=None, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/events.json"
        if payload is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=payload)

    return make_client(handler)


def unreachable() -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return make_client(handler)


class TestOwnerMode:
    def test_local_events_mean_owner(self, store, registry):
        store.save_event(Event(id="e1", title="Mine"))
        with serving(MANIFEST) as client:
            result = resolve_bootstrap(store, client, registry)
        assert result.mode is Mode.OWNER
        assert [e.id for e in result.events] == ["e1"]

    def test_settings_alone_mean_owner(self, store, registry):
        store.save_settings(Settings(brand_color="#333333"))
        with serving(MANIFEST) as client:
            result = resolve_bootstrap(store, client, registry)
        assert result.mode is Mode.OWNER
        assert result.events == []
        assert result.settings.brand_color == "#333333"

    def test_blob_assets_get_transient_urls(self, store, registry):
        store.save_event(Event(id="e1"))
        store.save_asset(Asset(id="a1", name="logo.png", url="blob:stale"), b"logo-bytes")
        store.save_asset(Asset(id="a2", url="https://cdn.test/a2.png"))
        with serving(MANIFEST) as client:
            result = resolve_bootstrap(store, client, registry)

        by_id = {a.id: a for a in result.assets}
        assert by_id["a1"].url.startswith("blob:")
        assert by_id["a1"].url != "blob:stale"
        assert registry.resolve(by_id["a1"].url) == b"logo-bytes"
        assert by_id["a2"].url == "https://cdn.test/a2.png"


class TestVisitorMode:
    def test_manifest_events_used_verbatim(self, store, registry):
        with serving(MANIFEST) as client:
            result = resolve_bootstrap(store, client, registry)
        assert result.mode is Mode.VISITOR
        assert [e.to_wire() for e in result.events] == [Event.model_validate(e).to_wire() for e in MANIFEST["events"]]
        assert result.settings.brand_color == "#222222"
        assert result.assets == []

    def test_visitor_does_not_touch_local_store(self, store, registry):
        with serving(MANIFEST) as client:
            resolve_bootstrap(store, client, registry)
        assert store.get_all_events() == []


class TestSeedFallback:
    @pytest.mark.parametrize(
        "client_factory",
        [
            unreachable,
            lambda: serving(status_code=404),
            lambda: serving({"events": "not-a-list"}),
            lambda: serving({"events": [], "settings": {"paymentConfig": [1]}}),
            lambda: make_client(lambda request: httpx.Response(200, text="<html>")),
        ],
        ids=["unreachable", "not-found", "malformed", "bad-payment-config", "not-json"],
    )
    def test_seeds_when_nothing_published(self, store, registry, client_factory):
        with client_factory() as client:
            result = resolve_bootstrap(store, client, registry)

        assert result.mode is Mode.OWNER
        assert {e.id for e in result.events} == {e.id for e in SEED_EVENTS}
        # Persisted, not just returned
        assert {e.id for e in store.get_all_events()} == {e.id for e in SEED_EVENTS}
        assert [a.id for a in result.assets] == ["a1"]


class TestFailures:
    def test_unexpected_error_gives_empty_loaded_state(self, store, registry):
        with patch.object(store, "get_all_events", side_effect=RuntimeError("disk gone")):
            with serving(MANIFEST) as client:
                result = resolve_bootstrap(store, client, registry)
        assert result.error == "disk gone"
        assert result.events == []
        assert result.settings == Settings()

    def test_fetch_manifest_none_on_server_error(self):
        with serving(status_code=500) as client:
            assert fetch_manifest(client) is None
