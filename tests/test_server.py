# tests/test_server.py
"""Tests for the HTTP server and client."""

import tempfile
from pathlib import Path

import pytest

from gallery import (
    InsufficientOffer,
    InvalidAmount,
    MemoryLedger,
    NoSuchAsset,
    NotListed,
    NotOwner,
    Registry,
    Unauthenticated,
)
from gallery.client import GalleryClient
from gallery.identity import Actor, ActorStore, make_request, sign_request
from gallery.server import GalleryServer


@pytest.fixture(scope="module")
def keys():
    """Key pairs for the test actors. Generated once; RSA keygen is slow."""
    return {name: Actor.create(name) for name in ("alice", "bob", "eve")}


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def server(temp_dir, keys):
    """Running server that knows alice and bob."""
    actors = ActorStore(temp_dir / "actors")
    for name in ("alice", "bob"):
        actors.import_public(name, keys[name].public_key)

    registry = Registry(ledger=MemoryLedger({"bob": 100}))
    server = GalleryServer(registry, actors, port=0)
    server.start_background()
    yield server
    server.shutdown()


def client_for(server, actor=None):
    return GalleryClient(f"http://127.0.0.1:{server.port}", actor=actor, timeout=5)


class TestReadEndpoints:
    """Tests for unauthenticated GET endpoints."""

    def test_health(self, server):
        assert client_for(server).health()

    def test_health_when_down(self):
        assert not GalleryClient("http://127.0.0.1:1", timeout=1).health()

    def test_get_unknown_picture(self, server):
        with pytest.raises(NoSuchAsset) as exc_info:
            client_for(server).get(99)
        assert exc_info.value.picture_id == 99

    def test_pictures_filters(self, server):
        registry = server.registry
        a = registry.create("ipfs://a", 1, "alice")
        b = registry.create("ipfs://b", 1, "bob")
        registry.list(b, 5, "bob")

        client = client_for(server)
        assert [p.id for p in client.pictures()] == [a, b]
        assert [p.id for p in client.pictures(owner="alice")] == [a]
        assert [p.id for p in client.pictures(creator="bob")] == [b]
        assert [p.id for p in client.pictures(for_sale=True)] == [b]

    def test_balance(self, server):
        assert client_for(server).balance("bob") == 100
        assert client_for(server).balance("nobody") == 0

    def test_unexpected_error_is_reported_as_json(self, server, monkeypatch):
        def unreadable(identity):
            raise OSError("ledger unavailable")

        monkeypatch.setattr(server.registry.ledger, "balance", unreadable)
        with pytest.raises(RuntimeError, match="InternalError: ledger unavailable"):
            client_for(server).balance("bob")


class TestSignedOperations:
    """Tests for signed POST endpoints."""

    def test_full_sale(self, server, keys):
        alice = client_for(server, keys["alice"])
        bob = client_for(server, keys["bob"])

        picture = alice.create("ipfs://a", 10)
        assert picture.owner == "alice"

        listed = alice.list(picture.id, 20)
        assert listed.for_sale

        bought = bob.buy(picture.id, 20)
        assert bought.owner == "bob"
        assert not bought.for_sale

        assert bob.balance("alice") == 20
        assert bob.balance("bob") == 80

        history = bob.history(picture.id)
        assert [a.activity_type for a in history] == ["Create", "List", "Buy"]

        with pytest.raises(NotOwner):
            alice.update(picture.id, "ipfs://c", 1)

        updated = bob.update(picture.id, "ipfs://b", 30)
        assert updated.uri == "ipfs://b"

        moved = bob.transfer_ownership(picture.id, "alice")
        assert moved.owner == "alice"
        assert moved.creator == "alice"

    def test_business_errors_map_to_exceptions(self, server, keys):
        alice = client_for(server, keys["alice"])
        bob = client_for(server, keys["bob"])
        picture = alice.create("ipfs://a", 10)

        with pytest.raises(NotListed):
            bob.buy(picture.id, 20)

        alice.list(picture.id, 20)
        with pytest.raises(InsufficientOffer):
            bob.buy(picture.id, 19)

        with pytest.raises(InvalidAmount):
            bob.tip(picture.id, 0)

        with pytest.raises(NoSuchAsset):
            bob.unlist(404)

    def test_tip(self, server, keys):
        alice = client_for(server, keys["alice"])
        bob = client_for(server, keys["bob"])
        picture = alice.create("ipfs://a", 10)

        tipped = bob.tip(picture.id, 5)
        assert tipped == alice.get(picture.id)
        assert bob.balance("alice") == 5

    def test_unknown_actor(self, server, keys):
        eve = client_for(server, keys["eve"])
        with pytest.raises(Unauthenticated):
            eve.create("ipfs://a", 10)

    def test_replay_rejected(self, server, keys):
        client = client_for(server)
        request = sign_request(make_request("create", params={"uri": "ipfs://a", "price": 1}), keys["alice"])
        client._request("POST", "/pictures", request)
        with pytest.raises(Unauthenticated):
            client._request("POST", "/pictures", request)
        assert len(server.registry) == 1

    def test_route_must_match_envelope(self, server, keys):
        server.registry.create("ipfs://a", 1, "alice")
        server.registry.create("ipfs://b", 1, "alice")
        client = client_for(server)

        request = sign_request(make_request("list", 0, {"price": 5}), keys["alice"])
        with pytest.raises(ValueError):
            client._request("POST", "/pictures/1/list", request)
        with pytest.raises(ValueError):
            client._request("POST", "/pictures/0/unlist", request)
        assert not server.registry.get(0).for_sale
        assert not server.registry.get(1).for_sale

    def test_missing_parameter(self, server, keys):
        server.registry.create("ipfs://a", 1, "alice")
        request = sign_request(make_request("list", 0), keys["alice"])
        with pytest.raises(ValueError):
            client_for(server)._request("POST", "/pictures/0/list", request)
