"""
Tests pour les magasins de documents (mémoire et Redis).

Le client Redis est remplacé par un Mock; seuls la sérialisation, l'indexation des collections et
la traduction des erreurs sont vérifiées.
"""

from __future__ import annotations

import copy

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import AuthenticationError, ConnectionError as RedisConnectionError

from petcare.infra.store.base import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    StorePermissionError,
    StoreUnavailableError,
    apply_query,
)
from petcare.infra.store.redis_store import RedisDocumentStore, dumps, loads
from tests.helpers import NOW


def test_memory_store_resolves_server_timestamp(store) -> None:
    doc_id = store.create("things", {"name": "a", "at": SERVER_TIMESTAMP})
    assert store.get("things", doc_id) == {"name": "a", "at": NOW, "id": doc_id}


def test_memory_store_returns_copies(store) -> None:
    """Modifier un document lu ne modifie pas l'état stocké."""
    store.set("things", "t1", {"tags": ["x"]})
    doc = store.get("things", "t1")
    doc["tags"].append("y")
    assert store.get("things", "t1")["tags"] == ["x"]


def test_memory_store_set_merge_and_update(store) -> None:
    store.set("things", "t1", {"a": 1, "b": 2})
    store.set("things", "t1", {"b": 3}, merge=True)
    assert store.get("things", "t1") == {"a": 1, "b": 3, "id": "t1"}

    store.set("things", "t1", {"c": 4})
    assert store.get("things", "t1") == {"c": 4, "id": "t1"}

    store.update("things", "t1", {"c": 5, "id": "hijack"})
    assert store.get("things", "t1") == {"c": 5, "id": "t1"}


def test_memory_store_update_missing_document(store) -> None:
    with pytest.raises(DocumentNotFoundError) as exc:
        store.update("things", "missing", {"a": 1})
    assert exc.value.collection == "things"
    assert exc.value.op == "update"


def test_memory_store_delete_is_idempotent(store) -> None:
    store.set("things", "t1", {"a": 1})
    store.delete("things", "t1")
    store.delete("things", "t1")
    assert store.get("things", "t1") is None


def test_apply_query_filters_and_sorts() -> None:
    """Tri multi-clés stable; les valeurs absentes passent en fin de tri ascendant."""
    docs = [
        {"id": "b", "name": "Same", "kind": "x"},
        {"id": "a", "name": "Same", "kind": "x"},
        {"id": "c", "name": None, "kind": "x"},
        {"id": "d", "name": "Alpha", "kind": "y"},
    ]
    result = apply_query(docs, {"kind": "x"}, [("name", "asc"), ("id", "asc")])
    assert [d["id"] for d in result] == ["a", "b", "c"]
    with pytest.raises(ValueError):
        apply_query(docs, None, [("name", "sideways")])


def test_json_codec_preserves_datetimes() -> None:
    raw = dumps({"at": NOW, "nested": [{"at": NOW + timedelta(days=1)}]})
    doc = loads(raw)
    assert doc["at"] == NOW
    assert doc["nested"][0]["at"] == NOW + timedelta(days=1)


@pytest.fixture
def redis_client():
    with patch("petcare.infra.store.redis_store.redis.Redis.from_url") as from_url:
        client = MagicMock()
        from_url.return_value = client
        yield client


def test_redis_store_set_writes_document_and_index(redis_client, clock) -> None:
    pipe = redis_client.pipeline.return_value
    store = RedisDocumentStore("redis://localhost:6379/0", clock=clock)

    store.set("users", "u1", {"name": "Ana", "createdAt": SERVER_TIMESTAMP})

    key, raw = pipe.set.call_args.args
    assert key == "users:u1"
    assert loads(raw) == {"name": "Ana", "createdAt": NOW, "id": "u1"}
    pipe.sadd.assert_called_once_with("users:ids", "u1")
    pipe.execute.assert_called_once()


def test_redis_store_query_loads_collection(redis_client, clock) -> None:
    redis_client.smembers.return_value = {"p1", "p2"}
    redis_client.mget.return_value = [
        dumps({"id": "p1", "name": "Zeta", "isActive": True}),
        dumps({"id": "p2", "name": "Alpha", "isActive": True}),
    ]
    store = RedisDocumentStore("redis://localhost:6379/0", clock=clock)

    docs = store.query("partners", {"isActive": True}, [("name", "asc")])
    assert [d["id"] for d in docs] == ["p2", "p1"]
    redis_client.mget.assert_called_once_with(["partners:p1", "partners:p2"])


def test_redis_store_update_missing(redis_client, clock) -> None:
    redis_client.get.return_value = None
    store = RedisDocumentStore("redis://localhost:6379/0", clock=clock)
    with pytest.raises(DocumentNotFoundError):
        store.update("userDiscounts", "c1", {"isUsed": True})


def test_redis_store_translates_client_errors(redis_client, clock) -> None:
    store = RedisDocumentStore("redis://localhost:6379/0", clock=clock)

    redis_client.get.side_effect = RedisConnectionError("down")
    with pytest.raises(StoreUnavailableError) as exc:
        store.get("users", "u1")
    assert (exc.value.collection, exc.value.op) == ("users", "get")

    redis_client.get.side_effect = AuthenticationError("denied")
    with pytest.raises(StorePermissionError):
        store.get("users", "u1")


def test_server_timestamp_survives_copies() -> None:
    """La sentinelle reste reconnaissable après une copie profonde des champs."""
    fields = copy.deepcopy({"at": SERVER_TIMESTAMP, "nested": [SERVER_TIMESTAMP]})
    assert fields["at"] is SERVER_TIMESTAMP
    assert copy.copy(SERVER_TIMESTAMP) is SERVER_TIMESTAMP


def test_memory_store_never_stores_the_sentinel(store, clock) -> None:
    store.set("things", "t1", {"createdAt": SERVER_TIMESTAMP})
    clock.advance(minutes=5)
    store.update("things", "t1", {"updatedAt": SERVER_TIMESTAMP})
    store.set("things", "t1", {"seenAt": SERVER_TIMESTAMP}, merge=True)

    doc = store.get("things", "t1")
    assert doc["createdAt"] == NOW
    assert doc["updatedAt"] == NOW + timedelta(minutes=5)
    assert doc["seenAt"] == NOW + timedelta(minutes=5)
