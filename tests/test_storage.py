from __future__ import annotations

import json

import pytest

from tourismcam.client.storage import CredentialStore, JsonFileStorage, MemoryStorage
from tourismcam.client.stores.posts import decode_id_set, encode_id_set
from tourismcam.core.memory_redis import AsyncMemoryRedis


def test_id_set_codec():
    ids = {"12", "3", "7"}
    encoded = encode_id_set(ids)
    assert encoded == ["12", "3", "7"]
    assert json.loads(json.dumps(encoded)) == encoded
    assert decode_id_set(encoded) == ids
    assert decode_id_set(None) == set()
    assert decode_id_set({"12": True}) == set()
    assert decode_id_set([1, "1"]) == {"1"}


def test_json_file_storage(tmp_path):
    path = tmp_path / "state" / "local.json"
    storage = JsonFileStorage(path)
    assert storage.get_item("posts-store") is None
    storage.set_item("posts-store", '{"state": {}, "version": 0}')
    storage.set_item("auth-storage", "{}")
    assert JsonFileStorage(path).get_item("posts-store") == '{"state": {}, "version": 0}'
    storage.remove_item("auth-storage")
    assert json.loads(path.read_text(encoding="utf-8")) == {"posts-store": '{"state": {}, "version": 0}'}


def test_json_file_storage_ignores_corrupt_file(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileStorage(path).get_item("anything") is None


def test_memory_storage():
    storage = MemoryStorage()
    storage.set_item("k", "v")
    assert storage.get_item("k") == "v"
    storage.remove_item("k")
    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_credentials_expire():
    now = [1000.0]
    credentials = CredentialStore(clock=lambda: now[0])
    credentials.save("mock_jwt_token_x", "session_x")
    assert credentials.token == "mock_jwt_token_x"
    now[0] += 24 * 60 * 60
    assert credentials.token is None
    assert credentials.session_id is None


def test_credentials_survive_a_new_instance(tmp_path):
    now = [1000.0]
    storage = JsonFileStorage(tmp_path / "app.json")
    CredentialStore(storage, clock=lambda: now[0]).save("mock_jwt_token_x", "session_x", ttl_seconds=60)

    reloaded = CredentialStore(JsonFileStorage(tmp_path / "app.json"), clock=lambda: now[0])
    assert (reloaded.token, reloaded.session_id) == ("mock_jwt_token_x", "session_x")

    now[0] += 60
    assert reloaded.token is None
    assert storage.get_item("auth-credentials") is None
    assert CredentialStore(storage, clock=lambda: now[0]).token is None


def test_credentials_clear_removes_entry():
    storage = MemoryStorage()
    credentials = CredentialStore(storage)
    credentials.save("mock_jwt_token_x", "session_x")
    assert storage.get_item("auth-credentials") is not None
    credentials.clear()
    assert storage.get_item("auth-credentials") is None
    assert CredentialStore(storage).token is None


def test_unreadable_credentials_are_dropped():
    storage = MemoryStorage()
    storage.set_item("auth-credentials", "{not json")
    assert CredentialStore(storage).token is None
    assert storage.get_item("auth-credentials") is None


@pytest.mark.anyio
async def test_memory_redis_commands():
    r = AsyncMemoryRedis()
    assert await r.set("k", 1, nx=True) is True
    assert await r.set("k", 2, nx=True) is None
    assert await r.get("k") == "1"
    assert await r.hset("h", mapping={"a": 1, "flag": True}) == 2
    assert await r.hgetall("h") == {"a": "1", "flag": "1"}
    assert await r.hincrby("h", "a", -3) == -2
    assert await r.sadd("s", "x", "y", "x") == 2
    assert await r.sismember("s", "y") is True
    assert await r.scard("s") == 2
    assert await r.delete("k", "h", "s", "missing") == 3
    assert await r.smembers("s") == set()


@pytest.mark.anyio
async def test_memory_redis_expiry(monkeypatch):
    clock = [100.0]
    monkeypatch.setattr("tourismcam.core.memory_redis.time.time", lambda: clock[0])
    r = AsyncMemoryRedis()
    await r.setex("session:t", 10, "1")
    assert await r.get("session:t") == "1"
    clock[0] += 10
    assert await r.get("session:t") is None
