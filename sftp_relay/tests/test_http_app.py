import re

import pytest
from fastapi.testclient import TestClient

from sftp_relay.config import RelaySettings
from sftp_relay.http import create_app
from sftp_relay.network import MemoryConnection, MemoryStore
from sftp_relay.runtime import build_runtime

AUTH = {"Authorization": "s3cret"}


def _settings(**overrides) -> RelaySettings:
    values = {
        "secret": "s3cret",
        "sftp_host": "sftp.test",
        "transport": "memory",
        "format": "jsonl",
        "final_newline": True,
        "root_spec": "/upload/root-{random_3}.jsonl",
        "name_spec": "/upload/{name}-{random_3}.jsonl",
    }
    values.update(overrides)
    return RelaySettings(**values)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def runtime(store):
    return build_runtime(_settings(), lambda _settings: MemoryConnection(store))


@pytest.fixture
def client(runtime):
    app = create_app(runtime.settings, runtime=runtime)
    with TestClient(app) as test_client:
        test_client.portal.call(runtime.manager.run_task)
        yield test_client


def test_requires_secret():
    with pytest.raises(ValueError, match="secret"):
        create_app(_settings(secret=None))


def test_rejects_missing_or_wrong_authorization(client):
    assert client.post("/", json=[1]).status_code == 401
    response = client.post("/", json=[1], headers={"Authorization": "nope"})
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "unauthorized"


def test_rejects_non_container_body(client):
    response = client.post("/", json="just a string", headers=AUTH)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "bad_request"


def test_root_upload(client, store):
    response = client.post("/", json=[{"a": 1}, {"a": 2}], headers=AUTH)

    assert response.status_code == 200
    payload = response.json()
    assert re.fullmatch(r"[0-9a-f]{32}", payload["id"])
    assert re.fullmatch(r"/upload/root-\d{3}\.jsonl", payload["path"])
    assert store.files[payload["path"]] == b'{"a":1}\n{"a":2}\n'
    assert store.modes[payload["path"]] == 0o666


def test_named_upload(client, store):
    response = client.post("/orders", json={"order": 7}, headers=AUTH)

    assert response.status_code == 200
    path = response.json()["path"]
    assert re.fullmatch(r"/upload/orders-\d{3}\.jsonl", path)
    # jsonl only serialises arrays; an object body produces an empty file.
    assert store.files[path] == b""


def test_named_route_requires_word_characters(client):
    assert client.post("/not-a-name", json=[1], headers=AUTH).status_code == 404


def test_not_ready_returns_service_unavailable(store):
    runtime = build_runtime(_settings(sftp_host=None), lambda _settings: MemoryConnection(store))
    app = create_app(runtime.settings, runtime=runtime)

    with TestClient(app) as client:
        response = client.post("/", json=[1], headers=AUTH)

    assert response.status_code == 503
    assert response.json()["detail"]["message"] == "SSH client not ready"
    assert store.files == {}


def test_shutdown_cancels_queue_and_stops_manager(runtime):
    app = create_app(runtime.settings, runtime=runtime)
    with TestClient(app) as client:
        client.portal.call(runtime.manager.run_task)
        assert runtime.tracker.is_ready

    assert runtime.queue.closed
    assert not runtime.tracker.is_ready


def test_unencodable_body_returns_json_error(store):
    runtime = build_runtime(_settings(encoding="ascii"), lambda _settings: MemoryConnection(store))
    app = create_app(runtime.settings, runtime=runtime)

    with TestClient(app) as client:
        client.portal.call(runtime.manager.run_task)
        response = client.post("/", json=["café"], headers=AUTH)

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["error"] == "internal_error"
    assert detail["message"].startswith("Upload error:")
    assert detail["request_id"]
    assert store.files == {}


def test_unexpected_failure_returns_json_error(runtime, monkeypatch):
    async def _explode(event, spec):
        raise KeyError("boom")

    monkeypatch.setattr(runtime.coordinator, "handle", _explode)
    app = create_app(runtime.settings, runtime=runtime)

    with TestClient(app) as client:
        response = client.post("/", json=[1], headers=AUTH)

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["detail"]["error"] == "internal_error"
