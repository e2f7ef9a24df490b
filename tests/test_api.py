"""API tests. In-memory store injected on app.state; no Neo4j."""

import threading
import time

import pytest
from fastapi.testclient import TestClient

import api.main
from api.main import app, get_service
from contactlink.application import IdentityService, StoreUnavailable
from contactlink.infrastructure import InMemoryContactStore


@pytest.fixture
def client():
    app.state.service = IdentityService(InMemoryContactStore())
    try:
        yield TestClient(app)
    finally:
        app.state.service = None


class FailingStore:
    def transaction(self):
        raise StoreUnavailable("connection refused")


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_root_banner(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_identify_creates_then_links(client):
    r1 = client.post("/identify", json={"email": "lorraine@hillvalley.edu", "phoneNumber": "123456"})
    assert r1.status_code == 200
    primary_id = r1.json()["contact"]["primaryContactId"]

    r2 = client.post("/identify", json={"email": "mcfly@hillvalley.edu", "phoneNumber": "123456"})
    assert r2.status_code == 200
    contact = r2.json()["contact"]
    assert contact["primaryContactId"] == primary_id
    assert contact["emails"] == ["lorraine@hillvalley.edu", "mcfly@hillvalley.edu"]
    assert contact["phoneNumbers"] == ["123456"]
    assert len(contact["secondaryContactIds"]) == 1


def test_identify_accepts_null_field(client):
    r = client.post("/identify", json={"email": None, "phoneNumber": "555"})
    assert r.status_code == 200
    assert r.json()["contact"]["phoneNumbers"] == ["555"]
    assert r.json()["contact"]["emails"] == []


@pytest.mark.parametrize(
    "payload",
    [{}, {"email": None, "phoneNumber": None}, {"email": ""}, {"email": 42}, {"phoneNumber": 123456}, []],
)
def test_identify_rejects_bad_requests(client, payload):
    r = client.post("/identify", json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == "Bad Request"


def test_identify_rejects_malformed_json(client):
    r = client.post("/identify", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400


def test_store_failure_is_server_error(client):
    app.state.service = IdentityService(FailingStore())
    r = client.post("/identify", json={"email": "a@x.com"})
    assert r.status_code == 500
    assert r.json() == {"error": "Internal Server Error", "message": "connection refused"}


def test_service_is_built_once_under_concurrent_first_requests(monkeypatch):
    built = []

    def slow_build(app):
        time.sleep(0.05)
        service = IdentityService(InMemoryContactStore())
        built.append(service)
        return service

    monkeypatch.setattr(api.main, "_build_service", slow_build)
    app.state.service = None
    services = []
    threads = [threading.Thread(target=lambda: services.append(get_service(app))) for _ in range(4)]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        app.state.service = None

    assert len(built) == 1
    assert services == built * 4
