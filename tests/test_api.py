# tests/test_api.py

import pytest
from fastapi.testclient import TestClient

from ocr_keys import keyring
from ocr_keys.main import app
from ocr_keys.store import SQLiteKeyStore
from ocr_keys.vault import decrypt

PASSWORD = "node-password-123"


@pytest.fixture
def client(monkeypatch):
    import ocr_keys.config as cfg
    monkeypatch.setattr(cfg, "OCR_KEY_PASSWORD", PASSWORD)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def locked_client():
    with TestClient(app) as c:
        yield c


class TestHealth:
    def test_healthy(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["checks"] == {"database": True, "password": True}

    def test_degraded_without_password(self, locked_client):
        r = locked_client.get("/health")
        assert r.status_code == 503
        assert r.json()["checks"]["password"] is False


class TestOCRKeys:
    def test_create_and_list(self, client):
        r = client.post("/v2/keys/ocr")
        assert r.status_code == 201
        created = r.json()["data"]

        assert len(created["id"]) == 64
        assert created["on_chain_signing_address"].startswith("0x")
        assert created["unlocked"] is True

        listed = client.get("/v2/keys/ocr").json()["data"]
        assert [k["id"] for k in listed] == [created["id"]]

        # stored form decrypts with the node password
        stored = SQLiteKeyStore().load(created["id"])
        assert decrypt(stored, PASSWORD).id == created["id"]

    def test_responses_carry_no_private_material(self, client):
        key_id = client.post("/v2/keys/ocr").json()["data"]["id"]
        bundle = keyring.get_unlocked(key_id)
        raw = bundle.raw_key_data()

        body = client.get(f"/v2/keys/ocr/{key_id}").text + client.get("/v2/keys/ocr").text
        for secret in (raw.ecdsa_d.to_bytes(32, "big"), raw.ed25519_private_key[:32], raw.x25519_scalar):
            assert secret.hex() not in body
        assert "container" not in body

    def test_get_missing(self, client):
        r = client.get("/v2/keys/ocr/" + "00" * 32)
        assert r.status_code == 404

    def test_create_requires_password(self, locked_client):
        r = locked_client.post("/v2/keys/ocr")
        assert r.status_code == 503

    def test_unreadable_cost_stores_nothing(self, client, monkeypatch):
        import ocr_keys.config as cfg
        monkeypatch.setattr(cfg, "SCRYPT_P", 32)

        r = client.post("/v2/keys/ocr")
        assert r.status_code == 500
        assert client.get("/v2/keys/ocr").json()["data"] == []

    def test_unlock(self, client):
        key_id = client.post("/v2/keys/ocr").json()["data"]["id"]
        keyring.forget_all()

        r = client.post(f"/v2/keys/ocr/{key_id}/unlock")
        assert r.status_code == 200
        assert r.json()["data"]["id"] == key_id
        assert keyring.get_unlocked(key_id) is not None

    def test_unlock_wrong_password(self, client, monkeypatch):
        key_id = client.post("/v2/keys/ocr").json()["data"]["id"]

        import ocr_keys.config as cfg
        monkeypatch.setattr(cfg, "OCR_KEY_PASSWORD", "a-different-password")
        r = client.post(f"/v2/keys/ocr/{key_id}/unlock")
        assert r.status_code == 401

    def test_delete(self, client):
        key_id = client.post("/v2/keys/ocr").json()["data"]["id"]

        r = client.delete(f"/v2/keys/ocr/{key_id}")
        assert r.status_code == 200
        assert keyring.get_unlocked(key_id) is None
        assert client.get("/v2/keys/ocr").json()["data"] == []

        assert client.delete(f"/v2/keys/ocr/{key_id}").status_code == 404
