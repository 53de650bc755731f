import os

# Configuration is read at import time; pin it before any app module loads
os.environ["DATABASE_URL"] = "sqlite://"
for _name in ("R2_ENDPOINT", "R2_BUCKET", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "R2_PUBLIC_DOMAIN",
              "AZURE_OPENAI_KEY", "AZURE_OPENAI_RESOURCE", "REDIS_URL", "ALLOWED_ORIGINS", "ALLOWED_ORIGINS_REGEX"):
    os.environ[_name] = ""
os.environ["FRONTEND_ORIGIN"] = "https://feria.example.com"

import boto3
import httpx
import pytest
from botocore.client import Config as BotoConfig
from fastapi.testclient import TestClient

import core.auth
import utils.storage
from core.database import Base, SessionLocal, engine, init_db

TEST_BUCKET = "feria-test"

IDENTITIES = {
    "token-ana": {"uid": "uid-ana", "email": "ana@example.com", "name": "Ana", "picture": "https://img.example.com/ana.png"},
    "token-juan": {"uid": "uid-juan", "email": "juan@example.com", "name": "Juan", "picture": None},
}


class FakeFirebaseAuth:
    """Stands in for firebase_admin.auth: a fixed token -> claims table."""

    def __init__(self, identities):
        self.identities = identities
        self.revoked = []

    def verify_id_token(self, token):
        if token not in self.identities:
            raise ValueError("invalid ID token")
        return dict(self.identities[token])

    def revoke_refresh_tokens(self, uid):
        self.revoked.append(uid)


class FakeBucket:
    """Records signed PUT requests sent through httpx and answers with a fixed status."""

    def __init__(self):
        self.requests = []
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    @property
    def keys(self):
        return [r.url.path.rsplit("/", 1)[-1] for r in self.requests]


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def firebase(monkeypatch):
    fake = FakeFirebaseAuth(IDENTITIES)
    monkeypatch.setattr(core.auth, "fb_auth", fake)
    monkeypatch.setattr(core.auth, "firebase_enabled", True)
    return fake


@pytest.fixture(autouse=True)
def s3_client(monkeypatch):
    # Presigning is pure local computation; no request ever leaves the process
    client = boto3.client(
        "s3",
        endpoint_url="https://r2.example.com",
        aws_access_key_id="test-key",
        aws_secret_access_key="test-secret",
        config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        region_name="auto",
    )
    monkeypatch.setattr(utils.storage, "s3", client)
    monkeypatch.setattr(utils.storage, "R2_BUCKET", TEST_BUCKET)
    monkeypatch.setattr(utils.storage, "R2_PUBLIC_DOMAIN", "")
    return client


@pytest.fixture
def fake_bucket(monkeypatch):
    bucket = FakeBucket()
    monkeypatch.setattr(
        utils.storage,
        "_http_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(bucket.handler)),
    )
    return bucket


@pytest.fixture
def app():
    from main import app as fastapi_app
    fastapi_app.state.diagnostics.clear()
    return fastapi_app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def ana():
    return {"Authorization": "Bearer token-ana"}


@pytest.fixture
def juan():
    return {"Authorization": "Bearer token-juan"}


@pytest.fixture
def shop(client, ana):
    r = client.post(
        "/api/shops",
        json={
            "name": "Modas Ana",
            "description": "Ropa usada en buen estado",
            "whatsapp": "+54 9 11 1234-5678",
            "location": "Palermo, CABA",
            "alias": "modas.ana.mp",
            "cbu": "0000003100010000000001",
        },
        headers=ana,
    )
    assert r.status_code == 200, r.text
    return r.json()["shop"]


@pytest.fixture
def product(client, ana, shop, fake_bucket):
    r = client.post(
        f"/api/shops/{shop['id']}/products",
        data={"title": "Campera de jean", "description": "Talle M", "price": "1500", "condition": "used"},
        files=[("files", ("campera.jpg", b"\xff\xd8fake-jpeg", "image/jpeg"))],
        headers=ana,
    )
    assert r.status_code == 200, r.text
    return r.json()["product"]
