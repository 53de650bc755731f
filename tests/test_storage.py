import asyncio
import re
from urllib.parse import parse_qs, urlparse

import pytest

import utils.storage
from utils.storage import (
    StorageConfigError,
    StorageUploadError,
    apply_bucket_cors,
    cors_rules_for,
    mint_object_key,
    presign_download_url,
    presign_upload_url,
    resolve_image_url,
    upload_file,
)

TEST_BUCKET = "feria-test"


def test_object_key_keeps_extension_only():
    key = mint_object_key("Mi Foto.JPG")
    assert re.fullmatch(r"[0-9a-f-]{36}\.jpg", key)
    assert mint_object_key("sin_extension").endswith(".bin")
    assert mint_object_key(None).endswith(".bin")
    assert mint_object_key("a.jpg") != mint_object_key("a.jpg")


def test_upload_url_expires_in_ten_minutes():
    url = presign_upload_url("abc.jpg", content_type="image/jpeg")
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    assert parsed.path == f"/{TEST_BUCKET}/abc.jpg"
    assert qs["X-Amz-Expires"] == ["600"]


def test_download_url_expires_in_one_hour():
    qs = parse_qs(urlparse(presign_download_url("abc.jpg")).query)
    assert qs["X-Amz-Expires"] == ["3600"]


def test_resolve_returns_absolute_urls_verbatim():
    assert resolve_image_url("https://firebasestorage.example.com/a.jpg") == "https://firebasestorage.example.com/a.jpg"


def test_resolve_empty_is_none():
    assert resolve_image_url("") is None
    assert resolve_image_url(None) is None


def test_resolve_key_uses_public_domain(monkeypatch):
    monkeypatch.setattr(utils.storage, "R2_PUBLIC_DOMAIN", "https://pub.example.r2.dev")
    assert resolve_image_url("abc.jpg") == "https://pub.example.r2.dev/abc.jpg"


def test_resolve_key_signs_without_public_domain():
    url = resolve_image_url("abc.jpg")
    assert url.startswith(f"https://r2.example.com/{TEST_BUCKET}/abc.jpg?")
    assert "X-Amz-Signature=" in url


def test_resolve_signing_failure_is_none(monkeypatch):
    monkeypatch.setattr(utils.storage, "s3", None)
    assert resolve_image_url("abc.jpg") is None


def test_presign_without_configuration_raises(monkeypatch):
    monkeypatch.setattr(utils.storage, "s3", None)
    with pytest.raises(StorageConfigError):
        presign_upload_url("abc.jpg")


def test_upload_puts_bytes_to_signed_url(fake_bucket):
    key = asyncio.run(upload_file(b"jpeg-bytes", "foto.jpg", "image/jpeg"))
    assert key.endswith(".jpg")
    [req] = fake_bucket.requests
    assert req.method == "PUT"
    assert req.url.path == f"/{TEST_BUCKET}/{key}"
    assert req.headers["content-type"] == "image/jpeg"
    assert req.content == b"jpeg-bytes"


def test_upload_failure_carries_status(fake_bucket):
    fake_bucket.status_code = 403
    with pytest.raises(StorageUploadError) as exc:
        asyncio.run(upload_file(b"x", "foto.jpg", "image/jpeg"))
    assert exc.value.status_code == 403
    assert str(exc.value) == "Error en subida: 403 Forbidden"


def test_cors_rules_for_origins():
    [rule] = cors_rules_for(["https://feria.example.com", " "])
    assert rule["AllowedOrigins"] == ["https://feria.example.com"]
    assert set(rule["AllowedMethods"]) == {"GET", "PUT", "POST", "DELETE", "HEAD"}
    assert cors_rules_for()[0]["AllowedOrigins"] == ["*"]


def test_apply_bucket_cors(monkeypatch):
    calls = []

    class Recorder:
        def put_bucket_cors(self, **kwargs):
            calls.append(kwargs)

    monkeypatch.setattr(utils.storage, "s3", Recorder())
    result = apply_bucket_cors(["https://feria.example.com"])
    assert calls[0]["Bucket"] == TEST_BUCKET
    assert calls[0]["CORSConfiguration"]["CORSRules"] == result["rules"]


def test_upload_url_endpoint(client, ana):
    r = client.post("/api/storage/upload-url", json={"filename": "foto.png", "contentType": "image/png"}, headers=ana)
    assert r.status_code == 200
    body = r.json()
    assert body["key"].endswith(".png")
    assert body["expiresIn"] == 600
    assert body["key"] in body["uploadUrl"]


def test_upload_url_endpoint_requires_auth(client):
    r = client.post("/api/storage/upload-url", json={"filename": "foto.png"})
    assert r.status_code == 401


def test_upload_url_endpoint_unconfigured(client, ana, monkeypatch):
    monkeypatch.setattr(utils.storage, "s3", None)
    r = client.post("/api/storage/upload-url", json={"filename": "foto.png"}, headers=ana)
    assert r.status_code == 500
    assert r.json()["error"] == "storage_not_configured"


def test_display_url_endpoint(client, ana, monkeypatch):
    monkeypatch.setattr(utils.storage, "R2_PUBLIC_DOMAIN", "https://cdn.example.com")
    assert client.get("/api/storage/url", params={"key": "abc.jpg"}, headers=ana).json() == {"url": "https://cdn.example.com/abc.jpg"}


def test_display_url_requires_login(client, monkeypatch):
    monkeypatch.setattr(utils.storage, "R2_PUBLIC_DOMAIN", "https://cdn.example.com")
    r = client.get("/api/storage/url", params={"key": "abc.jpg"})
    assert r.status_code == 401
    assert r.json()["error"] == "unauthorized"
