import pytest

import utils.storage
from models.product import Product


def _jpeg(name):
    return ("files", (name, b"\xff\xd8" + name.encode(), "image/jpeg"))


def _create(client, headers, shop_id, title="Mesa ratona", price="2500", **extra):
    data = {"title": title, "price": price, "description": "", "condition": "used"}
    data.update(extra.pop("data", {}))
    return client.post(f"/api/shops/{shop_id}/products", data=data, headers=headers, **extra)


def test_images_keep_upload_order(client, ana, shop, fake_bucket):
    r = _create(client, ana, shop["id"], files=[_jpeg("a.jpg"), _jpeg("b.jpg"), _jpeg("c.jpg")])
    assert r.status_code == 200, r.text
    product = r.json()["product"]
    assert len(product["images"]) == 3
    assert product["images"] == fake_bucket.keys
    assert [req.content for req in fake_bucket.requests] == [b"\xff\xd8a.jpg", b"\xff\xd8b.jpg", b"\xff\xd8c.jpg"]
    assert product["status"] == "available"
    assert product["price"] == 2500.0


def test_presigned_keys_can_be_attached(client, ana, shop, fake_bucket):
    r = _create(client, ana, shop["id"], data={"imageKeys": ["k1.jpg", "k2.jpg"]}, files=[_jpeg("c.jpg")])
    product = r.json()["product"]
    assert product["images"][:2] == ["k1.jpg", "k2.jpg"]
    assert product["images"][2] == fake_bucket.keys[0]


def test_at_least_one_image(client, ana, shop):
    r = _create(client, ana, shop["id"])
    assert r.status_code == 400
    assert r.json()["error"] == "images_required"


def test_too_many_images(client, ana, shop):
    keys = [f"k{i}.jpg" for i in range(11)]
    r = _create(client, ana, shop["id"], data={"imageKeys": keys})
    assert r.status_code == 400
    assert r.json()["error"] == "too_many_images"


def test_negative_price_rejected(client, ana, shop):
    r = _create(client, ana, shop["id"], price="-1", data={"imageKeys": ["k.jpg"]})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_price"


@pytest.mark.parametrize("price", ["inf", "-inf", "nan"])
def test_non_finite_price_rejected_before_upload(client, ana, shop, fake_bucket, db, price):
    r = _create(client, ana, shop["id"], price=price, files=[_jpeg("a.jpg")])
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_price"
    assert fake_bucket.keys == []
    assert db.query(Product).count() == 0


@pytest.mark.parametrize("price", ["inf", "nan"])
def test_update_rejects_non_finite_price(client, ana, product, db, price):
    r = client.put(f"/api/products/{product['id']}", data={"price": price}, headers=ana)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_price"
    db.expire_all()
    assert db.get(Product, product["id"]).price == 1500.0


def test_unknown_condition_rejected(client, ana, shop):
    r = _create(client, ana, shop["id"], data={"imageKeys": ["k.jpg"], "condition": "broken"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_condition"


def test_only_owner_can_add_products(client, juan, shop):
    r = _create(client, juan, shop["id"], data={"imageKeys": ["k.jpg"]})
    assert r.status_code == 403


def test_upload_failure_reports_status_and_cors_hint(client, ana, shop, fake_bucket, db):
    fake_bucket.status_code = 403
    r = _create(client, ana, shop["id"], files=[_jpeg("a.jpg")])
    assert r.status_code == 502
    body = r.json()
    assert body["error"] == "upload_failed"
    assert body["status"] == 403
    assert "403" in body["details"]
    assert "CORS" in body["details"]
    assert db.query(Product).count() == 0


def test_upload_without_storage_config(client, ana, shop, fake_bucket, monkeypatch):
    monkeypatch.setattr(utils.storage, "s3", None)
    r = _create(client, ana, shop["id"], files=[_jpeg("a.jpg")])
    assert r.status_code == 500
    assert r.json()["error"] == "storage_not_configured"


def test_listing_resolves_display_urls(client, ana, shop, fake_bucket, monkeypatch):
    monkeypatch.setattr(utils.storage, "R2_PUBLIC_DOMAIN", "https://cdn.example.com")
    _create(client, ana, shop["id"], data={"imageKeys": ["k1.jpg", "https://legacy.example.com/x.jpg"]})
    [item] = client.get(f"/api/shops/{shop['id']}/products").json()["products"]
    assert item["imageUrls"] == ["https://cdn.example.com/k1.jpg", "https://legacy.example.com/x.jpg"]
    assert item["thumbnail"] == "https://cdn.example.com/k1.jpg"


def test_sold_product_flow(client, ana, shop, product):
    pid = product["id"]
    r = client.post(f"/api/products/{pid}/sold", json={"confirmed": True, "buyerInfo": "Juan, seña 50%"}, headers=ana)
    assert r.status_code == 200
    sold = r.json()["product"]
    assert sold["status"] == "sold"
    assert sold["buyerInfo"] == "Juan, seña 50%"
    assert sold["soldAt"]

    public = client.get(f"/api/shops/{shop['id']}/products").json()
    assert public["isOwner"] is False
    assert public["products"] == []

    owner = client.get(f"/api/shops/{shop['id']}/products", headers=ana).json()
    assert owner["isOwner"] is True
    assert [p["id"] for p in owner["products"]] == [pid]

    r = client.post(f"/api/products/{pid}/available", headers=ana)
    back = r.json()["product"]
    assert back["status"] == "available"
    assert back["buyerInfo"] is None
    assert back["soldAt"] is None
    assert [p["id"] for p in client.get(f"/api/shops/{shop['id']}/products").json()["products"]] == [pid]


def test_sold_requires_confirmation(client, ana, product):
    r = client.post(f"/api/products/{product['id']}/sold", json={"buyerInfo": "Juan"}, headers=ana)
    assert r.status_code == 400
    assert r.json()["error"] == "confirmation_required"


def test_owner_sees_sold_products_last(client, ana, shop, product):
    newer = _create(client, ana, shop["id"], title="Lámpara", data={"imageKeys": ["l.jpg"]}).json()["product"]
    client.post(f"/api/products/{newer['id']}/sold", json={"confirmed": True}, headers=ana)
    owner = client.get(f"/api/shops/{shop['id']}/products", headers=ana).json()["products"]
    assert [p["id"] for p in owner] == [product["id"], newer["id"]]


def test_inactive_products_are_never_listed(client, ana, shop, product, db):
    db.query(Product).filter(Product.id == product["id"]).update({"status": "inactive"})
    db.commit()
    assert client.get(f"/api/shops/{shop['id']}/products", headers=ana).json()["products"] == []


def test_legacy_single_image_is_listed(client, shop, db):
    db.add(Product(id="legacy1", shop_id=shop["id"], title="Silla", price=100, images=[], image_url="https://old.example.com/silla.jpg"))
    db.commit()
    [item] = client.get(f"/api/shops/{shop['id']}/products").json()["products"]
    assert item["images"] == ["https://old.example.com/silla.jpg"]
    assert item["thumbnail"] == "https://old.example.com/silla.jpg"


def test_update_keeps_images_without_new_ones(client, ana, product):
    r = client.put(f"/api/products/{product['id']}", data={"title": "Campera de jean azul", "price": "1800"}, headers=ana)
    assert r.status_code == 200
    updated = r.json()["product"]
    assert updated["title"] == "Campera de jean azul"
    assert updated["price"] == 1800.0
    assert updated["images"] == product["images"]


def test_update_replaces_images(client, ana, product, fake_bucket):
    r = client.put(f"/api/products/{product['id']}", data={"imageKeys": ["n1.jpg", "n2.jpg"]}, headers=ana)
    assert r.json()["product"]["images"] == ["n1.jpg", "n2.jpg"]


def test_only_owner_can_edit(client, juan, product):
    assert client.put(f"/api/products/{product['id']}", data={"title": "x"}, headers=juan).status_code == 403
    assert client.delete(f"/api/products/{product['id']}", headers=juan).status_code == 403
    r = client.post(f"/api/products/{product['id']}/sold", json={"confirmed": True}, headers=juan)
    assert r.status_code == 403


def test_delete_product(client, ana, shop, product):
    r = client.delete(f"/api/products/{product['id']}", headers=ana)
    assert r.json() == {"success": True}
    assert client.get(f"/api/shops/{shop['id']}/products", headers=ana).json()["products"] == []
    assert client.delete(f"/api/products/{product['id']}", headers=ana).status_code == 404
