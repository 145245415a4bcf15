# tests/test_api.py
import json

from fastapi.testclient import TestClient

from titan_store.config import Config
from titan_store.database import InMemoryStorage, JsonFileStorage, StorageWriteError
from titan_store.main import create_app
from titan_store.models import Catalog, Product

CODE = "s3cret"
ADMIN = {"X-Admin-Code": CODE}


def make_client(storage=None):
    config = Config(ADMIN_SECURITY_CODE=CODE, WHATSAPP_NUMBER="111", CALL_NUMBER="222")
    return TestClient(create_app(config, storage or InMemoryStorage()))


def seeded_client():
    return make_client(InMemoryStorage(Catalog(products=[
        Product(id="p1", title="Alpha", description="Chocolate whey", price="$39.99"),
        Product(id="p2", title="Bravo", description="Mass gainer", category="gainer"),
    ])))


def test_verify_admin_code():
    client = make_client()
    r = client.post("/api/admin/verify", json={"code": CODE})
    assert r.status_code == 200
    assert r.json() == {"success": True}

    for bad in ({"code": CODE + "x"}, {"code": ""}, {}):
        r = client.post("/api/admin/verify", json=bad)
        assert r.status_code == 401
        assert r.json() == {"error": "Invalid code"}


def test_verify_admin_non_object_body_is_invalid_code():
    client = make_client()
    for body in ("abc", [], [CODE], 42, None, {"code": 123}, {"code": [CODE]}):
        r = client.post("/api/admin/verify", json=body)
        assert r.status_code == 401
        assert r.json() == {"error": "Invalid code"}


def test_verify_admin_malformed_body_is_server_error():
    client = make_client()
    r = client.post("/api/admin/verify", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 500
    assert r.json() == {"error": "Server error"}


def test_read_catalog_document():
    client = seeded_client()
    for path in ("/data/products.json", "/api/admin/products"):
        r = client.get(path)
        assert r.status_code == 200
        assert [p["id"] for p in r.json()["products"]] == ["p1", "p2"]


def test_create_assigns_id_and_returns_catalog():
    client = make_client()
    r = client.post("/api/admin/products", json={"title": "Whey Blast", "description": "x", "price": "$1"}, headers=ADMIN)
    assert r.status_code == 200
    r = client.post("/api/admin/products", json={"id": "", "title": "Pro  Max", "description": "y", "price": "$2"}, headers=ADMIN)
    assert [p["id"] for p in r.json()["products"]] == ["whey-blast", "pro-max"]


def test_writes_require_admin_code():
    client = seeded_client()
    product = {"id": "p1", "title": "Changed", "description": "x", "price": "$1"}
    for headers in ({}, {"X-Admin-Code": "wrong"}):
        assert client.post("/api/admin/products", json=product, headers=headers).status_code == 401
        assert client.put("/api/admin/products", json=product, headers=headers).status_code == 401
        r = client.delete("/api/admin/products/p1", headers=headers)
        assert r.status_code == 401
        assert r.json() == {"error": "Invalid code"}
    assert client.get("/data/products.json").json()["products"][0]["title"] == "Alpha"


def test_create_requires_price():
    client = make_client()
    r = client.post("/api/admin/products", json={"title": "No Price", "description": "x"}, headers=ADMIN)
    assert r.status_code == 400
    assert r.json() == {"error": "Failed to add product"}


def test_create_rejects_unsafe_id():
    client = make_client()
    r = client.post("/api/admin/products", json={"title": "Pro/Max", "description": "x", "price": "$1"}, headers=ADMIN)
    assert r.status_code == 400
    assert client.get("/data/products.json").json() == {"products": []}


def test_update_in_place_and_unknown_id():
    client = seeded_client()
    r = client.put("/api/admin/products", json={"id": "p2", "title": "Bravo 2", "description": "new"}, headers=ADMIN)
    assert r.status_code == 200
    products = r.json()["products"]
    assert [p["id"] for p in products] == ["p1", "p2"]
    assert products[1]["title"] == "Bravo 2"

    r = client.put("/api/admin/products", json={"id": "ghost", "title": "Ghost", "description": "x"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["products"] == products


def test_writes_leave_other_records_as_stored(tmp_path):
    path = tmp_path / "products.json"
    legacy = {"id": "legacy", "title": "Legacy", "description": "old", "price": 39.99, "rating": 5}
    path.write_text(json.dumps({"products": [legacy]}), encoding="utf-8")
    client = make_client(JsonFileStorage(path))

    r = client.post("/api/admin/products", json={"title": "Fresh", "description": "x", "price": "$1"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["products"][0] == legacy
    assert json.loads(path.read_text(encoding="utf-8"))["products"][0] == legacy


def test_update_malformed_body():
    client = seeded_client()
    r = client.put("/api/admin/products", json={"title": "no id"}, headers=ADMIN)
    assert r.status_code == 400
    assert r.json() == {"error": "Failed to update product"}


def test_delete():
    client = seeded_client()
    r = client.delete("/api/admin/products/p1", headers=ADMIN)
    assert r.status_code == 200
    assert [p["id"] for p in r.json()["products"]] == ["p2"]
    r = client.delete("/api/admin/products/p1", headers=ADMIN)
    assert [p["id"] for p in r.json()["products"]] == ["p2"]


def test_public_verification():
    client = seeded_client()
    assert client.get("/verify", params={"code": "p1"}).json() == {"verified": True, "title": "Alpha"}
    assert client.get("/verify", params={"code": "p9"}).json() == {"verified": False, "title": None}
    assert client.get("/verify").json() == {"verified": False, "title": None}


def test_storefront_search_and_detail():
    client = seeded_client()
    r = client.get("/products", params={"search": "gainer"})
    assert [p["id"] for p in r.json()["products"]] == ["p2"]

    r = client.get("/products/p1")
    assert r.status_code == 200
    body = r.json()
    assert body["product"]["title"] == "Alpha"
    assert [p["id"] for p in body["related"]] == ["p2"]
    assert body["whatsapp_link"] == "https://wa.me/111?text=Hi!%20I%20want%20to%20buy%20Alpha"
    assert body["call_link"] == "tel:222"

    r = client.get("/products/unknown")
    assert r.status_code == 404
    assert r.json() == {"error": "product not found"}


class BrokenStorage(InMemoryStorage):
    def write(self, catalog, expected_version=None):
        raise StorageWriteError("disk full")


def test_write_failure_is_server_error():
    client = make_client(BrokenStorage())
    r = client.post("/api/admin/products", json={"title": "A", "description": "x", "price": "$1"}, headers=ADMIN)
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to add product"}
    r = client.delete("/api/admin/products/a", headers=ADMIN)
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to delete product"}


def test_corrupt_document_reads_as_empty(tmp_path):
    path = tmp_path / "products.json"
    path.write_text("this is not json", encoding="utf-8")
    client = make_client(JsonFileStorage(path))
    assert client.get("/data/products.json").json() == {"products": []}

    r = client.post("/api/admin/products", json={"title": "Fresh", "description": "x", "price": "$1"}, headers=ADMIN)
    assert r.status_code == 200
    assert [p["id"] for p in r.json()["products"]] == ["fresh"]


def test_health():
    assert make_client().get("/health").json() == {"status": "ok"}
