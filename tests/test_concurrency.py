# tests/test_concurrency.py
import asyncio

import httpx
import pytest

from titan_store.catalog import CatalogStore
from titan_store.config import Config
from titan_store.core import ProductIn, _make_product
from titan_store.database import CatalogConflict, InMemoryStorage, JsonFileStorage
from titan_store.main import create_app
from titan_store.models import Catalog

CODE = "s3cret"


def _storages(tmp_path):
    return [InMemoryStorage(), JsonFileStorage(tmp_path / "products.json")]


def _product(title):
    return _make_product(ProductIn(title=title, description="x", price="$1"))


def test_unchecked_writes_lose_an_update(tmp_path):
    # two writers start from the same snapshot and write without a version check:
    # the second full-document rewrite silently discards the first writer's product
    for storage in _storages(tmp_path):
        first = storage.read()
        second = storage.read()

        first.catalog.products.append(_product("Alpha").to_dict())
        storage.write(first.catalog)
        second.catalog.products.append(_product("Beta").to_dict())
        storage.write(second.catalog)

        assert storage.read().catalog.ids() == ["beta"]


def test_checked_write_from_stale_snapshot_conflicts(tmp_path):
    for storage in _storages(tmp_path):
        first = storage.read()
        second = storage.read()

        first.catalog.products.append(_product("Alpha").to_dict())
        storage.write(first.catalog, expected_version=first.version)
        second.catalog.products.append(_product("Beta").to_dict())
        with pytest.raises(CatalogConflict):
            storage.write(second.catalog, expected_version=second.version)

        assert storage.read().catalog.ids() == ["alpha"]


def test_concurrent_creates_through_store_both_persist(tmp_path):
    for storage in _storages(tmp_path):
        store = CatalogStore(storage)

        async def _both():
            await asyncio.gather(
                store.create(ProductIn(title="Alpha", description="x", price="$1")),
                store.create(ProductIn(title="Beta", description="y", price="$2")),
            )

        asyncio.run(_both())
        assert sorted(store.load().ids()) == ["alpha", "beta"]


async def _create_task(app, title):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.post(
            "/api/admin/products",
            json={"title": title, "description": "x", "price": "$1"},
            headers={"X-Admin-Code": CODE},
        )


def test_concurrent_creates_over_http(tmp_path):
    app = create_app(Config(ADMIN_SECURITY_CODE=CODE), JsonFileStorage(tmp_path / "products.json"))

    async def _run():
        return await asyncio.gather(*(_create_task(app, f"Product {i}") for i in range(5)))

    results = asyncio.run(_run())
    assert [r.status_code for r in results] == [200] * 5

    transport = httpx.ASGITransport(app=app)

    async def _read():
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            return (await ac.get("/data/products.json")).json()

    ids = sorted(p["id"] for p in asyncio.run(_read())["products"])
    assert ids == [f"product-{i}" for i in range(5)]


def test_conflict_from_another_writer_is_409(tmp_path):
    path = tmp_path / "products.json"

    class InterleavedStorage(JsonFileStorage):
        # another process rewrites the document right after every read
        def read(self):
            snap = super().read()
            JsonFileStorage(self.path).write(Catalog(products=[_product("Intruder")]))
            return snap

    app = create_app(Config(ADMIN_SECURITY_CODE=CODE), InterleavedStorage(path))
    r = asyncio.run(_create_task(app, "Alpha"))
    assert r.status_code == 409
    assert r.json() == {"error": "Catalog changed, retry"}
