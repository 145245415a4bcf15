import logging
from typing import Any, Callable, List, Optional
from urllib.parse import quote

from .core import ProductIn, _make_product
from .database import CatalogStorage, _get_lock
from .models import Catalog, Product, ProductDetail, VerificationResult, record_id, record_text

# Catalog operations. Every mutation reads the whole document, changes it in
# memory and writes the whole document back, one writer at a time. Stored
# records pass through untouched; only the record being written is validated.

logger = logging.getLogger(__name__)


class CatalogStore:
    def __init__(self, storage: CatalogStorage):
        self.storage = storage
        self._lock = _get_lock(f"catalog:{storage.key}")

    def load(self) -> Catalog:
        return self.storage.read().catalog

    async def _mutate(self, change: Callable[[List[Any]], List[Any]]) -> Catalog:
        await self._lock.acquire()
        try:
            snap = self.storage.read()
            catalog = snap.catalog.model_copy(update={"products": change(list(snap.catalog.products))})
            self.storage.write(catalog, expected_version=snap.version)
            return catalog
        finally:
            self._lock.release()

    async def create(self, payload: ProductIn) -> Catalog:
        # no uniqueness check: a second product with the same id is appended as-is
        product = _make_product(payload)

        def _append(products: List[Any]) -> List[Any]:
            products.append(product.to_dict())
            return products

        catalog = await self._mutate(_append)
        logger.info("created product %s", product.id)
        return catalog

    async def update(self, product: Product) -> Catalog:
        def _replace(products: List[Any]) -> List[Any]:
            for i, p in enumerate(products):
                if record_id(p) == product.id:
                    products[i] = product.to_dict()
                    logger.info("updated product %s", product.id)
                    return products
            logger.info("update for unknown product %s left the catalog unchanged", product.id)
            return products

        return await self._mutate(_replace)

    async def delete(self, product_id: str) -> Catalog:
        removed = 0

        def _filter(products: List[Any]) -> List[Any]:
            nonlocal removed
            kept = [p for p in products if record_id(p) != product_id]
            removed = len(products) - len(kept)
            return kept

        catalog = await self._mutate(_filter)
        if removed:
            logger.info("deleted %d product(s) with id %s", removed, product_id)
        else:
            logger.info("delete for unknown product %s left the catalog unchanged", product_id)
        return catalog


# ---------------------------
# Public reads
# ---------------------------
def lookup(catalog: Catalog, code: Optional[str]) -> VerificationResult:
    """Report whether a scanned code is the id of a known product."""
    if not code:
        return VerificationResult(verified=False)
    for p in catalog.products:
        if record_id(p) == code:
            return VerificationResult(verified=True, title=record_text(p, "title"))
    return VerificationResult(verified=False)


def search(catalog: Catalog, term: Optional[str]) -> List[Any]:
    records = [p for p in catalog.products if isinstance(p, dict)]
    if not term or not term.strip():
        return records
    needle = term.lower()
    return [
        p for p in records
        if any(needle in record_text(p, key).lower() for key in ("title", "description", "category"))
    ]


def whatsapp_link(number: str, title: str) -> str:
    return f"https://wa.me/{number}?text=" + quote(f"Hi! I want to buy {title}", safe="!'()*")


def product_detail(catalog: Catalog, product_id: str, whatsapp_number: str, call_number: str) -> Optional[ProductDetail]:
    records = [p for p in catalog.products if isinstance(p, dict)]
    product = next((p for p in records if record_id(p) == product_id), None)
    if product is None:
        return None
    return ProductDetail(
        product=product,
        related=[p for p in records if record_id(p) != product_id],
        whatsapp_link=whatsapp_link(whatsapp_number, record_text(product, "title")),
        call_link=f"tel:{call_number}",
    )
