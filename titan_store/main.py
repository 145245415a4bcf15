# titan_store/main.py
import logging
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import AdminGate
from .catalog import CatalogStore, lookup, product_detail, search
from .config import Config, configure_logging
from .core import ProductIn
from .database import CatalogConflict, CatalogStorage, JsonFileStorage, StorageWriteError
from .models import Product

logger = logging.getLogger(__name__)

ADMIN_PRODUCTS = "/api/admin/products"
ADMIN_VERIFY = "/api/admin/verify"

# generic per-operation failure messages on the admin catalog routes
_FAILURE_MESSAGES = {
    "POST": "Failed to add product",
    "PUT": "Failed to update product",
    "DELETE": "Failed to delete product",
}


def _failure_message(request: Request) -> str:
    if request.url.path == ADMIN_VERIFY:
        return "Server error"
    return _FAILURE_MESSAGES.get(request.method, "Request failed")


# ---------------------------
# Dependencies
# ---------------------------
def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def require_admin(request: Request, x_admin_code: Optional[str] = Header(None)) -> None:
    if not request.app.state.gate.verify(x_admin_code):
        logger.warning("rejected admin request %s %s", request.method, request.url.path)
        raise HTTPException(status_code=401, detail="Invalid code")


def create_app(config: Optional[Config] = None, storage: Optional[CatalogStorage] = None) -> FastAPI:
    config = config or Config()
    config.validate()
    storage = storage or JsonFileStorage(config.PRODUCTS_FILE)

    app = FastAPI(title="titan-store catalog")
    app.state.config = config
    app.state.store = CatalogStore(storage)
    app.state.gate = AdminGate(config.ADMIN_SECURITY_CODE)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------
    # Error mapping
    # ---------------------------
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def malformed_request(request: Request, exc: RequestValidationError):
        logger.info("malformed request to %s %s: %s", request.method, request.url.path, exc.errors())
        status = 500 if request.url.path == ADMIN_VERIFY else 400
        return JSONResponse({"error": _failure_message(request)}, status_code=status)

    @app.exception_handler(StorageWriteError)
    async def write_failed(request: Request, exc: StorageWriteError):
        logger.error("catalog write failed: %s", exc)
        return JSONResponse({"error": _failure_message(request)}, status_code=500)

    @app.exception_handler(CatalogConflict)
    async def write_conflict(request: Request, exc: CatalogConflict):
        logger.warning("catalog write rejected: %s", exc)
        return JSONResponse({"error": "Catalog changed, retry"}, status_code=409)

    # ---------------------------
    # Public catalog reads
    # ---------------------------
    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/data/products.json")
    async def catalog_document(store: CatalogStore = Depends(get_store)):
        return store.load().to_dict()

    @app.get("/products")
    async def list_products(search_term: Optional[str] = Query(None, alias="search"), store: CatalogStore = Depends(get_store)):
        return {"products": search(store.load(), search_term)}

    @app.get("/products/{product_id}")
    async def get_product(product_id: str, store: CatalogStore = Depends(get_store)):
        detail = product_detail(store.load(), product_id, config.WHATSAPP_NUMBER, config.CALL_NUMBER)
        if detail is None:
            raise HTTPException(status_code=404, detail="product not found")
        return detail.model_dump()

    @app.get("/verify")
    async def verify_product(code: Optional[str] = None, store: CatalogStore = Depends(get_store)):
        return lookup(store.load(), code).model_dump()

    # ---------------------------
    # Admin endpoints
    # ---------------------------
    @app.post(ADMIN_VERIFY)
    async def verify_admin(request: Request, payload: Any = Body(None)):
        # any well-formed body without a string "code" counts as a missing code
        code = payload.get("code") if isinstance(payload, dict) else None
        if request.app.state.gate.verify(code if isinstance(code, str) else None):
            return {"success": True}
        logger.warning("invalid admin code submitted")
        return JSONResponse({"error": "Invalid code"}, status_code=401)

    @app.get(ADMIN_PRODUCTS)
    async def admin_list_products(store: CatalogStore = Depends(get_store)):
        return store.load().to_dict()

    @app.post(ADMIN_PRODUCTS, dependencies=[Depends(require_admin)])
    async def admin_create_product(payload: ProductIn, store: CatalogStore = Depends(get_store)):
        try:
            catalog = await store.create(payload)
        except ValidationError as e:
            # title did not yield a usable id
            logger.info("rejected product %r: %s", payload.title, e.errors()[0].get("msg"))
            raise HTTPException(status_code=400, detail="Failed to add product")
        return catalog.to_dict()

    @app.put(ADMIN_PRODUCTS, dependencies=[Depends(require_admin)])
    async def admin_update_product(payload: Product, store: CatalogStore = Depends(get_store)):
        catalog = await store.update(payload)
        return catalog.to_dict()

    @app.delete(ADMIN_PRODUCTS + "/{product_id}", dependencies=[Depends(require_admin)])
    async def admin_delete_product(product_id: str, store: CatalogStore = Depends(get_store)):
        catalog = await store.delete(product_id)
        return catalog.to_dict()

    logger.info("catalog backed by %s", storage.key)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    config = Config()
    configure_logging(config.LOG_LEVEL)
    uvicorn.run(create_app(config), host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
