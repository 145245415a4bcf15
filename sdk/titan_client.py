# sdk/titan_client.py
import requests
import httpx
from typing import Optional, Dict, Any, List

from titan_store.catalog import lookup
from titan_store.database import parse_document
from titan_store.models import VerificationResult


class NotAuthenticated(Exception):
    pass


class StoreClient:
    """Public storefront reads."""

    def __init__(self, base_url: str = "http://localhost:8085", timeout: int = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def catalog(self) -> List[Dict[str, Any]]:
        r = self.session.get(f"{self.base_url}/data/products.json", timeout=self.timeout)
        r.raise_for_status()
        return r.json()["products"]

    def list_products(self, search: Optional[str] = None):
        params = {}
        if search:
            params["search"] = search
        r = self.session.get(f"{self.base_url}/products", params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["products"]

    def get_product(self, product_id: str):
        r = self.session.get(f"{self.base_url}/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def verify_product(self, code: str) -> VerificationResult:
        # scanned on this side, the same way the verify page does it
        r = self.session.get(f"{self.base_url}/data/products.json", timeout=self.timeout)
        r.raise_for_status()
        return lookup(parse_document(r.content, self.base_url), code)


class AdminSession(StoreClient):
    """
    One admin "page session". Holds the authenticated flag in memory only:
    a new session always starts locked, nothing is persisted or expired.
    """

    def __init__(self, base_url: str = "http://localhost:8085", timeout: int = 10, session: Optional[requests.Session] = None):
        super().__init__(base_url, timeout, session)
        self.authenticated = False
        self._code: Optional[str] = None

    def login(self, code: str) -> bool:
        r = self.session.post(f"{self.base_url}/api/admin/verify", json={"code": code}, timeout=self.timeout)
        if r.status_code == 401:
            self.authenticated = False
            return False
        r.raise_for_status()
        self.authenticated = True
        self._code = code
        self.session.headers.update({"X-Admin-Code": code})
        return True

    def _require_auth(self):
        if not self.authenticated:
            raise NotAuthenticated("log in with the admin security code first")

    # Admin: catalog writes. Each returns the full updated product list.
    def add_product(self, product: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._require_auth()
        r = self.session.post(f"{self.base_url}/api/admin/products", json=product, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["products"]

    def update_product(self, product: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._require_auth()
        r = self.session.put(f"{self.base_url}/api/admin/products", json=product, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["products"]

    def delete_product(self, product_id: str) -> List[Dict[str, Any]]:
        self._require_auth()
        r = self.session.delete(f"{self.base_url}/api/admin/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()["products"]

    # Async add (example)
    async def add_product_async(self, product: Dict[str, Any]) -> httpx.Response:
        self._require_auth()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.base_url}/api/admin/products", json=product, headers={"X-Admin-Code": self._code}
            )
            # do not raise_for_status() here: callers may want to inspect 409
            return r


if __name__ == "__main__":
    import argparse
    from rich import print

    parser = argparse.ArgumentParser(description="Titan store client")
    parser.add_argument("--base-url", default="http://127.0.0.1:8085")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---------------------------
    # Storefront commands
    # ---------------------------
    lp = subparsers.add_parser("list-products", help="List all products")
    lp.add_argument("--search", help="Filter by title, description or category")

    gp = subparsers.add_parser("get-product", help="Get a product with related items and contact links")
    gp.add_argument("--product-id", required=True)

    vp = subparsers.add_parser("verify", help="Check a scanned authenticity code")
    vp.add_argument("--code", required=True)

    # ---------------------------
    # Admin commands
    # ---------------------------
    ap = subparsers.add_parser("add-product", help="Add a product (admin)")
    ap.add_argument("--admin-code", required=True)
    ap.add_argument("--title", required=True)
    ap.add_argument("--description", required=True)
    ap.add_argument("--price", required=True, help='Pre-formatted price, e.g. "$39.99"')
    ap.add_argument("--category", default="protein")
    ap.add_argument("--id", default="", help="Defaults to the title, lower-cased and hyphenated")

    dp = subparsers.add_parser("delete-product", help="Delete a product (admin)")
    dp.add_argument("--admin-code", required=True)
    dp.add_argument("--product-id", required=True)

    args = parser.parse_args()

    if args.command == "list-products":
        print(StoreClient(args.base_url).list_products(args.search))

    elif args.command == "get-product":
        print(StoreClient(args.base_url).get_product(args.product_id))

    elif args.command == "verify":
        result = StoreClient(args.base_url).verify_product(args.code)
        if result.verified:
            print(f"[green]Genuine product:[/green] {result.title}")
        else:
            print("[red]Unable to verify this product[/red]")

    elif args.command in ("add-product", "delete-product"):
        admin = AdminSession(args.base_url)
        if not admin.login(args.admin_code):
            print("[red]Invalid security code[/red]")
            raise SystemExit(1)
        if args.command == "add-product":
            print(admin.add_product({
                "id": args.id, "title": args.title, "description": args.description,
                "price": args.price, "category": args.category,
            }))
        else:
            print(admin.delete_product(args.product_id))
