# titan_store/models.py
import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any

# characters that would break the id as a path segment or query value
_UNSAFE_ID = re.compile(r"[\s/?#%]")


class Product(BaseModel):
    """A product as the admin writes it. Stored records are never re-validated."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    description: str
    image: str = ""
    nutritionLabel: str = ""
    price: Optional[str] = None
    category: str = "protein"
    flavour: Optional[str] = None
    detailedDescription: Optional[str] = None
    ingredients: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    usage: Optional[str] = None
    servings: Optional[str] = None
    weight: Optional[str] = None

    @field_validator("id")
    @classmethod
    def check_id_url_safe(cls, v: str) -> str:
        if not v:
            raise ValueError("id must not be empty")
        if _UNSAFE_ID.search(v):
            raise ValueError(f"id is not URL-safe: {v!r}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        # unset optionals stay out of the document
        return self.model_dump(exclude_none=True)


def record_id(record: Any) -> Any:
    return record.get("id") if isinstance(record, dict) else None


def record_text(record: Any, key: str) -> str:
    value = record.get(key) if isinstance(record, dict) else None
    return "" if value is None else str(value)


class Catalog(BaseModel):
    # records exactly as stored; the document is untyped at rest
    model_config = ConfigDict(extra="allow")

    products: List[Any] = Field(default_factory=list)

    @field_validator("products", mode="before")
    @classmethod
    def products_as_records(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [p.to_dict() if isinstance(p, Product) else p for p in v]
        return v

    def ids(self) -> List[Any]:
        return [record_id(p) for p in self.products]

    def to_dict(self) -> Dict[str, Any]:
        return {"products": list(self.products), **(self.model_extra or {})}


class VerificationResult(BaseModel):
    verified: bool
    title: Optional[str] = None


class ProductDetail(BaseModel):
    product: Dict[str, Any]
    related: List[Dict[str, Any]]
    whatsapp_link: str
    call_link: str
