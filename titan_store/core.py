import re
from pydantic import BaseModel, ConfigDict
from typing import Optional, List

from .models import Product


class ProductIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = ""
    title: str
    description: str
    image: str = ""
    nutritionLabel: str = ""
    price: str
    category: str = "protein"
    flavour: Optional[str] = None
    detailedDescription: Optional[str] = None
    ingredients: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    usage: Optional[str] = None
    servings: Optional[str] = None
    weight: Optional[str] = None


_WHITESPACE = re.compile(r"\s+")


def product_id_from_title(title: str) -> str:
    """Lower-case the title and collapse every whitespace run into one hyphen."""
    return _WHITESPACE.sub("-", title.lower())


def _make_product(p: ProductIn) -> Product:
    data = p.model_dump(exclude_none=True)
    if not data.get("id"):
        data["id"] = product_id_from_title(p.title)
    return Product(**data)
