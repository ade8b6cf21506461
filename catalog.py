"""
Product catalog: listing, search, lookup and reseeding from an external provider
"""

import logging
import random
import re
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pymongo import ASCENDING
from pymongo.database import Database

from config import settings
from database import now, serialize_document, to_object_id
from errors import NotFound, ServerError, ValidationError
from schemas import Product as ProductSchema

logger = logging.getLogger(__name__)

PAGE_LIMIT = 10


class ProductRepository:
    def __init__(self, db: Database):
        self.collection = db["product"]

    def list_sorted(self, limit: int = PAGE_LIMIT) -> List[Dict[str, Any]]:
        cursor = self.collection.find({}).sort("name", ASCENDING).limit(limit)
        return [serialize_document(d) for d in cursor]

    def search(self, query: str, limit: int = PAGE_LIMIT) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"name": {"$regex": re.escape(query), "$options": "i"}}).limit(limit)
        return [serialize_document(d) for d in cursor]

    def get(self, product_id: str) -> Optional[Dict[str, Any]]:
        _id = to_object_id(product_id)
        if _id is None:
            return None
        doc = self.collection.find_one({"_id": _id})
        return serialize_document(doc) if doc else None

    def get_many(self, product_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Resolve ids to products; unknown or malformed ids are simply absent."""
        ids = [i for i in (to_object_id(p) for p in product_ids) if i is not None]
        if not ids:
            return {}
        docs = self.collection.find({"_id": {"$in": ids}})
        return {str(d["_id"]): serialize_document(d) for d in docs}

    def replace_all(self, products: List[ProductSchema]) -> int:
        self.collection.delete_many({})
        if not products:
            return 0
        stamp = now()
        docs = [{**p.model_dump(), "created_at": stamp, "updated_at": stamp} for p in products]
        result = self.collection.insert_many(docs)
        return len(result.inserted_ids)


def list_products(db: Database) -> List[Dict[str, Any]]:
    return ProductRepository(db).list_sorted()


def search_products(db: Database, query: Optional[str]) -> List[Dict[str, Any]]:
    if not query:
        raise ValidationError("A search term is required", errors={"query": "A search term is required"})
    return ProductRepository(db).search(query)


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    product = ProductRepository(db).get(product_id)
    if not product:
        raise NotFound("Product not found")
    return product


# -----------------------------
# Seeding from the external provider
# -----------------------------
def fetch_catalog(limit: int) -> List[Dict[str, Any]]:
    """Pull raw product entries from the provider."""
    with httpx.Client(timeout=settings.CATALOG_TIMEOUT_SECONDS) as client:
        resp = client.get(settings.CATALOG_SOURCE_URL, params={"limit": limit})
        resp.raise_for_status()
        return resp.json().get("products", [])


def to_product(item: Dict[str, Any]) -> ProductSchema:
    return ProductSchema(
        name=item.get("title") or "Untitled",
        # the provider's prices are not used
        price=round(random.uniform(10, 510), 2),
        description=item.get("description") or "",
        image_url=item.get("thumbnail") or "",
        additional_info={
            "category": item.get("category"),
            "brand": item.get("brand"),
            "rating": item.get("rating"),
            "stock": item.get("stock"),
        },
    )


def reset_products(db: Database) -> int:
    try:
        raw = fetch_catalog(settings.CATALOG_SEED_LIMIT)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Catalog provider request failed: %s", e)
        raise ServerError("Could not load products from the catalog provider")

    products = [to_product(item) for item in raw]
    count = ProductRepository(db).replace_all(products)
    logger.info("Catalog reseeded with %d products", count)
    return count
