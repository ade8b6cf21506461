"""
Shopping cart: per-user cart store and the operations on it

Every write is a compare-and-swap on the cart's `version`, so two
overlapping requests on the same cart cannot silently overwrite each
other; the loser gets a Conflict.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from catalog import ProductRepository
from database import now
from errors import AuthenticationRequired, Conflict, NotFound, ValidationError
from schemas import Cart as CartSchema, CartItem as CartItemSchema

logger = logging.getLogger(__name__)


class CartRepository:
    def __init__(self, db: Database):
        self.collection = db["cart"]

    def find(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"user_id": user_id})

    def get_or_create(self, user_id: str) -> Dict[str, Any]:
        # user_id comes from the filter on insert
        empty = CartSchema(user_id=user_id).model_dump(exclude={"user_id"})
        empty["created_at"] = now()
        try:
            return self.collection.find_one_and_update(
                {"user_id": user_id},
                {"$setOnInsert": empty},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # a concurrent request created it first
            return self.find(user_id)

    def save_items(self, cart: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
        version = cart.get("version", 0)
        result = self.collection.update_one(
            {"_id": cart["_id"], "version": version},
            {"$set": {"items": items, "updated_at": now()}, "$inc": {"version": 1}},
        )
        if result.matched_count == 0:
            raise Conflict("Cart was modified by another request, please retry")
        return {**cart, "items": items, "version": version + 1}


def _find_item(items: List[Dict[str, Any]], product_id: str) -> Optional[Dict[str, Any]]:
    for it in items:
        if it["product_id"] == product_id:
            return it
    return None


class CartService:
    def __init__(self, db: Database, user_id: Optional[str]):
        if not user_id:
            raise AuthenticationRequired("Authentication required")
        self.user_id = user_id
        self.carts = CartRepository(db)
        self.products = ProductRepository(db)

    # -----------------------------
    # Helpers
    # -----------------------------
    def _cart_or_404(self) -> Dict[str, Any]:
        cart = self.carts.find(self.user_id)
        if not cart:
            raise NotFound("Cart not found")
        return cart

    def _resolve(self, cart: Dict[str, Any]) -> Dict[str, Any]:
        """Attach product details and purge items whose product is gone."""
        items = cart.get("items", [])
        products = self.products.get_many(it["product_id"] for it in items)
        kept = [it for it in items if it["product_id"] in products]
        if len(kept) != len(items):
            cart = self.carts.save_items(cart, kept)
            logger.info("Removed %d missing products from cart of user %s", len(items) - len(kept), self.user_id)
        return {
            "id": str(cart["_id"]),
            "user_id": cart["user_id"],
            "items": [{**it, "product": products[it["product_id"]]} for it in kept],
        }

    # -----------------------------
    # Operations
    # -----------------------------
    def get(self) -> Dict[str, Any]:
        return self._resolve(self.carts.get_or_create(self.user_id))

    def add(self, product_id: str) -> Dict[str, Any]:
        if not self.products.get(product_id):
            raise NotFound("Product not found")
        cart = self.carts.get_or_create(self.user_id)
        items = [dict(it) for it in cart.get("items", [])]
        existing = _find_item(items, product_id)
        if existing:
            existing["quantity"] = int(existing.get("quantity", 1)) + 1
        else:
            items.append(CartItemSchema(product_id=product_id).model_dump())
        return self._resolve(self.carts.save_items(cart, items))

    def remove(self, product_id: str) -> Dict[str, Any]:
        cart = self.carts.get_or_create(self.user_id)
        items = [it for it in cart.get("items", []) if it["product_id"] != product_id]
        if len(items) != len(cart.get("items", [])):
            cart = self.carts.save_items(cart, items)
        return self._resolve(cart)

    def update_quantity(self, product_id: str, quantity: Optional[int]) -> Dict[str, Any]:
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1", errors={"quantity": "Quantity must be at least 1"})
        cart = self._cart_or_404()
        items = [dict(it) for it in cart.get("items", [])]
        item = _find_item(items, product_id)
        if not item:
            raise NotFound("Product not found in cart")
        item["quantity"] = quantity
        return self._resolve(self.carts.save_items(cart, items))

    def toggle_select(self, product_id: str, selected: bool) -> Dict[str, Any]:
        cart = self._cart_or_404()
        items = [dict(it) for it in cart.get("items", [])]
        item = _find_item(items, product_id)
        if not item:
            raise NotFound("Product not found in cart")
        item["selected"] = bool(selected)
        return self._resolve(self.carts.save_items(cart, items))

    def checkout(self) -> Dict[str, Any]:
        cart = self.carts.find(self.user_id)
        if not cart or not cart.get("items"):
            raise NotFound("Cart not found or empty")

        items = cart["items"]
        purchased = [it for it in items if it.get("selected", True)]
        if not purchased:
            raise ValidationError("No products selected for purchase")

        remaining = [it for it in items if not it.get("selected", True)]
        cart = self.carts.save_items(cart, remaining)
        logger.info("User %s checked out %d items", self.user_id, len(purchased))
        return {
            "message": "Purchase completed successfully",
            "cart": self._resolve(cart),
            "purchased_items": len(purchased),
        }
