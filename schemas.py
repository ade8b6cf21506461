"""
Database Schemas

MongoDB collection schemas and API payloads, defined as Pydantic models.
Model name is converted to lowercase for the collection name:
- User -> "user" collection
- Product -> "product" collection
- Cart -> "cart" collection

Documents are stored in snake_case; API payloads use camelCase aliases.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# USERS
# -----------------------------
class User(BaseModel):
    email: str = Field(..., description="Email address, unique, matched exactly")
    password_hash: str = Field(..., description="BCrypt hashed password")
    first_name: str
    last_name: str
    address: str
    auth_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_version: int = Field(0, description="Bumped on every token pair write")


class RegisterInput(ApiModel):
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    first_name: str = ""
    last_name: str = ""
    address: str = ""


class LoginInput(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginOut(ApiModel):
    user_id: str
    first_name: str
    last_name: str
    email: str
    auth_token: str
    refresh_token: str


class MessageOut(ApiModel):
    message: str


# -----------------------------
# PRODUCTS
# -----------------------------
class Product(BaseModel):
    name: str = Field(..., description="Product name")
    price: float = Field(..., ge=0, description="Price in dollars")
    description: str = Field("", description="Product description")
    image_url: str = Field("", description="Primary image URL")
    additional_info: Dict[str, Any] = Field(default_factory=dict, description="category, brand, rating, stock")


class ProductOut(ApiModel):
    id: str
    name: str
    price: float
    description: str = ""
    image_url: str = ""
    additional_info: Dict[str, Any] = Field(default_factory=dict)


class ResetOut(ApiModel):
    message: str
    count: int


# -----------------------------
# CART
# -----------------------------
class CartItem(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    selected: bool = True


class Cart(BaseModel):
    user_id: str
    items: List[CartItem] = Field(default_factory=list)
    version: int = 0


class AddToCartInput(ApiModel):
    product_id: str


class QuantityInput(ApiModel):
    quantity: Optional[StrictInt] = None


class SelectInput(ApiModel):
    selected: bool


class CartItemOut(ApiModel):
    product_id: str
    quantity: int
    selected: bool
    product: ProductOut


class CartOut(ApiModel):
    id: Optional[str] = None
    user_id: str
    items: List[CartItemOut] = Field(default_factory=list)


class CheckoutOut(ApiModel):
    message: str
    cart: CartOut
    purchased_items: int
