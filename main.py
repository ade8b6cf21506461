import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

import database
from cart import CartService
from catalog import get_product, list_products, reset_products, search_products
from config import settings
from database import get_db
from errors import AppError, ErrorKind
from schemas import (
    AddToCartInput,
    CartOut,
    CheckoutOut,
    LoginInput,
    LoginOut,
    MessageOut,
    ProductOut,
    QuantityInput,
    RegisterInput,
    ResetOut,
    SelectInput,
)
from session import REFRESH_HEADER, require_user, rotation_headers
from users import login, logout, register

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.check_connection(database.db)
        database.ensure_indexes(database.db)
    except Exception:
        logger.critical("Could not reach the database at startup", exc_info=True)
        raise
    logger.info("Connected to database %s", settings.DATABASE_NAME)
    yield
    database.client.close()
    logger.info("Database connection closed")


app = FastAPI(title="Ecommerce API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Authorization", REFRESH_HEADER],
)


# -----------------------------
# Error handling
# -----------------------------
@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    if exc.kind == ErrorKind.SERVER:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=rotation_headers(request))


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body"
        errors.setdefault(field, err.get("msg", "Invalid value"))
    message = next(iter(errors.values()), "Invalid request")
    content = {"detail": message, "kind": ErrorKind.VALIDATION.value, "errors": errors}
    return JSONResponse(status_code=400, content=content, headers=rotation_headers(request))


@app.exception_handler(PyMongoError)
async def handle_database_error(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    content = {"detail": "Internal server error", "kind": ErrorKind.SERVER.value}
    return JSONResponse(status_code=500, content=content, headers=rotation_headers(request))


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "Internal server error", "kind": ErrorKind.SERVER.value}
    return JSONResponse(status_code=500, content=content, headers=rotation_headers(request))


# -----------------------------
# Basic routes
# -----------------------------
@app.get("/")
def read_root():
    return {"message": "Ecommerce backend is running"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.DATABASE_URL else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        response["database_name"] = db.name
        collections = db.list_collection_names()
        response["collections"] = collections[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response


# -----------------------------
# User endpoints
# -----------------------------
@app.post("/users/register", status_code=201, response_model=MessageOut)
def register_user(payload: RegisterInput, db: Database = Depends(get_db)):
    register(db, payload)
    return MessageOut(message="User registered successfully")


@app.post("/users/login", response_model=LoginOut)
def login_user(payload: LoginInput, db: Database = Depends(get_db)):
    return login(db, payload.email, payload.password)


@app.post("/users/logout", response_model=MessageOut)
def logout_user(user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    logout(db, user_id)
    return MessageOut(message="Logged out successfully")


# -----------------------------
# Product endpoints
# -----------------------------
@app.get("/products", response_model=List[ProductOut])
def get_products(db: Database = Depends(get_db)):
    return list_products(db)


@app.get("/products/search", response_model=List[ProductOut])
def find_products(query: Optional[str] = None, db: Database = Depends(get_db)):
    return search_products(db, query)


@app.get("/products/{product_id}", response_model=ProductOut)
def get_product_by_id(product_id: str, db: Database = Depends(get_db)):
    return get_product(db, product_id)


@app.post("/products/reset", response_model=ResetOut)
def reset_catalog(user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    count = reset_products(db)
    return ResetOut(message="Product catalog reset successfully", count=count)


# -----------------------------
# Cart endpoints
# -----------------------------
@app.get("/cart", response_model=CartOut)
def get_cart(user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    return CartService(db, user_id).get()


@app.post("/cart/add", response_model=CartOut)
def add_to_cart(payload: AddToCartInput, user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    return CartService(db, user_id).add(payload.product_id)


@app.post("/cart/checkout", response_model=CheckoutOut)
def checkout(user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    return CartService(db, user_id).checkout()


@app.delete("/cart/{product_id}", response_model=CartOut)
def remove_from_cart(product_id: str, user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    return CartService(db, user_id).remove(product_id)


@app.put("/cart/{product_id}/quantity", response_model=CartOut)
def update_quantity(product_id: str, payload: QuantityInput, user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    return CartService(db, user_id).update_quantity(product_id, payload.quantity)


@app.put("/cart/{product_id}/select", response_model=CartOut)
def toggle_select(product_id: str, payload: SelectInput, user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    return CartService(db, user_id).toggle_select(product_id, payload.selected)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
