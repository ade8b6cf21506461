"""
User accounts: credential store, validation and the register/login/logout flows
"""

import logging
import re
from typing import Any, Dict, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import now, to_object_id
from errors import AuthenticationRequired, Conflict, ValidationError
from schemas import LoginOut, RegisterInput, User as UserSchema
from security import create_access_token, create_refresh_token, hash_password, verify_password

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
NAME_RE = re.compile(r"^[A-Za-z\s]+$")

INVALID_CREDENTIALS = "Invalid email or password"


def duplicate_email() -> Conflict:
    # shares the 400 of the other registration field errors
    return Conflict("Email already registered", errors={"email": "Email already registered"}, status_code=400)


# -----------------------------
# Validation
# -----------------------------
def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.search(email or ""))


def validate_password(password: str) -> bool:
    password = password or ""
    return len(password) >= 5 and re.search(r"[A-Z]", password) is not None and re.search(r"[a-z]", password) is not None


def validate_name(name: str) -> bool:
    return bool(NAME_RE.match(name or ""))


def validate_registration(data: RegisterInput) -> Dict[str, str]:
    """Collect every field error, keyed by the wire field name."""
    errors: Dict[str, str] = {}
    if not validate_email(data.email):
        errors["email"] = "Email must be a valid address"
    if not validate_password(data.password):
        errors["password"] = "Password must have at least 5 characters, one uppercase and one lowercase letter"
    if data.password != data.confirm_password:
        errors["confirmPassword"] = "Passwords do not match"
    if not validate_name(data.first_name):
        errors["firstName"] = "First name may only contain letters"
    if not validate_name(data.last_name):
        errors["lastName"] = "Last name may only contain letters"
    return errors


# -----------------------------
# Credential store
# -----------------------------
class UserRepository:
    def __init__(self, db: Database):
        self.collection = db["user"]

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"email": email})

    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        _id = to_object_id(user_id)
        if _id is None:
            return None
        return self.collection.find_one({"_id": _id})

    def create(self, user: UserSchema) -> str:
        data = user.model_dump()
        data["created_at"] = now()
        data["updated_at"] = now()
        result = self.collection.insert_one(data)
        return str(result.inserted_id)

    def update_tokens(self, user_id: str, auth_token: str, refresh_token: str) -> bool:
        """Overwrite the current pair unconditionally (login)."""
        result = self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {"auth_token": auth_token, "refresh_token": refresh_token, "updated_at": now()},
                "$inc": {"token_version": 1},
            },
        )
        return result.matched_count == 1

    def rotate_tokens(self, user: Dict[str, Any], presented_refresh: str, auth_token: str, refresh_token: str) -> bool:
        """Swap the pair only if nobody else replaced it since `user` was read."""
        result = self.collection.update_one(
            {
                "_id": user["_id"],
                "refresh_token": presented_refresh,
                "token_version": user.get("token_version", 0),
            },
            {
                "$set": {"auth_token": auth_token, "refresh_token": refresh_token, "updated_at": now()},
                "$inc": {"token_version": 1},
            },
        )
        return result.modified_count == 1

    def clear_tokens(self, user_id: str) -> bool:
        result = self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {"$unset": {"auth_token": "", "refresh_token": ""}, "$set": {"updated_at": now()}, "$inc": {"token_version": 1}},
        )
        return result.matched_count == 1


# -----------------------------
# Flows
# -----------------------------
def register(db: Database, data: RegisterInput) -> str:
    errors = validate_registration(data)
    if errors:
        raise ValidationError(next(iter(errors.values())), errors=errors)

    users = UserRepository(db)
    if users.find_by_email(data.email):
        raise duplicate_email()

    user = UserSchema(
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        address=data.address,
    )
    try:
        user_id = users.create(user)
    except DuplicateKeyError:
        # lost a race with a concurrent registration of the same email
        raise duplicate_email()
    logger.info("Registered user %s", user_id)
    return user_id


def login(db: Database, email: Optional[str], password: Optional[str]) -> LoginOut:
    if not email or not password:
        raise AuthenticationRequired(INVALID_CREDENTIALS)

    users = UserRepository(db)
    user = users.find_by_email(email)
    if not user or not verify_password(password, user.get("password_hash", "")):
        raise AuthenticationRequired(INVALID_CREDENTIALS)

    user_id = str(user["_id"])
    auth_token = create_access_token(user_id)
    refresh_token = create_refresh_token(user_id)
    users.update_tokens(user_id, auth_token, refresh_token)
    logger.info("User %s logged in", user_id)

    return LoginOut(
        user_id=user_id,
        first_name=user["first_name"],
        last_name=user["last_name"],
        email=user["email"],
        auth_token=auth_token,
        refresh_token=refresh_token,
    )


def logout(db: Database, user_id: Optional[str]) -> None:
    if not user_id:
        raise AuthenticationRequired("Authentication required")

    users = UserRepository(db)
    if not users.find_by_id(user_id):
        raise AuthenticationRequired("User not found")
    users.clear_tokens(user_id)
    logger.info("User %s logged out", user_id)
