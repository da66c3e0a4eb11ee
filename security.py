from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, Header, HTTPException, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pymongo.database import Database

from config import Settings, get_settings
from database import get_db

JWT_ALG = "HS256"
BCRYPT_ROUNDS = 12

# Fields never returned by default user reads
USER_PUBLIC_PROJECTION = {"password": 0}

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


# --------------------- Passwords ---------------------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def hash_modified_password(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Pre-persist step for user writes.

    Hashes the password only when the change set carries one, so writes
    that leave the password alone never touch the stored hash.
    """
    if changes.get("password") is None:
        changes.pop("password", None)
        return changes
    changes["password"] = hash_password(changes["password"])
    return changes


# --------------------- Users ---------------------

def find_user(db: Database, query: dict, with_password: bool = False) -> Optional[dict]:
    projection = None if with_password else USER_PUBLIC_PROJECTION
    return db["user"].find_one(query, projection)


def find_user_by_id(db: Database, user_id: str, with_password: bool = False) -> Optional[dict]:
    if not ObjectId.is_valid(user_id):
        return None
    return find_user(db, {"_id": ObjectId(user_id)}, with_password)


# --------------------- Tokens ---------------------

def create_token(data: dict, settings: Settings) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=JWT_ALG)


def token_for(user: dict, settings: Settings) -> str:
    return create_token({"id": str(user["_id"]), "role": user.get("role", "user")}, settings)


class AuthUser(BaseModel):
    id: str
    email: str
    name: str
    role: str = "user"


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization:
        try:
            scheme, token = authorization.split()
        except ValueError:
            raise HTTPException(status_code=401, detail="Not authorized, token failed")
        if scheme.lower() != "bearer":
            raise HTTPException(status_code=401, detail="Not authorized, token failed")
        return token
    return request.cookies.get("jwt")


# --------------------- Guards ---------------------

def protect(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthUser:
    token = _extract_token(request, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Not authorized, no token")
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
    except JWTError:
        raise HTTPException(status_code=401, detail="Not authorized, token failed")
    user = find_user_by_id(db, str(payload.get("id", "")))
    if not user:
        raise HTTPException(status_code=401, detail="Not authorized, token failed")
    return AuthUser(
        id=str(user["_id"]),
        email=user["email"],
        name=user["name"],
        role=user.get("role", "user"),
    )


def admin(user: AuthUser = Depends(protect)) -> AuthUser:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized as admin")
    return user
