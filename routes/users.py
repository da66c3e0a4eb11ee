from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pymongo.database import Database

from config import Settings, get_settings
from database import (
    check_object_id,
    create_document,
    delete_document,
    get_db,
    get_documents,
    to_public,
    update_document,
)
from schemas import LoginRequest, ProfileUpdate, RegisterRequest, UserAdminUpdate, UserOut
from security import (
    USER_PUBLIC_PROJECTION,
    AuthUser,
    admin,
    find_user,
    find_user_by_id,
    hash_modified_password,
    protect,
    token_for,
    verify_password,
)

router = APIRouter()


def user_out(doc: dict) -> dict:
    return UserOut(**to_public(doc)).model_dump()


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        "jwt",
        token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.jwt_expires_minutes * 60,
    )


def ensure_email_free(db: Database, email: str, user_id: Optional[str] = None) -> None:
    existing = find_user(db, {"email": email})
    if existing and str(existing["_id"]) != user_id:
        raise HTTPException(status_code=400, detail="User already exists")


def get_user_or_404(db: Database, user_id: str) -> dict:
    user = find_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# Auth

@router.post("", status_code=201)
def register(
    body: RegisterRequest,
    response: Response,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ensure_email_free(db, body.email)
    user_id = create_document(db, "user", hash_modified_password(body.model_dump()))
    user = find_user_by_id(db, user_id)
    token = token_for(user, settings)
    set_auth_cookie(response, token, settings)
    return {**user_out(user), "token": token}


@router.post("/auth")
def login(
    body: LoginRequest,
    response: Response,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = find_user(db, {"email": body.email}, with_password=True)
    if not user or not verify_password(body.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = token_for(user, settings)
    set_auth_cookie(response, token, settings)
    user.pop("password", None)
    return {**user_out(user), "token": token}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie("jwt")
    return {"message": "Logged out successfully"}


# Profile

@router.get("/profile")
def get_profile(user: AuthUser = Depends(protect), db: Database = Depends(get_db)):
    return user_out(get_user_or_404(db, user.id))


@router.put("/profile")
def update_profile(
    body: ProfileUpdate,
    user: AuthUser = Depends(protect),
    db: Database = Depends(get_db),
):
    changes = body.model_dump(exclude_none=True)
    if "email" in changes:
        ensure_email_free(db, changes["email"], user.id)
    updated = update_document(db, "user", user.id, hash_modified_password(changes), USER_PUBLIC_PROJECTION)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return user_out(updated)


# Admin

@router.get("", dependencies=[Depends(protect), Depends(admin)])
def list_users(db: Database = Depends(get_db)):
    return [user_out(d) for d in get_documents(db, "user", projection=USER_PUBLIC_PROJECTION)]


@router.get(
    "/{user_id}",
    dependencies=[Depends(protect), Depends(admin), Depends(check_object_id("user_id"))],
)
def get_user(user_id: str, db: Database = Depends(get_db)):
    return user_out(get_user_or_404(db, user_id))


@router.put(
    "/{user_id}",
    dependencies=[Depends(protect), Depends(admin), Depends(check_object_id("user_id"))],
)
def update_user(user_id: str, body: UserAdminUpdate, db: Database = Depends(get_db)):
    get_user_or_404(db, user_id)
    changes = body.model_dump(exclude_none=True)
    if "email" in changes:
        ensure_email_free(db, changes["email"], user_id)
    return user_out(update_document(db, "user", user_id, changes, USER_PUBLIC_PROJECTION))


@router.delete(
    "/{user_id}",
    dependencies=[Depends(protect), Depends(admin), Depends(check_object_id("user_id"))],
)
def delete_user(user_id: str, db: Database = Depends(get_db)):
    user = get_user_or_404(db, user_id)
    if user.get("role") == "admin":
        raise HTTPException(status_code=400, detail="Can not delete admin user")
    delete_document(db, "user", user_id)
    return {"message": "User removed"}
