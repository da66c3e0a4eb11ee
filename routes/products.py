import math
import re
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database

from config import Settings, get_settings
from database import (
    check_object_id,
    create_document,
    delete_document,
    get_db,
    get_document,
    to_public,
    update_document,
    utcnow,
)
from schemas import Product, ProductCreate, ProductUpdate, Review, ReviewCreate
from security import AuthUser, admin, protect

router = APIRouter()

TOP_PRODUCTS = 3


def get_product_or_404(db: Database, product_id: str) -> dict:
    doc = get_document(db, "product", product_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Product not found")
    return doc


@router.get("")
def list_products(
    keyword: Optional[str] = None,
    page_number: int = 1,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    page_size = settings.page_size
    page = max(page_number, 1)
    query = {"name": {"$regex": re.escape(keyword), "$options": "i"}} if keyword else {}
    count = db["product"].count_documents(query)
    docs = db["product"].find(query).sort("created_at", -1).skip(page_size * (page - 1)).limit(page_size)
    return {
        "products": [to_public(d) for d in docs],
        "page": page,
        "pages": math.ceil(count / page_size),
    }


@router.post("", status_code=201, dependencies=[Depends(protect), Depends(admin)])
def create_product(
    body: Optional[ProductCreate] = None,
    user: AuthUser = Depends(protect),
    db: Database = Depends(get_db),
):
    body = body or ProductCreate()
    product = Product(user_id=user.id, **body.model_dump())
    product_id = create_document(db, "product", product)
    return to_public(get_document(db, "product", product_id))


@router.get("/top")
def top_products(db: Database = Depends(get_db)):
    docs = db["product"].find({}).sort("rating", -1).limit(TOP_PRODUCTS)
    return [to_public(d) for d in docs]


@router.get("/{product_id}", dependencies=[Depends(check_object_id("product_id"))])
def get_product(product_id: str, db: Database = Depends(get_db)):
    return to_public(get_product_or_404(db, product_id))


@router.put(
    "/{product_id}",
    dependencies=[Depends(protect), Depends(admin), Depends(check_object_id("product_id"))],
)
def update_product(product_id: str, body: ProductUpdate, db: Database = Depends(get_db)):
    get_product_or_404(db, product_id)
    changes = body.model_dump(exclude_none=True)
    return to_public(update_document(db, "product", product_id, changes))


@router.delete(
    "/{product_id}",
    dependencies=[Depends(protect), Depends(admin), Depends(check_object_id("product_id"))],
)
def delete_product(product_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, "product", product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    return {"message": "Product removed"}


@router.post(
    "/{product_id}/reviews",
    status_code=201,
    dependencies=[Depends(protect), Depends(check_object_id("product_id"))],
)
def create_review(
    product_id: str,
    body: ReviewCreate,
    user: AuthUser = Depends(protect),
    db: Database = Depends(get_db),
):
    product = get_product_or_404(db, product_id)
    reviews = product.get("reviews", [])
    if any(r.get("user_id") == user.id for r in reviews):
        raise HTTPException(status_code=400, detail="Product already reviewed")

    review = Review(user_id=user.id, name=user.name, rating=body.rating, comment=body.comment, created_at=utcnow())
    reviews.append(review.model_dump())
    rating = sum(r["rating"] for r in reviews) / len(reviews)
    db["product"].update_one(
        {"_id": ObjectId(product_id)},
        {"$set": {"reviews": reviews, "num_reviews": len(reviews), "rating": rating, "updated_at": utcnow()}},
    )
    return {"message": "Review added"}
