import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from database import create_document
from main import create_app
from schemas import Product, User
from security import hash_modified_password, token_for

PASSWORD = "longenough1"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret="test-secret",
        environment="development",
        uploads_dir=tmp_path / "uploads",
        frontend_build_dir=tmp_path / "build",
        page_size=2,
    )


@pytest.fixture
def db():
    return mongomock.MongoClient()["ecommerce_test"]


@pytest.fixture
def app(settings, db):
    return create_app(settings, db)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(name="Jane Doe", email="jane@mail.com", password=PASSWORD, role="user"):
        user = User(name=name, email=email, password=password, role=role)
        user_id = create_document(db, "user", hash_modified_password(user.model_dump()))
        return db["user"].find_one({"_id": ObjectId(user_id)})
    return _make


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin_user(make_user):
    return make_user(name="Admin User", email="admin@mail.com", role="admin")


@pytest.fixture
def auth(settings):
    def _headers(user):
        return {"Authorization": f"Bearer {token_for(user, settings)}"}
    return _headers


@pytest.fixture
def make_product(db, admin_user):
    def _make(**overrides):
        data = {
            "user_id": str(admin_user["_id"]),
            "name": "Airpods Wireless Headphones",
            "image": "/images/airpods.jpg",
            "brand": "Apple",
            "category": "Electronics",
            "description": "Bluetooth technology lets you connect it with compatible devices",
            "price": 89.99,
            "count_in_stock": 10,
        }
        data.update(overrides)
        return create_document(db, "product", Product(**data))
    return _make
