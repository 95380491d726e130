import jwt
import mongomock
import pytest
from fastapi.testclient import TestClient

import config
import database
import main
from auth import create_token, hash_password
from database import create_document
from schemas import Admin

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def mock_db(monkeypatch):
    mdb = mongomock.MongoClient()["supplements_test"]
    monkeypatch.setattr(database, "db", mdb)
    monkeypatch.setattr(main, "db", mdb)
    database.ensure_indexes()
    return mdb


@pytest.fixture
def cdn(monkeypatch):
    """Records Cloudinary uploads/deletes instead of calling the service."""
    store = {"uploaded": [], "deleted": [], "fail_upload": False, "fail_delete": False}

    def fake_upload(data, folder=None, **kwargs):
        if store["fail_upload"]:
            raise RuntimeError("cloudinary unavailable")
        public_id = f"{folder}/img{len(store['uploaded']) + 1}"
        store["uploaded"].append(public_id)
        return {"secure_url": f"https://res.cloudinary.com/demo/{public_id}.png", "public_id": public_id}

    def fake_destroy(public_id, **kwargs):
        if store["fail_delete"]:
            raise RuntimeError("cloudinary unavailable")
        store["deleted"].append(public_id)
        return {"result": "ok"}

    monkeypatch.setattr("cloudinary.uploader.upload", fake_upload)
    monkeypatch.setattr("cloudinary.uploader.destroy", fake_destroy)
    return store


@pytest.fixture
def client(mock_db, cdn):
    return TestClient(main.app)


@pytest.fixture
def admin_doc(mock_db):
    return create_document("admin", Admin(username="owner", password=hash_password("s3cret!"), name="Store Owner"))


@pytest.fixture
def admin_client(mock_db, cdn, admin_doc):
    token = create_token({"id": str(admin_doc["_id"]), "username": "owner", "isAdmin": True})
    c = TestClient(main.app)
    c.headers["Authorization"] = f"Bearer {token}"
    return c


@pytest.fixture
def product(admin_client):
    res = admin_client.post(
        "/api/products",
        data={"name": "Gold Standard Whey", "brandName": "ON", "category": "Protein", "price": "1000", "quantity": "10"},
    )
    assert res.status_code == 201
    return res.json()["product"]


def png_file(name="photo.png"):
    return (name, PNG, "image/png")


def expired_token(payload):
    return jwt.encode({**payload, "exp": 1}, config.JWT_SECRET, algorithm=config.JWT_ALGO)
