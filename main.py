import json
import logging
import math
import os
import random
import re
import string
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from bson import ObjectId
from fastapi import Depends, FastAPI, File, Form, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

import config
from auth import (
    admin_claims,
    clear_admin_cookie,
    create_token,
    hash_password,
    require_admin,
    set_admin_cookie,
    verify_password,
)
from commerce import DISCOUNT_TYPES, discounted_price, evaluate_coupon, normalize_coupon_code, rating_summary
from database import db, create_document, get_documents, ensure_indexes, close_client
from errors import AuthError, ConflictError, NotFoundError, ValidationError, register_error_handlers
from schemas import (
    Admin as AdminSchema,
    CamelModel,
    CartItem,
    Category as CategorySchema,
    Contact as ContactSchema,
    Coupon as CouponSchema,
    Order as OrderSchema,
    PLACEHOLDER_IMAGE,
    Product as ProductSchema,
    Review as ReviewSchema,
    User as UserSchema,
)
from storage import ImageFile, delete_image, delete_images, read_image, read_images, upload_image

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes()
    yield
    close_client()


app = FastAPI(title="Supplements Store API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cookie"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# ----------------------- Utils -----------------------
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def now_utc():
    return datetime.now(timezone.utc)


def serialize_doc(doc):
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.get("_id")
    if isinstance(_id, ObjectId):
        doc["id"] = str(_id)
        del doc["_id"]
    # convert datetimes
    for k, v in list(doc.items()):
        if isinstance(v, datetime):
            doc[k] = v.isoformat()
    return doc


def public_user(doc):
    user = serialize_doc(doc)
    user.pop("password", None)
    return user


def oid(id_str: str) -> ObjectId:
    if not ObjectId.is_valid(id_str):
        raise ValidationError("Invalid ID")
    return ObjectId(id_str)


def find_product(key: str):
    """Look a product up by database id, then by its external productId."""
    product = None
    if ObjectId.is_valid(key):
        product = db["product"].find_one({"_id": ObjectId(key)})
    if not product:
        product = db["product"].find_one({"productId": key})
    return product


def new_product_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"PROD-{int(time.time() * 1000)}-{suffix}"


def parse_number(value, field: str, default=None):
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a number")
    return number


def parse_int(value, field: str, default=None):
    number = parse_number(value, field)
    return default if number is None else int(number)


def parse_bool(value) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


def _reject_constant(name):
    raise ValueError(f"{name} is not allowed")


def parse_json_list(value, field: str):
    if value is None or value == "":
        return None
    try:
        parsed = json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        raise ValidationError(f"{field} must be a JSON array")
    if not isinstance(parsed, list):
        raise ValidationError(f"{field} must be a JSON array")
    return parsed


def parse_product_list(value, field: str):
    """Parse a JSON array form field and check its items against the Product model."""
    parsed = parse_json_list(value, field)
    if parsed is None:
        return None
    try:
        return TypeAdapter(ProductSchema.model_fields[field].annotation).validate_python(parsed)
    except PydanticValidationError:
        raise ValidationError(f"Invalid {field} values")


def parse_discount_percent(value, default=None):
    percent = parse_number(value, "discountPercent", default)
    if percent is not None and not 0 <= percent <= 100:
        raise ValidationError("Discount percent must be between 0 and 100")
    return percent


def refresh_product_rating(product_id: str):
    """Recompute a product's aggregate rating from all of its reviews."""
    ratings = [r["rating"] for r in db["review"].find({"productId": product_id}, {"rating": 1})]
    summary = rating_summary(ratings)
    if not ObjectId.is_valid(product_id):
        return None
    updated = db["product"].find_one_and_update(
        {"_id": ObjectId(product_id)},
        {"$set": {"ratings": summary, "updatedAt": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_doc(updated)


def populate_wishlist(product_ids: List[str]) -> list:
    ids = [ObjectId(p) for p in product_ids if ObjectId.is_valid(p)]
    found = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": ids}})}
    return [serialize_doc(found[p]) for p in product_ids if p in found]


# ----------------------- Upload dependencies -----------------------
def category_image(image: Optional[UploadFile] = File(None)) -> Optional[ImageFile]:
    if image is None or not image.filename:
        return None
    return read_image(image, config.CATEGORY_IMAGE_MAX_BYTES)


def review_image(image: Optional[UploadFile] = File(None)) -> Optional[ImageFile]:
    if image is None or not image.filename:
        return None
    return read_image(image, config.REVIEW_IMAGE_MAX_BYTES)


def product_images_create(images: Optional[List[UploadFile]] = File(None)) -> List[ImageFile]:
    return read_images(images, config.PRODUCT_IMAGE_MAX_BYTES, config.PRODUCT_CREATE_MAX_IMAGES)


def product_images_update(images: Optional[List[UploadFile]] = File(None)) -> List[ImageFile]:
    return read_images(images, config.PRODUCT_IMAGE_MAX_BYTES, config.PRODUCT_UPDATE_MAX_IMAGES)


# ----------------------- Models -----------------------
class AdminLoginBody(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterBody(CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserLoginBody(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class WishlistBody(CamelModel):
    email: Optional[str] = None
    product_id: Optional[str] = None
    action: Optional[str] = None


class ByIdsBody(BaseModel):
    ids: Optional[List[Any]] = None


class OrderCreateBody(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    payment_method: Optional[str] = None
    cart_items: Optional[List[CartItem]] = None
    coupon_code: Optional[str] = None
    discount: Optional[float] = 0
    total_amount: Optional[float] = 0


class CouponCreateBody(CamelModel):
    code: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    expiry_date: Optional[datetime] = None
    usage_limit: Optional[int] = None
    min_purchase: Optional[float] = None


class ApplyCouponBody(CamelModel):
    code: Optional[str] = None
    cart_total: Optional[float] = None


class ContactBody(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    tel: Optional[str] = None
    subjects: Optional[Union[str, List[str]]] = None
    message: Optional[str] = None


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {"message": "Welcome to Shark Nutrition API"}


STORE_COLLECTIONS = ("product", "category", "review", "order", "coupon", "user", "contact")


@app.get("/test")
def test_database():
    """Report configuration and, when connected, document counts per store collection."""
    response = {
        "backend": "✅ Running",
        "environment": config.ENVIRONMENT,
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": config.DATABASE_NAME or "❌ Not Set",
        "collections": {},
    }
    if db is None:
        return response
    try:
        response["collections"] = {name: db[name].count_documents({}) for name in STORE_COLLECTIONS}
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        logger.warning("Database check failed: %s", e)
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# ----------------------- Admin -----------------------
@app.post("/api/admin/login")
def admin_login(body: AdminLoginBody, response: Response):
    logger.info("Admin login attempt: %s", body.username)
    admin = db["admin"].find_one({"username": body.username}) if body.username else None
    if not admin or not body.password or not verify_password(body.password, admin.get("password")):
        raise AuthError("Invalid credentials")

    sadmin = serialize_doc(admin)
    token = create_token({"id": sadmin["id"], "username": sadmin["username"], "isAdmin": True})
    set_admin_cookie(response, token)
    return {
        "success": True,
        "message": "Login successful",
        "admin": {"id": sadmin["id"], "username": sadmin["username"], "name": sadmin.get("name")},
        "token": token,
    }


@app.get("/api/admin/verify")
def admin_verify(claims: dict = Depends(admin_claims)):
    return {"success": True, "admin": claims}


@app.post("/api/admin/logout")
def admin_logout(response: Response):
    clear_admin_cookie(response)
    return {"success": True, "message": "Logged out successfully"}


@app.get("/api/admin/stats")
def admin_stats(admin=Depends(require_admin)):
    return {
        "totalUsers": db["user"].count_documents({}),
        "totalOrders": db["order"].count_documents({}),
        "totalProducts": db["product"].count_documents({}),
    }


# ----------------------- Users -----------------------
def validate_registration(body: RegisterBody) -> RegisterBody:
    if not body.full_name or not body.email or not body.password:
        raise ValidationError("Please fill in all required fields.")
    body.email = body.email.strip().lower()
    if db["user"].find_one({"email": body.email}):
        raise ConflictError("This email is already registered.")
    if not EMAIL_RE.match(body.email):
        raise ValidationError(f"{body.full_name}, your email format is invalid.")
    if len(body.password) < 6:
        raise ValidationError("Password must be at least 6 characters long.")
    return body


@app.post("/api/users/register", status_code=201)
def register(body: RegisterBody = Depends(validate_registration)):
    try:
        user = UserSchema(full_name=body.full_name.strip(), email=body.email, password=hash_password(body.password))
    except PydanticValidationError:
        raise ValidationError(f"{body.full_name}, your email format is invalid.")
    doc = create_document("user", user)
    return {
        "success": True,
        "message": f"{user.full_name}, your registration request was successful.",
        "register": True,
        "user": {"id": str(doc["_id"]), "fullName": user.full_name, "email": user.email},
    }


@app.post("/api/users/login")
def user_login(body: UserLoginBody):
    if not body.email or not body.password:
        raise ValidationError("Please fill in all required fields.", login=False)
    user = db["user"].find_one({"email": body.email.strip().lower()})
    if not user:
        raise AuthError("Incorrect email.", login=False)
    if not verify_password(body.password, user.get("password")):
        raise AuthError("Incorrect password.", login=False)

    profile = public_user(user)
    profile["wishlist"] = populate_wishlist(user.get("wishlist", []))
    return {
        "success": True,
        "message": f"{user['fullName']}, login successful",
        "login": True,
        **profile,
    }


@app.post("/api/users/wishlist")
def update_wishlist(body: WishlistBody):
    if not body.email or not body.product_id or not body.action:
        raise ValidationError("Email, productId and action are required")
    if body.action not in ("add", "remove"):
        raise ValidationError("Action must be 'add' or 'remove'")

    email = body.email.strip().lower()
    user = db["user"].find_one({"email": email})
    if not user:
        raise NotFoundError("User not found")
    wishlist = user.get("wishlist", [])

    if body.action == "add":
        if body.product_id in wishlist:
            raise ValidationError("Product already in wishlist")
        if not ObjectId.is_valid(body.product_id) or not db["product"].find_one({"_id": ObjectId(body.product_id)}):
            raise NotFoundError("Product not found")
        update = {"$push": {"wishlist": body.product_id}, "$set": {"updatedAt": now_utc()}}
        message = "Product added to wishlist successfully"
    else:
        if body.product_id not in wishlist:
            raise NotFoundError("Product not found in wishlist")
        update = {"$pull": {"wishlist": body.product_id}, "$set": {"updatedAt": now_utc()}}
        message = "Product removed from wishlist successfully"

    updated = db["user"].find_one_and_update({"_id": user["_id"]}, update, return_document=ReturnDocument.AFTER)
    return {"success": True, "message": message, "wishlist": populate_wishlist(updated.get("wishlist", []))}


@app.get("/api/users/wishlist")
@app.get("/api/users/wishlist/{email}")
def get_wishlist(email: Optional[str] = None):
    if not email:
        raise ValidationError("Email is required")
    user = db["user"].find_one({"email": email.strip().lower()})
    if not user:
        raise NotFoundError("User not found")
    return {"success": True, "wishlist": populate_wishlist(user.get("wishlist", []))}


@app.get("/api/users/getAllUsers")
def list_users(admin=Depends(require_admin)):
    users = get_documents("user")
    return {"success": True, "message": "All users retrieved successfully", "users": [public_user(u) for u in users]}


@app.get("/api/users/stats/count")
def count_users():
    return {"success": True, "count": db["user"].count_documents({})}


# ----------------------- Categories -----------------------
@app.get("/api/categories")
def list_categories():
    return {"success": True, "categories": [serialize_doc(c) for c in get_documents("category")]}


@app.get("/api/categories/slider/home")
def slider_categories():
    cats = get_documents("category", {"isFeatured": True}, sort=[("sliderOrder", 1)])
    return {"success": True, "categories": [serialize_doc(c) for c in cats]}


@app.post("/api/categories", status_code=201)
def create_category(
    admin=Depends(require_admin),
    image: Optional[ImageFile] = Depends(category_image),
    name: Optional[str] = Form(None),
    is_featured: Optional[str] = Form(None, alias="isFeatured"),
    slider_order: Optional[str] = Form(None, alias="sliderOrder"),
):
    if not name or not name.strip():
        raise ValidationError("Category name is required")
    featured = parse_bool(is_featured)

    category = CategorySchema(
        name=name.strip(),
        is_featured=featured,
        slider_order=parse_int(slider_order, "sliderOrder") if featured else None,
    )
    if image:
        category.image, category.image_id = upload_image(image, "categories")

    doc = create_document("category", category)
    return {"success": True, "message": "Category created successfully", "category": serialize_doc(doc)}


@app.put("/api/categories/{category_id}")
def update_category(
    category_id: str,
    admin=Depends(require_admin),
    image: Optional[ImageFile] = Depends(category_image),
    name: Optional[str] = Form(None),
    is_featured: Optional[str] = Form(None, alias="isFeatured"),
    slider_order: Optional[str] = Form(None, alias="sliderOrder"),
):
    current = db["category"].find_one({"_id": oid(category_id)})
    if not current:
        raise NotFoundError("Category not found")

    featured = parse_bool(is_featured) if is_featured is not None else current.get("isFeatured", False)
    if featured:
        order = parse_int(slider_order, "sliderOrder")
        order = order if order is not None else current.get("sliderOrder")
    else:
        order = None

    update = {
        "name": name.strip() if name and name.strip() else current["name"],
        "isFeatured": featured,
        "sliderOrder": order,
        "updatedAt": now_utc(),
    }
    if image:
        update["image"], update["imageId"] = upload_image(image, "categories")

    category = db["category"].find_one_and_update(
        {"_id": current["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    if image and current.get("imageId"):
        delete_image(current["imageId"])
    return {"success": True, "message": "Category updated successfully", "category": serialize_doc(category)}


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: str, admin=Depends(require_admin)):
    category = db["category"].find_one({"_id": oid(category_id)})
    if not category:
        raise NotFoundError("Category not found")
    db["category"].delete_one({"_id": category["_id"]})
    delete_image(category.get("imageId"))
    return {"success": True, "message": "Category deleted successfully"}


# ----------------------- Products -----------------------
@app.get("/api/products")
def list_products(category: Optional[str] = None):
    filt = {}
    if category:
        filt["category"] = category.strip().lower()
    items = get_documents("product", filt, sort=[("category", 1), ("createdAt", -1)])
    return {"success": True, "products": [serialize_doc(i) for i in items]}


@app.get("/api/products/getAllProducts")
def all_products():
    return {"success": True, "products": [serialize_doc(i) for i in get_documents("product")]}


@app.get("/api/products/stats/count")
def count_products():
    return {"success": True, "count": db["product"].count_documents({})}


@app.post("/api/products/by-ids")
def products_by_ids(body: ByIdsBody):
    if body.ids is None:
        raise ValidationError("IDs array required")
    ids = [ObjectId(i) for i in body.ids if isinstance(i, str) and ObjectId.is_valid(i)]
    items = db["product"].find({"_id": {"$in": ids}})
    return {"success": True, "products": [serialize_doc(i) for i in items]}


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    item = find_product(product_id)
    if not item:
        raise NotFoundError("Product not found")
    return {"success": True, "product": serialize_doc(item)}


@app.post("/api/products", status_code=201)
def create_product(
    admin=Depends(require_admin),
    images: List[ImageFile] = Depends(product_images_create),
    name: Optional[str] = Form(None),
    brand_name: Optional[str] = Form(None, alias="brandName"),
    category: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    discount_percent: Optional[str] = Form(None, alias="discountPercent"),
    quantity: Optional[str] = Form(None),
    weight: Optional[str] = Form(None),
    flavor: Optional[str] = Form(None),
    servings: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
):
    if not name or not category or not price:
        raise ValidationError("Name, category, and price are required")
    num_price = parse_number(price, "price")
    if num_price <= 0:
        raise ValidationError("Price must be a positive number")
    clean_category = category.strip().lower()
    if not clean_category:
        raise ValidationError("Category is required")
    percent = parse_discount_percent(discount_percent, 0)

    flavors = parse_product_list(flavor, "flavor") or []
    serving_sizes = parse_product_list(servings, "servings") or []
    stock = parse_int(quantity, "quantity", 0)

    try:
        product = ProductSchema(
            product_id=new_product_id(),
            brand_name=(brand_name or "").strip(),
            name=name.strip(),
            category=clean_category,
            price=num_price,
            discount_percent=percent,
            discounted_price=discounted_price(num_price, percent),
            quantity=stock,
            weight=(weight or "").strip(),
            flavor=flavors,
            servings=serving_sizes,
            description=(description or "").strip(),
        )
    except PydanticValidationError as e:
        raise ValidationError("Invalid product data", errors=[err["msg"] for err in e.errors()])

    for img in images:
        url, public_id = upload_image(img, "products")
        product.gallery.append(url)
        product.gallery_ids.append(public_id)
    if product.gallery:
        product.image, product.image_id = product.gallery[0], product.gallery_ids[0]

    doc = create_document("product", product)
    logger.info("Product created: %s", product.product_id)
    return {"success": True, "message": "Product added successfully", "product": serialize_doc(doc)}


@app.put("/api/products/{product_id}")
def update_product(
    product_id: str,
    admin=Depends(require_admin),
    images: List[ImageFile] = Depends(product_images_update),
    existing_gallery: Optional[List[str]] = Form(None, alias="existingGallery"),
    name: Optional[str] = Form(None),
    brand_name: Optional[str] = Form(None, alias="brandName"),
    category: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    discount_percent: Optional[str] = Form(None, alias="discountPercent"),
    quantity: Optional[str] = Form(None),
    weight: Optional[str] = Form(None),
    flavor: Optional[str] = Form(None),
    servings: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
):
    current = find_product(product_id)
    if not current:
        raise NotFoundError("Product not found")

    update = {}
    if name:
        update["name"] = name.strip()
    if brand_name is not None:
        update["brandName"] = brand_name.strip()
    if category:
        update["category"] = category.strip().lower()
    if weight is not None:
        update["weight"] = weight.strip()
    if description is not None:
        update["description"] = description.strip()
    if quantity is not None and quantity != "":
        update["quantity"] = parse_int(quantity, "quantity")
    if flavor:
        update["flavor"] = parse_product_list(flavor, "flavor")
    if servings:
        update["servings"] = parse_product_list(servings, "servings")

    new_price = parse_number(price, "price")
    if new_price is not None and new_price <= 0:
        raise ValidationError("Price must be a positive number")
    new_percent = parse_discount_percent(discount_percent)
    if new_price is not None:
        update["price"] = new_price
    if new_percent is not None:
        update["discountPercent"] = new_percent
    if new_price is not None or new_percent is not None:
        update["discountedPrice"] = discounted_price(
            new_price if new_price is not None else current["price"],
            new_percent if new_percent is not None else current.get("discountPercent", 0),
        )

    old_gallery = current.get("gallery", [])
    old_ids = current.get("galleryIds", [])
    if existing_gallery is None:
        gallery, gallery_ids = list(old_gallery), list(old_ids)
    else:
        gallery, gallery_ids = [], []
        for url in (u for u in existing_gallery if u):
            gallery.append(url)
            idx = old_gallery.index(url) if url in old_gallery else -1
            gallery_ids.append(old_ids[idx] if 0 <= idx < len(old_ids) else None)
    for img in images:
        url, public_id = upload_image(img, "products")
        gallery.append(url)
        gallery_ids.append(public_id)

    update.update({
        "gallery": gallery,
        "galleryIds": gallery_ids,
        "image": gallery[0] if gallery else PLACEHOLDER_IMAGE,
        "imageId": gallery_ids[0] if gallery_ids else None,
        "updatedAt": now_utc(),
    })

    updated = db["product"].find_one_and_update(
        {"_id": current["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    delete_images(i for i in old_ids if i and i not in gallery_ids)
    return {"success": True, "product": serialize_doc(updated)}


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, admin=Depends(require_admin)):
    product = find_product(product_id)
    if not product:
        raise NotFoundError("Product not found")
    db["product"].delete_one({"_id": product["_id"]})

    handles = [i for i in product.get("galleryIds", []) if i]
    if product.get("imageId") and product["imageId"] not in handles:
        handles.append(product["imageId"])
    delete_images(handles)
    logger.info("Product deleted: %s", product["_id"])
    return {"success": True, "message": "Product deleted successfully"}


# ----------------------- Reviews -----------------------
def _with_product_names(reviews: list) -> list:
    ids = {ObjectId(r["productId"]) for r in reviews if ObjectId.is_valid(r.get("productId", ""))}
    names = {str(p["_id"]): p.get("name") for p in db["product"].find({"_id": {"$in": list(ids)}}, {"name": 1})}
    out = []
    for r in reviews:
        item = serialize_doc(r)
        item["productName"] = names.get(r.get("productId"))
        out.append(item)
    return out


@app.get("/api/reviews")
@app.get("/api/reviews/all")
def list_reviews():
    return {"success": True, "reviews": _with_product_names(get_documents("review"))}


@app.get("/api/reviews/{product_id}")
def product_reviews(product_id: str):
    product = find_product(product_id)
    key = str(product["_id"]) if product else product_id
    reviews = get_documents("review", {"productId": key})
    return {"success": True, "reviews": [serialize_doc(r) for r in reviews]}


@app.post("/api/reviews", status_code=201)
def create_review(
    image: Optional[ImageFile] = Depends(review_image),
    product_id: Optional[str] = Form(None, alias="productId"),
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    message: Optional[str] = Form(None),
    rating: Optional[str] = Form(None),
    user_id: Optional[str] = Form(None, alias="userId"),
):
    fields = {"productId": product_id, "name": name, "email": email, "message": message, "rating": rating}
    missing = [k for k, v in fields.items() if v is None or not str(v).strip()]
    if missing:
        raise ValidationError("All fields are required", missingFields=missing)

    score = parse_number(rating, "rating")
    if score != int(score) or not 1 <= score <= 5:
        raise ValidationError("Rating must be between 1 and 5")

    product = find_product(product_id.strip())
    if not product:
        raise NotFoundError("Product not found")
    pid = str(product["_id"])

    review = ReviewSchema(
        product_id=pid,
        user_id=user_id or None,
        name=name.strip(),
        email=email.strip(),
        rating=int(score),
        message=message.strip(),
    )
    if image:
        review.image, review.image_id = upload_image(image, "reviews")

    doc = create_document("review", review)
    updated_product = refresh_product_rating(pid)
    return {
        "success": True,
        "message": "Review submitted successfully",
        "review": serialize_doc(doc),
        "updatedProduct": updated_product,
    }


@app.delete("/api/reviews/{review_id}")
def delete_review(review_id: str, admin=Depends(require_admin)):
    review = db["review"].find_one({"_id": oid(review_id)})
    if not review:
        raise NotFoundError("Review not found")

    delete_image(review.get("imageId"))
    db["review"].delete_one({"_id": review["_id"]})
    updated_product = refresh_product_rating(review["productId"])
    return {"success": True, "message": "Review deleted successfully", "updatedProduct": updated_product}


# ----------------------- Orders -----------------------
ORDER_REQUIRED = (
    ("name", "name"),
    ("email", "email"),
    ("phone", "phone"),
    ("address", "address"),
    ("payment_method", "paymentMethod"),
    ("cart_items", "cartItems"),
)


def decrement_stock(items: List[CartItem]):
    for item in items:
        if not ObjectId.is_valid(item.product_id):
            logger.warning("Invalid product id on order line: %s", item.product_id)
            continue
        try:
            updated = db["product"].find_one_and_update(
                {"_id": ObjectId(item.product_id)},
                {"$inc": {"quantity": -item.count}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Error updating stock for %s: %s", item.product_id, e)
            continue
        if updated:
            logger.info("Stock updated for %s: %s", item.name or item.product_id, updated.get("quantity"))
        else:
            logger.warning("Product not found for order line: %s", item.product_id)


@app.get("/api/orders/stats/count")
def count_orders():
    return {"success": True, "count": db["order"].count_documents({})}


@app.get("/api/orders")
def list_orders(admin=Depends(require_admin)):
    return {"success": True, "orders": [serialize_doc(o) for o in get_documents("order")]}


@app.post("/api/orders", status_code=201)
def create_order(body: OrderCreateBody):
    missing = [wire for attr, wire in ORDER_REQUIRED if not getattr(body, attr)]
    if missing:
        logger.info("Order rejected, missing fields: %s", missing)
        raise ValidationError("Missing fields", missingFields=missing)

    order = OrderSchema(
        name=body.name,
        email=body.email,
        phone=body.phone,
        address=body.address,
        payment_method=body.payment_method,
        cart_items=body.cart_items,
        coupon_code=body.coupon_code or None,
        discount=body.discount or 0,
        total_amount=body.total_amount or 0,
    )
    doc = create_document("order", order)
    logger.info("Order saved: %s", doc["_id"])

    decrement_stock(order.cart_items)

    return {"success": True, "message": "Order placed successfully!", "data": serialize_doc(doc)}


@app.delete("/api/orders/{order_id}")
def delete_order(order_id: str, admin=Depends(require_admin)):
    result = db["order"].delete_one({"_id": oid(order_id)})
    if result.deleted_count == 0:
        raise NotFoundError("Order not found")
    return {"success": True, "message": "Order deleted successfully"}


# ----------------------- Coupons -----------------------
@app.post("/api/coupons", status_code=201)
def create_coupon(body: CouponCreateBody, admin=Depends(require_admin)):
    if not body.code or not body.discount_type or not body.discount_value or not body.expiry_date:
        raise ValidationError("All required fields must be filled")
    if body.discount_type not in DISCOUNT_TYPES:
        raise ValidationError("Discount type must be 'percentage' or 'fixed'")

    code = normalize_coupon_code(body.code)
    if db["coupon"].find_one({"code": code}):
        raise ConflictError("Coupon code already exists")

    expiry = body.expiry_date
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    try:
        coupon = CouponSchema(
            code=code,
            discount_type=body.discount_type,
            discount_value=body.discount_value,
            expiry_date=expiry,
            usage_limit=body.usage_limit or 0,
            min_purchase=body.min_purchase or 0,
        )
    except PydanticValidationError as e:
        raise ValidationError("Invalid coupon data", errors=[err["msg"] for err in e.errors()])

    doc = create_document("coupon", coupon)
    return {"success": True, "coupon": serialize_doc(doc)}


@app.get("/api/coupons")
def list_coupons(admin=Depends(require_admin)):
    return {"success": True, "coupons": [serialize_doc(c) for c in get_documents("coupon")]}


@app.delete("/api/coupons/{coupon_id}")
def delete_coupon(coupon_id: str, admin=Depends(require_admin)):
    result = db["coupon"].delete_one({"_id": oid(coupon_id)})
    if result.deleted_count == 0:
        raise NotFoundError("Coupon not found")
    return {"success": True, "message": "Coupon deleted successfully"}


@app.post("/api/coupons/apply")
def apply_coupon(body: ApplyCouponBody):
    if not body.code or body.cart_total is None:
        raise ValidationError("Code and cartTotal required")
    if body.cart_total < 0:
        raise ValidationError("cartTotal must not be negative")

    coupon = db["coupon"].find_one({"code": normalize_coupon_code(body.code)})
    if not coupon:
        raise NotFoundError("Invalid coupon code!")
    return {"success": True, **evaluate_coupon(coupon, body.cart_total)}


# ----------------------- Contact -----------------------
@app.post("/api/contact", status_code=201)
def submit_contact(body: ContactBody):
    if not body.name or not body.email:
        raise ValidationError("Name and email are required.")
    subjects = ", ".join(body.subjects) if isinstance(body.subjects, list) else body.subjects
    contact = ContactSchema(
        name=body.name, email=body.email, phone=body.tel, subjects=subjects, message=body.message
    )
    create_document("contact", contact)
    return {"success": True, "message": "Form submitted successfully!"}


@app.get("/api/contact")
def list_contacts(admin=Depends(require_admin)):
    return {"success": True, "contacts": [serialize_doc(c) for c in get_documents("contact")]}


# ----------------------- Seed Demo Data -----------------------
DEMO_PRODUCTS = [
    {
        "name": "Nitrotech Ripped Whey Protein",
        "brand_name": "MuscleTech",
        "category": "protein",
        "price": 26000,
        "discount_percent": 5,
        "flavor": ["Chocolate"],
        "weight": "1.82kg",
        "quantity": 20,
    },
    {
        "name": "Rule One Whey Protein",
        "brand_name": "Rule One",
        "category": "protein",
        "price": 23000,
        "quantity": 15,
    },
    {
        "name": "On Whey Protein 80 servings",
        "brand_name": "Optimum Nutrition",
        "category": "protein",
        "price": 34000,
        "discount_percent": 10,
        "flavor": ["Chocolate"],
        "servings": [80],
        "weight": "2.27kg",
        "quantity": 10,
    },
    {
        "name": "Kevin Levrone Gold Whey Protein",
        "brand_name": "Kevin Levrone",
        "category": "protein",
        "price": 24000,
        "flavor": ["Chocolate"],
        "weight": "2kg",
        "quantity": 12,
    },
    {
        "name": "C4 Original Pre-Workout",
        "brand_name": "Cellucor",
        "category": "pre-workout",
        "price": 9500,
        "flavor": ["Fruit Punch", "Icy Blue Razz"],
        "servings": [30],
        "quantity": 25,
    },
    {
        "name": "Micronized Creatine Powder",
        "brand_name": "Optimum Nutrition",
        "category": "creatine",
        "price": 7000,
        "discount_percent": 15,
        "servings": [60, 120],
        "weight": "300g",
        "quantity": 30,
    },
]


@app.post("/seed")
def seed():
    admin_created = False
    if db["admin"].count_documents({}) == 0:
        admin = AdminSchema(
            username=config.ADMIN_USERNAME,
            password=hash_password(config.ADMIN_PASSWORD),
            name=config.ADMIN_NAME,
        )
        create_document("admin", admin)
        admin_created = True
        logger.info("Bootstrap admin created: %s", config.ADMIN_USERNAME)

    seeded = 0
    if db["product"].count_documents({}) == 0:
        for p in DEMO_PRODUCTS:
            prod = ProductSchema(
                product_id=new_product_id(),
                discounted_price=discounted_price(p["price"], p.get("discount_percent", 0)),
                **p,
            )
            create_document("product", prod)
            seeded += 1

    return {
        "success": True,
        "adminCreated": admin_created,
        "productsSeeded": seeded,
        "products": db["product"].count_documents({}),
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
