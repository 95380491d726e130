"""
Database Schemas for the Supplements Store

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name.
Attributes are snake_case in Python and stored/sent as camelCase.
"""
from datetime import datetime
from typing import List, Optional, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, EmailStr
from pydantic.alias_generators import to_camel

PLACEHOLDER_IMAGE = "/images/placeholder.png"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(CamelModel):
    full_name: str = Field(..., description="Full name")
    email: EmailStr
    password: str = Field(..., description="bcrypt hash")
    wishlist: List[str] = Field(default_factory=list, description="Product ids")


class Admin(CamelModel):
    username: str
    password: str = Field(..., description="bcrypt hash")
    name: Optional[str] = None


class Category(CamelModel):
    name: str
    image: str = ""
    image_id: Optional[str] = None
    is_featured: bool = False
    slider_order: Optional[int] = None


class Ratings(CamelModel):
    average_rating: float = 0
    total_ratings: int = 0


class Product(CamelModel):
    product_id: str
    brand_name: str = ""
    name: str
    price: float = Field(..., gt=0)
    discount_percent: float = Field(0, ge=0, le=100)
    discounted_price: float = 0
    quantity: int = 0
    ratings: Ratings = Field(default_factory=Ratings)
    image: str = PLACEHOLDER_IMAGE
    image_id: Optional[str] = None
    gallery: List[str] = Field(default_factory=list)
    gallery_ids: List[Optional[str]] = Field(default_factory=list)
    category: str
    flavor: List[str] = Field(default_factory=list)
    servings: List[Union[int, float, str]] = Field(default_factory=list)
    weight: str = ""
    description: str = ""


class Review(CamelModel):
    product_id: str
    user_id: Optional[str] = None
    name: str
    email: str
    rating: int = Field(..., ge=1, le=5)
    message: str
    image: Optional[str] = None
    image_id: Optional[str] = None


class CartItem(CamelModel):
    product_id: str
    name: Optional[str] = None
    brand_name: Optional[str] = None
    price: float = 0
    count: int = Field(1, ge=1)
    flavor: Optional[str] = None
    servings: Optional[Union[int, float, str]] = None


class Order(CamelModel):
    name: str
    email: str
    phone: str
    address: str
    payment_method: str
    cart_items: List[CartItem]
    coupon_code: Optional[str] = None
    discount: float = 0
    total_amount: float = 0


class Coupon(CamelModel):
    code: str
    discount_type: Literal["percentage", "fixed"]
    discount_value: float = Field(..., gt=0)
    expiry_date: datetime
    usage_limit: int = Field(0, ge=0)
    used_count: int = 0
    min_purchase: float = Field(0, ge=0)


class Contact(CamelModel):
    name: str
    email: str
    phone: Optional[str] = None
    subjects: Optional[str] = None
    message: Optional[str] = None
