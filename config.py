"""
Runtime configuration

Every setting comes from the environment (a local .env file is loaded first).
"""
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
TOKEN_TTL_DAYS = 7

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

ADMIN_COOKIE = "adminToken"

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:5174,https://sharknutritionpk.store,https://www.sharknutritionpk.store",
    ).split(",")
    if o.strip()
]

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "123456")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Super Admin")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Upload limits per route group
CATEGORY_IMAGE_MAX_BYTES = 2 * 1024 * 1024
REVIEW_IMAGE_MAX_BYTES = 2 * 1024 * 1024
PRODUCT_IMAGE_MAX_BYTES = 3 * 1024 * 1024
PRODUCT_CREATE_MAX_IMAGES = 4
PRODUCT_UPDATE_MAX_IMAGES = 10
