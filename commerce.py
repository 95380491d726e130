"""
Pricing, rating and coupon rules used by the route handlers.

These functions never touch the database: callers load the documents,
call into here and persist the result.
"""
import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from errors import ValidationError

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def discounted_price(price: float, discount_percent: float = 0) -> int:
    """Price after a percentage discount, rounded to a whole currency unit."""
    discount_percent = discount_percent or 0
    return round_half_up(price - price * discount_percent / 100)


def rating_summary(ratings: Iterable[float]) -> dict:
    """Aggregate rating stored on a product for the given review ratings."""
    ratings = list(ratings)
    if not ratings:
        return {"averageRating": 0, "totalRatings": 0}
    return {"averageRating": sum(ratings) / len(ratings), "totalRatings": len(ratings)}


def normalize_coupon_code(code: str) -> str:
    return code.strip().upper()


def _as_utc(value: datetime) -> datetime:
    # pymongo hands back naive datetimes that are already UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def evaluate_coupon(coupon: dict, cart_total: float, now: Optional[datetime] = None) -> dict:
    """
    Check a coupon against a cart total and compute the discount.

    Raises ValidationError when the coupon is expired, used up, or the cart
    is below the minimum purchase. The discount never exceeds the cart total.
    """
    now = now or datetime.now(timezone.utc)

    expiry = coupon.get("expiryDate")
    if expiry is not None and _as_utc(expiry) < now:
        raise ValidationError("Coupon expired")

    usage_limit = coupon.get("usageLimit") or 0
    if usage_limit > 0 and (coupon.get("usedCount") or 0) >= usage_limit:
        raise ValidationError("Coupon usage limit reached")

    min_purchase = coupon.get("minPurchase") or 0
    if cart_total < min_purchase:
        raise ValidationError(f"Minimum purchase {min_purchase} required")

    if coupon.get("discountType") == PERCENTAGE:
        discount = cart_total * coupon["discountValue"] / 100
    else:
        discount = coupon["discountValue"]
    discount = min(discount, cart_total)

    return {
        "discount": discount,
        "discountedTotal": cart_total - discount,
        "couponCode": coupon["code"],
    }
