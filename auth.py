"""
Password hashing and admin token handling.

Admin tokens are HS256 JWTs carrying {id, username, isAdmin}. They are read
from the http-only `adminToken` cookie or an `Authorization: Bearer` header.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config
from errors import AuthError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def create_token(payload: dict) -> str:
    exp = datetime.now(timezone.utc) + timedelta(days=config.TOKEN_TTL_DAYS)
    to_encode = {**payload, "exp": exp}
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGO)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")


def token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = None) -> Optional[str]:
    token = request.cookies.get(config.ADMIN_COOKIE)
    if token:
        return token
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return None


def admin_claims(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    """Decoded claims of the presented admin token, or AuthError."""
    token = token_from_request(request, credentials)
    if not token:
        raise AuthError("No token provided")
    return decode_token(token)


def require_admin(claims: dict = Depends(admin_claims)) -> dict:
    if not claims.get("isAdmin"):
        raise AuthError("Access denied: Admin only", status_code=403)
    return claims


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": config.IS_PRODUCTION,
        "samesite": "none" if config.IS_PRODUCTION else "lax",
        "path": "/",
    }


def set_admin_cookie(response: Response, token: str):
    response.set_cookie(
        config.ADMIN_COOKIE,
        token,
        max_age=config.TOKEN_TTL_DAYS * 24 * 60 * 60,
        **_cookie_options(),
    )


def clear_admin_cookie(response: Response):
    response.delete_cookie(config.ADMIN_COOKIE, **_cookie_options())
