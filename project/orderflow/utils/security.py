# orderflow/utils/security.py

"""
Password hashing and JWT access tokens.
Passwords use passlib with sha256_crypt, tokens are HS256 JWTs (PyJWT).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jwt import encode, decode
from passlib.context import CryptContext

from orderflow.config import settings

# schemes=["sha256_crypt"] - salted SHA-256
# deprecated="auto" - older schemes get flagged for rehash automatically
pwd_context = CryptContext(schemes=["sha256_crypt"], deprecated="auto")

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """
    Hashes a password.

    :param password: plain password
    :return: hash string to store
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a password against its stored hash.

    :param plain_password: password typed by the user
    :param hashed_password: hash from the database
    :return: True when they match
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Builds a signed JWT from the claims in data.

    :param data: claims, e.g. {"sub": "admin", "id": 1, "role": "admin"}
    :param expires_delta: token lifetime, AUTH_TOKEN_EXPIRE_MINUTES by default
    :return: encoded token
    """
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=settings.AUTH_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + lifetime})
    return encode(to_encode, settings.AUTH_SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decodes and verifies a token. Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError.
    """
    return decode(token, settings.AUTH_SECRET_KEY, algorithms=[ALGORITHM])
