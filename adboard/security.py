"""
Password hashing and HTTP Basic caller resolution.

Passwords are stored as ``<iterations>$<salt hex>$<hash hex>`` using
PBKDF2-HMAC-SHA256.  Recording the iteration count in the hash lets the
work factor in settings change without invalidating existing users.

``get_caller`` turns Basic credentials (username = email) into the
``Caller`` value that every listing operation takes explicitly.
"""
import hashlib
import hmac
import os

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from adboard.authorization import Caller
from adboard.config import settings
from adboard.database import get_db
from adboard.repositories import UserRepository

basic = HTTPBasic(auto_error=False)


def hash_password(password: str, iterations: int | None = None) -> str:
    iterations = iterations or settings.PASSWORD_HASH_ITERATIONS
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{iterations}${salt.hex()}${dk.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Constant-time check of *password* against a ``hash_password`` value."""
    try:
        iterations, salt_hex, hash_hex = stored.split("$", 2)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(hash_hex)
        rounds = int(iterations)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(dk, expected)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Basic"},
    )


async def get_caller(
    credentials: HTTPBasicCredentials | None = Depends(basic),
    db: AsyncSession = Depends(get_db),
) -> Caller:
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user = await UserRepository(db).find_by_email(credentials.username)
    if user is None or not verify_password(credentials.password, user.password_hash):
        raise _unauthorized("Invalid credentials")

    return Caller(email=user.email, role=user.role)
