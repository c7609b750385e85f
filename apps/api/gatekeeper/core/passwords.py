"""Password hashing helpers backed by bcrypt.

Hashing and checking run in the threadpool so the event loop keeps serving
other requests while bcrypt works.
"""

from __future__ import annotations

import secrets

import bcrypt
from starlette.concurrency import run_in_threadpool

_BCRYPT_ROUNDS = 10
# bcrypt only considers the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


def _hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], salt).decode("utf-8")


def _check(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        return False


async def hash_password(password: str) -> str:
    return await run_in_threadpool(_hash, password)


async def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    return await run_in_threadpool(_check, password, password_hash)


def generate_password(length: int = 16) -> str:
    """Random password for accounts created through an external provider."""
    return secrets.token_urlsafe(length)[:length]


def generate_reset_token() -> str:
    return secrets.token_urlsafe(16)
