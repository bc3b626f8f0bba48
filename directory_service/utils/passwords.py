"""Credential hashing for employees and directory admins.

New hashes use ``bcrypt_sha256``. Plain ``bcrypt`` hashes (older directory
exports, hand-created admin rows) still verify and are replaced with the
current scheme the next time their owner signs in.
"""

from __future__ import annotations

from typing import Any

from passlib.context import CryptContext

_pwd_context = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    default="bcrypt_sha256",
    deprecated="auto",
)


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password must not be empty")
    return _pwd_context.hash(str(password))


def verify_password(password: str | None, hashed: str | None) -> bool:
    """Return ``True`` when *password* matches; missing or malformed hashes never match."""

    if not password or not hashed:
        return False
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


def verify_and_upgrade(account: Any, password: str | None) -> bool:
    """Check *password* against ``account.password_hash`` and migrate stale hashes.

    *account* is an ``Employee`` or ``DirectoryAdmin`` row. When the stored hash
    uses a deprecated scheme it is replaced in place; committing is left to the
    caller.
    """

    hashed = getattr(account, "password_hash", None)
    if not password or not hashed:
        return False
    try:
        valid, new_hash = _pwd_context.verify_and_update(password, hashed)
    except ValueError:
        return False
    if valid and new_hash:
        account.password_hash = new_hash
    return valid
