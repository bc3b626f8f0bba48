"""Bootstrap data: the directory admin account configured in the environment."""

from __future__ import annotations

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from directory_service import deps
from directory_service.config import settings
from directory_service.domain import models as m
from directory_service.utils.passwords import hash_password, verify_password


def _get_or_create_admin(db: Session, *, email: str, password: str, full_name: str) -> m.DirectoryAdmin:
    admin = db.query(m.DirectoryAdmin).filter(func.lower(m.DirectoryAdmin.email) == email).one_or_none()
    if admin is None:
        admin = m.DirectoryAdmin(email=email, password_hash=hash_password(password), full_name=full_name)
        db.add(admin)
        db.flush()
        logger.info("Seeded directory admin {}", email)
    elif not verify_password(password, admin.password_hash):
        admin.password_hash = hash_password(password)
    return admin


def ensure_seed_data() -> None:
    """Create or refresh the admin account when ``ADMIN_EMAIL``/``ADMIN_PASSWORD`` are set."""

    if not settings.admin_email or not settings.admin_password:
        return

    with deps.SessionLocal() as db:
        _get_or_create_admin(
            db,
            email=settings.admin_email.strip().lower(),
            password=settings.admin_password,
            full_name=settings.admin_full_name,
        )
        db.commit()
