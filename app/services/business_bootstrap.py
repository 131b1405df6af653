from __future__ import annotations

import re
import unicodedata

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.models.business import Business
from app.models.user import User


def normalize_slug(value: str) -> str:
    if not value:
        return ""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = value.lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)

    return value.strip("-")


def ensure_catalog_tables(engine: Engine) -> None:
    inspector = inspect(engine)
    missing = [name for name in ("businesses", "users", "pos_products") if not inspector.has_table(name)]
    if missing:
        raise RuntimeError(
            f"Missing tables: {', '.join(missing)}. Run `alembic upgrade head` first."
        )


def upsert_business(
    db: Session,
    *,
    name: str,
    slug: str | None = None,
    business_id: int | None = None,
) -> tuple[Business, bool]:
    normalized = normalize_slug(slug or name)
    if not normalized:
        raise ValueError("Business slug cannot be empty.")

    query = db.query(Business)
    if business_id is not None:
        existing = query.filter(Business.id == business_id).first()
    else:
        existing = query.filter(Business.slug == normalized).first()

    if existing:
        existing.name = name
        existing.is_active = True
        db.commit()
        db.refresh(existing)
        return existing, False

    business = Business(name=name, slug=normalized, is_active=True)
    if business_id is not None:
        business.id = business_id
    db.add(business)
    db.commit()
    db.refresh(business)
    return business, True


def upsert_user(
    db: Session,
    *,
    business_id: int,
    email: str,
    name: str,
    role: str = "owner",
) -> tuple[User, bool]:
    email = (email or "").strip().lower()
    if not email:
        raise ValueError("Email is required.")

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        if int(existing.business_id) != int(business_id):
            raise ValueError(f"{email} already belongs to business {existing.business_id}.")
        existing.name = name
        existing.role = role
        existing.is_active = True
        db.commit()
        db.refresh(existing)
        return existing, False

    user = User(business_id=business_id, email=email, name=name, role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True
