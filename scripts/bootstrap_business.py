#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from app.core.config import DEV_BOOTSTRAP_ALLOW, IS_DEV  # noqa: E402
from app.core.database import SessionLocal, engine  # noqa: E402
from app.services.auth import create_access_token  # noqa: E402
from app.services.business_bootstrap import (  # noqa: E402
    ensure_catalog_tables,
    upsert_business,
    upsert_user,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bootstrap a business and its owner for local use.")
    parser.add_argument("--business-id", type=int, help="Fixed business id (optional)")
    parser.add_argument("--name", required=True, help="Business name")
    parser.add_argument("--slug", help="Business slug (defaults to the name)")
    parser.add_argument("--email", required=True, help="Owner email")
    parser.add_argument("--user-name", required=True, help="Owner display name")
    parser.add_argument("--role", default="owner", help="User role (owner, manager, cashier)")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Run without DEV_BOOTSTRAP_ALLOW=1",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if not DEV_BOOTSTRAP_ALLOW and not args.force:
        print("Bootstrap is disabled. Set DEV_BOOTSTRAP_ALLOW=1 or pass --force.")
        return 1

    try:
        ensure_catalog_tables(engine)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        business, business_created = upsert_business(
            db,
            name=args.name,
            slug=args.slug,
            business_id=args.business_id,
        )
        business_id, business_slug = business.id, business.slug
        user, user_created = upsert_user(
            db,
            business_id=business_id,
            email=args.email,
            name=args.user_name,
            role=args.role,
        )
        user_id, user_email, user_role = user.id, user.email, user.role
    except ValueError as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    print(f"Business {'created' if business_created else 'updated'}: id={business_id} slug={business_slug}")
    print(f"User {'created' if user_created else 'updated'}: id={user_id} email={user_email}")

    try:
        token = create_access_token(user_id, business_id, role=user_role)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    if IS_DEV:
        print(f"Bearer token: {token}")
    else:
        print(token)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
