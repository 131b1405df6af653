from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import CatalogStoreError, CatalogValidationError
from app.models.pos_category import PosCategory
from app.models.pos_product import PRODUCT_STATUS_ACTIVE, PRODUCT_STATUS_DELETED, PosProduct
from app.models.pos_product_modifier import PosProductModifier
from app.models.pos_product_variant_group import PosProductVariantGroup
from app.models.pos_product_variant_option import PosProductVariantOption
from app.schemas.catalog import ModifierInput, ProductCreate, ProductUpdate, VariantGroupInput
from app.services.catalog_audit import log_catalog_action

logger = logging.getLogger(__name__)

CATALOG_PREFIX = "[CATALOG]"
SKU_SEQUENCE_WIDTH = 4

_PATCHABLE_FIELDS = ("name", "name_ar", "description", "category_id", "base_price", "image_url")
# NOT NULL columns: an explicit null in a patch leaves them as they are
_NON_NULLABLE_FIELDS = {"name", "base_price"}


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def _money(value) -> float:
    return float(value or 0)


def category_to_dict(category: PosCategory) -> dict:
    return {
        "id": category.id,
        "business_id": category.business_id,
        "name": category.name,
        "name_ar": category.name_ar,
        "sort_order": int(category.sort_order or 0),
        "created_at": _isoformat(category.created_at),
    }


def _option_to_dict(option: PosProductVariantOption) -> dict:
    return {
        "id": option.id,
        "name": option.name,
        "name_ar": option.name_ar,
        "price_adjustment": _money(option.price_adjustment),
        "sort_order": int(option.sort_order or 0),
    }


def _modifier_to_dict(modifier: PosProductModifier) -> dict:
    return {
        "id": modifier.id,
        "name": modifier.name,
        "name_ar": modifier.name_ar,
        "removable": bool(modifier.removable),
        "addable": bool(modifier.addable),
        "extra_price": _money(modifier.extra_price),
        "sort_order": int(modifier.sort_order or 0),
    }


class CatalogService:
    """Product aggregate over pos_products and its variant group, option and modifier rows.

    The session is injected by the caller and owned by it; every write runs in a
    single transaction that is committed at the end or rolled back on failure.
    `actor_id`, when given, is recorded in the catalog audit log.
    """

    def __init__(self, db: Session, *, actor_id: int | None = None) -> None:
        self.db = db
        self.actor_id = actor_id

    @contextmanager
    def _transaction(self, failure_message: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("%s %s", CATALOG_PREFIX, failure_message)
            raise CatalogStoreError(failure_message) from exc
        except Exception:
            self.db.rollback()
            raise

    @contextmanager
    def _reading(self, failure_message: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("%s %s", CATALOG_PREFIX, failure_message)
            raise CatalogStoreError(failure_message) from exc

    # SKU

    def generate_sku(self, business_id: int) -> str:
        if business_id is None or str(business_id).strip() == "":
            raise CatalogValidationError("Business id is required to generate a SKU")
        count = (
            self.db.query(func.count(PosProduct.id))
            .filter(PosProduct.business_id == business_id)
            .scalar()
        )
        sequence = str(int(count or 0) + 1).zfill(SKU_SEQUENCE_WIDTH)
        return f"{business_id}-POS-{sequence}"

    # Reads

    def get_products(self, business_id: int) -> list[dict]:
        with self._reading("Failed to fetch products"):
            products = (
                self.db.query(PosProduct)
                .filter(
                    PosProduct.business_id == business_id,
                    PosProduct.status == PRODUCT_STATUS_ACTIVE,
                )
                .order_by(PosProduct.name.asc(), PosProduct.id.asc())
                .all()
            )
            return self._assemble(business_id, products)

    def get_product(self, product_id: int, business_id: int) -> Optional[dict]:
        # No status filter: soft-deleted products stay readable by id.
        with self._reading("Failed to fetch product"):
            product = self._find_product(product_id, business_id)
            if product is None:
                return None
            return self._assemble(business_id, [product])[0]

    def get_categories(self, business_id: int) -> list[dict]:
        with self._reading("Failed to fetch categories"):
            categories = (
                self.db.query(PosCategory)
                .filter(PosCategory.business_id == business_id)
                .order_by(PosCategory.sort_order.asc(), PosCategory.name.asc())
                .all()
            )
            return [category_to_dict(category) for category in categories]

    # Writes

    def create_product(self, business_id: int, payload: ProductCreate) -> dict:
        with self._transaction("Failed to create product"):
            self._ensure_category(business_id, payload.category_id)
            sku = self.generate_sku(business_id)
            product = PosProduct(
                business_id=business_id,
                name=payload.name,
                name_ar=payload.name_ar or None,
                description=payload.description or None,
                category_id=payload.category_id,
                base_price=payload.base_price,
                image_url=payload.image_url or None,
                sku=sku,
                available=True,
                status=PRODUCT_STATUS_ACTIVE,
            )
            self.db.add(product)
            self.db.flush()
            product_id = product.id

            self._insert_variant_groups(product_id, payload.variant_groups)
            self._insert_modifiers(product_id, payload.modifiers)
            self._audit(
                business_id,
                "create_product",
                product_id,
                {
                    "sku": sku,
                    "variant_groups": len(payload.variant_groups),
                    "modifiers": len(payload.modifiers),
                },
            )

        logger.info("%s product created id=%s business_id=%s sku=%s", CATALOG_PREFIX, product_id, business_id, sku)
        return self.get_product(product_id, business_id)

    def update_product(self, product_id: int, business_id: int, payload: ProductUpdate) -> Optional[dict]:
        fields_set = payload.model_fields_set
        found = False
        with self._transaction("Failed to update product"):
            product = self._find_product(product_id, business_id)
            if product is not None:
                found = True
                changed = self._apply_scalar_changes(business_id, product, payload, fields_set)
                product.updated_at = func.now()

                if "variant_groups" in fields_set and payload.variant_groups is not None:
                    self._delete_variant_groups(product.id)
                    self._insert_variant_groups(product.id, payload.variant_groups)
                    changed.append("variant_groups")
                if "modifiers" in fields_set and payload.modifiers is not None:
                    self._delete_modifiers(product.id)
                    self._insert_modifiers(product.id, payload.modifiers)
                    changed.append("modifiers")

                self._audit(business_id, "update_product", product.id, {"fields": changed})

        if not found:
            return None
        logger.info("%s product updated id=%s business_id=%s", CATALOG_PREFIX, product_id, business_id)
        return self.get_product(product_id, business_id)

    def delete_product(self, product_id: int, business_id: int) -> bool:
        found = False
        with self._transaction("Failed to delete product"):
            product = self._find_product(product_id, business_id)
            if product is not None:
                found = True
                product.status = PRODUCT_STATUS_DELETED
                product.updated_at = func.now()
                self._audit(business_id, "delete_product", product.id)

        if found:
            logger.info("%s product deleted id=%s business_id=%s", CATALOG_PREFIX, product_id, business_id)
        return found

    def toggle_availability(self, product_id: int, business_id: int, available: bool) -> Optional[dict]:
        found = False
        with self._transaction("Failed to toggle availability"):
            product = self._find_product(product_id, business_id)
            if product is not None:
                found = True
                product.available = bool(available)
                product.updated_at = func.now()
                self._audit(business_id, "toggle_product_availability", product.id, {"available": bool(available)})

        if not found:
            return None
        return self.get_product(product_id, business_id)

    def create_category(self, business_id: int, name: str, name_ar: str | None = None) -> dict:
        with self._transaction("Failed to create category"):
            category = PosCategory(business_id=business_id, name=name, name_ar=name_ar or None)
            self.db.add(category)
            self.db.flush()
            self._audit(business_id, "create_category", category.id, entity_type="category")

        self.db.refresh(category)
        return category_to_dict(category)

    # Internals

    def _find_product(self, product_id: int, business_id: int) -> Optional[PosProduct]:
        return (
            self.db.query(PosProduct)
            .filter(PosProduct.id == product_id, PosProduct.business_id == business_id)
            .first()
        )

    def _ensure_category(self, business_id: int, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        category = (
            self.db.query(PosCategory.id)
            .filter(PosCategory.id == category_id, PosCategory.business_id == business_id)
            .first()
        )
        if not category:
            raise CatalogValidationError("Invalid category for this business")

    def _apply_scalar_changes(
        self,
        business_id: int,
        product: PosProduct,
        payload: ProductUpdate,
        fields_set: set[str],
    ) -> list[str]:
        changed: list[str] = []
        for field in _PATCHABLE_FIELDS:
            if field not in fields_set:
                continue
            value = getattr(payload, field)
            if value is None and field in _NON_NULLABLE_FIELDS:
                continue
            if field == "category_id":
                self._ensure_category(business_id, value)
            setattr(product, field, value)
            changed.append(field)
        return changed

    def _insert_variant_groups(self, product_id: int, groups: Iterable[VariantGroupInput]) -> None:
        for group_index, group in enumerate(groups):
            variant_group = PosProductVariantGroup(
                product_id=product_id,
                name=group.name,
                name_ar=group.name_ar or None,
                required=group.required,
                sort_order=group_index,
            )
            self.db.add(variant_group)
            self.db.flush()
            self.db.add_all(
                [
                    PosProductVariantOption(
                        variant_group_id=variant_group.id,
                        name=option.name,
                        name_ar=option.name_ar or None,
                        price_adjustment=option.price_adjustment or 0,
                        sort_order=option_index,
                    )
                    for option_index, option in enumerate(group.options)
                ]
            )
        self.db.flush()

    def _insert_modifiers(self, product_id: int, modifiers: Iterable[ModifierInput]) -> None:
        self.db.add_all(
            [
                PosProductModifier(
                    product_id=product_id,
                    name=modifier.name,
                    name_ar=modifier.name_ar or None,
                    removable=modifier.removable,
                    addable=modifier.addable,
                    extra_price=modifier.extra_price or 0,
                    sort_order=index,
                )
                for index, modifier in enumerate(modifiers)
            ]
        )
        self.db.flush()

    def _delete_variant_groups(self, product_id: int) -> None:
        group_ids = [
            group_id
            for (group_id,) in self.db.query(PosProductVariantGroup.id)
            .filter(PosProductVariantGroup.product_id == product_id)
            .all()
        ]
        if not group_ids:
            return
        # Options first: SQLite only cascades with PRAGMA foreign_keys on.
        self.db.query(PosProductVariantOption).filter(
            PosProductVariantOption.variant_group_id.in_(group_ids)
        ).delete(synchronize_session=False)
        self.db.query(PosProductVariantGroup).filter(
            PosProductVariantGroup.id.in_(group_ids)
        ).delete(synchronize_session=False)

    def _delete_modifiers(self, product_id: int) -> None:
        self.db.query(PosProductModifier).filter(
            PosProductModifier.product_id == product_id
        ).delete(synchronize_session=False)

    def _audit(
        self,
        business_id: int,
        action: str,
        entity_id: int,
        meta: Optional[dict[str, Any]] = None,
        *,
        entity_type: str = "product",
    ) -> None:
        if self.actor_id is None:
            return
        log_catalog_action(
            self.db,
            business_id=business_id,
            user_id=self.actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            meta=meta,
        )

    def _assemble(self, business_id: int, products: list[PosProduct]) -> list[dict]:
        if not products:
            return []

        product_ids = [product.id for product in products]
        groups = (
            self.db.query(PosProductVariantGroup)
            .filter(PosProductVariantGroup.product_id.in_(product_ids))
            .order_by(PosProductVariantGroup.sort_order.asc(), PosProductVariantGroup.id.asc())
            .all()
        )
        group_ids = [group.id for group in groups]
        options = []
        if group_ids:
            options = (
                self.db.query(PosProductVariantOption)
                .filter(PosProductVariantOption.variant_group_id.in_(group_ids))
                .order_by(PosProductVariantOption.sort_order.asc(), PosProductVariantOption.id.asc())
                .all()
            )
        modifiers = (
            self.db.query(PosProductModifier)
            .filter(PosProductModifier.product_id.in_(product_ids))
            .order_by(PosProductModifier.sort_order.asc(), PosProductModifier.id.asc())
            .all()
        )
        category_ids = {product.category_id for product in products if product.category_id is not None}
        category_names: dict[int, str] = {}
        if category_ids:
            category_names = {
                category_id: name
                for category_id, name in self.db.query(PosCategory.id, PosCategory.name)
                .filter(PosCategory.id.in_(category_ids), PosCategory.business_id == business_id)
                .all()
            }

        options_by_group: dict[int, list[PosProductVariantOption]] = {}
        for option in options:
            options_by_group.setdefault(option.variant_group_id, []).append(option)
        groups_by_product: dict[int, list[PosProductVariantGroup]] = {}
        for group in groups:
            groups_by_product.setdefault(group.product_id, []).append(group)
        modifiers_by_product: dict[int, list[PosProductModifier]] = {}
        for modifier in modifiers:
            modifiers_by_product.setdefault(modifier.product_id, []).append(modifier)

        payload: list[dict] = []
        for product in products:
            payload.append(
                {
                    "id": product.id,
                    "business_id": product.business_id,
                    "name": product.name,
                    "name_ar": product.name_ar,
                    "sku": product.sku,
                    "description": product.description,
                    "category_id": product.category_id,
                    "category_name": category_names.get(product.category_id),
                    "base_price": _money(product.base_price),
                    "image_url": product.image_url,
                    "available": True if product.available is None else bool(product.available),
                    "status": product.status,
                    "variant_groups": [
                        {
                            "id": group.id,
                            "name": group.name,
                            "name_ar": group.name_ar,
                            "required": bool(group.required),
                            "sort_order": int(group.sort_order or 0),
                            "options": [_option_to_dict(option) for option in options_by_group.get(group.id, [])],
                        }
                        for group in groups_by_product.get(product.id, [])
                    ],
                    "modifiers": [_modifier_to_dict(modifier) for modifier in modifiers_by_product.get(product.id, [])],
                    "created_at": _isoformat(product.created_at),
                    "updated_at": _isoformat(product.updated_at),
                }
            )
        return payload
