import json
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.errors import CatalogStoreError, CatalogValidationError
from app.models.business import Business
from app.models.catalog_audit_log import CatalogAuditLog
from app.models.pos_category import PosCategory
from app.models.pos_product import PosProduct
from app.models.pos_product_modifier import PosProductModifier
from app.models.pos_product_variant_group import PosProductVariantGroup
from app.models.pos_product_variant_option import PosProductVariantOption
from app.schemas.catalog import ProductCreate, ProductUpdate
from app.services.catalog import CatalogService


def _build_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    db.add(Business(id=1, name="Sylo Burgers", slug="sylo-burgers"))
    db.add(Business(id=2, name="Other Cafe", slug="other-cafe"))
    db.commit()
    return db


def _burger(**overrides) -> ProductCreate:
    data = {"name": "Burger", "base_price": Decimal("10")}
    data.update(overrides)
    return ProductCreate(**data)


def test_create_product_assigns_sku_and_defaults():
    db = _build_session()
    service = CatalogService(db)

    product = service.create_product(1, _burger())

    assert product["sku"] == "1-POS-0001"
    assert product["business_id"] == 1
    assert product["status"] == "active"
    assert product["available"] is True
    assert product["base_price"] == 10.0
    assert product["variant_groups"] == []
    assert product["modifiers"] == []


def test_sku_sequence_is_per_business_and_counts_deleted_products():
    db = _build_session()
    service = CatalogService(db)

    first = service.create_product(1, _burger())
    second = service.create_product(1, _burger(name="Fries", base_price=Decimal("4")))
    other = service.create_product(2, _burger(name="Latte"))
    assert service.delete_product(second["id"], 1) is True
    third = service.create_product(1, _burger(name="Shake"))

    assert first["sku"] == "1-POS-0001"
    assert second["sku"] == "1-POS-0002"
    assert other["sku"] == "2-POS-0001"
    assert third["sku"] == "1-POS-0003"


def test_generate_sku_requires_business_id():
    db = _build_session()

    with pytest.raises(CatalogValidationError):
        CatalogService(db).generate_sku("")


def test_nested_variant_groups_and_modifiers_keep_submission_order():
    db = _build_session()
    service = CatalogService(db)
    payload = _burger(
        variant_groups=[
            {
                "name": "Size",
                "options": [
                    {"name": "Small"},
                    {"name": "Medium", "price_adjustment": "1.50"},
                    {"name": "Large", "price_adjustment": "3"},
                ],
            },
            {"name": "Bread", "required": False, "options": [{"name": "White"}, {"name": "Brioche"}]},
        ],
        modifiers=[
            {"name": "Onion"},
            {"name": "Cheese", "removable": False, "addable": True, "extra_price": "2.25"},
        ],
    )

    product = service.create_product(1, payload)

    groups = product["variant_groups"]
    assert [group["name"] for group in groups] == ["Size", "Bread"]
    assert [group["sort_order"] for group in groups] == [0, 1]
    assert groups[0]["required"] is True
    assert groups[1]["required"] is False
    assert [option["name"] for option in groups[0]["options"]] == ["Small", "Medium", "Large"]
    assert [option["sort_order"] for option in groups[0]["options"]] == [0, 1, 2]
    assert [option["price_adjustment"] for option in groups[0]["options"]] == [0.0, 1.5, 3.0]
    assert [option["name"] for option in groups[1]["options"]] == ["White", "Brioche"]

    modifiers = product["modifiers"]
    assert [modifier["name"] for modifier in modifiers] == ["Onion", "Cheese"]
    assert modifiers[0]["removable"] is True
    assert modifiers[0]["addable"] is False
    assert modifiers[1]["addable"] is True
    assert modifiers[1]["extra_price"] == 2.25


def test_get_products_lists_only_active_products_of_the_business():
    db = _build_session()
    service = CatalogService(db)
    burger = service.create_product(1, _burger())
    fries = service.create_product(1, _burger(name="Fries"))
    service.create_product(2, _burger(name="Latte"))

    service.delete_product(fries["id"], 1)

    products = service.get_products(1)
    assert [product["id"] for product in products] == [burger["id"]]


def test_get_product_still_returns_soft_deleted_product():
    db = _build_session()
    service = CatalogService(db)
    burger = service.create_product(1, _burger())

    assert service.delete_product(burger["id"], 1) is True

    product = service.get_product(burger["id"], 1)
    assert product is not None
    assert product["status"] == "deleted"
    assert db.query(PosProduct).count() == 1


def test_get_product_is_scoped_to_business():
    db = _build_session()
    service = CatalogService(db)
    latte = service.create_product(2, _burger(name="Latte"))

    assert service.get_product(latte["id"], 1) is None
    assert service.delete_product(latte["id"], 1) is False
    assert service.toggle_availability(latte["id"], 1, False) is None
    assert service.update_product(latte["id"], 1, ProductUpdate(name="Stolen")) is None
    assert service.get_product(latte["id"], 2)["name"] == "Latte"


def test_update_preserves_omitted_collections_and_replaces_sent_ones():
    db = _build_session()
    service = CatalogService(db)
    burger = service.create_product(
        1,
        _burger(
            variant_groups=[{"name": "Size", "options": [{"name": "Small"}, {"name": "Large"}]}],
            modifiers=[{"name": "Onion"}],
        ),
    )

    renamed = service.update_product(burger["id"], 1, ProductUpdate(name="Cheeseburger"))
    assert renamed["name"] == "Cheeseburger"
    assert [group["name"] for group in renamed["variant_groups"]] == ["Size"]
    assert [modifier["name"] for modifier in renamed["modifiers"]] == ["Onion"]

    cleared = service.update_product(burger["id"], 1, ProductUpdate(variant_groups=[]))
    assert cleared["variant_groups"] == []
    assert [modifier["name"] for modifier in cleared["modifiers"]] == ["Onion"]
    assert db.query(PosProductVariantGroup).count() == 0
    assert db.query(PosProductVariantOption).count() == 0

    replaced = service.update_product(
        burger["id"],
        1,
        ProductUpdate(modifiers=[{"name": "Pickles"}, {"name": "Bacon", "addable": True, "extra_price": "1"}]),
    )
    assert [modifier["name"] for modifier in replaced["modifiers"]] == ["Pickles", "Bacon"]
    assert [modifier["sort_order"] for modifier in replaced["modifiers"]] == [0, 1]
    assert db.query(PosProductModifier).count() == 2


def test_update_treats_null_collections_as_absent():
    db = _build_session()
    service = CatalogService(db)
    burger = service.create_product(1, _burger(modifiers=[{"name": "Onion"}]))

    updated = service.update_product(
        burger["id"],
        1,
        ProductUpdate.model_validate({"modifiers": None, "name": None, "description": "Juicy"}),
    )

    assert updated["name"] == "Burger"
    assert updated["description"] == "Juicy"
    assert [modifier["name"] for modifier in updated["modifiers"]] == ["Onion"]


def test_update_can_clear_nullable_fields():
    db = _build_session()
    service = CatalogService(db)
    burger = service.create_product(1, _burger(description="Classic", name_ar="برجر"))

    updated = service.update_product(burger["id"], 1, ProductUpdate.model_validate({"description": None}))

    assert updated["description"] is None
    assert updated["name_ar"] == "برجر"


def test_toggle_availability_only_changes_available():
    db = _build_session()
    service = CatalogService(db)
    burger = service.create_product(1, _burger(description="Classic"))

    toggled = service.toggle_availability(burger["id"], 1, False)

    assert toggled["available"] is False
    assert toggled["name"] == "Burger"
    assert toggled["base_price"] == 10.0
    assert toggled["description"] == "Classic"
    assert toggled["sku"] == burger["sku"]


def test_failed_write_rolls_back_the_whole_product(monkeypatch):
    db = _build_session()
    service = CatalogService(db)

    def _broken_insert(self, product_id, modifiers):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(CatalogService, "_insert_modifiers", _broken_insert)

    with pytest.raises(CatalogStoreError) as exc_info:
        service.create_product(
            1,
            _burger(variant_groups=[{"name": "Size", "options": [{"name": "Small"}]}], modifiers=[{"name": "Onion"}]),
        )

    assert exc_info.value.message == "Failed to create product"
    assert db.query(PosProduct).count() == 0
    assert db.query(PosProductVariantGroup).count() == 0
    assert db.query(PosProductVariantOption).count() == 0


def test_failed_update_keeps_previous_collections(monkeypatch):
    db = _build_session()
    service = CatalogService(db)
    burger = service.create_product(1, _burger(modifiers=[{"name": "Onion"}]))

    def _broken_insert(self, product_id, modifiers):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(CatalogService, "_insert_modifiers", _broken_insert)

    with pytest.raises(CatalogStoreError):
        service.update_product(burger["id"], 1, ProductUpdate(name="Renamed", modifiers=[{"name": "Bacon"}]))

    monkeypatch.undo()
    product = service.get_product(burger["id"], 1)
    assert product["name"] == "Burger"
    assert [modifier["name"] for modifier in product["modifiers"]] == ["Onion"]


def test_category_from_another_business_is_rejected():
    db = _build_session()
    service = CatalogService(db)
    foreign = service.create_category(2, "Coffee")
    own = service.create_category(1, "Burgers")

    with pytest.raises(CatalogValidationError):
        service.create_product(1, _burger(category_id=foreign["id"]))
    assert db.query(PosProduct).count() == 0

    product = service.create_product(1, _burger(category_id=own["id"]))
    assert product["category_name"] == "Burgers"

    with pytest.raises(CatalogValidationError):
        service.update_product(product["id"], 1, ProductUpdate(category_id=foreign["id"]))
    assert service.get_product(product["id"], 1)["category_id"] == own["id"]


def test_categories_are_scoped_and_ordered():
    db = _build_session()
    service = CatalogService(db)
    service.create_category(1, "Drinks")
    service.create_category(1, "Burgers", name_ar="برجر")
    service.create_category(2, "Coffee")
    db.add(PosCategory(business_id=1, name="Specials", sort_order=-1))
    db.commit()

    categories = service.get_categories(1)

    assert [category["name"] for category in categories] == ["Specials", "Burgers", "Drinks"]
    assert categories[1]["name_ar"] == "برجر"
    assert all(category["business_id"] == 1 for category in categories)


def test_writes_are_audited_when_actor_is_known():
    db = _build_session()
    service = CatalogService(db, actor_id=7)

    burger = service.create_product(1, _burger(modifiers=[{"name": "Onion"}]))
    service.update_product(burger["id"], 1, ProductUpdate(name="Cheeseburger"))
    service.toggle_availability(burger["id"], 1, False)
    service.delete_product(burger["id"], 1)

    entries = db.query(CatalogAuditLog).order_by(CatalogAuditLog.id.asc()).all()
    assert [entry.action for entry in entries] == [
        "create_product",
        "update_product",
        "toggle_product_availability",
        "delete_product",
    ]
    assert all(entry.user_id == 7 and entry.business_id == 1 for entry in entries)
    assert json.loads(entries[0].meta_json) == {"sku": "1-POS-0001", "variant_groups": 0, "modifiers": 1}
    assert json.loads(entries[1].meta_json) == {"fields": ["name"]}


def test_writes_without_actor_skip_audit():
    db = _build_session()

    CatalogService(db).create_product(1, _burger())

    assert db.query(CatalogAuditLog).count() == 0
