import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.errors import register_exception_handlers
from app.core.metrics import request_metrics
from app.middleware.observability import ObservabilityMiddleware
from app.models.business import Business
from app.models.user import User
from app.routers.internal_metrics import router as internal_metrics_router
from app.routers.products import router as products_router
from app.services import auth


@pytest.fixture(autouse=True)
def _jwt_secret(monkeypatch):
    monkeypatch.setattr(auth, "JWT_SECRET_KEY", "test-secret")


def _build_client() -> TestClient:
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
    db.add(User(id=7, business_id=1, name="Owner", email="owner@sylo.test", role="OWNER", is_active=True))
    db.add(User(id=8, business_id=1, name="Former", email="former@sylo.test", role="cashier", is_active=False))
    db.add(User(id=9, business_id=2, name="Barista", email="barista@other.test", role="manager", is_active=True))
    db.add(User(id=10, business_id=1, name="Cashier", email="cashier@sylo.test", role="cashier", is_active=True))
    db.commit()

    app = FastAPI()
    app.add_middleware(ObservabilityMiddleware)
    register_exception_handlers(app)
    app.include_router(products_router)
    app.include_router(internal_metrics_router)
    app.dependency_overrides[get_db] = lambda: db

    return TestClient(app)


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_valid_token_scopes_writes_to_the_users_business():
    client = _build_client()
    token = auth.create_access_token(7, 1, role="owner")

    response = client.post(
        "/api/products",
        json={"name": "Burger", "base_price": 10, "business_id": 2},
        headers=_bearer(token),
    )

    assert response.status_code == 201
    assert response.json()["data"]["business_id"] == 1
    assert response.json()["data"]["sku"] == "1-POS-0001"


def test_missing_token_is_rejected():
    client = _build_client()

    response = client.get("/api/products")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "No token provided"}
    assert response.headers["www-authenticate"] == "Bearer"


def test_garbage_and_expired_tokens_are_rejected():
    client = _build_client()
    expired = auth.create_access_token(7, 1, expires_minutes=-5)

    garbage_response = client.get("/api/products", headers=_bearer("not-a-jwt"))
    expired_response = client.get("/api/products", headers=_bearer(expired))

    assert garbage_response.status_code == 401
    assert garbage_response.json()["error"] == "Invalid or expired token"
    assert expired_response.status_code == 401
    assert expired_response.json()["error"] == "Invalid or expired token"


def test_token_signed_with_another_secret_is_rejected():
    client = _build_client()
    forged = jwt.encode({"sub": "7", "business_id": "1"}, "other-secret", algorithm="HS256")

    response = client.get("/api/products", headers=_bearer(forged))

    assert response.status_code == 401


def test_token_without_subject_is_rejected():
    client = _build_client()
    token = jwt.encode({"business_id": "1"}, "test-secret", algorithm="HS256")

    response = client.get("/api/products", headers=_bearer(token))

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token (missing subject)"


def test_inactive_or_unknown_user_is_rejected():
    client = _build_client()

    inactive = client.get("/api/products", headers=_bearer(auth.create_access_token(8, 1)))
    unknown = client.get("/api/products", headers=_bearer(auth.create_access_token(404, 1)))

    assert inactive.status_code == 401
    assert inactive.json()["error"] == "User not found"
    assert unknown.status_code == 401


def test_token_business_must_match_the_users_business():
    client = _build_client()
    token = auth.create_access_token(7, 2)

    response = client.get("/api/products", headers=_bearer(token))

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid session"


def test_request_id_is_echoed_and_metrics_are_recorded_per_business():
    request_metrics.reset()
    client = _build_client()
    token = auth.create_access_token(9, 2)

    response = client.get("/api/products", headers={**_bearer(token), "X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"
    assert request_metrics.snapshot()["GET /api/products"]["total_requests"] == 1
    assert request_metrics.snapshot_per_business()["2"]["total_requests"] == 1


def test_metrics_are_keyed_by_route_template_not_raw_path():
    request_metrics.reset()
    client = _build_client()
    headers = _bearer(auth.create_access_token(7, 1))

    for product_id in (1, 2, 3):
        client.get(f"/api/products/{product_id}", headers=headers)

    snapshot = request_metrics.snapshot()
    assert snapshot["GET /api/products/{product_id}"]["total_requests"] == 3
    assert snapshot["GET /api/products/{product_id}"]["error_count"] == 3
    assert not any(key.startswith("GET /api/products/1") for key in snapshot)


def test_owner_reads_own_business_metrics():
    request_metrics.reset()
    client = _build_client()
    client.get("/api/products", headers=_bearer(auth.create_access_token(9, 2)))
    owner_headers = _bearer(auth.create_access_token(7, 1))
    client.get("/api/products", headers=owner_headers)

    response = client.get("/internal/metrics", headers=owner_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["business_id"] == 1
    assert data["business"]["total_requests"] == 1
    assert data["endpoints"]["GET /api/products"]["total_requests"] == 2


def test_metrics_require_owner_role():
    client = _build_client()

    cashier = client.get("/internal/metrics", headers=_bearer(auth.create_access_token(10, 1)))
    manager = client.get("/internal/metrics", headers=_bearer(auth.create_access_token(9, 2)))
    anonymous = client.get("/internal/metrics")

    assert cashier.status_code == 403
    assert cashier.json() == {"success": False, "error": "Insufficient permissions"}
    assert manager.status_code == 403
    assert anonymous.status_code == 401


def test_decode_access_token_round_trips_claims():
    token = auth.create_access_token(7, 1, role="owner")

    payload = auth.decode_access_token(token)

    assert payload["sub"] == "7"
    assert payload["business_id"] == "1"
    assert payload["role"] == "owner"
    with pytest.raises(ValueError):
        auth.decode_access_token("not-a-jwt")


def test_missing_secret_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(auth, "JWT_SECRET_KEY", "")

    with pytest.raises(RuntimeError):
        auth.create_access_token(7, 1)
