"""Pytest configuration for ai_attribution integration tests

WHAT: Provides an in-memory database, a FastAPI TestClient and Shopify order
      payload factories
WHY: Repository and router tests need a real SQLAlchemy session without a
     configured Postgres
REFERENCES:
    - ai_attribution/main.py: FastAPI application
    - ai_attribution/database.py: Database configuration
"""

import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# database.py reads DATABASE_URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """Create in-memory test database engine shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    from ai_attribution.database import Base
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine,
    )

    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def app(test_db_session):
    """Create FastAPI test application bound to the test session."""
    from ai_attribution.main import create_app
    from ai_attribution.database import get_db

    test_app = create_app()

    def override_get_db():
        yield test_db_session

    test_app.dependency_overrides[get_db] = override_get_db
    return test_app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


# ============================================================================
# Payload Fixtures
# ============================================================================

def _money(amount: str, currency: str = "USD") -> dict:
    return {"shopMoney": {"amount": amount, "currencyCode": currency}}


@pytest.fixture
def make_order_node():
    """Factory for Shopify Admin API order nodes."""

    def _make(
        order_id: str,
        created_at: str,
        total: str,
        referrer: str = "",
        landing_page: str = "https://shop.example.com/",
        customer_id: str = None,
        number_of_orders: int = 1,
        currency: str = "USD",
        source_name: str = "web",
        product_id: str = "gid://shopify/Product/1",
    ) -> dict:
        node = {
            "id": f"gid://shopify/Order/{order_id}",
            "name": f"#{order_id}",
            "createdAt": created_at,
            "currentTotalPriceSet": _money(total, currency),
            "customerJourneySummary": {"firstVisit": {"referrerUrl": referrer}},
            "landingPageUrl": landing_page,
            "sourceName": source_name,
            "tags": [],
            "noteAttributes": [],
            "customer": (
                {"id": f"gid://shopify/Customer/{customer_id}", "numberOfOrders": number_of_orders}
                if customer_id else None
            ),
            "lineItems": {
                "edges": [
                    {
                        "node": {
                            "id": f"gid://shopify/LineItem/{order_id}",
                            "name": "Mug",
                            "quantity": 1,
                            "originalUnitPriceSet": _money(total, currency),
                            "variant": {"product": {"id": product_id, "title": "Mug", "handle": "mug"}},
                        }
                    }
                ]
            },
        }
        return node

    return _make
