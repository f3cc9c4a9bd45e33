import asyncio
import os
import time
import uuid
from types import SimpleNamespace

import jwt
import pytest

TEST_SECRET = "test-secret-key-for-marketplace-tokens"

# Must be set before the app modules read their configuration
os.environ["JWT_SECRET_KEY"] = TEST_SECRET
os.environ["DATABASE_URL"] = ""

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from config import get_db  # noqa: E402
from main import app  # noqa: E402
from models import Base  # noqa: E402


def make_token(user_id, role=None, email=None, expires_in=3600):
    now = int(time.time())
    payload = {"sub": str(user_id), "email": email, "iat": now, "exp": now + expires_in}
    if role:
        payload["user_metadata"] = {"role": role}
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())

    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    asyncio.run(engine.dispose())


@pytest.fixture()
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def run_db(session_factory):
    """Execute one statement directly against the test database"""
    def _run(statement):
        async def _execute():
            async with session_factory() as session:
                await session.execute(statement)
                await session.commit()

        asyncio.run(_execute())

    return _run


@pytest.fixture()
def register(client):
    def _register(role, name, **profile):
        user_id = uuid.uuid4()
        email = f"{name.lower().replace(' ', '.')}@example.com"
        headers = {"Authorization": f"Bearer {make_token(user_id, role, email)}"}
        response = client.post(
            "/auth/create-profile",
            json={"display_name": name, "role": role, **profile},
            headers=headers,
        )
        assert response.status_code == 200, response.text
        return SimpleNamespace(user_id=user_id, headers=headers, profile=response.json())

    return _register


@pytest.fixture()
def buyer(register):
    return register("buyer", "Bea Buyer")


@pytest.fixture()
def other_buyer(register):
    return register("buyer", "Oscar Buyer")


@pytest.fixture()
def supplier(register):
    return register("supplier", "Sam Supplier", company_name="Acme Supplies")


@pytest.fixture()
def other_supplier(register):
    return register("supplier", "Tina Trader", company_name="Bolt Traders")


@pytest.fixture()
def create_product(client):
    def _create(party, **overrides):
        payload = {
            "title": "Steel Bolts",
            "category": "hardware",
            "images": ["https://img.example.com/bolts.png"],
            "price": 100,
            "moq": 1,
            "available": 1000,
        }
        payload.update(overrides)
        response = client.post("/products/", json=payload, headers=party.headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture()
def create_request(client):
    def _create(party, **overrides):
        payload = {
            "product_name": "Steel Bolts M8",
            "category": "hardware",
            "quantity": 500,
            "target_price": 90,
        }
        payload.update(overrides)
        response = client.post("/requests/", json=payload, headers=party.headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture()
def place_bid(client):
    def _place(party, request_id, product_id, **overrides):
        payload = {
            "request_id": request_id,
            "product_id": product_id,
            "bid_price": 85,
            "quantity": 500,
            "delivery_time": 10,
            "message": "Can ship next week",
        }
        payload.update(overrides)
        return client.post("/bids/", json=payload, headers=party.headers)

    return _place
