"""
Pytest configuration and fixtures for testing
"""
import os
import re

# Must be set before application modules read settings
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("PAYPAL_CLIENT_ID", "test-client-id")
os.environ.setdefault("PAYPAL_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from typing import List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from auth_utils import create_jwt
from config.settings import PAYPAL_SANDBOX_API
from database import Base
from services.paypal_client import PayPalClient

# Create in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
ORDER_ID_PATTERN = re.compile(r"[A-Za-z0-9-]+")


class FakePayPal:
    """
    Stand-in for the PayPal REST API behind an httpx.MockTransport.
    Records every request so tests can assert which calls were made.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.token_status = 200
        self.create_status = 201
        self.lookup_status = 200
        self.order_id = "O1"
        self.created_order_status = "CREATED"
        self.lookup_order_status = "COMPLETED"
        # Id the lookup reports back; None echoes the requested id
        self.lookup_order_id: Optional[str] = None
        self.include_approve_link = True
        self.fail_transport = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_transport:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path == "/v1/oauth2/token":
            if self.token_status != 200:
                return httpx.Response(
                    self.token_status,
                    json={"error": "invalid_client", "error_description": "Client Authentication failed"},
                )
            return httpx.Response(200, json={"access_token": "A21AA-test-token", "token_type": "Bearer", "expires_in": 32400})

        if path == "/v2/checkout/orders" and request.method == "POST":
            if self.create_status >= 400:
                return httpx.Response(self.create_status, json={"name": "INVALID_REQUEST", "message": "Request is not well-formed"})
            links = [{"href": f"{PAYPAL_SANDBOX_API}/v2/checkout/orders/{self.order_id}", "rel": "self", "method": "GET"}]
            if self.include_approve_link:
                links.append({
                    "href": f"https://www.sandbox.paypal.com/checkoutnow?token={self.order_id}",
                    "rel": "approve",
                    "method": "GET",
                })
            return httpx.Response(
                self.create_status,
                json={"id": self.order_id, "status": self.created_order_status, "links": links},
            )

        if path.startswith("/v2/checkout/orders/") and request.method == "GET":
            order_id = path[len("/v2/checkout/orders/"):]
            if self.lookup_status != 200:
                return httpx.Response(self.lookup_status, json={"name": "RESOURCE_NOT_FOUND"})
            if not ORDER_ID_PATTERN.fullmatch(order_id):
                return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})
            return httpx.Response(200, json={"id": self.lookup_order_id or order_id, "status": self.lookup_order_status})

        if path.startswith("/v2/payments/captures/") and request.method == "GET":
            return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1], "status": "COMPLETED"})

        return httpx.Response(404, json={"name": "NOT_FOUND"})

    def client(self, client_id: Optional[str] = "test-client-id", client_secret: Optional[str] = "test-secret-key") -> PayPalClient:
        return PayPalClient(
            client_id=client_id,
            client_secret=client_secret,
            api_base=PAYPAL_SANDBOX_API,
            transport=httpx.MockTransport(self.handler),
        )

    def calls(self, path_prefix: str, method: Optional[str] = None) -> int:
        return sum(
            1 for r in self.requests
            if r.url.path.startswith(path_prefix) and (method is None or r.method == method)
        )


@pytest.fixture
def paypal():
    return FakePayPal()


@pytest.fixture
async def session_factory():
    """
    Fresh in-memory database per test. StaticPool keeps every session on the
    one connection that holds the in-memory data.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    import database_models  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_db(session_factory):
    """
    Fixture that provides an isolated AsyncSession for each test.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture
async def async_client(session_factory, paypal):
    """
    Async HTTP client against the app with database, PayPal and the
    checkout flow's API client all pointed at test doubles.
    """
    from main import app
    from database import get_db
    from routers.checkout_router import get_api_client
    from services.paypal_client import get_paypal_client

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def override_get_api_client():
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            yield client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_paypal_client] = lambda: paypal.client()
    app.dependency_overrides[get_api_client] = override_get_api_client

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(user_id: str = "U1", email: Optional[str] = None) -> dict:
    return {"Authorization": f"Bearer {create_jwt(user_id, email=email)}"}
