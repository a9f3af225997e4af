"""Test configuration and fixtures"""

from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from labflow.main import app
from labflow.config import settings
from labflow.database import Base, get_db
from labflow.api.auth import create_session_token
from labflow.api.deps import get_ledger, get_notifier
from labflow.api.reports import get_report_vault
from labflow.models.catalog import CatalogKind, LabTest
from labflow.models.coupon import Coupon, DiscountType
from labflow.models.order import OrderStatus, PaymentMethod
from labflow.models.user import Address, User, UserRole
from labflow.services.notifications import RecordingNotifier
from labflow.services.order_ledger import FORWARD_CHAIN, OrderLedger
from labflow.services.otp import MemoryOTPStore, OTPAuthGate, get_otp_gate
from labflow.services.reports import ReportVault


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so separate sessions see each other's commits"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    """Create test database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def ledger_db(session_factory):
    """Session for the code under test, kept apart from the fixture session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def ledger(ledger_db, notifier):
    return OrderLedger(ledger_db, notifier)


@pytest.fixture
def otp_gate():
    return OTPAuthGate(MemoryOTPStore(), ttl_seconds=300)


@pytest.fixture
def report_dir(tmp_path):
    return tmp_path / "reports"


@pytest.fixture
async def test_customer(test_db):
    """Create a customer"""
    user = User(
        phone="+919999999999",
        name="Test Customer",
        email="customer@example.com",
        role=UserRole.CUSTOMER,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def test_address(test_db, test_customer):
    """Create the customer's collection address"""
    address = Address(
        user_id=test_customer.id,
        line1="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        pincode="560001",
        is_default=True,
    )
    test_db.add(address)
    await test_db.commit()
    return address


@pytest.fixture
async def other_customer(test_db):
    """A second customer who owns nothing of the first one's"""
    user = User(
        phone="+918888888888",
        name="Other Customer",
        role=UserRole.CUSTOMER,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def test_admin(test_db):
    """Create an administrator"""
    user = User(
        phone="+919000000001",
        name="Admin User",
        email="admin@example.com",
        role=UserRole.ADMIN,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def test_agent(test_db):
    """Create a field agent"""
    user = User(
        phone="+919000000002",
        name="Field Agent",
        role=UserRole.HOME_VISIT_AGENT,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def other_agent(test_db):
    user = User(
        phone="+919000000003",
        name="Second Agent",
        role=UserRole.HOME_VISIT_AGENT,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def test_catalog(test_db):
    """Create test catalog entries"""
    tests = [
        LabTest(
            name="Complete Blood Count (CBC)",
            slug="cbc",
            kind=CatalogKind.TEST,
            price_paise=29900,
            discount_price_paise=19900,
        ),
        LabTest(
            name="Lipid Profile",
            slug="lipid-profile",
            kind=CatalogKind.TEST,
            price_paise=80000,
        ),
        LabTest(
            name="Retired Test",
            slug="retired",
            kind=CatalogKind.TEST,
            price_paise=50000,
            is_active=False,
        ),
    ]
    for test in tests:
        test_db.add(test)
    await test_db.commit()
    return tests


@pytest.fixture
async def test_coupons(test_db):
    """Create test coupons"""
    coupons = {
        "TEN": Coupon(
            code="TEN",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=10,
            is_active=True,
        ),
        "FLAT500": Coupon(
            code="FLAT500",
            discount_type=DiscountType.FIXED,
            discount_value=50000,
            is_active=True,
        ),
        "ONCE": Coupon(
            code="ONCE",
            discount_type=DiscountType.FIXED,
            discount_value=1000,
            usage_limit=1,
            used_count=0,
            is_active=True,
        ),
    }
    for coupon in coupons.values():
        test_db.add(coupon)
    await test_db.commit()
    return coupons


@pytest.fixture
def place_order(ledger, test_customer, test_address, test_catalog):
    """Create an order for the test customer"""
    async def _place(coupon_code=None, items=None, payment_method=PaymentMethod.RAZORPAY):
        if items is None:
            items = [SimpleNamespace(test_id=test_catalog[1].id, quantity=1)]
        return await ledger.create_order(
            test_customer,
            items,
            address_id=test_address.id,
            scheduled_date=date.today() + timedelta(days=1),
            scheduled_time="08:00-09:00",
            payment_method=payment_method,
            coupon_code=coupon_code,
        )
    return _place


@pytest.fixture
def advance_order(ledger, test_admin):
    """Walk an order along the forward chain up to ``target``"""
    async def _advance(order_id, target: OrderStatus):
        order = await ledger.get_order(order_id)
        start = FORWARD_CHAIN.index(order.status)
        for status in FORWARD_CHAIN[start + 1:FORWARD_CHAIN.index(target) + 1]:
            order = await ledger.transition(order_id, status, test_admin.id)
        return order
    return _advance


@pytest.fixture
def api_overrides(session_factory, notifier, otp_gate, report_dir):
    """Point the app at the test database and in-memory collaborators"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_report_vault(ledger: OrderLedger = Depends(get_ledger)):
        return ReportVault(ledger, storage_path=str(report_dir))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_otp_gate] = lambda: otp_gate
    app.dependency_overrides[get_report_vault] = override_get_report_vault

    yield

    app.dependency_overrides.clear()


def _client(user=None):
    cookies = {settings.session_cookie_name: create_session_token(user)} if user else None
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", cookies=cookies)


@pytest.fixture
async def client(api_overrides):
    """Unauthenticated test client"""
    async with _client() as client:
        yield client


@pytest.fixture
async def customer_client(api_overrides, test_customer):
    async with _client(test_customer) as client:
        yield client


@pytest.fixture
async def other_customer_client(api_overrides, other_customer):
    async with _client(other_customer) as client:
        yield client


@pytest.fixture
async def admin_client(api_overrides, test_admin):
    async with _client(test_admin) as client:
        yield client


@pytest.fixture
async def agent_client(api_overrides, test_agent):
    async with _client(test_agent) as client:
        yield client


@pytest.fixture
async def other_agent_client(api_overrides, other_agent):
    async with _client(other_agent) as client:
        yield client
