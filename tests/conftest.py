"""Shared test configuration and fixtures.

Each test gets its own SQLite database file (through aiosqlite) so that the
reservation and cancellation services can commit their own transactions
without leaking state between tests. No database server is needed.
"""

import hmac
import uuid
from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import villastay.models  # noqa: F401  (registers every table on Base.metadata)
from villastay.api.deps import get_notifier, get_payment_gateway
from villastay.auth.jwt import create_access_token
from villastay.database import Base, get_db
from villastay.main import app
from villastay.models.host import Host
from villastay.models.property import Property
from villastay.models.user import User
from villastay.payments.gateway import (
    GatewayOrder,
    GatewayPayment,
    GatewayRefund,
    PaymentGatewayError,
    compute_signature,
    to_minor_units,
)
from villastay.schemas.booking import BookingDetails, CouponApplied
from villastay.services.locks import PropertyLocks
from villastay.services.reservations import verify_and_reserve

TEST_GATEWAY_SECRET = "test_gateway_secret"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeGateway:
    """In-memory payment gateway that signs like the real one."""

    currency = "INR"

    def __init__(self, secret: str = TEST_GATEWAY_SECRET) -> None:
        self.secret = secret
        self.payments: dict[str, GatewayPayment] = {}
        self.orders: list[dict] = []
        self.refund_calls: list[dict] = []
        self.refund_status = "processed"
        self.fetch_error: Exception | None = None
        self.refund_error: Exception | None = None
        self.order_error: Exception | None = None

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(self.secret, order_id, payment_id)

    def add_payment(
        self,
        payment_id: str,
        order_id: str,
        amount: Decimal,
        *,
        status: str = "captured",
        method: str | None = "upi",
    ) -> GatewayPayment:
        payment = GatewayPayment(
            id=payment_id,
            status=status,
            method=method,
            amount=to_minor_units(amount),
            currency=self.currency,
            order_id=order_id,
        )
        self.payments[payment_id] = payment
        return payment

    async def create_order(self, amount_minor: int, receipt: str, notes: dict) -> GatewayOrder:
        if self.order_error is not None:
            raise self.order_error
        order = GatewayOrder(
            id=f"order_{len(self.orders) + 1:04d}",
            amount=amount_minor,
            currency=self.currency,
            receipt=receipt,
        )
        self.orders.append({"order": order, "notes": notes})
        return order

    async def fetch_payment(self, payment_id: str) -> GatewayPayment:
        if self.fetch_error is not None:
            raise self.fetch_error
        try:
            return self.payments[payment_id]
        except KeyError:
            raise PaymentGatewayError("Payment provider rejected the request", gateway_status=400) from None

    async def refund(self, payment_id: str, amount_minor: int, notes: dict) -> GatewayRefund:
        self.refund_calls.append({"payment_id": payment_id, "amount": amount_minor, "notes": notes})
        if self.refund_error is not None:
            raise self.refund_error
        now = datetime(2024, 6, 1, 12, 0, 0)
        return GatewayRefund(
            id=f"rfnd_{len(self.refund_calls):04d}",
            payment_id=payment_id,
            amount=amount_minor,
            currency=self.currency,
            status=self.refund_status,
            created_at=now,
            processed_at=now if self.refund_status == "processed" else None,
            reference_id="ARN0001",
            notes={k: str(v) for k, v in notes.items()},
        )

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return hmac.compare_digest(self.sign(order_id, payment_id), signature)


class RecordingNotifier:
    """Stands in for BookingNotifier and records what would have been sent."""

    def __init__(self) -> None:
        self.confirmations: list[uuid.UUID] = []
        self.cancellations: list[tuple[uuid.UUID, object]] = []

    async def send_booking_confirmation(self, booking_id: uuid.UUID) -> None:
        self.confirmations.append(booking_id)

    async def send_booking_cancellation(self, booking_id: uuid.UUID, refund=None) -> None:
        self.cancellations.append((booking_id, refund))


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Engine on a fresh SQLite file with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'villastay_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def locks() -> PropertyLocks:
    return PropertyLocks()


@pytest_asyncio.fixture
async def client(session_factory, gateway, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test DB, fake gateway and notifier."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users, hosts, properties
# ---------------------------------------------------------------------------


def auth_header(subject_id: uuid.UUID, role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(subject_id), role=role)}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(
        first_name="Test",
        last_name="User",
        email=f"testuser-{unique}@test.com",
        mobile_number="+919800000000",
        role="user",
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(first_name="Other", email=f"other-{unique}@test.com", role="user", is_active=True)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(first_name="Admin", email=f"admin-{unique}@test.com", role="admin", is_active=True)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_host(db_session: AsyncSession) -> Host:
    unique = uuid.uuid4().hex[:8]
    host = Host(first_name="Host", last_name="Owner", email=f"host-{unique}@test.com", is_active=True)
    db_session.add(host)
    await db_session.commit()
    await db_session.refresh(host)
    return host


@pytest_asyncio.fixture
async def test_property(db_session: AsyncSession, test_host: Host) -> Property:
    """A villa charging 5000 on weeknights and 6000 on Friday and Saturday nights."""
    prop = Property(
        host_id=test_host.id,
        title="Test Villa",
        description="A test villa for automated tests.",
        price=Decimal("5000.00"),
        weekend_price=Decimal("6000.00"),
        max_guests=4,
        street="12 Beach Road",
        city="Goa",
        state="Goa",
        postal_code="403001",
    )
    db_session.add(prop)
    await db_session.commit()
    await db_session.refresh(prop)
    return prop


@pytest.fixture
def user_headers(test_user: User) -> dict[str, str]:
    return auth_header(test_user.id)


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_header(admin_user.id)


@pytest.fixture
def host_headers(test_host: Host) -> dict[str, str]:
    return auth_header(test_host.id, role="host")


# ---------------------------------------------------------------------------
# Convenience fixtures: confirmed bookings
# ---------------------------------------------------------------------------


def future_dates(offset_days: int = 30, nights: int = 2) -> tuple[date, date]:
    """Return a (check_in, check_out) pair safely in the future."""
    check_in = date.today() + timedelta(days=offset_days)
    return check_in, check_in + timedelta(days=nights)


@pytest.fixture
def reserve(session_factory, gateway: FakeGateway, test_user: User, test_property: Property, locks):
    """Factory that pays for and confirms a stay through the real reservation engine."""
    counter = {"n": 0}

    async def _reserve(
        check_in: date,
        check_out: date,
        *,
        total_price: Decimal = Decimal("10000.00"),
        user: User | None = None,
        property_id: uuid.UUID | None = None,
        guests: int = 2,
        coupon: CouponApplied | None = None,
    ):
        counter["n"] += 1
        order_id = f"order_fixture_{counter['n']}"
        payment_id = f"pay_fixture_{counter['n']}"
        gateway.add_payment(payment_id, order_id, total_price)
        details = BookingDetails(
            check_in_date=check_in,
            check_out_date=check_out,
            guests=guests,
            total_price=total_price,
            coupon_applied=coupon,
        )
        async with session_factory() as session:
            return await verify_and_reserve(
                session,
                gateway,
                order_id=order_id,
                payment_id=payment_id,
                signature=gateway.sign(order_id, payment_id),
                property_id=property_id or test_property.id,
                user_id=(user or test_user).id,
                booking_details=details,
                locks=locks,
            )

    return _reserve


@pytest.fixture
def make_headers():
    """Build Bearer headers for any user or host id."""
    return auth_header
