"""
SocietyPro - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta
from typing import AsyncGenerator, Any, Dict, List, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_FILE'] = ''
os.environ['RAZORPAY_KEY_ID'] = ''
os.environ['RAZORPAY_KEY_SECRET'] = ''
os.environ['RAZORPAY_WEBHOOK_SECRET'] = ''

from app.main import app
from app.core.database import Base, get_db
from app.core.exceptions import PaymentGatewayError
from app.models.flat import Flat, FlatStatus
from app.models.maintenance import MaintenanceBill
from app.models.user import User, UserRole
from app.core.security import get_password_hash, create_access_token
from app.services.payment_gateway import PaymentGateway, get_payment_gateway
from app.utils.storage_client import get_storage_client

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)

TEST_PASSWORD = 'testpassword123'


class FakeStorage:
    """In-memory stand-in for StorageClient"""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    async def upload_image(self, data: bytes, filename: str, content_type: Optional[str], folder: str) -> Dict[str, str]:
        public_id = f"{folder}/{len(self.objects) + 1}-{filename}"
        self.objects[public_id] = data
        return {"url": f"https://cdn.test/{public_id}", "public_id": public_id}

    async def delete_object(self, public_id: str) -> bool:
        self.deleted.append(public_id)
        return self.objects.pop(public_id, None) is not None


class FakeGateway(PaymentGateway):
    """PaymentGateway with canned Razorpay responses instead of network calls"""

    def __init__(self, **kwargs):
        super().__init__(
            key_id=kwargs.pop('key_id', 'rzp_test_key'),
            key_secret=kwargs.pop('key_secret', 'rzp_test_secret'),
            webhook_secret=kwargs.pop('webhook_secret', 'whsec_test'),
            currency='INR',
        )
        self.orders: List[Dict[str, Any]] = []
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None

    async def create_order(self, amount_paise: int, receipt: str, notes: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self.fail_with:
            raise self.fail_with
        order = {
            "id": f"order_test{len(self.orders) + 1}",
            "entity": "order",
            "amount": amount_paise,
            "currency": self.currency,
            "receipt": receipt,
            "status": "created",
            "created_at": 1700000000,
            "notes": notes or {},
        }
        self.orders.append(order)
        return order

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        if self.fail_with:
            raise self.fail_with
        if payment_id not in self.payments:
            raise PaymentGatewayError(f"Payment gateway error: payment {payment_id} does not exist", gateway_status=400)
        return self.payments[payment_id]


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
async def client(db_session: AsyncSession, storage: FakeStorage, gateway: FakeGateway) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database, storage and gateway overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_client] = lambda: storage
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, role: UserRole = UserRole.RESIDENT, **overrides) -> User:
    fields = dict(
        email=fake.unique.email().lower(),
        hashed_password=get_password_hash(TEST_PASSWORD),
        full_name=fake.name(),
        phone_no='9876543210',
        wing='A',
        flat_no='101',
        role=role,
        is_active=True,
        is_verified=True,
    )
    fields.update(overrides)
    user = User(**fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def _create_bill(db: AsyncSession, resident: User, **overrides) -> MaintenanceBill:
    fields = dict(
        resident=resident,
        resident_id=resident.id,
        wing=resident.wing,
        flat_no=resident.flat_no,
        amount=1500.0,
        month='January',
        year=2025,
        due_date=datetime.utcnow() + timedelta(days=10),
    )
    fields.update(overrides)
    bill = MaintenanceBill(**fields)
    db.add(bill)
    await db.commit()
    await db.refresh(bill)
    return bill


def _headers_for(user: User) -> dict:
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
async def flat(db_session: AsyncSession) -> Flat:
    """Flat A-101, occupied"""
    flat = Flat(wing='A', flat_no='101', status=FlatStatus.OCCUPIED, owner_name=fake.name())
    db_session.add(flat)
    await db_session.commit()
    await db_session.refresh(flat)
    return flat


@pytest.fixture
async def test_user(db_session: AsyncSession, flat: Flat) -> User:
    """Verified resident living in A-101"""
    return await _create_user(db_session)


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """Verified resident living in B-202"""
    return await _create_user(db_session, wing='B', flat_no='202')


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Society admin"""
    return await _create_user(db_session, role=UserRole.ADMIN, wing=None, flat_no=None)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authentication headers for the resident"""
    return _headers_for(test_user)


@pytest.fixture
def other_auth_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Authentication headers for the admin"""
    return _headers_for(admin_user)


@pytest.fixture
async def bill(db_session: AsyncSession, test_user: User) -> MaintenanceBill:
    """Pending bill for the resident"""
    return await _create_bill(db_session, test_user)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: await make_user(role=..., **fields)"""
    async def factory(role: UserRole = UserRole.RESIDENT, **overrides) -> User:
        return await _create_user(db_session, role=role, **overrides)
    return factory


@pytest.fixture
def make_bill(db_session: AsyncSession):
    """Factory: await make_bill(resident, **fields)"""
    async def factory(resident: User, **overrides) -> MaintenanceBill:
        return await _create_bill(db_session, resident, **overrides)
    return factory


@pytest.fixture
def headers_for():
    """Factory: bearer headers for any user"""
    return _headers_for
