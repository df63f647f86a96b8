# Shared pytest configuration and fixtures for all test types
import pytest
import pytest_asyncio
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from unittest.mock import AsyncMock

from api.main import create_app
from common.db.session import get_db
from common.db.base import Base
from packages.auth.dependencies import get_current_session
from packages.auth.models.database.session import SessionEntity
from packages.auth.models.domain.session import AuthSession, SessionContext
from packages.organizations.models.database.organization import (
    OrganizationEntity,
    OrganizationMemberEntity,
)
from packages.razorpay.callbacks import SubscriptionCallbacks
from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.models.domain.subscription import Subscription
from packages.razorpay.plugin import RazorpayOptions, RazorpayPlugin
from packages.razorpay.providers.payment.interface import PaymentProviderInterface
from packages.razorpay.repositories.store import BillingStore
from packages.users.models.database.user import UserEntity
from packages.users.models.domain.user import User
from tests.fixtures import TEST_WEBHOOK_SECRET, create_subscription_entity

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PLANS = [
    RazorpayPlan(
        name="Pro",
        plan_id="plan_pro_monthly",
        annual_plan_id="plan_pro_annual",
        limits={"projects": 10, "storage_gb": 50},
    ),
    RazorpayPlan(
        name="Starter",
        plan_id="plan_starter_monthly",
        limits={"projects": 2},
        free_trial_days=14,
    ),
    RazorpayPlan(
        name="Team",
        plan_id="plan_team_monthly",
        limits={"projects": 100},
        seat_based=True,
    ),
]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so commits inside tests
    release savepoints instead of ending the outer transaction.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def store(test_db: AsyncSession) -> BillingStore:
    return BillingStore(test_db)


# ============================================================================
# Razorpay plugin
# ============================================================================


@pytest.fixture
def mock_payment_provider():
    """Mock Razorpay API; every call succeeds with a plausible payload."""
    provider = AsyncMock(spec=PaymentProviderInterface)
    provider.create_customer = AsyncMock(
        return_value={"id": "cust_test123", "entity": "customer"}
    )
    provider.create_subscription = AsyncMock(
        return_value={
            "id": "sub_test123",
            "entity": "subscription",
            "plan_id": "plan_pro_monthly",
            "customer_id": "cust_test123",
            "status": "created",
            "short_url": "https://rzp.io/i/test123",
        }
    )
    provider.fetch_subscription = AsyncMock(
        return_value={"id": "sub_test123", "status": "active"}
    )
    provider.cancel_subscription = AsyncMock(
        return_value={"id": "sub_test123", "status": "cancelled"}
    )
    provider.pause_subscription = AsyncMock(
        return_value={"id": "sub_test123", "status": "paused"}
    )
    provider.resume_subscription = AsyncMock(
        return_value={"id": "sub_test123", "status": "active"}
    )
    provider.update_subscription = AsyncMock(
        return_value={"id": "sub_test123", "status": "active"}
    )
    provider.cancel_scheduled_changes = AsyncMock(
        return_value={"id": "sub_test123", "status": "active"}
    )
    return provider


@pytest.fixture
def mock_callbacks():
    """Callbacks recorder; every hook is an AsyncMock."""
    return AsyncMock(spec=SubscriptionCallbacks)


@pytest.fixture
def authorize_reference_hook():
    return AsyncMock(return_value=True)


@pytest.fixture
def razorpay_options(mock_callbacks, authorize_reference_hook) -> RazorpayOptions:
    return RazorpayOptions(
        plans=TEST_PLANS,
        callbacks=mock_callbacks,
        authorize_reference=authorize_reference_hook,
        organization_enabled=True,
        webhook_secret=TEST_WEBHOOK_SECRET,
    )


@pytest.fixture
def razorpay_plugin(razorpay_options, mock_payment_provider) -> RazorpayPlugin:
    return RazorpayPlugin(razorpay_options, payment=mock_payment_provider)


# ============================================================================
# Users, organizations, sessions
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def sample_user_entity(test_db: AsyncSession):
    """Create a verified user for testing."""
    user = UserEntity(email="owner@example.com", name="Owner", email_verified=True)
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def sample_user(sample_user_entity) -> User:
    return User.model_validate(sample_user_entity)


@pytest_asyncio.fixture(scope="function")
async def other_user(test_db: AsyncSession) -> User:
    user = UserEntity(email="member@example.com", name="Member", email_verified=True)
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return User.model_validate(user)


@pytest_asyncio.fixture(scope="function")
async def sample_organization(test_db: AsyncSession, sample_user_entity):
    """Create an organization with the sample user as its only member."""
    organization = OrganizationEntity(name="Acme", slug="acme")
    test_db.add(organization)
    await test_db.commit()
    await test_db.refresh(organization)

    test_db.add(
        OrganizationMemberEntity(
            organization_id=organization.id,
            user_id=sample_user_entity.id,
            role="owner",
        )
    )
    await test_db.commit()
    return organization


@pytest_asyncio.fixture(scope="function")
async def sample_session_entity(test_db: AsyncSession, sample_user_entity):
    session = SessionEntity(
        token="session-token-123",
        user_id=sample_user_entity.id,
        expires_at=datetime.now(timezone.utc) + timedelta(days=1),
    )
    test_db.add(session)
    await test_db.commit()
    await test_db.refresh(session)
    return session


@pytest_asyncio.fixture(scope="function")
async def session_context(sample_user, sample_session_entity) -> SessionContext:
    return SessionContext(
        user=sample_user, session=AuthSession.model_validate(sample_session_entity)
    )


# ============================================================================
# Subscriptions
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def sample_subscription(test_db: AsyncSession, sample_user) -> Subscription:
    """Active Pro subscription billed to the sample user."""
    return await create_subscription_entity(
        test_db, reference_id=str(sample_user.id)
    )


# ============================================================================
# HTTP client
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession, razorpay_plugin, session_context):
    """Create a test client authenticated as the sample user."""
    app = create_app(razorpay_plugin)

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    def override_get_current_session():
        return session_context

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_session] = override_get_current_session

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
