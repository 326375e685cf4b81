"""Pytest fixtures for testing"""

import pytest
from typing import Dict, Generator, List, Tuple
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from crowdfund_gateway.api.dependencies import get_notification_client
from crowdfund_gateway.api.main import create_app
from crowdfund_gateway.domain.models import CallerContext
from crowdfund_gateway.infrastructure.database.models import Base, Business, Investment
from crowdfund_gateway.infrastructure.database.session import get_db
from crowdfund_gateway.services.businesses import BusinessService
from crowdfund_gateway.services.investments import InvestmentService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingNotificationClient:
    """Stands in for the webhook client so no HTTP leaves the test process"""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def send_distribution_paid(self, investor_id: str, distribution_id: str) -> None:
        self.sent.append((investor_id, distribution_id))


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db: Session):
    """Open extra sessions on the test database, standing in for concurrent requests"""
    sessions = []

    def _open() -> Session:
        session = TestingSessionLocal()
        sessions.append(session)
        return session

    yield _open
    for session in sessions:
        session.close()


@pytest.fixture
def notification_client() -> RecordingNotificationClient:
    return RecordingNotificationClient()


@pytest.fixture
def client(db: Session, notification_client: RecordingNotificationClient) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_client] = lambda: notification_client
    return TestClient(app)


# Callers


@pytest.fixture
def owner() -> CallerContext:
    return CallerContext(id="owner-1", role="business")


@pytest.fixture
def admin() -> CallerContext:
    return CallerContext(id="admin-1", role="admin")


@pytest.fixture
def investor_a() -> CallerContext:
    return CallerContext(id="investor-a", role="investor")


@pytest.fixture
def investor_b() -> CallerContext:
    return CallerContext(id="investor-b", role="investor")


@pytest.fixture
def auth_headers():
    """Identity headers the upstream auth gateway would set"""

    def _headers(ctx: CallerContext) -> Dict[str, str]:
        return {"X-User-Id": ctx.id, "X-User-Role": ctx.role}

    return _headers


# Factories


@pytest.fixture
def business(db: Session, owner: CallerContext) -> Business:
    """Open business with a 10,000.00 funding goal"""
    return BusinessService(db).create_business(
        owner,
        name="Green Valley Farms",
        description="Organic produce for local markets",
        sector="agriculture",
        funding_goal_cents=1_000_000,
    )


@pytest.fixture
def invest(db: Session):
    """Create and settle an investment, returning the completed record"""

    def _invest(ctx: CallerContext, business: Business, amount_cents: int) -> Investment:
        service = InvestmentService(db)
        investment = service.create_investment(ctx, business.id, amount_cents)
        return service.settle_investment(ctx, investment.id, payment_reference=f"ref-{ctx.id}")

    return _invest
