"""
Shared fixtures: an in-memory SQLite database, a session bound to it and an
httpx client talking to the app with ``get_db`` overridden.
"""
import os

# Settings are cached on first import; point them at in-memory SQLite
# with every optional collaborator switched off.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["KAFKA_ENABLED"] = "false"
os.environ.pop("REDIS_URL", None)
os.environ.pop("OTLP_ENDPOINT", None)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from fundraiser_service.main import app
from fundraiser_service.database.database import engine, SessionLocal, get_db
from fundraiser_service.models import (
    Base,
    Profile,
    FundraisingProgress,
    AffiliateLink,
    Donation,
    DonationStatus,
)
from fundraiser_service.core.circuit_breaker import db_circuit_breaker
from fundraiser_service.cache.redis import redis_cache
from fundraiser_service.kafka.producer import kafka_producer


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture(autouse=True)
def reset_collaborators():
    """Every test starts with a closed breaker, no cache and no Kafka"""
    db_circuit_breaker.reset()
    redis_cache.client = None
    kafka_producer.client = None
    yield
    db_circuit_breaker.reset()


@pytest.fixture
def db_session():
    """Fresh schema and session per test"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest_asyncio.fixture
async def client(db_session):
    """Create test client with database override"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# SEED HELPERS
# ============================================================================

@pytest.fixture
def seed_progress(db_session):
    """Insert a profile and its fundraising progress"""
    def _seed(user_id, target_amount=1000.0, collected_amount=0.0, full_name=None, email=None):
        if not db_session.get(Profile, user_id):
            db_session.add(Profile(user_id=user_id, full_name=full_name, email=email))
        row = FundraisingProgress(
            user_id=user_id,
            target_amount=target_amount,
            collected_amount=collected_amount,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _seed


@pytest.fixture
def seed_link(db_session):
    """Insert an affiliate link, creating the owner's profile if needed"""
    def _seed(user_id, link_code="share-code", target_amount=1000.0, is_active=True,
              title="Help me reach my goal", full_name=None):
        if not db_session.get(Profile, user_id):
            db_session.add(Profile(user_id=user_id, full_name=full_name))
        link = AffiliateLink(
            user_id=user_id,
            link_code=link_code,
            title=title,
            target_amount=target_amount,
            is_active=is_active,
        )
        db_session.add(link)
        db_session.commit()
        db_session.refresh(link)
        return link
    return _seed


@pytest.fixture
def seed_donation(db_session):
    """Insert a donation against a link"""
    def _seed(link, amount=100.0, status=DonationStatus.PENDING, donor_name="Donor"):
        donation = Donation(
            affiliate_link_id=link.id,
            donor_name=donor_name,
            amount=amount,
            payment_status=status,
        )
        db_session.add(donation)
        db_session.commit()
        db_session.refresh(donation)
        return donation
    return _seed
