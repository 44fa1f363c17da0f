"""
Test configuration and fixtures.

Provides:
- In-memory SQLite engine shared by every session of a test
- Unit of work over that engine, with seeded subscription plans and an owner
- RedisMock progress cache
- FastAPI TestClient wired to the test database and cache
- Celery in eager mode so side effects run inline
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinichub.config.celery_config import CeleryConfig, celery_app
from clinichub.core.database import create_tables, enable_sqlite_savepoints
from clinichub.core.dependencies import get_progress_cache, get_unit_of_work
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.main import app
from clinichub.mocks import RedisMock
from clinichub.models import User
from clinichub.services.domain.subscription_service import SubscriptionService

OWNER_EMAIL = "owner@alzahra.sa"

celery_app.conf.update(CeleryConfig.get_testing_config())


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def user_id(session_factory) -> int:
    """Owner account with the built-in plans seeded; committed and closed."""
    with UnitOfWork(session_factory) as setup:
        with setup.transaction():
            SubscriptionService().ensure_default_plans(setup)
            user = User(email=OWNER_EMAIL, first_name="Layla", last_name="Hassan")
            setup.add(user)
            setup.flush()
            created_id = user.id
    return created_id


@pytest.fixture
def uow(session_factory) -> Generator[UnitOfWork, None, None]:
    with UnitOfWork(session_factory) as uow:
        yield uow


@pytest.fixture
def count(session_factory):
    """Row count of a model, read through a fresh session."""
    def _count(model) -> int:
        with UnitOfWork(session_factory) as reader:
            return reader.session.query(model).count()
    return _count


# =============================================================================
# Cache
# =============================================================================

@pytest.fixture
def cache():
    return RedisMock()


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def client(session_factory, cache) -> Generator[TestClient, None, None]:
    def override_unit_of_work():
        with UnitOfWork(session_factory) as uow:
            yield uow

    app.dependency_overrides[get_unit_of_work] = override_unit_of_work
    app.dependency_overrides[get_progress_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
