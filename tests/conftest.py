"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test (all tables created)
- Funeral home with default policies provisioned
- In-memory Go ERP and email doubles
- HTTPX AsyncClient wired to the app with those doubles
"""
import os
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RESEND_API_KEY"] = ""

from funeral_core.core.deps import get_contract_port, get_db, get_email_sender, get_financial_port
from funeral_core.db.base import Base
from funeral_core.db.session import build_engine
from funeral_core.main import app
from funeral_core.services import policy_service
from funeral_core.services.email_sender import InMemoryEmailSender
from funeral_core.services.in_memory_backend import InMemoryGoBackend

import funeral_core.db.models  # noqa: F401

FUNERAL_HOME_ID = "fh_test"
STAFF_ID = "staff_1"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a private in-memory database.

    App code commits freely; the whole database is discarded after the test.
    """
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = sessionmaker(autoflush=False, bind=engine)()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture(scope="function")
def funeral_home_id(db: Session) -> str:
    """Funeral home with every default policy provisioned."""
    policy_service.provision_default_policies(db, FUNERAL_HOME_ID, STAFF_ID)
    db.commit()
    return FUNERAL_HOME_ID


# =============================================================================
# Collaborator doubles
# =============================================================================

@pytest.fixture(scope="function")
def backend() -> InMemoryGoBackend:
    """Go ERP double with the receivable and two revenue accounts."""
    erp = InMemoryGoBackend()
    erp.add_gl_account("1200", "Accounts Receivable", "asset")
    erp.add_gl_account("4100", "Service Revenue", "revenue")
    erp.add_gl_account("4200", "Merchandise Revenue", "revenue")
    return erp


@pytest.fixture(scope="function")
def email_sender() -> InMemoryEmailSender:
    return InMemoryEmailSender()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(
    db: Session,
    backend: InMemoryGoBackend,
    email_sender: InMemoryEmailSender,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient acting as STAFF_ID, backed by the test session and doubles."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_contract_port] = lambda: backend
    app.dependency_overrides[get_financial_port] = lambda: backend
    app.dependency_overrides[get_email_sender] = lambda: email_sender

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Actor-Id": STAFF_ID},
    ) as c:
        yield c

    app.dependency_overrides.clear()
