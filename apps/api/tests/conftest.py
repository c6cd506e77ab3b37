"""
Test configuration and fixtures.

Provides:
- A throwaway SQLite database per test (tables created and dropped around it)
- Form owner with an encrypted Airtable token, plus a form factory
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
import tempfile
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

from cryptography.fernet import Fernet

# Settings are read at import time; configure the test environment first
_TEST_DB_DIR = tempfile.mkdtemp(prefix="airform-tests-")
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["TOKEN_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["INTERNAL_SECRET"] = "test-internal-secret"
os.environ["LOCAL_STORAGE_PATH"] = os.path.join(_TEST_DB_DIR, "uploads")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from app.main import app
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.deps import get_db, COOKIE_NAME
from app.core.security import create_session_token
from app.db.models import Form, User
from app.schemas.forms import FormSchema
from app.services import user_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session on a freshly created schema.

    App code commits freely; tables are dropped after each test.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def owner(db: Session) -> User:
    """Form owner with a connected Airtable account."""
    return user_service.create_user(
        db,
        email=f"owner-{uuid.uuid4().hex[:8]}@test.com",
        airtable_user_id=f"usr{uuid.uuid4().hex[:12]}",
        access_token="pat-test-token",
        display_name="Test Owner",
    )


# =============================================================================
# Form Fixtures
# =============================================================================

def sample_fields() -> list[dict]:
    """Field definitions shared by most tests."""
    return [
        {
            "key": "name",
            "type": "short_text",
            "airtable_field_name": "Full Name",
            "label": "Name",
            "required": True,
            "order": 0,
        },
        {
            "key": "email",
            "type": "short_text",
            "airtable_field_name": "Email",
            "label": "Email",
            "order": 1,
        },
        {
            "key": "has_company",
            "type": "single_select",
            "airtable_field_name": "Has Company",
            "label": "Do you have a company?",
            "options": [{"name": "Yes"}, {"name": "No"}],
            "order": 2,
        },
        {
            "key": "company",
            "type": "short_text",
            "airtable_field_name": "Company Name",
            "label": "Company",
            "required": True,
            "show_when": [{"field_key": "has_company", "operator": "equals", "value": "Yes"}],
            "order": 3,
        },
        {
            "key": "colors",
            "type": "multi_select",
            "airtable_field_name": "Favorite Colors",
            "label": "Favorite Colors",
            "options": [{"name": "Red"}, {"name": "Blue"}, {"name": "Green"}],
            "order": 4,
        },
        {
            "key": "resume",
            "type": "attachment",
            "airtable_field_name": "Resume",
            "label": "Resume",
            "order": 5,
        },
    ]


@pytest.fixture(scope="function")
def schema() -> FormSchema:
    return FormSchema.model_validate({"fields": sample_fields()})


@pytest.fixture(scope="function")
def make_form(db: Session, owner: User):
    """Factory for forms owned by `owner`."""

    def _make(
        fields: list[dict] | None = None,
        settings: dict | None = None,
        is_active: bool = True,
        is_published: bool = True,
        form_owner: User | None = None,
    ) -> Form:
        form = Form(
            owner_id=(form_owner or owner).id,
            title="Intake Form",
            airtable_base_id="appBase123",
            airtable_table_id="tblTable456",
            schema_json={"fields": sample_fields() if fields is None else fields},
            settings_json=settings or {},
            is_active=is_active,
            is_published=is_published,
        )
        db.add(form)
        db.commit()
        db.refresh(form)
        return form

    return _make


@pytest.fixture(scope="function")
def form(make_form) -> Form:
    return make_form()


@pytest.fixture(scope="function")
def make_submission(db: Session, form: Form):
    """Factory for stored (not yet synced) submissions."""
    from app.services import form_service, submission_store
    from app.services.materialize_service import materialize

    def _make(answers: dict | None = None, target: Form | None = None):
        target = target or form
        materialized = materialize(
            form_service.parse_schema(target),
            answers if answers is not None else {"name": "Ada", "has_company": "Yes", "company": "Acme"},
        )
        return submission_store.create_submission(db, target, materialized)

    return _make


# =============================================================================
# Airtable Fakes
# =============================================================================

class FakeAirtable:
    """Records create_record calls and answers with canned results."""

    def __init__(self):
        self.calls: list[dict] = []
        self.results: list[tuple] = []
        self.default = ("recDefault", None)

    async def create_record(self, access_token, base_id, table_id, fields):
        self.calls.append(
            {"token": access_token, "base_id": base_id, "table_id": table_id, "fields": fields}
        )
        if self.results:
            return self.results.pop(0)
        return self.default


@pytest.fixture(scope="function")
def fake_airtable(monkeypatch) -> FakeAirtable:
    from app.services import airtable_api

    fake = FakeAirtable()
    monkeypatch.setattr(airtable_api, "create_record", fake.create_record)
    return fake


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


@pytest.fixture(scope="function")
def test_auth(owner: User) -> TestAuth:
    """Create JWT token for the form owner."""
    token = create_session_token(user_id=owner.id, token_version=owner.token_version)
    return TestAuth(user=owner, token=token)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated AsyncClient with JWT cookie and CSRF header.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()
