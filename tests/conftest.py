import os
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient

# Point the app at the test database before anything reads the config
TEST_SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
os.environ.setdefault("DATABASE_URL", TEST_SQLALCHEMY_DATABASE_URL)

from roofcrm.main import app
from roofcrm.db.base import Base
from roofcrm.db.session import get_db
from roofcrm.core.security import create_access_token
from roofcrm.crud import crud_invoice, crud_lead, crud_location, crud_user
from roofcrm.schemas.invoice import CustomerInvoiceCreate
from roofcrm.schemas.lead import LeadCreate
from roofcrm.schemas.user import UserCreate

engine = create_engine(TEST_SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="session")
def test_engine():
    Base.metadata.create_all(bind=engine)
    yield engine


@pytest.fixture(scope="function")
def db_session(test_engine):
    """
    Fresh schema for every test. CRUD functions commit, so API calls made in
    the same test see the rows created here.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def company(db_session: Session):
    return crud_location.create_company(db_session, name=f"Acme Roofing {uuid.uuid4().hex[:4]}")


@pytest.fixture
def location(db_session: Session, company):
    return crud_location.create_location(db_session, company_id=company.id, name="Main Office")


@pytest.fixture
def make_user(db_session: Session, company):
    """Factory: make_user(role="sales", sales_commission_type="percentage", ...)."""
    def _make(role: str = "sales", company_id=None, **kwargs):
        user_in = UserCreate(
            email=f"{role}_{uuid.uuid4().hex[:6]}@example.com",
            full_name=kwargs.pop("full_name", f"Test {role.title()}"),
            role=role,
            **kwargs,
        )
        return crud_user.create_user(db_session, company_id=company_id or company.id, obj_in=user_in)
    return _make


@pytest.fixture
def sales_rep(make_user):
    return make_user(
        role="sales", full_name="Sam Sales", sales_commission_type="percentage", sales_commission_rate=Decimal("10")
    )


@pytest.fixture
def make_lead(db_session: Session, company, location):
    def _make(**slots):
        lead_in = LeadCreate(full_name=f"Homeowner {uuid.uuid4().hex[:4]}", location_id=location.id, **slots)
        return crud_lead.create_lead(db_session, company_id=company.id, obj_in=lead_in)
    return _make


@pytest.fixture
def add_invoice(db_session: Session, company):
    def _add(lead, total):
        return crud_invoice.create_invoice(
            db_session,
            lead_id=lead.id,
            company_id=company.id,
            obj_in=CustomerInvoiceCreate(total=Decimal(str(total)), subtotal=Decimal(str(total))),
        )
    return _add


@pytest.fixture
def assign(db_session: Session):
    """Write a lead slot the way the assignment endpoint does, without reconciling."""
    def _assign(lead, field, user):
        return crud_lead.update_lead_assignment(
            db_session, db_obj=lead, assignment_field=field, user_id=user.id if user else None
        )
    return _assign


def auth_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
