"""
Fixtures compartidos por los tests de todos los módulos.

La base de datos es un archivo SQLite temporal; las tablas se crean y se
eliminan en cada test. La autenticación se reemplaza por un AuthContext
del usuario dueño de la organización de prueba.
"""
import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="billing-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["EMAIL_ALWAYS_EAGER"] = "true"

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, SessionLocal, sync_engine
from app.common.middleware import ORG_HEADER
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.auth.schemas import AuthContext
from app.modules.auth.utils import hash_password
from app.modules.organizations import service as organization_service
from app.modules.organizations.schemas import OrganizationCreate
from app.modules.parties.models import Party


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=sync_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture
def owner_user(db_session):
    user = User(name="Asha Verma", email="asha@example.in", password=hash_password("secret123"), is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def organization(db_session, owner_user):
    return organization_service.create_organization(
        db_session,
        OrganizationCreate(name="Verma Hardware", state="Maharashtra"),
        owner_user
    )


@pytest.fixture
def other_organization(db_session, owner_user):
    return organization_service.create_organization(
        db_session,
        OrganizationCreate(name="Verma Exports", state="Gujarat"),
        owner_user
    )


@pytest.fixture
def auth_context(owner_user, organization):
    return AuthContext(user_id=owner_user.id, org_id=organization.id, user_role="owner")


@pytest.fixture
def client(auth_context):
    app.dependency_overrides[AuthDependencies.get_auth_context] = lambda: auth_context
    with TestClient(app, headers={ORG_HEADER: str(auth_context.org_id)}) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def customer(db_session, organization, owner_user):
    party = Party(
        org_id=organization.id,
        name="Sharma Traders",
        type="customer",
        email="accounts@sharmatraders.in",
        state="Maharashtra",
        created_by=owner_user.id
    )
    db_session.add(party)
    db_session.commit()
    db_session.refresh(party)
    return party


@pytest.fixture
def vendor(db_session, organization, owner_user):
    party = Party(
        org_id=organization.id,
        name="Gupta Steel",
        type="vendor",
        state="Gujarat",
        created_by=owner_user.id
    )
    db_session.add(party)
    db_session.commit()
    db_session.refresh(party)
    return party


@pytest.fixture
def invoice_payload(customer):
    """Dos unidades de 100 con GST 18%: subtotal 200, impuesto 36, total 236"""
    return {
        "party_id": str(customer.id),
        "items": [
            {"name": "Steel bracket", "price": "100", "quantity": "2", "tax_code": "gst:18", "unit": "pcs"}
        ],
    }
