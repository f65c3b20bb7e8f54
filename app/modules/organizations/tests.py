"""
Tests para organizaciones: configuración, año fiscal y miembros
"""

import pytest
from datetime import date
from types import SimpleNamespace
from uuid import uuid4
from fastapi.testclient import TestClient

from app.common.exceptions import OrgNotFound
from app.main import app
from app.modules.auth.dependencies import AuthDependencies
from app.modules.organizations import service
from app.modules.organizations.schemas import FinancialYear, OrganizationCreate, default_financial_year


@pytest.fixture
def owner_client(db_session, owner_user):
    current_user = SimpleNamespace(id=owner_user.id, is_active=True)
    app.dependency_overrides[AuthDependencies.get_current_user] = lambda: current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestFinancialYear:

    def test_default_before_april(self):
        fy = default_financial_year(date(2024, 2, 10))
        assert fy == FinancialYear(start=date(2023, 4, 1), end=date(2024, 3, 31))

    def test_default_from_april(self):
        fy = default_financial_year(date(2024, 4, 1))
        assert fy == FinancialYear(start=date(2024, 4, 1), end=date(2025, 3, 31))

    def test_end_must_follow_start(self):
        with pytest.raises(ValueError):
            FinancialYear(start=date(2024, 4, 1), end=date(2024, 4, 1))


class TestOrganizationService:

    def test_create_sets_defaults(self, db_session, owner_user):
        organization = service.create_organization(
            db_session, OrganizationCreate(name="Iyer Foods"), owner_user, today=date(2024, 6, 1)
        )
        settings = service.get_settings(db_session, organization.id)
        assert settings.financial_year_start == date(2024, 4, 1)
        assert settings.invoice_prefix == "INV-"
        assert settings.currency == "INR"
        assert service.get_membership(db_session, organization.id, owner_user.id).role == "owner"

    def test_missing_settings(self, db_session):
        with pytest.raises(OrgNotFound):
            service.get_settings(db_session, uuid4())


class TestOrganizationEndpoints:

    def test_create_and_list_mine(self, owner_client):
        response = owner_client.post("/organizations/", json={"name": "Iyer Foods", "state": "Kerala"})
        assert response.status_code == 201
        assert response.json()["settings"]["quote_prefix"] == "QT-"

        response = owner_client.get("/organizations/mine")
        assert [(o["name"], o["role"]) for o in response.json()] == [("Iyer Foods", "owner")]

    def test_update_settings(self, owner_client):
        org_id = owner_client.post("/organizations/", json={"name": "Iyer Foods"}).json()["id"]

        response = owner_client.patch(f"/organizations/{org_id}/settings", json={
            "invoice_prefix": "IF/24-25/",
            "currency": "usd",
            "print_upi_qr": True
        })
        assert response.status_code == 200
        data = response.json()
        assert data["invoice_prefix"] == "IF/24-25/"
        assert data["currency"] == "USD"
        assert data["print_upi_qr"] is True

    def test_invalid_financial_year(self, owner_client):
        org_id = owner_client.post("/organizations/", json={"name": "Iyer Foods"}).json()["id"]
        response = owner_client.patch(f"/organizations/{org_id}/settings", json={
            "financial_year_start": "2025-04-01",
            "financial_year_end": "2025-03-31"
        })
        assert response.status_code == 422

    def test_unsupported_currency(self, owner_client):
        org_id = owner_client.post("/organizations/", json={"name": "Iyer Foods"}).json()["id"]
        response = owner_client.patch(f"/organizations/{org_id}/settings", json={"currency": "XYZ"})
        assert response.status_code == 422

    def test_invalid_gstin(self, owner_client):
        response = owner_client.post("/organizations/", json={"name": "Iyer Foods", "gst_no": "12345"})
        assert response.status_code == 422

    def test_non_member_forbidden(self, owner_client, db_session):
        from app.modules.auth.models import User

        stranger = User(name="Stranger", email="stranger@example.in", password="x", is_active=True)
        db_session.add(stranger)
        db_session.commit()
        org = service.create_organization(db_session, OrganizationCreate(name="Other Co"), stranger)

        assert owner_client.get(f"/organizations/{org.id}").status_code == 403
