"""
Tests de registro, login y contexto de organización

Usan tokens JWT reales: no reemplazan las dependencias de autenticación.
"""

import pytest
from uuid import uuid4
from fastapi.testclient import TestClient

from app.main import app
from app.modules.auth.utils import verify_token


@pytest.fixture
def api_client(db_session):
    with TestClient(app) as test_client:
        yield test_client


def register_and_login(api_client, email="ravi@example.in", password="Ravi12345"):
    api_client.post("/auth/register", json={"name": "Ravi Kumar", "email": email, "password": password})
    response = api_client.post("/auth/login", json={"email": email, "password": password})
    return response.json()["access_token"]


class TestRegister:

    def test_register(self, api_client):
        response = api_client.post("/auth/register", json={
            "name": "Ravi Kumar", "email": "Ravi@Example.in", "password": "Ravi12345"
        })
        assert response.status_code == 201
        assert response.json()["email"] == "ravi@example.in"
        assert "password" not in response.json()

    def test_duplicate_email(self, api_client):
        payload = {"name": "Ravi Kumar", "email": "ravi@example.in", "password": "Ravi12345"}
        api_client.post("/auth/register", json=payload)
        assert api_client.post("/auth/register", json=payload).status_code == 400

    def test_password_needs_letters_and_digits(self, api_client):
        response = api_client.post("/auth/register", json={
            "name": "Ravi Kumar", "email": "ravi@example.in", "password": "onlyletters"
        })
        assert response.status_code == 422


class TestLogin:

    def test_login_returns_token(self, api_client):
        api_client.post("/auth/register", json={"name": "Ravi Kumar", "email": "ravi@example.in", "password": "Ravi12345"})

        response = api_client.post("/auth/login", json={"email": "ravi@example.in", "password": "Ravi12345"})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["organizations"] == []
        assert verify_token(data["access_token"])["email"] == "ravi@example.in"

    def test_wrong_password(self, api_client):
        api_client.post("/auth/register", json={"name": "Ravi Kumar", "email": "ravi@example.in", "password": "Ravi12345"})
        response = api_client.post("/auth/login", json={"email": "ravi@example.in", "password": "Wrong12345"})
        assert response.status_code == 401

    def test_me(self, api_client):
        token = register_and_login(api_client)
        response = api_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["name"] == "Ravi Kumar"

    def test_me_without_token(self, api_client):
        assert api_client.get("/auth/me").status_code in (401, 403)


class TestOrganizationContext:
    """Header X-Org-ID y membresía"""

    def test_org_header_flow(self, api_client):
        token = register_and_login(api_client)
        auth = {"Authorization": f"Bearer {token}"}

        response = api_client.post("/organizations/", json={"name": "Kumar Textiles"}, headers=auth)
        assert response.status_code == 201
        org_id = response.json()["id"]

        response = api_client.get("/parties/", headers={**auth, "X-Org-ID": org_id})
        assert response.status_code == 200
        assert response.headers["X-Org-ID"] == org_id

    def test_missing_org_header(self, api_client):
        token = register_and_login(api_client)
        response = api_client.get("/parties/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 400
        assert response.json()["code"] == "org_header_missing"

    def test_invalid_org_header(self, api_client):
        token = register_and_login(api_client)
        response = api_client.get("/parties/", headers={"Authorization": f"Bearer {token}", "X-Org-ID": "abc"})
        assert response.status_code == 400
        assert response.json()["code"] == "org_header_invalid"

    def test_not_a_member(self, api_client):
        token = register_and_login(api_client)
        response = api_client.get("/parties/", headers={"Authorization": f"Bearer {token}", "X-Org-ID": str(uuid4())})
        assert response.status_code == 403

    def test_viewer_cannot_write(self, api_client):
        owner_token = register_and_login(api_client)
        viewer_token = register_and_login(api_client, email="meera@example.in", password="Meera12345")
        owner = {"Authorization": f"Bearer {owner_token}"}

        org_id = api_client.post("/organizations/", json={"name": "Kumar Textiles"}, headers=owner).json()["id"]
        response = api_client.post(f"/organizations/{org_id}/members",
                                   json={"email": "meera@example.in", "role": "viewer"}, headers=owner)
        assert response.status_code == 201

        viewer = {"Authorization": f"Bearer {viewer_token}", "X-Org-ID": org_id}
        assert api_client.get("/parties/", headers=viewer).status_code == 200
        assert api_client.post("/parties/", json={"name": "Anand Stores"}, headers=viewer).status_code == 403

    def test_public_endpoints(self, api_client):
        assert api_client.get("/health").json()["status"] == "healthy"
        assert api_client.get("/taxes/rates").status_code == 200
