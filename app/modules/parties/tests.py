"""
Tests para el módulo de clientes y proveedores

Cubren CRUD, búsqueda, aislamiento por organización y la
restricción de borrado cuando hay documentos asociados.
"""

import pytest
from uuid import uuid4

from app.common.exceptions import PartyNotFound
from app.modules.parties.schemas import PartyCreate
from app.modules.parties.service import PartyService


@pytest.fixture
def sample_party_data():
    return {
        "name": "Sharma Traders",
        "type": "customer",
        "email": "accounts@sharmatraders.in",
        "phone": "98765 43210",
        "gst_no": "27AAPFU0939F1ZV",
        "state": "Maharashtra",
        "billing_address": "12 MG Road, Pune",
    }


class TestPartyEndpoints:
    """Endpoints de /parties"""

    def test_create_party(self, client, sample_party_data):
        response = client.post("/parties/", json=sample_party_data)
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Sharma Traders"
        assert data["type"] == "customer"
        assert data["phone"] == "+919876543210"
        assert data["gst_no"] == "27AAPFU0939F1ZV"

    def test_create_party_invalid_gstin(self, client, sample_party_data):
        sample_party_data["gst_no"] = "27AAPFU0939F1ZA"
        response = client.post("/parties/", json=sample_party_data)
        assert response.status_code == 422

    def test_list_and_search(self, client, sample_party_data):
        client.post("/parties/", json=sample_party_data)
        client.post("/parties/", json={"name": "Gupta Steel", "type": "vendor"})

        response = client.get("/parties/")
        assert response.status_code == 200
        assert response.json()["total"] == 2

        response = client.get("/parties/", params={"search": "gupta"})
        items = response.json()["items"]
        assert [p["name"] for p in items] == ["Gupta Steel"]

        response = client.get("/parties/", params={"type": "customer"})
        assert [p["name"] for p in response.json()["items"]] == ["Sharma Traders"]

    def test_update_party(self, client, sample_party_data):
        party_id = client.post("/parties/", json=sample_party_data).json()["id"]
        response = client.patch(f"/parties/{party_id}", json={"state": "Gujarat"})
        assert response.status_code == 200
        assert response.json()["state"] == "Gujarat"
        assert response.json()["name"] == "Sharma Traders"

    def test_get_missing_party(self, client):
        response = client.get(f"/parties/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "party_not_found"

    def test_delete_party(self, client, sample_party_data):
        party_id = client.post("/parties/", json=sample_party_data).json()["id"]
        assert client.delete(f"/parties/{party_id}").status_code == 204
        assert client.get(f"/parties/{party_id}").status_code == 404

    def test_delete_party_with_documents(self, client, customer, invoice_payload):
        client.post("/invoices/", json=invoice_payload)
        response = client.delete(f"/parties/{customer.id}")
        assert response.status_code == 409
        assert response.json()["code"] == "party_in_use"


class TestPartyIsolation:
    """Las parties de otra organización no son visibles"""

    def test_other_org_party_not_found(self, db_session, organization, other_organization, owner_user):
        service = PartyService(db_session)
        party = service.create_party(
            PartyCreate(name="Foreign Co", type="vendor"), other_organization.id, owner_user.id
        )
        with pytest.raises(PartyNotFound):
            service.get_party(party.id, organization.id)

        listing = service.list_parties(organization.id)
        assert all(p.id != party.id for p in listing.items)
