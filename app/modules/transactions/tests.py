"""
Tests del libro de transacciones
"""

from decimal import Decimal


class TestTransactions:

    def test_one_row_per_document(self, client, invoice_payload, vendor):
        client.post("/invoices/", json=invoice_payload)
        client.post("/quotes/", json=invoice_payload)
        client.post("/purchase-orders/", json={**invoice_payload, "party_id": str(vendor.id)})

        response = client.get("/transactions/")
        assert response.status_code == 200
        assert response.json()["total"] == 3
        assert sorted(row["doc_model"] for row in response.json()["items"]) == ["invoice", "purchase_order", "quote"]

    def test_filters(self, client, customer, invoice_payload, vendor):
        client.post("/invoices/", json=invoice_payload)
        client.post("/purchases/", json={**invoice_payload, "party_id": str(vendor.id)})

        response = client.get("/transactions/", params={"doc_model": "purchase"})
        assert [row["doc_model"] for row in response.json()["items"]] == ["purchase"]

        response = client.get("/transactions/", params={"party_id": str(customer.id)})
        assert response.json()["items"][0]["party"]["name"] == "Sharma Traders"

        response = client.get("/transactions/", params={"date_to": "2000-01-01"})
        assert response.json()["total"] == 0

    def test_unknown_doc_model(self, client):
        assert client.get("/transactions/", params={"doc_model": "receipt"}).status_code == 422

    def test_summary(self, client, invoice_payload):
        client.post("/invoices/", json=invoice_payload)
        client.post("/invoices/", json=invoice_payload)

        response = client.get("/transactions/summary")
        assert response.status_code == 200
        by_model = {row["doc_model"]: row for row in response.json()["by_doc_model"]}
        assert set(by_model) == {"invoice", "purchase", "purchase_order", "quote"}
        assert by_model["invoice"]["count"] == 2
        assert Decimal(by_model["invoice"]["total"]) == Decimal("400")
        assert Decimal(by_model["invoice"]["total_tax"]) == Decimal("72")
        assert by_model["quote"]["count"] == 0

    def test_rows_are_scoped_to_organization(self, client, db_session, other_organization, owner_user, invoice_payload):
        from app.modules.transactions.service import TransactionService

        client.post("/invoices/", json=invoice_payload)
        assert TransactionService(db_session).list_transactions(other_organization.id).total == 0
