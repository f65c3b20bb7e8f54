"""
Tests para gastos y categorías de gastos
"""

from decimal import Decimal


class TestExpenses:

    def test_create_and_list_with_filters(self, client):
        category_id = client.post("/expenses/categories", json={"name": "Rent"}).json()["id"]
        client.post("/expenses/", json={
            "description": "Office rent April", "amount": "25000", "date": "2024-04-05", "category_id": category_id
        })
        client.post("/expenses/", json={"description": "Tea", "amount": "150.50", "date": "2024-05-02"})

        response = client.get("/expenses/")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert Decimal(data["total_amount"]) == Decimal("25150.50")

        response = client.get("/expenses/", params={"category_id": category_id})
        assert [e["description"] for e in response.json()["items"]] == ["Office rent April"]

        response = client.get("/expenses/", params={"date_from": "2024-05-01", "date_to": "2024-05-31"})
        assert [e["description"] for e in response.json()["items"]] == ["Tea"]

    def test_negative_amount_rejected(self, client):
        response = client.post("/expenses/", json={"description": "Refund", "amount": "-10"})
        assert response.status_code == 422

    def test_update_expense(self, client):
        expense_id = client.post("/expenses/", json={"description": "Courier", "amount": "90"}).json()["id"]
        response = client.patch(f"/expenses/{expense_id}", json={"amount": "120"})
        assert response.status_code == 200
        assert Decimal(response.json()["amount"]) == Decimal("120")

    def test_missing_expense(self, client):
        response = client.get("/expenses/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404
        assert response.json()["code"] == "expense_not_found"


class TestExpenseCategories:

    def test_category_in_use_cannot_be_deleted(self, client):
        category_id = client.post("/expenses/categories", json={"name": "Travel"}).json()["id"]
        client.post("/expenses/", json={"description": "Train", "amount": "800", "category_id": category_id})

        response = client.delete(f"/expenses/categories/{category_id}")
        assert response.status_code == 400
        assert response.json()["code"] == "expense_category_not_deleted"

    def test_delete_unused_category(self, client):
        category_id = client.post("/expenses/categories", json={"name": "Misc"}).json()["id"]
        assert client.delete(f"/expenses/categories/{category_id}").status_code == 204
        response = client.get(f"/expenses/categories/{category_id}")
        assert response.status_code == 404
        assert response.json()["code"] == "expense_category_not_found"
