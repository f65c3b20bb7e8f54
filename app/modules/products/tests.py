"""
Tests para productos y categorías de productos
"""

from uuid import uuid4


class TestProductCategories:

    def test_create_and_list(self, client):
        response = client.post("/product-categories/", json={"name": "Hardware"})
        assert response.status_code == 201

        response = client.get("/product-categories/")
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["name"] == "Hardware"

    def test_duplicate_name(self, client):
        client.post("/product-categories/", json={"name": "Hardware"})
        response = client.post("/product-categories/", json={"name": "Hardware"})
        assert response.status_code == 409

    def test_delete_category_detaches_products(self, client):
        category_id = client.post("/product-categories/", json={"name": "Tools"}).json()["id"]
        product_id = client.post("/products/", json={"name": "Hammer", "category_id": category_id}).json()["id"]

        assert client.delete(f"/product-categories/{category_id}").status_code == 204
        assert client.get(f"/products/{product_id}").json()["category_id"] is None


class TestProducts:

    def test_create_product(self, client):
        payload = {
            "name": "Steel Rod 12mm",
            "code": "7214",
            "unit": "kg",
            "tax_code": "gst:18",
            "selling_price": "72.50",
        }
        response = client.post("/products/", json=payload)
        assert response.status_code == 201
        data = response.json()
        assert data["tax_code"] == "gst:18"
        assert data["type"] == "goods"

    def test_unknown_tax_code(self, client):
        response = client.post("/products/", json={"name": "X", "tax_code": "gst:13"})
        assert response.status_code == 422

    def test_unknown_unit(self, client):
        response = client.post("/products/", json={"name": "X", "unit": "barrel"})
        assert response.status_code == 422

    def test_unknown_category(self, client):
        response = client.post("/products/", json={"name": "X", "category_id": str(uuid4())})
        assert response.status_code == 404
        assert response.json()["code"] == "product_category_not_found"

    def test_search(self, client):
        client.post("/products/", json={"name": "Consulting", "type": "service", "unit": "hrs"})
        client.post("/products/", json={"name": "Cement bag", "code": "2523"})

        response = client.get("/products/", params={"search": "2523"})
        assert [p["name"] for p in response.json()["items"]] == ["Cement bag"]

    def test_bulk_create(self, client):
        payload = {"products": [{"name": f"Item {i}", "selling_price": "10"} for i in range(3)]}
        response = client.post("/products/bulk", json=payload)
        assert response.status_code == 201
        assert response.json()["products_created"] == 3
        assert client.get("/products/").json()["total"] == 3

    def test_update_and_delete(self, client):
        product_id = client.post("/products/", json={"name": "Paint"}).json()["id"]

        response = client.patch(f"/products/{product_id}", json={"tax_code": "gst:28"})
        assert response.status_code == 200
        assert response.json()["tax_code"] == "gst:28"

        assert client.delete(f"/products/{product_id}").status_code == 204
        response = client.get(f"/products/{product_id}")
        assert response.status_code == 404
        assert response.json()["code"] == "product_not_found"
