from fastapi.testclient import TestClient


def test_list_products(client: TestClient):
    r = client.get("/products")
    assert r.status_code == 200
    j = r.json()
    assert j["count"] == 3
    assert {p["id"] for p in j["products"]} == {"explorer", "voyager", "royal"}


def test_product_detail_by_id_and_slug(client: TestClient):
    assert client.get("/products/voyager").json()["price"] == 5490000
    assert client.get("/products/voyager-10n11d").json()["id"] == "voyager"


def test_product_not_found(client: TestClient):
    r = client.get("/products/atlantis")
    assert r.status_code == 404
