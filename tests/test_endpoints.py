import base64

import pytest
from fastapi.testclient import TestClient

from queryable.config import Settings, get_settings
from queryable.main import app

AUTH = {"Authorization": "Basic " + base64.b64encode(b"admin:test").decode()}


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=str(tmp_path), studio_username="admin", studio_password="test")


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root_lists_usage(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "GET /{id}/studio" in response.text


def test_items_listing(client):
    items = client.get("/shop").json()

    assert len(items) == 8
    assert items[0]["name"] == "Wireless Headphones"


def test_exec_with_bindings(client):
    response = client.get(
        "/shop/exec",
        params=[
            ("query", "SELECT name FROM items WHERE category = ? AND name LIKE ?"),
            ("binding", "Electronics"),
            ("binding", "Wireless%"),
        ],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["columnNames"] == ["name"]
    assert body["array"] == [{"name": "Wireless Headphones"}]
    assert body["one"] == {"name": "Wireless Headphones"}


def test_exec_requires_query(client):
    response = client.get("/shop/exec")

    assert response.status_code == 400


def test_exec_reports_bad_sql(client):
    response = client.get("/shop/exec", params={"query": "SELEC 1"})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Query failed:")


def test_invalid_store_id(client):
    response = client.get("/bad.id/exec", params={"query": "SELECT 1"})

    assert response.status_code == 400


def test_schema_routes(client):
    response = client.get("/schema")
    assert response.status_code == 200
    assert response.text.startswith("CREATE TABLE items")

    client.get("/shop/exec", params={"query": "CREATE TABLE orders (id INTEGER)"})
    schema = client.get("/shop/schema").text
    assert schema.index("CREATE TABLE items") < schema.index("CREATE TABLE orders")


def test_unknown_sub_path_is_invalid_request(client):
    response = client.get("/shop/nothing/here")

    assert response.status_code == 200
    assert response.json() == {"error": "Invalid request"}


def test_studio_requires_credentials(client, tmp_path):
    response = client.get("/shop/studio")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == 'Basic realm="Secure Area"'
    assert not (tmp_path / "shop.duckdb").exists()


def test_studio_console(client):
    response = client.get("/shop/studio", headers=AUTH)

    assert response.status_code == 200
    assert "studio.outerbase.com/embed/starbase" in response.text


def test_studio_transaction_against_store(client):
    response = client.post(
        "/shop/studio",
        headers=AUTH,
        json={
            "type": "transaction",
            "id": "tx-1",
            "statements": [
                "INSERT INTO items (name, price, category) VALUES ('Stapler', 7.5, 'Office Supplies')",
                "SELECT name, price FROM items WHERE name = 'Stapler'",
            ],
        },
    )

    insert, select = response.json()["result"]
    assert insert["stat"]["rowsWritten"] == 1
    assert insert["stat"]["rowsAffected"] == 1
    assert insert["headers"] == []
    assert select["rows"] == [{"name": "Stapler", "price": 7.5}]
    assert select["stat"]["rowsRead"] == 1


def test_failed_transaction_keeps_earlier_statements(client):
    response = client.post(
        "/shop/studio",
        headers=AUTH,
        json={
            "type": "transaction",
            "id": "tx-2",
            "statements": [
                "DELETE FROM items WHERE category = 'Electronics'",
                "SELECT * FROM no_such_table",
                "DELETE FROM items",
            ],
        },
    )

    assert "error" in response.json()
    assert len(client.get("/shop").json()) == 6


def test_studio_with_unconfigured_credentials(settings):
    settings.studio_username = None
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        response = TestClient(app).get("/shop/studio")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401
    assert response.text == "Authentication required - no credentials configured"


def test_studio_with_auth_disabled(settings):
    disabled = Settings(data_dir=settings.data_dir, studio_disable_auth=True)
    app.dependency_overrides[get_settings] = lambda: disabled
    try:
        response = TestClient(app).post(
            "/shop/studio", json={"type": "query", "id": 1, "statement": "SELECT COUNT(*) AS n FROM items"}
        )
    finally:
        app.dependency_overrides.clear()

    assert response.json()["result"]["rows"] == [{"n": 8}]


def test_studio_blob_cells_are_json_safe(client):
    response = client.post(
        "/shop/studio",
        headers=AUTH,
        json={"type": "query", "id": "blob", "statement": "SELECT '\\xFF\\xFE'::BLOB AS b"},
    )

    assert response.status_code == 200
    assert response.json()["result"]["rows"] == [{"b": [255, 254]}]


def test_exec_blob_cells_are_json_safe(client):
    response = client.get("/shop/exec", params={"query": "SELECT '\\xFF\\xFE'::BLOB AS b"})

    assert response.status_code == 200
    assert response.json()["array"] == [{"b": [255, 254]}]


def test_studio_options_goes_through_auth(client):
    assert client.options("/shop/studio").status_code == 401

    response = client.options("/shop/studio", headers=AUTH)

    assert response.status_code == 405
    assert response.text == "Method not allowed"


def test_commented_insert_counts_as_write(client):
    response = client.post(
        "/shop/studio",
        headers=AUTH,
        json={
            "type": "query",
            "id": "c1",
            "statement": "-- restock\nINSERT INTO items (name, price, category) VALUES ('Tape', 2.5, 'Office Supplies')",
        },
    )

    stat = response.json()["result"]["stat"]
    assert response.json()["result"]["headers"] == []
    assert stat["rowsWritten"] == 1
    assert stat["rowsRead"] == 0
