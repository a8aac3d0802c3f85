from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from src.dashboard.config import DashboardSettings
from src.dashboard.main import create_app
from tests.helpers.images import encode_image
from tests.mocks.storage import CDN_BASE_URL, FakeStorage

pytestmark = pytest.mark.unit

CATEGORIES = [
    {"id": 1, "name": "Clothing"},
    {"id": 2, "name": "Shirts", "parentId": 1},
    {"id": 3, "name": "Linen", "parentId": 2},
    {"id": 4, "name": "Garden"},
]

PRODUCT = {
    "name": " Linen shirt ",
    "description": "Breathable",
    "price": 49.9,
    "stock": 3,
    "categoryIds": [3],
}


@pytest.fixture
def client() -> Iterator[TestClient]:
    settings = DashboardSettings(api_token="admin-token")
    with TestClient(create_app(settings, storage=FakeStorage())) as test_client:
        yield test_client


def test_parent_options_exclude_edited_subtree(client: TestClient) -> None:
    response = client.post(
        "/api/catalog/categories/parent-options",
        json={"categories": CATEGORIES, "editingId": 2},
    )

    assert response.status_code == 200
    assert response.json() == [
        {"id": 1, "name": "Clothing", "path": "Clothing"},
        {"id": 4, "name": "Garden", "path": "Garden"},
    ]


def test_parent_options_label_full_path(client: TestClient) -> None:
    response = client.post(
        "/api/catalog/categories/parent-options", json={"categories": CATEGORIES}
    )

    paths = [option["path"] for option in response.json()]
    assert paths == ["Clothing", "Clothing > Shirts", "Clothing > Shirts > Linen", "Garden"]


def test_organized_categories(client: TestClient) -> None:
    response = client.post("/api/catalog/categories/organized", json={"categories": CATEGORIES})

    body = response.json()
    assert [entry["category"]["id"] for entry in body] == [1, 4]
    assert [child["id"] for child in body[0]["children"]] == [2]


def test_toggle_selects_subtree(client: TestClient) -> None:
    response = client.post(
        "/api/catalog/categories/toggle",
        json={"categories": CATEGORIES, "selected": [4], "categoryId": 1, "checked": True},
    )

    assert response.json() == {"selected": [4, 1, 2, 3]}


def test_product_payload_takes_images_from_session(client: TestClient) -> None:
    session_id = client.post("/api/product-images/sessions/", json={}).json()["session_id"]
    client.post(
        f"/api/product-images/sessions/{session_id}/files",
        files=[("files", ("a.png", encode_image(64, 64), "image/png"))],
    )

    response = client.post(
        "/api/catalog/products/payload",
        json={"values": PRODUCT, "imageSessionId": session_id},
    )

    assert response.status_code == 200
    assert response.json() == {
        "name": "Linen shirt",
        "description": "Breathable",
        "price": 49.9,
        "stock": 3,
        "images": [f"{CDN_BASE_URL}/1-a.png"],
        "categoryIds": [3],
    }


def test_product_payload_without_images(client: TestClient) -> None:
    response = client.post("/api/catalog/products/payload", json={"values": PRODUCT})

    assert "images" not in response.json()


def test_product_payload_unknown_session_returns_404(client: TestClient) -> None:
    response = client.post(
        "/api/catalog/products/payload",
        json={"values": PRODUCT, "imageSessionId": "missing"},
    )

    assert response.status_code == 404


def test_product_payload_requires_category(client: TestClient) -> None:
    response = client.post(
        "/api/catalog/products/payload",
        json={"values": {**PRODUCT, "categoryIds": []}},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["reason"] == "invalid_product"
