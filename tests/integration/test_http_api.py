"""
HTTP surface tests against an app wired with in-memory stores.
"""
from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from src.pipeline.components import ServiceComponents
from src.pipeline.errors import PersistenceError
from src.pipeline.processor import ProductUploadProcessor
from src.records.store import InMemoryProductStore
from src.server import create_app

from tests.helpers import FakeObjectStore, make_image_bytes


def image_parts(count: int, prefix: str = "img"):
    return [
        ("images", (f"{prefix}{i}.png", make_image_bytes(64, 64), "image/png"))
        for i in range(count)
    ]


class FailingProductStore(InMemoryProductStore):
    async def append_images(self, product_name, locations):
        raise PersistenceError("Failed to save image URLs to the database.")


def client_for(processor, product_store) -> TestClient:
    return TestClient(create_app(ServiceComponents(processor=processor, product_store=product_store)))


@pytest.fixture
def stores():
    return FakeObjectStore(), InMemoryProductStore()


@pytest.fixture
def client(renderer, stores):
    object_store, product_store = stores
    processor = ProductUploadProcessor(renderer, object_store, product_store)
    app = create_app(ServiceComponents(processor=processor, product_store=product_store))
    with TestClient(app) as test_client:
        yield test_client


class TestUploadEndpoint:
    def test_upload_creates_product(self, client):
        response = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(3))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Images uploaded and saved successfully!"
        assert body["product"]["productName"] == "Ring"
        assert len(body["product"]["images"]) == 3

    def test_missing_product_name_is_client_error(self, client, stores):
        response = client.post("/api/images/upload", files=image_parts(1))

        assert response.status_code == 400
        assert "error" in response.json()
        assert stores[0].uploads == []

    def test_missing_files_is_client_error(self, client, stores):
        response = client.post("/api/images/upload", data={"productName": "Ring"})

        assert response.status_code == 400
        assert response.json() == {"error": "Product name and at least one image are required."}
        assert stores[0].uploads == []

    def test_more_than_ten_files_keeps_first_ten(self, client):
        response = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(12))

        assert response.status_code == 201
        assert len(response.json()["product"]["images"]) == 10

    def test_upload_failure_is_server_error(self, renderer):
        product_store = InMemoryProductStore()
        processor = ProductUploadProcessor(renderer, FakeObjectStore(fail_on=["img1.png"]), product_store)
        app = create_app(ServiceComponents(processor=processor, product_store=product_store))

        with TestClient(app) as client:
            response = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(3))
            assert response.status_code == 500
            assert "error" in response.json()

            assert client.get("/api/images/Ring").status_code == 404

    def test_upload_timeout_is_gateway_timeout(self, renderer):
        product_store = InMemoryProductStore()
        processor = ProductUploadProcessor(
            renderer, FakeObjectStore(delay=1), product_store, upload_timeout=0.05
        )

        with client_for(processor, product_store) as client:
            response = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(2))

            assert response.status_code == 504
            assert response.json() == {"error": "uploading stage exceeded timeout of 0.05s"}
            assert client.get("/api/images/Ring").status_code == 404

    def test_persistence_failure_is_server_error(self, renderer):
        object_store = FakeObjectStore()
        product_store = FailingProductStore()
        processor = ProductUploadProcessor(renderer, object_store, product_store)

        with client_for(processor, product_store) as client:
            response = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(2))

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save image URLs to the database."}
        assert len(object_store.uploads) == 2

    def test_files_beyond_limit_are_not_read(self, client, stores, caplog):
        caplog.set_level(logging.WARNING, logger="src.server")

        response = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(13))

        assert response.status_code == 201
        assert len(stores[0].uploads) == 10
        assert any("ignoring 3 file(s) beyond the 10 image limit" in r.getMessage() for r in caplog.records)

    def test_invalid_image_is_server_error(self, client):
        files = [("images", ("notes.txt", b"not an image", "text/plain"))]
        response = client.post("/api/images/upload", data={"productName": "Ring"}, files=files)

        assert response.status_code == 500
        assert "error" in response.json()


class TestFetchEndpoint:
    def test_fetch_unknown_product(self, client):
        response = client.get("/api/images/Unknown")
        assert response.status_code == 404
        assert response.json() == {"error": "Product not found"}

    def test_fetch_returns_accumulated_images(self, client):
        first = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(2, "a"))
        second = client.post("/api/images/upload", data={"productName": "Ring"}, files=image_parts(1, "b"))
        assert first.status_code == second.status_code == 201

        response = client.get("/api/images/Ring")

        assert response.status_code == 200
        body = response.json()
        assert body["productName"] == "Ring"
        assert body["images"] == first.json()["product"]["images"] + [second.json()["product"]["images"][-1]]


class TestStaticAndHealth:
    def test_upload_form(self, client):
        response = client.get("/reza")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert 'name="productName"' in response.text

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["pipeline_initialized"] is True
