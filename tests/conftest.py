"""Shared fixtures for the watermark service tests."""
from __future__ import annotations

import pytest

from src.pipeline.processor import ProductUploadProcessor
from src.records.store import InMemoryProductStore
from src.watermark.renderer import WatermarkRenderer
from src.watermark.template import WatermarkTemplate

from tests.helpers import FakeObjectStore


@pytest.fixture
def template():
    return WatermarkTemplate(font_size=24, bottom_margin=192)


@pytest.fixture
def renderer(template):
    return WatermarkRenderer(template)


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def product_store():
    return InMemoryProductStore()


@pytest.fixture
def processor(renderer, object_store, product_store):
    return ProductUploadProcessor(renderer, object_store, product_store)
