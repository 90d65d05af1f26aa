"""Pytest fixtures: a seeded in-memory store and an app wired to it."""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from repository import InMemoryLessonRepository
from service import InventoryService


@pytest.fixture
def repository() -> InMemoryLessonRepository:
    repository = InMemoryLessonRepository()

    repository.add_lesson("L1", spaces=5, subject="Math", location="Hendon", price=100)
    repository.add_lesson("L2", spaces=3, subject="Art", location="Colindale", price=80)
    repository.add_lesson("L3", spaces=0, subject="Music", location="Brent Cross", price=90)  # Sold out

    return repository


@pytest.fixture
def service(repository) -> InventoryService:
    return InventoryService(repository)


@pytest.fixture
def images_dir(tmp_path):
    images = tmp_path / "images"
    images.mkdir()
    (images / "math.png").write_bytes(b"\x89PNG fake")
    return images


@pytest.fixture
def client(repository, images_dir):
    settings = Settings(store_backend="memory", images_dir=str(images_dir))
    app = create_app(settings=settings, repository=repository)
    with TestClient(app) as client:
        yield client
