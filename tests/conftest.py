"""
Pytest configuration and shared fixtures.
"""

import asyncio
import copy
from types import SimpleNamespace
from unittest.mock import AsyncMock

import bson
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from api.config import APIConfig
from api.database import BookStorage
from api.main import create_app


class InMemoryCollection:
    """
    Minimal stand-in for an AsyncIOMotorCollection.

    Implements only the calls BookStorage makes, with the same result
    attributes motor returns. Writes are BSON-encoded first, as the driver
    does before sending. ``delay`` slows reads down by that many seconds.
    """

    def __init__(self):
        self.documents = {}
        self.delay = 0
        self.database = SimpleNamespace(command=AsyncMock(return_value={"ok": 1.0}))

    async def find_one(self, query):
        if self.delay:
            await asyncio.sleep(self.delay)
        document = self.documents.get(query["_id"])
        return copy.deepcopy(document)

    async def insert_one(self, document):
        bson.encode(document)
        if document["_id"] in self.documents:
            raise DuplicateKeyError("E11000 duplicate key error")
        self.documents[document["_id"]] = copy.deepcopy(document)
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def update_one(self, query, update):
        bson.encode(update)
        document = self.documents.get(query["_id"])
        if document is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        before = copy.deepcopy(document)
        for path, value in update["$set"].items():
            target = document
            *parents, leaf = path.split(".")
            for key in parents:
                target = target.setdefault(key, {})
            target[leaf] = copy.deepcopy(value)
        return SimpleNamespace(matched_count=1, modified_count=int(before != document))

    async def delete_one(self, query):
        removed = self.documents.pop(query["_id"], None)
        return SimpleNamespace(deleted_count=0 if removed is None else 1)

    async def count_documents(self, query):
        return len(self.documents)


@pytest.fixture
def test_settings():
    """Settings that never touch a real database."""
    return APIConfig(
        mongodb_url="mongodb://127.0.0.1:1",
        log_format="console",
        _env_file=None,
    )


@pytest.fixture
def collection():
    """Create an empty in-memory book collection."""
    return InMemoryCollection()


@pytest.fixture
def storage(collection):
    """Create a storage accessor over the in-memory collection."""
    return BookStorage(collection)


@pytest.fixture
def mock_collection():
    """Create a mock motor collection."""
    mock = AsyncMock()
    mock.database.command = AsyncMock(return_value={"ok": 1.0})
    return mock


@pytest.fixture
def client(test_settings, storage):
    """Create a test client with the in-memory storage injected."""
    app = create_app(test_settings, storage=storage)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_book_payload():
    """Create a sample book payload for testing."""
    return {
        "title": "Dune",
        "authors": ["Frank Herbert"],
        "genre": ["Science Fiction"],
        "publishdate": "1965-08-01",
        "characters": ["Paul Atreides", "Jessica", "Leto Atreides"],
        "publisher": {
            "name": "Chilton Books",
            "country": "United States",
            "website": "https://example.com/chilton",
        },
    }


@pytest.fixture
def stored_book(collection, sample_book_payload):
    """Insert a sample book directly into the collection and return its ID."""
    book_id = ObjectId()
    collection.documents[book_id] = {"_id": book_id, **copy.deepcopy(sample_book_payload)}
    return str(book_id)
