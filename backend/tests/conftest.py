# shared fixtures for backend api tests
# provides mock db, test users, pinned clock, and httpx test clients

import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from bson import ObjectId

from httpx import AsyncClient, ASGITransport

from afeia.main import app
from afeia.services.db import get_db
from afeia.services.review_store import ReviewSessionStore, get_review_store
from afeia.dependencies import get_clock, get_current_user

from tests.factories import (
    CLIENT_USER_ID,
    CLIENT_USER_OID,
    NOW,
    PRACTITIONER_ID,
    PRACTITIONER_OID,
)


# test user documents (as they'd appear from mongodb)

PRACTITIONER_DOC = {
    "_id": PRACTITIONER_OID,
    "email": "claire.martin@afeia.com",
    "name": "Claire Martin",
    "role": "practitioner",
    "created_at": "2024-06-15T00:00:00Z",
}

CLIENT_USER_DOC = {
    "_id": CLIENT_USER_OID,
    "email": "alice.durand@email.com",
    "name": "Alice Durand",
    "role": "client",
    "created_at": "2025-01-10T00:00:00Z",
}


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor, supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = data or []
        self._index = 0

    def sort(self, *args, **kwargs):
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []

    def find(self, query=None, projection=None):
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(list(results))

    async def find_one(self, query=None, projection=None):
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return doc
        return None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def update_one(self, query, update, upsert=False):
        result = MagicMock()
        result.modified_count = 0
        result.upserted_id = None
        for doc in self._data:
            if self._matches(doc, query):
                doc.update(update.get("$set", {}))
                result.modified_count = 1
                return result
        if upsert:
            doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
            doc.update(update.get("$set", {}))
            doc["_id"] = ObjectId()
            self._data.append(doc)
            result.upserted_id = doc["_id"]
        return result

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            doc_val = doc.get(key)
            if isinstance(value, dict):
                for op, operand in value.items():
                    if op == "$in" and doc_val not in operand:
                        return False
                    if op == "$gte" and (doc_val is None or doc_val < operand):
                        return False
                    if op == "$lte" and (doc_val is None or doc_val > operand):
                        return False
            elif doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.users = MockCollection([PRACTITIONER_DOC.copy(), CLIENT_USER_DOC.copy()])
        self.clients = MockCollection([])
        self.journal_entries = MockCollection([])
        self.messages = MockCollection([])
        self.device_summaries = MockCollection([])
        self.device_insights = MockCollection([])
        self.care_plans = MockCollection([])
        self.consultations = MockCollection([])
        self.appointments = MockCollection([])
        self.practitioner_notes = MockCollection([])
        self.practitioner_actions = MockCollection([])

    async def connect(self):
        pass

    async def close(self):
        pass


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest.fixture
def review_store():
    """fresh guided review registry for each test"""
    return ReviewSessionStore()


def _practitioner_dict():
    """practitioner user dict as get_current_user would return"""
    doc = PRACTITIONER_DOC.copy()
    doc["id"] = PRACTITIONER_ID
    return doc


def _client_user_dict():
    doc = CLIENT_USER_DOC.copy()
    doc["id"] = CLIENT_USER_ID
    return doc


def _override_common(mock_db, review_store):
    async def override_get_db():
        return mock_db

    async def override_get_clock():
        return lambda: NOW

    async def override_get_review_store():
        return review_store

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = override_get_clock
    app.dependency_overrides[get_review_store] = override_get_review_store


@pytest_asyncio.fixture
async def client(mock_db, review_store):
    """httpx async test client with mocked db and clock, real token auth"""
    _override_common(mock_db, review_store)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def practitioner_client(mock_db, review_store):
    """client authenticated as a practitioner"""
    _override_common(mock_db, review_store)

    async def override_get_current_user():
        return _practitioner_dict()

    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client_user_client(mock_db, review_store):
    """client authenticated as one of the practitioner's clients"""
    _override_common(mock_db, review_store)

    async def override_get_current_user():
        return _client_user_dict()

    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
