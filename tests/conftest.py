"""Pytest configuration for tool inventory tests."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from toolinv.api.auth import create_access_token
from toolinv.api.server import app, get_ai, get_store
from toolinv.core.config import InventoryConfig, set_config
from toolinv.data.tool_store import ToolStore
from toolinv.parsing.ai_client import SearchParameters


# ---------------------------------------------------------------------------
# Config isolation: tests never read .env or config/default.yaml
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def config():
    cfg = InventoryConfig(jwt_secret="test-secret")
    set_config(cfg)
    yield cfg
    set_config(None)


@pytest.fixture
def store():
    """Fresh in-memory document store with the production indexes."""
    db = mongomock.MongoClient()["tools_inventory"]
    tool_store = ToolStore(db)
    tool_store.ensure_indexes()
    return tool_store


class FakeInventoryAI:
    """Stands in for InventoryAI; returns canned results or raises `error`."""

    def __init__(self):
        self.search_params = SearchParameters()
        self.draft = {}
        self.error = None
        self.calls = []

    def generate_search_params(self, query, categories, locations, statuses):
        self.calls.append(("search", query, categories, locations, statuses))
        if self.error:
            raise self.error
        return self.search_params

    def generate_tool(self, text, categories, statuses):
        self.calls.append(("tool", text, categories, statuses))
        if self.error:
            raise self.error
        return dict(self.draft)


@pytest.fixture
def fake_ai():
    return FakeInventoryAI()


@pytest.fixture
def client(store, fake_ai):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_ai] = lambda: fake_ai
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(config):
    token = create_access_token("tester", config)
    return {"Authorization": f"Bearer {token}"}


def make_tool(**overrides):
    """A complete, valid tool payload."""
    payload = {
        "name": "Cordless Drill",
        "category": "Power Tools",
        "brand": "Makita",
        "model": "DDF482",
        "quantity": 3,
        "location": "Rack A1",
        "purchaseDate": "2024-01-15",
        "specifications": [
            {"name": "weight", "value": 1.7, "unit": "kg"},
            {"name": "voltage", "value": 18, "unit": "V"},
        ],
        "tags": ["drill", "cordless"],
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not ...}
