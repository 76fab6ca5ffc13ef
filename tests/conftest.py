import os

# Settings must be in place before the application modules are imported
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["NEWSDATA_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from ai_gateway import AIGateway
from main import create_app
from storage import RecordStore


class FakeNews:
    """Stands in for NewsGateway; returns canned article dicts."""

    def __init__(self, articles=None):
        self.articles = articles or []
        self.calls = []

    def fetch_news(self, category=None):
        self.calls.append(("fetch", category))
        return list(self.articles)

    def search_news(self, query):
        self.calls.append(("search", query))
        return list(self.articles)


@pytest.fixture
def store():
    return RecordStore()


@pytest.fixture
def news():
    return FakeNews()


@pytest.fixture
def ai():
    return AIGateway(api_key="", sleep=lambda s: None)


@pytest.fixture
def app(store, news, ai):
    store.seed_resources()
    return create_app(store=store, news=news, ai=ai)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def signup(client, username="alice", email="alice@example.com", password="s3cret!"):
    r = client.post("/api/user/signup", json={
        "username": username, "email": email, "password": password,
    })
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def auth_headers(client):
    token = signup(client)["token"]
    return {"Authorization": f"Bearer {token}"}
