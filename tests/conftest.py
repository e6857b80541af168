import pytest

from launch_agent.services import producthunt


@pytest.fixture(autouse=True)
def clean_cache():
    producthunt.clear_cache()
    yield
    producthunt.clear_cache()


@pytest.fixture
def mock_feed(monkeypatch):
    """Serve the bundled mock posts."""
    monkeypatch.setattr(producthunt, "USE_MOCK_DATA", True)


@pytest.fixture
def live_feed(monkeypatch):
    """Pretend a token is configured so requests go through the session."""
    monkeypatch.setattr(producthunt, "USE_MOCK_DATA", False)
    monkeypatch.setattr(producthunt, "PRODUCTHUNT_TOKEN", "test-token")
    monkeypatch.setattr(producthunt, "MOCK_FALLBACK", True)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            import requests
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


@pytest.fixture
def fake_post(monkeypatch):
    """Replace the feed session's ``post``; returns the list of recorded calls."""
    calls = []
    responses = []

    def _post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(producthunt._session, "post", _post)
    _post.calls = calls
    _post.responses = responses
    return _post


@pytest.fixture
def gql_response():
    return FakeResponse
