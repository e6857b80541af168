import pytest
import requests

from launch_agent.services import producthunt
from launch_agent.services.producthunt import ProductHuntError

NODE = {"id": "1", "name": "Orbit", "tagline": "Track launches", "votesCount": 42, "commentsCount": 3,
        "topics": {"edges": [{"node": {"name": "Productivity"}}]}}


def _posts_payload(*nodes):
    return {"data": {"posts": {"edges": [{"node": n} for n in nodes]}}}


def test_build_posts_query_includes_requested_fields():
    q = producthunt.build_posts_query(3, "VOTES", detail="full")
    assert "posts(first: 3, order: VOTES)" in q
    assert "comments(first: 10)" in q
    assert "makers { name headline }" in q


def test_build_posts_query_rejects_unknown_detail():
    with pytest.raises(ValueError):
        producthunt.build_posts_query(3, "RANKING", detail="everything")


def test_call_graphql_requires_token(monkeypatch):
    monkeypatch.setattr(producthunt, "PRODUCTHUNT_TOKEN", None)
    with pytest.raises(ProductHuntError, match="PRODUCTHUNT_TOKEN not configured"):
        producthunt.call_graphql("{ posts { edges { node { id } } } }")


def test_call_graphql_sends_bearer_token(live_feed, fake_post, gql_response):
    fake_post.responses.append(gql_response(_posts_payload(NODE)))
    data = producthunt.call_graphql("{ q }")

    assert data["data"]["posts"]["edges"][0]["node"]["name"] == "Orbit"
    call = fake_post.calls[0]
    assert call["url"] == producthunt.PRODUCTHUNT_API_URL
    assert call["headers"]["Authorization"] == "Bearer test-token"
    assert call["headers"]["Content-Type"] == "application/json"
    assert call["json"] == {"query": "{ q }"}


def test_call_graphql_raises_first_graphql_error(live_feed, fake_post, gql_response):
    fake_post.responses.append(gql_response({"errors": [{"message": "Rate limited"}, {"message": "other"}]}))
    with pytest.raises(ProductHuntError, match="Rate limited"):
        producthunt.call_graphql("{ q }")


def test_call_graphql_caches_by_query(live_feed, fake_post, gql_response):
    fake_post.responses.append(gql_response(_posts_payload(NODE)))
    producthunt.call_graphql("{ q }")
    producthunt.call_graphql("{ q }")
    assert len(fake_post.calls) == 1


def test_fetch_posts_returns_nodes(live_feed, fake_post, gql_response):
    fake_post.responses.append(gql_response(_posts_payload(NODE)))
    posts = producthunt.fetch_posts(1, "RANKING")
    assert posts == [NODE]


def test_fetch_posts_falls_back_to_mocks_on_transport_error(live_feed, fake_post):
    fake_post.responses.append(requests.exceptions.ConnectionError("down"))
    posts = producthunt.fetch_posts(2, "RANKING")
    assert [p["name"] for p in posts] == ["Maillayer", "Sidemail 2.0"]


def test_fetch_posts_without_fallback_raises(live_feed, fake_post, monkeypatch):
    monkeypatch.setattr(producthunt, "MOCK_FALLBACK", False)
    fake_post.responses.append(requests.exceptions.ConnectionError("down"))
    with pytest.raises(requests.exceptions.ConnectionError):
        producthunt.fetch_posts(2, "RANKING")


def test_fetch_posts_propagates_graphql_errors(live_feed, fake_post, gql_response):
    fake_post.responses.append(gql_response({"errors": [{"message": "Invalid token"}]}))
    with pytest.raises(ProductHuntError):
        producthunt.fetch_posts(2, "RANKING")


def test_fetch_posts_uses_mocks_without_token(monkeypatch, fake_post):
    monkeypatch.setattr(producthunt, "USE_MOCK_DATA", False)
    monkeypatch.setattr(producthunt, "PRODUCTHUNT_TOKEN", None)
    posts = producthunt.fetch_posts(3)
    assert len(posts) == 3
    assert fake_post.calls == []


def test_mock_posts_are_copies(mock_feed):
    first = producthunt.mock_posts(1)[0]
    first["name"] = "changed"
    assert producthunt.mock_posts(1)[0]["name"] == "Maillayer"


def test_mock_posts_by_votes_are_sorted(mock_feed):
    votes = [p["votesCount"] for p in producthunt.mock_posts(6, "VOTES")]
    assert votes == sorted(votes, reverse=True)


def test_find_post_is_case_insensitive(mock_feed):
    post = producthunt.find_post("PICK")
    assert post["name"] == "Pickle"
    assert producthunt.find_post("does-not-exist") is None


def test_fetch_posts_raises_http_errors_instead_of_mocking(live_feed, fake_post, gql_response):
    fake_post.responses.append(gql_response({"error": "unauthorized"}, status_code=401))
    with pytest.raises(requests.exceptions.HTTPError, match="401"):
        producthunt.fetch_posts(2, "RANKING")


def test_fetch_posts_falls_back_when_retries_are_exhausted(live_feed, fake_post):
    fake_post.responses.append(requests.exceptions.RetryError("too many 503 error responses"))
    posts = producthunt.fetch_posts(1, "RANKING")
    assert [p["name"] for p in posts] == ["Maillayer"]


def test_cached_query_expires_after_ttl(live_feed, fake_post, gql_response, monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(producthunt.time, "time", lambda: now[0])
    fake_post.responses.extend([gql_response(_posts_payload(NODE)), gql_response(_posts_payload(NODE))])

    producthunt.call_graphql("{ q }")
    now[0] += producthunt.CACHE_TTL - 1
    producthunt.call_graphql("{ q }")
    assert len(fake_post.calls) == 1

    now[0] += 2
    producthunt.call_graphql("{ q }")
    assert len(fake_post.calls) == 2
