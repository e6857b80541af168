from launch_agent.helpers import (analyze_comment_sentiment, classify_comment, filter_posts_by_keywords,
                                  sentiment_score)
from launch_agent.helpers.mapper import (to_launch, to_product, to_product_details, to_search_result,
                                         topic_names)
from launch_agent.services.producthunt import mock_posts

NODE = {
    "id": "7",
    "name": "Orbit",
    "tagline": "Track launches",
    "description": "Follow every launch in one feed",
    "votesCount": 42,
    "commentsCount": 2,
    "website": "https://orbit.dev",
    "url": "https://www.producthunt.com/posts/orbit",
    "topics": {"edges": [{"node": {"name": "Productivity"}}, {"node": {"name": "SaaS"}}]},
    "makers": [{"name": "Ada", "headline": "Maker"}],
    "comments": {"edges": [
        {"node": {"body": "Love it", "votesCount": 6, "user": {"name": "Bo"}}},
        {"node": {"body": "Meh", "votesCount": 0, "user": None}},
    ]},
}


def test_topic_names_handles_missing_topics():
    assert topic_names(NODE) == ["Productivity", "SaaS"]
    assert topic_names({"name": "x"}) == []


def test_to_product():
    assert to_product(NODE) == {"name": "Orbit", "tagline": "Track launches", "votes": 42,
                                "comments_count": 2, "topics": ["Productivity", "SaaS"]}


def test_to_search_result_has_no_comment_count():
    assert "comments_count" not in to_search_result(NODE)


def test_to_product_details_maps_comments_and_anonymous_authors():
    details = to_product_details(NODE)
    assert details["website"] == "https://orbit.dev"
    assert details["makers"] == [{"name": "Ada", "headline": "Maker"}]
    assert details["comments"] == [
        {"text": "Love it", "votes": 6, "author": "Bo"},
        {"text": "Meh", "votes": 0, "author": "Anonymous"},
    ]


def test_to_launch():
    assert to_launch(NODE)["votes_count"] == 42
    assert to_launch(NODE)["url"] == "https://www.producthunt.com/posts/orbit"


def test_classify_comment():
    assert classify_comment("I love this, great work") == "positive"
    assert classify_comment("Terrible onboarding") == "negative"
    assert classify_comment("Great idea but terrible execution") == "neutral"
    assert classify_comment("How does billing work?") == "neutral"


def test_sentiment_score():
    assert sentiment_score(2, 1, 1) == 50
    assert sentiment_score(2, 1, 0) == 67
    assert sentiment_score(0, 0, 0) == 0


def test_analyze_comment_sentiment():
    comments = [
        {"text": "I love it", "votes": 12},
        {"text": "Awesome and useful", "votes": 6},
        {"text": "A waste of money", "votes": 9},
        {"text": "Is there an API?", "votes": 5},
    ]
    result = analyze_comment_sentiment(comments, "Orbit")

    assert result["product"] == "Orbit"
    analysis = result["analysis"]
    assert analysis["total_comments"] == 4
    assert analysis["sentiment"] == {"positive": 2, "negative": 1, "neutral": 1}
    assert analysis["top_comments"] == ["I love it", "Awesome and useful", "A waste of money"]
    assert analysis["summary"] == "2 positive, 1 negative, 1 neutral comments"


def test_filter_posts_by_phrase():
    matched = filter_posts_by_keywords(mock_posts(6), "Email", 5)
    assert [p["name"] for p in matched] == ["Maillayer", "Sidemail 2.0"]


def test_filter_posts_respects_limit():
    assert len(filter_posts_by_keywords(mock_posts(6), "email", 1)) == 1


def test_filter_posts_falls_back_to_tfidf_ranking():
    matched = filter_posts_by_keywords(mock_posts(6), "legal research", 5)
    assert [p["name"] for p in matched] == ["CaseLens AI"]


def test_filter_posts_no_match():
    assert filter_posts_by_keywords(mock_posts(6), "blockchain", 5) == []
    assert filter_posts_by_keywords(mock_posts(6), "   ", 5) == []
