"""Canned structured responses for the demo mode (no LLM, no network)."""

from typing import Any, Dict

from .helpers import analyze_comment_sentiment, classify_comment, sentiment_score
from .helpers.mapper import to_product, to_product_details
from .services.producthunt import mock_posts

DEMO_HINT = "Try asking about trending products, the hottest product, or what people think about a product."


def _trending() -> Dict[str, Any]:
    return {"type": "products", "products": [to_product(p) for p in mock_posts(3, "VOTES")]}


def _single() -> Dict[str, Any]:
    details = to_product_details(mock_posts(1, "VOTES")[0])
    details.pop("comments", None)
    return {"type": "single-product", "product": details}


def _sentiment() -> Dict[str, Any]:
    details = to_product_details(mock_posts(1, "VOTES")[0])
    comments = details["comments"]
    analysis = analyze_comment_sentiment(comments, details["name"])["analysis"]
    counts = analysis["sentiment"]
    return {
        "type": "sentiment",
        "product": details["name"],
        "score": sentiment_score(counts["positive"], counts["negative"], counts["neutral"]),
        "positive": [c["text"] for c in comments if classify_comment(c["text"]) == "positive"][:3],
        "negative": [c["text"] for c in comments if classify_comment(c["text"]) == "negative"][:2],
        "summary": analysis["summary"],
    }


def demo_response(question: str) -> Dict[str, Any]:
    q = (question or "").lower()
    if "trending" in q or "top" in q:
        return _trending()
    if "hottest" in q:
        return _single()
    if "think about" in q:
        return _sentiment()
    return {"type": "general", "answer": DEMO_HINT}
