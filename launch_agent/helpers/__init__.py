# ========== Helpers for agent tools ==========
from typing import Any, Dict, List

from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from .mapper import search_text

POSITIVE_KEYWORDS = ["love", "great", "excellent", "amazing", "fantastic", "useful",
                     "helpful", "brilliant", "recommend", "best", "awesome"]
NEGATIVE_KEYWORDS = ["hate", "bad", "poor", "terrible", "useless", "waste",
                     "disappointed", "frustrating", "worst", "avoid"]

HIGHLY_VOTED = 5


def classify_comment(text: str) -> str:
    """'positive', 'negative' or 'neutral' by keyword presence."""
    low = (text or "").lower()
    has_pos = any(k in low for k in POSITIVE_KEYWORDS)
    has_neg = any(k in low for k in NEGATIVE_KEYWORDS)
    if has_pos and not has_neg: return "positive"
    if has_neg and not has_pos: return "negative"
    return "neutral"


def sentiment_score(positive: int, negative: int, neutral: int) -> int:
    total = positive + negative + neutral
    return round(positive / total * 100) if total > 0 else 0


def analyze_comment_sentiment(comments: List[Dict[str, Any]], product_name: str) -> Dict[str, Any]:
    """Naive keyword sentiment over ``[{text, votes}, ...]``."""
    themes: Dict[str, List[str]] = {"positive": [], "negative": [], "neutral": []}
    for c in comments:
        text = c.get("text") or ""
        themes[classify_comment(text)].append(text)

    highly_voted = [c.get("text") or "" for c in comments if (c.get("votes") or 0) > HIGHLY_VOTED]
    pos, neg, neu = len(themes["positive"]), len(themes["negative"]), len(themes["neutral"])

    return {
        "product": product_name,
        "analysis": {
            "total_comments": len(comments),
            "sentiment": {"positive": pos, "negative": neg, "neutral": neu},
            "top_comments": highly_voted[:3],
            "summary": f"{pos} positive, {neg} negative, {neu} neutral comments",
        },
    }


def filter_posts_by_keywords(posts: List[Dict[str, Any]], keywords: str, limit: int) -> List[Dict[str, Any]]:
    """Posts whose search text contains the keyword phrase.

    When the phrase matches nothing, rank by TF-IDF cosine similarity to the
    keywords and keep posts with a positive score (best first).
    """
    needle = (keywords or "").lower().strip()
    if not needle or not posts:
        return []

    texts = [search_text(p) for p in posts]
    matched = [p for p, t in zip(posts, texts) if needle in t]
    if matched:
        return matched[:limit]

    vectorizer = TfidfVectorizer()
    try:
        tfidf_matrix = vectorizer.fit_transform(texts + [needle])
    except ValueError:
        # empty vocabulary (stop words only, punctuation, ...)
        return []
    sims = cosine_similarity(tfidf_matrix[-1], tfidf_matrix[:-1]).flatten()
    scored = [(sim, p.get("votesCount", 0), i) for i, (sim, p) in enumerate(zip(sims, posts)) if sim > 0]
    scored.sort(key=lambda tup: (tup[0], tup[1]), reverse=True)
    return [posts[i] for (_, _, i) in scored[:limit]]
