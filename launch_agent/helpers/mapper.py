from typing import Any, Dict, List


def topic_names(node: Dict[str, Any]) -> List[str]:
    """Topic names from a post's ``topics.edges[].node.name``."""
    edges = (node.get("topics") or {}).get("edges") or []
    return [e["node"]["name"] for e in edges if (e.get("node") or {}).get("name")]


def _edges(node: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    return [e.get("node") or {} for e in (node.get(key) or {}).get("edges") or []]


def to_product(node: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": node.get("name"),
        "tagline": node.get("tagline"),
        "votes": node.get("votesCount", 0),
        "comments_count": node.get("commentsCount", 0),
        "topics": topic_names(node),
    }


def to_search_result(node: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": node.get("name"),
        "tagline": node.get("tagline"),
        "votes": node.get("votesCount", 0),
        "topics": topic_names(node),
    }


def to_comment(node: Dict[str, Any]) -> Dict[str, Any]:
    user = node.get("user") or {}
    return {
        "text": node.get("body") or "",
        "votes": node.get("votesCount", 0),
        "author": user.get("name") or "Anonymous",
    }


def to_product_details(node: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": node.get("name"),
        "tagline": node.get("tagline"),
        "description": node.get("description"),
        "votes": node.get("votesCount", 0),
        "website": node.get("website"),
        "topics": topic_names(node),
        "makers": node.get("makers") or [],
        "comments_count": node.get("commentsCount", 0),
        "comments": [to_comment(c) for c in _edges(node, "comments")],
    }


def to_launch(node: Dict[str, Any]) -> Dict[str, Any]:
    """Raw feed shape served by ``/api/producthunt``."""
    return {
        "id": node.get("id"),
        "name": node.get("name"),
        "tagline": node.get("tagline"),
        "votes_count": node.get("votesCount", 0),
        "url": node.get("url"),
        "website": node.get("website"),
    }


def search_text(node: Dict[str, Any]) -> str:
    """Lower-cased ``name tagline description topics`` used for keyword filtering."""
    parts = [node.get("name") or "", node.get("tagline") or "", node.get("description") or "",
             " ".join(topic_names(node))]
    return " ".join(parts).lower()
