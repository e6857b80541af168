"""
Tools exposed to the Product Hunt agent.

Each tool returns text the model can read: a JSON document on success or a
short human-readable message when nothing was found or the feed failed.
Feed failures are reported back to the model as text, never raised.
"""

import json
import logging
from typing import Any, Dict, List

import requests
from langchain_core.tools import tool
from pydantic import BaseModel, Field

from .helpers import analyze_comment_sentiment, filter_posts_by_keywords
from .helpers.mapper import to_product, to_product_details, to_search_result
from .services import producthunt
from .services.producthunt import ProductHuntError

logger = logging.getLogger(__name__)

FEED_ERRORS = (ProductHuntError, requests.exceptions.RequestException)

SEARCH_POOL_SIZE = 20
DETAILS_POOL_SIZE = 10


# -----------------------------------------------------------------------------
# Input schemas
# -----------------------------------------------------------------------------

class TrendingInput(BaseModel):
    limit: int = Field(10, ge=1, le=50, description="Number of products to fetch")


class SearchInput(BaseModel):
    keywords: str = Field(..., description="Search keywords or categories like 'AI', 'video', 'legal', 'productivity'")
    limit: int = Field(5, ge=1, le=20, description="Number of products to return")


class DetailsInput(BaseModel):
    product_name: str = Field(..., description="The name of the product to get details for")


class CommentInput(BaseModel):
    text: str
    votes: int = 0


class AnalyzeInput(BaseModel):
    comments: List[CommentInput] = Field(..., description="Array of comments to analyze")
    product_name: str = Field(..., description="Name of the product for context")


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False)


# -----------------------------------------------------------------------------
# Tools
# -----------------------------------------------------------------------------

@tool("get_trending_products", args_schema=TrendingInput)
def get_trending_products(limit: int = 10) -> str:
    """Get today's top trending products from Product Hunt. Use this when user asks about popular, hot, trending, or top products."""
    try:
        posts = producthunt.fetch_posts(limit, "RANKING", detail="summary")
    except FEED_ERRORS as e:
        logger.warning("get_trending_products failed: %s", e)
        return f"Error fetching products: {e}"
    return _dumps([to_product(p) for p in posts])


@tool("search_products", args_schema=SearchInput)
def search_products(keywords: str, limit: int = 5) -> str:
    """Search for products by keywords or categories. Use this when user asks about specific types of products like 'AI tools', 'video editors', 'legal tech', etc."""
    try:
        posts = producthunt.fetch_posts(SEARCH_POOL_SIZE, "RANKING", detail="search")
    except FEED_ERRORS as e:
        logger.warning("search_products failed: %s", e)
        return f"Error searching products: {e}"

    matched = filter_posts_by_keywords(posts, keywords, limit)
    if not matched:
        return f"No products found for keywords: {keywords}"
    return _dumps([to_search_result(p) for p in matched])


@tool("get_product_details", args_schema=DetailsInput)
def get_product_details(product_name: str) -> str:
    """Get detailed information about a specific product including user comments. Use this when user asks what people think about a product or wants detailed feedback."""
    try:
        posts = producthunt.fetch_posts(DETAILS_POOL_SIZE, "RANKING", detail="full")
    except FEED_ERRORS as e:
        logger.warning("get_product_details failed: %s", e)
        return f"Error fetching product details: {e}"

    post = producthunt.find_post(product_name, posts)
    if post is None:
        return f'Product "{product_name}" not found in today\'s products'
    return _dumps(to_product_details(post))


@tool("analyze_comments", args_schema=AnalyzeInput)
def analyze_comments(comments: List[Any], product_name: str) -> str:
    """Analyze sentiment and themes from product comments. Use this after getting product details to understand what users like/dislike."""
    if not comments:
        return "No comments to analyze"
    rows: List[Dict[str, Any]] = [c.model_dump() if isinstance(c, BaseModel) else dict(c) for c in comments]
    return _dumps(analyze_comment_sentiment(rows, product_name))


TOOLS = [get_trending_products, search_products, get_product_details, analyze_comments]
TOOLS_BY_NAME = {t.name: t for t in TOOLS}
