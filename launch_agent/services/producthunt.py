# -----------------------------------------------------------------------------
# Product Hunt GraphQL feed client (with bundled mock fallback)
# -----------------------------------------------------------------------------

import copy
import json
import logging
import os
import time
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import requests
from dotenv import load_dotenv
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

load_dotenv()
logger = logging.getLogger(__name__)

PRODUCTHUNT_TOKEN = os.getenv("PRODUCTHUNT_TOKEN")
PRODUCTHUNT_API_URL = os.getenv("PRODUCTHUNT_API_URL", "https://api.producthunt.com/v2/api/graphql")

# --- Tunables (env overridable) ---
CONNECT_TIMEOUT = float(os.getenv("PH_CONNECT_TIMEOUT", "3"))
READ_TIMEOUT = float(os.getenv("PH_READ_TIMEOUT", "10"))
CACHE_TTL = int(os.getenv("PH_CACHE_TTL", "300"))                         # 5 min
USE_MOCK_DATA = os.getenv("USE_MOCK_DATA", "0") == "1"                    # never hit the network
MOCK_FALLBACK = os.getenv("MOCK_FALLBACK", "1") == "1"                    # serve mocks on transport errors (not HTTP 4xx)
MOCK_DATA_FILE = os.getenv(
    "MOCK_DATA_FILE",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "mock_posts.json"),
)

ORDERS = ("RANKING", "VOTES", "NEWEST", "FEATURED_AT")


class ProductHuntError(RuntimeError):
    """Raised when the feed cannot be queried or answers with GraphQL errors."""


# ---- GraphQL query building ----

_TOPICS = "topics { edges { node { name } } }"

_FIELDS = {
    "summary": f"id name tagline votesCount commentsCount {_TOPICS}",
    "search": f"id name tagline description votesCount {_TOPICS}",
    "full": (
        f"id name tagline description votesCount website slug commentsCount {_TOPICS} "
        "makers { name headline } "
        "comments(first: 10) { edges { node { body votesCount user { name headline } } } }"
    ),
    "launch": "id name tagline votesCount url website",
}


def build_posts_query(first: int, order: str = "RANKING", detail: str = "summary") -> str:
    if detail not in _FIELDS:
        raise ValueError(f"Unknown detail level: {detail}")
    if order not in ORDERS:
        raise ValueError(f"Unknown order: {order}")
    return f"{{ posts(first: {int(first)}, order: {order}) {{ edges {{ node {{ {_FIELDS[detail]} }} }} }} }}"


# ---- requests session with retry on HTTP 5xx/429 ----
_session = requests.Session()
_retry = Retry(total=2, backoff_factor=0.5,
               status_forcelist=(429, 500, 502, 503, 504),
               allowed_methods=frozenset(["POST"]))
_adapter = HTTPAdapter(max_retries=_retry, pool_connections=4, pool_maxsize=8)
_session.mount("https://", _adapter); _session.mount("http://", _adapter)

# ---- tiny in-proc cache ----
_cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}


def _cache_get(key):
    hit = _cache.get(key)
    if not hit: return None
    exp, data = hit
    if time.time() > exp:
        _cache.pop(key, None); return None
    return data


def _cache_set(key, data):
    _cache[key] = (time.time() + CACHE_TTL, data)


def clear_cache() -> None:
    _cache.clear()


def call_graphql(query: str) -> Dict[str, Any]:
    """POST a GraphQL query and return the decoded body.

    Raises ``ProductHuntError`` when no token is configured or the response
    carries GraphQL errors; HTTP failures surface as ``requests`` exceptions.
    """
    if not PRODUCTHUNT_TOKEN:
        raise ProductHuntError("PRODUCTHUNT_TOKEN not configured")

    cached = _cache_get(query)
    if cached: return cached

    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "Authorization": f"Bearer {PRODUCTHUNT_TOKEN}",
    }
    resp = _session.post(PRODUCTHUNT_API_URL, headers=headers, json={"query": query},
                         timeout=(CONNECT_TIMEOUT, READ_TIMEOUT))
    resp.raise_for_status()
    data = resp.json()

    errors = data.get("errors")
    if errors:
        first = errors[0] if isinstance(errors[0], dict) else {}
        raise ProductHuntError(first.get("message") or "GraphQL error")

    _cache_set(query, data)
    return data


# ---- mock data ----

@lru_cache(maxsize=4)
def _load_mock_file(path: str) -> Tuple[Dict[str, Any], ...]:
    with open(path, "r", encoding="utf-8") as f:
        return tuple(json.load(f))


def mock_posts(first: int = 10, order: str = "RANKING") -> List[Dict[str, Any]]:
    """Bundled sample posts, already in ranking order."""
    posts = [copy.deepcopy(p) for p in _load_mock_file(MOCK_DATA_FILE)]
    if order == "VOTES":
        posts.sort(key=lambda p: p.get("votesCount", 0), reverse=True)
    return posts[:max(0, int(first))]


def using_mock_data() -> bool:
    return USE_MOCK_DATA or not PRODUCTHUNT_TOKEN


def fetch_posts(first: int = 10, order: str = "RANKING", detail: str = "summary") -> List[Dict[str, Any]]:
    """Return post ``node`` dicts from the live feed, or mocks when it is unavailable."""
    if using_mock_data():
        logger.debug("Serving %s mock posts (order=%s)", first, order)
        return mock_posts(first, order)

    query = build_posts_query(first, order, detail)
    try:
        data = call_graphql(query)
    except requests.exceptions.HTTPError:
        raise
    except requests.exceptions.RequestException as e:
        if not MOCK_FALLBACK:
            raise
        logger.warning("Product Hunt request failed, serving mock data: %s", e)
        return mock_posts(first, order)

    posts = (data.get("data") or {}).get("posts") or {}
    return [edge.get("node") or {} for edge in posts.get("edges") or []]


def find_post(name: str, posts: Optional[List[Dict[str, Any]]] = None) -> Optional[Dict[str, Any]]:
    """First post whose name contains ``name`` (case-insensitive)."""
    if posts is None:
        posts = fetch_posts(10, "RANKING", detail="full")
    needle = (name or "").lower()
    return next((p for p in posts if needle in (p.get("name") or "").lower()), None)
