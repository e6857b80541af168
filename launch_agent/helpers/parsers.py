"""
Recover structured cards from the agent's free-text answers.

Every field is optional and defaults to an empty value. When the
same run produced tool observations, ``build_agent_response`` uses them to
fill whatever the prose left out.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from . import classify_comment, sentiment_score


SINGLE_PRODUCT_MARKERS = ("best product", "hottest product", "top product is", "leading product")
PRODUCTS_MARKERS = ("trending", "here are", "products", "launched")
SENTIMENT_MARKERS = ("sentiment", "% positive", "feedback", "users think")

DEFAULT_SCORE = 75
DEFAULT_ANALYZED = 10
MIN_QUOTE_LEN = 20
MIN_BULLET_LEN = 10
MAX_POSITIVE = 3
MAX_NEGATIVE = 2


def detect_response_type(answer: str) -> str:
    low = (answer or "").lower()
    if any(m in low for m in SINGLE_PRODUCT_MARKERS): return "single-product"
    if any(m in low for m in PRODUCTS_MARKERS): return "products"
    if any(m in low for m in SENTIMENT_MARKERS): return "sentiment"
    return "general"


# -----------------------------------------------------------------------------
# Products
# -----------------------------------------------------------------------------

_SINGLE_RX = re.compile(r"(?:best|hottest|top|leading)\s+product\b.*?\bis\s+\*\*(.+?)\*\*", re.I)
_NUMBERED_RX = re.compile(r"^\d+[.)]\s*\*\*(.+?)\*\*(.*)$")
_LABELLED_RX = re.compile(r"^[-–•]?\s*(tagline|upvotes|votes?|comments?|topics?)\s*:\s*(.+)$", re.I)
_VOTES_RX = re.compile(r"(\d[\d,]*)\s*(?:up)?votes?\b", re.I)
_COMMENTS_RX = re.compile(r"(\d[\d,]*)\s*comments?\b", re.I)
_LABEL_VOTES_RX = re.compile(r"votes?\s*[:\-]?\s*(\d[\d,]*)", re.I)
_LABEL_COMMENTS_RX = re.compile(r"comments?\s*[:\-]?\s*(\d[\d,]*)", re.I)
_DESC_RX = re.compile(r"(?:focuses on|provides?|which is an?)\s+(.*?)[.,]", re.I)
_BOLD_RX = re.compile(r"\*\*(.+?)\*\*")
_TRAILING_COUNTS_RX = re.compile(r"\s*\([^)]*\d[^)]*\)\s*$")


def _blank_product(name: str) -> Dict[str, Any]:
    return {"name": name, "tagline": "", "votes": 0, "comments_count": 0, "topics": []}


def _strip_md(text: str) -> str:
    return text.replace("*", "").replace("`", "").strip()


def _to_int(raw: str) -> int:
    try:
        return int(raw.replace(",", ""))
    except (TypeError, ValueError):
        return 0


def _first_int(text: str, *patterns: re.Pattern) -> int:
    for rx in patterns:
        m = rx.search(text)
        if m: return _to_int(m.group(1))
    return 0


def _absorb_counts(product: Dict[str, Any], text: str) -> None:
    if not product["votes"]:
        product["votes"] = _first_int(text, _VOTES_RX)
    if not product["comments_count"]:
        product["comments_count"] = _first_int(text, _COMMENTS_RX)


def _split_topics(raw: str) -> List[str]:
    return [t.strip() for t in _strip_md(raw).split(",") if t.strip()]


def _parse_single(text: str) -> Optional[Dict[str, Any]]:
    m = _SINGLE_RX.search(text)
    if not m:
        return None
    product = _blank_product(_strip_md(m.group(1)))
    product["votes"] = _first_int(text, _LABEL_VOTES_RX, _VOTES_RX)
    product["comments_count"] = _first_int(text, _LABEL_COMMENTS_RX, _COMMENTS_RX)
    desc = _DESC_RX.search(text)
    if desc:
        product["tagline"] = _strip_md(desc.group(1))
    return product


def parse_products_from_text(text: str) -> List[Dict[str, Any]]:
    """Products from a "best product is **X**" sentence or a numbered ``1. **X**`` list."""
    text = text or ""
    single = _parse_single(text)
    if single:
        return [single]

    products: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None

    for raw in text.splitlines():
        line = raw.strip()
        m = _NUMBERED_RX.match(line)
        if m:
            current = _blank_product(_strip_md(m.group(1)))
            products.append(current)
            rest = _strip_md(m.group(2))
            dash = re.match(r"^[-–—:]\s*(.+)", rest)
            if dash:
                current["tagline"] = _TRAILING_COUNTS_RX.sub("", dash.group(1)).strip()
            _absorb_counts(current, rest)
            continue
        if current is None or not line:
            continue

        plain = _strip_md(line)
        labelled = _LABELLED_RX.match(plain)
        if labelled:
            key, value = labelled.group(1).lower(), labelled.group(2).strip()
            if key == "tagline":
                current["tagline"] = value
            elif key.startswith("topic"):
                current["topics"] = _split_topics(value)
            elif key.startswith("comment"):
                current["comments_count"] = current["comments_count"] or _first_int(value, re.compile(r"(\d[\d,]*)"))
            else:
                current["votes"] = current["votes"] or _first_int(value, re.compile(r"(\d[\d,]*)"))
            continue

        if plain[:1] in "-–•" and not current["tagline"] and not (_VOTES_RX.search(plain) or _COMMENTS_RX.search(plain)):
            current["tagline"] = plain.lstrip("-–• ").strip()
        _absorb_counts(current, plain)

    return products


# -----------------------------------------------------------------------------
# Sentiment
# -----------------------------------------------------------------------------

_NAME_PATTERNS = [
    re.compile(r"^\W*(.+?)\W*\s+has received", re.I | re.M),
    re.compile(r"sentiment (?:for|of|about|on|around)\s+[\"'“*]*(.+?)[\"'”*]*(?:\s+(?:is|shows|on|from)\b|[:.,\n]|$)", re.I),
    re.compile(r"about\s+[\"'“*]*(.+?)[\"'”*]*\s*:", re.I),
    re.compile(r"^\W*(.+?)\W*\s+sentiment analysis", re.I | re.M),
]
_QUOTE_RX = re.compile(r"[\"“]([^\"“”]+)[\"”]")
_BULLET_RX = re.compile(r"^\s*[-•*]\s+(.+)$", re.M)
_PERCENT_RX = re.compile(r"(\d{1,3})\s*%\s*positive", re.I)
_ANALYZED_RX = re.compile(r"(\d+)\s+comments?\s+(?:were\s+)?analy[sz]ed", re.I)
_POS_HEAD_RX = re.compile(r"\b(positive|praise|pros|likes?)\b", re.I)
_NEG_HEAD_RX = re.compile(r"\b(negative|concerns?|criticisms?|cons|complaints?|dislikes?)\b", re.I)
_COUNT_LINE_RX = re.compile(r"^(positive|negative|neutral)\b[^\n]*\d", re.I)


def _count(label: str, text: str) -> Optional[int]:
    # "Positive comments: 3", "positive (3)", then "3 positive"; never across lines
    for rx in (rf"\b{label}\b[^\d\n%:]{{0,20}}:[ \t]*(\d+)(?![\d%])",
               rf"\b{label}\b[^\d\n%(]{{0,20}}\((\d+)\)",
               rf"(\d+)[ \t]+{label}\b"):
        m = re.search(rx, text, re.I)
        if m: return int(m.group(1))
    return None


def _product_name(text: str) -> str:
    for rx in _NAME_PATTERNS:
        m = rx.search(text)
        if m:
            name = _strip_md(m.group(1)).strip(" \"'“”:")
            if name:
                return name
    return ""


def _section_at(text: str, pos: int) -> Optional[str]:
    """Which heading ('positive' / 'negative') most recently precedes ``pos``."""
    head = text[:pos]
    last_pos = max((m.start() for m in _POS_HEAD_RX.finditer(head)), default=-1)
    last_neg = max((m.start() for m in _NEG_HEAD_RX.finditer(head)), default=-1)
    if last_pos < 0 and last_neg < 0:
        return None
    return "positive" if last_pos > last_neg else "negative"


def _collect_feedback(text: str, candidates: Iterable[Tuple[int, str]]) -> Tuple[List[str], List[str]]:
    positive: List[str] = []
    negative: List[str] = []
    for pos, snippet in candidates:
        section = _section_at(text, pos)
        if section is None:
            section = "positive" if len(positive) < MAX_POSITIVE else "negative"
        if section == "positive" and len(positive) < MAX_POSITIVE:
            positive.append(snippet)
        elif section == "negative" and len(negative) < MAX_NEGATIVE:
            negative.append(snippet)
    return positive, negative


def parse_sentiment_from_text(text: str) -> Optional[Dict[str, Any]]:
    """``{product, score, positive, negative, analyzed_comments}`` or ``None``."""
    text = text or ""
    product = _product_name(text)

    counts = [_count(label, text) for label in ("positive", "negative", "neutral")]
    pos, neg, neu = (c or 0 for c in counts)
    total = pos + neg + neu
    score: Optional[int] = None
    if total > 0:
        score = sentiment_score(pos, neg, neu)
    else:
        pct = _PERCENT_RX.search(text)
        if pct:
            score = min(100, int(pct.group(1)))

    quotes = [(m.start(), m.group(1).strip()) for m in _QUOTE_RX.finditer(text)
              if len(m.group(1).strip()) > MIN_QUOTE_LEN]
    positive, negative = _collect_feedback(text, quotes)
    if not positive and not negative:
        bullets = [(m.start(), _strip_md(m.group(1))) for m in _BULLET_RX.finditer(text)]
        bullets = [(p, b) for p, b in bullets if len(b) > MIN_BULLET_LEN and not _COUNT_LINE_RX.match(b)]
        positive, negative = _collect_feedback(text, bullets)

    if not product or (score is None and not positive):
        return None

    analyzed = _ANALYZED_RX.search(text)
    return {
        "product": product,
        "score": DEFAULT_SCORE if score is None else score,
        "positive": positive[:MAX_POSITIVE],
        "negative": negative[:MAX_NEGATIVE],
        "analyzed_comments": int(analyzed.group(1)) if analyzed else (total or DEFAULT_ANALYZED),
    }


# -----------------------------------------------------------------------------
# Agent response assembly
# -----------------------------------------------------------------------------

def _loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def _observed(observations: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """Latest JSON payload per tool, ignoring plain-text messages."""
    seen: Dict[str, Any] = {}
    for name, raw in observations:
        data = _loads(raw)
        if data is not None:
            seen[name] = data
    return seen


def _fill_from(product: Dict[str, Any], known: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    match = known.get((product.get("name") or "").lower())
    if not match:
        return product
    out = dict(product)
    for key, value in match.items():
        if key == "comments":
            continue
        if not out.get(key):
            out[key] = value
    return out


def _named_product(answer: str, known: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """The observed product whose name the answer puts in bold."""
    for m in _BOLD_RX.finditer(answer or ""):
        match = known.get(_strip_md(m.group(1)).lower())
        if match:
            return match
    return None


def _observed_products(seen: Dict[str, Any]) -> List[Dict[str, Any]]:
    products: List[Dict[str, Any]] = []
    for name in ("get_trending_products", "search_products"):
        if isinstance(seen.get(name), list):
            products.extend(p for p in seen[name] if isinstance(p, dict))
    details = seen.get("get_product_details")
    if isinstance(details, dict) and details.get("name"):
        products.append({k: v for k, v in details.items() if k != "comments"})
    return products


def _sentiment_from_analysis(parsed: Optional[Dict[str, Any]], seen: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    observed = seen.get("analyze_comments")
    if not isinstance(observed, dict) or not isinstance(observed.get("analysis"), dict):
        return parsed
    analysis = observed["analysis"]
    counts = analysis.get("sentiment") or {}
    out = dict(parsed or {"product": observed.get("product") or "", "positive": [], "negative": []})
    out["score"] = sentiment_score(counts.get("positive", 0), counts.get("negative", 0), counts.get("neutral", 0))
    out["analyzed_comments"] = analysis.get("total_comments", 0)
    top = [t for t in analysis.get("top_comments") or [] if isinstance(t, str)]
    if not out.get("positive"):
        out["positive"] = [t for t in top if classify_comment(t) == "positive"][:MAX_POSITIVE]
    if not out.get("negative"):
        out["negative"] = [t for t in top if classify_comment(t) == "negative"][:MAX_NEGATIVE]
    return out


def build_agent_response(answer: str, tools_used: List[Dict[str, Any]],
                         observations: Iterable[Tuple[str, str]] = ()) -> Dict[str, Any]:
    """Assemble the payload served by the agent routes.

    ``observations`` are ``(tool_name, output_text)`` pairs from the same run.
    """
    response_type = detect_response_type(answer)
    seen = _observed(observations)
    observed_products = _observed_products(seen)
    known = {(p.get("name") or "").lower(): p for p in observed_products}

    data: Dict[str, Any] = {}
    if response_type in ("products", "single-product"):
        parsed = [_fill_from(p, known) for p in parse_products_from_text(answer)]
        if response_type == "products":
            products = parsed or observed_products
            if products:
                data["products"] = products
        else:
            product = parsed[0] if parsed else _named_product(answer, known)
            if product is None and len(observed_products) == 1:
                product = observed_products[0]
            if product:
                data["product"] = product
    elif response_type == "sentiment":
        sentiment = _sentiment_from_analysis(parse_sentiment_from_text(answer), seen)
        if sentiment:
            data["sentiment"] = sentiment

    return {
        "answer": answer,
        "tools_used": tools_used,
        "execution_time": datetime.now(timezone.utc).isoformat(),
        "response_type": response_type,
        "data": data,
    }
