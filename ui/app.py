# ui/app.py
import os
from typing import Any, Dict, List, Optional

import requests
import streamlit as st

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
TIMEOUT = float(os.getenv("BACKEND_TIMEOUT", "90"))

EXAMPLES = [
    "What are the top trending products today?",
    "What's the hottest product right now?",
    "Find AI tools for video editing",
    "What do people think about Maillayer?",
]


# ---------- backend calls ----------
def post(path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    r = requests.post(f"{BACKEND_URL}{path}", json=payload, timeout=TIMEOUT)
    data = r.json()
    if not r.ok:
        raise RuntimeError(data.get("details") or data.get("error") or f"HTTP {r.status_code}")
    return data


def demo_to_agent_shape(demo: Dict[str, Any]) -> Dict[str, Any]:
    """Map a /api/demo payload onto the /api/agent response shape."""
    kind = demo.get("type", "general")
    data: Dict[str, Any] = {}
    if kind == "products":
        data["products"] = demo.get("products", [])
    elif kind == "single-product":
        data["product"] = demo.get("product")
    elif kind == "sentiment":
        data["sentiment"] = {
            "product": demo.get("product"),
            "score": demo.get("score", 0),
            "positive": demo.get("positive", []),
            "negative": demo.get("negative", []),
            "analyzed_comments": None,
        }
    return {"answer": demo.get("answer") or demo.get("summary") or "", "tools_used": [],
            "response_type": kind, "data": data}


# ---------- rendering ----------
def render_product_card(product: Dict[str, Any], highlight: bool = False):
    with st.container(border=True):
        title = f"### 🏆 {product.get('name')}" if highlight else f"**{product.get('name')}**"
        st.markdown(title)
        if product.get("tagline"):
            st.caption(product["tagline"])
        if highlight and product.get("description"):
            st.write(product["description"])
        c1, c2 = st.columns(2)
        c1.metric("Votes", product.get("votes") or 0)
        c2.metric("Comments", product.get("comments_count") or 0)
        topics: List[str] = product.get("topics") or []
        if topics:
            st.markdown(" ".join(f"`{t}`" for t in topics))
        if product.get("website"):
            st.markdown(f"[Visit website →]({product['website']})")


def render_products(products: List[Dict[str, Any]]):
    cols = st.columns(min(3, max(1, len(products))))
    for i, p in enumerate(products):
        with cols[i % len(cols)]:
            render_product_card(p)


def render_sentiment(sentiment: Dict[str, Any]):
    with st.container(border=True):
        st.markdown(f"**User sentiment for {sentiment.get('product')}**")
        score = int(sentiment.get("score") or 0)
        st.progress(min(100, max(0, score)) / 100, text=f"{score}% positive")
        if sentiment.get("analyzed_comments"):
            st.caption(f"{sentiment['analyzed_comments']} comments analyzed")
        left, right = st.columns(2)
        with left:
            st.markdown("👍 **What users love**")
            for q in sentiment.get("positive") or []:
                st.markdown(f"> {q}")
        with right:
            st.markdown("👎 **Concerns**")
            for q in sentiment.get("negative") or []:
                st.markdown(f"> {q}")


def render_structured(response: Dict[str, Any]):
    data = response.get("data") or {}
    kind = response.get("response_type")
    if kind == "products" and data.get("products"):
        render_products(data["products"])
    elif kind == "single-product" and data.get("product"):
        render_product_card(data["product"], highlight=True)
    elif kind == "sentiment" and data.get("sentiment"):
        render_sentiment(data["sentiment"])


def render_message(msg: Dict[str, Any]):
    with st.chat_message(msg["role"]):
        if msg.get("error"):
            st.error(msg["content"])
            return
        response: Optional[Dict[str, Any]] = msg.get("response")
        if response:
            render_structured(response)
        if msg["content"]:
            st.markdown(msg["content"])
        tools = (response or {}).get("tools_used") or []
        if tools:
            with st.expander(f"🔧 Tools used ({len(tools)})"):
                for t in tools:
                    st.markdown(f"**{t.get('tool')}** `{t.get('input')}`")
                    if t.get("output"):
                        st.caption(t["output"])


def ask(question: str, demo_mode: bool):
    st.session_state.messages.append({"role": "user", "content": question})
    try:
        if demo_mode:
            response = demo_to_agent_shape(post("/api/demo", {"question": question}))
        else:
            with st.spinner("Asking the agent..."):
                response = post("/api/agent", {"question": question})
        st.session_state.messages.append({"role": "assistant", "content": response.get("answer", ""),
                                          "response": response})
    except (requests.exceptions.RequestException, RuntimeError, ValueError) as e:
        st.session_state.messages.append({"role": "assistant", "content": f"Backend error: {e}", "error": True})


# ---------- page ----------
st.set_page_config(page_title="Product Hunt Agent", page_icon="🚀", layout="wide")
st.title("🚀 Product Hunt Agent")
st.caption("Ask about today's launches: what's trending, what a product does, and what people think of it.")

if "messages" not in st.session_state:
    st.session_state.messages = []

with st.sidebar:
    st.header("Settings")
    demo_mode = st.toggle("Demo mode (canned answers)", value=False)
    st.caption(f"Backend: `{BACKEND_URL}`")
    if st.button("Clear conversation"):
        st.session_state.messages = []

    st.divider()
    st.subheader("Diagnostics")
    if st.button("Fetch today's products"):
        try:
            feed = post("/api/producthunt", {"query": "top products today"})
            for p in feed.get("products", []):
                st.markdown(f"**{p.get('name')}** · 🔺 {p.get('votes_count')}  \n{p.get('tagline') or ''}")
        except (requests.exceptions.RequestException, RuntimeError, ValueError) as e:
            st.error(f"Feed error: {e}")
    ping = st.text_input("Ping the model", placeholder="Say hello")
    if st.button("Send ping") and ping.strip():
        try:
            out = post("/api/ai-test", {"message": ping})
            st.write(out.get("response"))
            st.caption(f"model: {out.get('model')}")
        except (requests.exceptions.RequestException, RuntimeError, ValueError) as e:
            st.error(f"AI error: {e}")

if not st.session_state.messages:
    st.markdown("**Try one of these:**")
    cols = st.columns(len(EXAMPLES))
    for col, example in zip(cols, EXAMPLES):
        if col.button(example, use_container_width=True):
            ask(example, demo_mode)
            st.rerun()

for msg in st.session_state.messages:
    render_message(msg)

question = st.chat_input("Ask about Product Hunt...")
if question and question.strip():
    ask(question.strip(), demo_mode)
    st.rerun()
