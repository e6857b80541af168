"""
Launch Agent: FastAPI back-end
==============================
Routes used by the UI:

  POST /api/agent          → run the Product Hunt agent, return a structured answer
  GET  /api/agent/stream   → same, as Server-Sent Events (one event per graph step)
  POST /api/producthunt    → today's top launches straight from the feed
  POST /api/ai-test        → plain chat completion (connectivity check)
  POST /api/demo           → canned structured responses, no LLM / network
  GET|POST /api/test       → API ping / echo

Run locally with ``uvicorn launch_agent.main:app --reload``.
"""

import json
import logging
import os
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from langchain_openai import ChatOpenAI
from langgraph.errors import GraphRecursionError
from pydantic import BaseModel

from . import __version__
from .agent import (MAX_ITERATIONS_ANSWER, final_answer, message_text, run_agent, stream_agent,
                    summarize_tool_calls, tool_observations)
from .demo import demo_response
from .helpers.mapper import to_launch
from .helpers.parsers import build_agent_response
from .services import producthunt

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO),
                    format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)

APP_ENV = os.getenv("APP_ENV", "production")
AI_TEST_MODEL = os.getenv("AI_TEST_MODEL", "gpt-3.5-turbo")
ALLOWED_ORIGINS = [o.strip() for o in os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8501").split(",") if o.strip()]
FEED_LIMIT = 5


@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("LANGCHAIN_TRACING_V2"):
        logger.info("LangSmith tracing enabled")
    if producthunt.using_mock_data():
        logger.info("Product Hunt feed: serving mock data")
    yield


app = FastAPI(
    title="Launch Agent API",
    description="Ask natural-language questions about today's Product Hunt launches",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Models ────────────────────────────────────────────────────────────

class QuestionRequest(BaseModel):
    question: Optional[str] = None


class MessageRequest(BaseModel):
    message: Optional[str] = None


class FeedRequest(BaseModel):
    query: Optional[str] = None


# ── Helpers ───────────────────────────────────────────────────────────────────

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


def _sse(event: str, data: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False, default=str)}\n\n"


@lru_cache(maxsize=1)
def get_ping_llm() -> ChatOpenAI:
    return ChatOpenAI(model=AI_TEST_MODEL, temperature=0.7, max_tokens=200)


# ── Routes ────────────────────────────────────────────────────────────────────

@app.get("/health")
def health():
    return {"status": "ok", "service": "launch-agent-api", "mock_data": producthunt.using_mock_data()}


@app.post("/api/agent")
def ask_agent(req: QuestionRequest):
    """Run the agent on a question and return its answer plus parsed cards."""
    question = (req.question or "").strip()
    if not question:
        return _error(400, "Question is required")

    try:
        result = run_agent(question)
        return build_agent_response(result.answer, result.tools_used, tool_observations(result.messages))
    except Exception as e:
        logger.exception("Agent execution error")
        extra = {"details": str(e)}
        if APP_ENV == "development":
            extra["stack"] = traceback.format_exc()
        return _error(500, "Failed to process question", **extra)


@app.get("/api/agent/stream")
def ask_agent_stream(question: str = ""):
    """
    Server-Sent Events stream of the agent run.
    One event per graph step + a final 'done' carrying the structured answer.
    """
    question = question.strip()
    if not question:
        return _error(400, "Question is required")

    def gen():
        yield _sse("start", {"question": question, "ts": time.time()})
        messages = []
        try:
            for node_name, new_messages in stream_agent(question):
                messages.extend(new_messages)
                yield _sse("node_end", {
                    "node": node_name,
                    "tool_calls": [c for m in new_messages for c in (getattr(m, "tool_calls", None) or [])],
                    "tool_outputs": [{"tool": m.name, "output": message_text(m)}
                                     for m in new_messages if m.type == "tool"],
                    "ts": time.time(),
                })
            answer = final_answer(messages)
        except GraphRecursionError:
            answer = MAX_ITERATIONS_ANSWER
        except Exception as e:
            logger.exception("Agent stream error")
            yield _sse("error", {"error": "Failed to process question", "details": str(e), "ts": time.time()})
            return

        payload = build_agent_response(answer, summarize_tool_calls(messages), tool_observations(messages))
        yield _sse("done", {"response": payload, "ts": time.time()})

    return StreamingResponse(gen(), media_type="text/event-stream")


@app.post("/api/ai-test")
def ai_test(req: MessageRequest):
    """Single chat completion, no tools."""
    message = (req.message or "").strip()
    if not message:
        return _error(400, "Message is required")

    try:
        resp = get_ping_llm().invoke([
            ("system", "You are a helpful assistant for Product Hunt queries."),
            ("human", message),
        ])
    except Exception:
        logger.exception("AI API error")
        return _error(500, "Failed to process request")

    meta = resp.response_metadata or {}
    return {
        "response": resp.content,
        "model": meta.get("model_name", AI_TEST_MODEL),
        "usage": meta.get("token_usage") or resp.usage_metadata,
    }


@app.post("/api/producthunt")
def product_hunt_feed(req: FeedRequest):
    """Top launches by votes, straight from the feed (or mocks)."""
    query = (req.query or "").strip()
    if not query:
        return _error(400, "Query is required")

    try:
        posts = producthunt.fetch_posts(FEED_LIMIT, "VOTES", detail="launch")
    except Exception:
        logger.exception("Product Hunt API error")
        return _error(500, "Failed to fetch Product Hunt data")

    return {"products": [to_launch(p) for p in posts], "query": query}


@app.post("/api/demo")
def demo(req: QuestionRequest):
    return demo_response(req.question or "")


@app.get("/api/test")
def api_test():
    return {"message": "Product Hunt AI Agent API is working!", "timestamp": _now()}


@app.post("/api/test")
def api_test_echo(body: Any = Body(None)):
    return {"message": "POST request received", "received": body, "timestamp": _now()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("launch_agent.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
