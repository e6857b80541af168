"""
Tool-calling agent over the Product Hunt feed.

The agent is a two-node LangGraph loop: the ``agent`` node asks the chat
model (bound to the feed tools) what to do next, and the ``tools`` node runs
whatever tool calls it produced.  The loop ends when the model answers
without calling a tool, or after ``AGENT_MAX_ITERATIONS`` tool rounds.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional, Tuple

from dotenv import load_dotenv
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, START, MessagesState, StateGraph
from langgraph.prebuilt import ToolNode, tools_condition

from .tools import TOOLS

load_dotenv()
logger = logging.getLogger(__name__)

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
AGENT_TEMPERATURE = float(os.getenv("AGENT_TEMPERATURE", "0"))
MAX_ITERATIONS = int(os.getenv("AGENT_MAX_ITERATIONS", "5"))

MAX_ITERATIONS_ANSWER = "Agent stopped due to max iterations."
TOOL_OUTPUT_PREVIEW = 100

SYSTEM_PROMPT = """You are a Product Hunt expert assistant. You help users discover and analyze products launched on Product Hunt.

Your capabilities:
- Find trending and popular products
- Search for products by category or keyword
- Analyze user sentiment from comments
- Provide insights about what users like or dislike
- Compare products based on votes and feedback

When answering questions:
1. Use the appropriate tools to fetch real data
2. Analyze the data thoroughly
3. Provide specific examples from the data
4. If analyzing sentiment, quote actual comments
5. Be concise but comprehensive

When listing products, use a numbered list with the product name in bold, followed by its tagline, vote count, comment count and topics.

Remember: You have access to real Product Hunt data. Always fetch fresh data rather than making assumptions."""


@dataclass
class AgentRun:
    answer: str
    tools_used: List[Dict[str, Any]] = field(default_factory=list)
    messages: List[BaseMessage] = field(default_factory=list)


# -----------------------------------------------------------------------------
# LLM and graph setup
# -----------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_llm() -> ChatOpenAI:
    # Reads OPENAI_API_KEY from the environment.
    return ChatOpenAI(model=OPENAI_MODEL, temperature=AGENT_TEMPERATURE)


def build_graph(llm=None, tools=None):
    """Compile the agent/tools loop for ``llm`` (defaults to the configured OpenAI model)."""
    tools = tools if tools is not None else TOOLS
    model = (llm if llm is not None else get_llm()).bind_tools(tools)

    def call_model(state: MessagesState) -> Dict[str, Any]:
        response = model.invoke([SystemMessage(content=SYSTEM_PROMPT)] + list(state["messages"]))
        return {"messages": [response]}

    builder = StateGraph(MessagesState)
    builder.add_node("agent", call_model)
    builder.add_node("tools", ToolNode(tools))
    builder.add_edge(START, "agent")
    builder.add_conditional_edges("agent", tools_condition, {"tools": "tools", END: END})
    builder.add_edge("tools", "agent")
    return builder.compile()


@lru_cache(maxsize=1)
def get_graph():
    return build_graph()


def recursion_limit(max_iterations: int = MAX_ITERATIONS) -> int:
    # one agent step + one tools step per round, plus the final answer step
    return 2 * max_iterations + 1


# -----------------------------------------------------------------------------
# Running
# -----------------------------------------------------------------------------

def message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _preview(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text[:TOOL_OUTPUT_PREVIEW] + "..."


def summarize_tool_calls(messages: List[BaseMessage]) -> List[Dict[str, Any]]:
    """``[{tool, input, output}]`` for every tool call, outputs truncated."""
    outputs = {m.tool_call_id: message_text(m) for m in messages if isinstance(m, ToolMessage)}
    used = []
    for m in messages:
        if not isinstance(m, AIMessage):
            continue
        for call in m.tool_calls:
            used.append({
                "tool": call["name"],
                "input": call.get("args", {}),
                "output": _preview(outputs.get(call.get("id"))),
            })
    return used


def tool_observations(messages: List[BaseMessage]) -> List[Tuple[str, str]]:
    """Full ``(tool_name, output)`` pairs, in call order."""
    return [(m.name or "", message_text(m)) for m in messages if isinstance(m, ToolMessage)]


def final_answer(messages: List[BaseMessage]) -> str:
    for m in reversed(messages):
        if isinstance(m, AIMessage) and not m.tool_calls:
            return message_text(m)
    return ""


def stream_agent(question: str, graph=None, max_iterations: int = MAX_ITERATIONS) -> Iterator[Tuple[str, List[BaseMessage]]]:
    """Yield ``(node_name, new_messages)`` as each graph step completes.

    Raises ``GraphRecursionError`` once ``max_iterations`` tool rounds are used up.
    """
    graph = graph if graph is not None else get_graph()
    inputs = {"messages": [HumanMessage(content=question)]}
    config = {"recursion_limit": recursion_limit(max_iterations)}
    for update in graph.stream(inputs, config=config, stream_mode="updates"):
        for node_name, node_state in update.items():
            yield node_name, list((node_state or {}).get("messages") or [])


def run_agent(question: str, graph=None, max_iterations: int = MAX_ITERATIONS) -> AgentRun:
    logger.info("Executing agent with question: %s", question)
    messages: List[BaseMessage] = [HumanMessage(content=question)]
    try:
        for _, new_messages in stream_agent(question, graph=graph, max_iterations=max_iterations):
            messages.extend(new_messages)
        answer = final_answer(messages)
    except GraphRecursionError:
        logger.warning("Agent hit the iteration limit (%s)", max_iterations)
        answer = MAX_ITERATIONS_ANSWER
    logger.info("Agent execution complete")
    return AgentRun(answer=answer, tools_used=summarize_tool_calls(messages), messages=messages)
