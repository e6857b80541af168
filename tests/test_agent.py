import itertools

from langchain_core.messages import AIMessage, SystemMessage, ToolMessage

from launch_agent import agent


class ScriptedModel:
    """Stands in for a tool-bound chat model, replaying canned replies."""

    def __init__(self, replies):
        self.replies = iter(replies)
        self.calls = []
        self.bound = None

    def bind_tools(self, tools):
        self.bound = [t.name for t in tools]
        return self

    def invoke(self, messages):
        self.calls.append(messages)
        return next(self.replies)


def _tool_call(name, args, call_id):
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": call_id}])


def test_run_agent_calls_tools_then_answers(mock_feed):
    model = ScriptedModel([
        _tool_call("get_trending_products", {"limit": 2}, "call_1"),
        AIMessage(content="Here are today's trending products:\n1. **Maillayer**\n2. **Sidemail 2.0**"),
    ])
    result = agent.run_agent("What's trending?", graph=agent.build_graph(model))

    assert result.answer.startswith("Here are today's trending products")
    assert model.bound == ["get_trending_products", "search_products", "get_product_details", "analyze_comments"]
    assert isinstance(model.calls[0][0], SystemMessage)
    assert model.calls[0][0].content == agent.SYSTEM_PROMPT

    assert len(result.tools_used) == 1
    used = result.tools_used[0]
    assert used["tool"] == "get_trending_products"
    assert used["input"] == {"limit": 2}
    assert used["output"].endswith("...")
    assert len(used["output"]) == agent.TOOL_OUTPUT_PREVIEW + 3

    observations = agent.tool_observations(result.messages)
    assert observations[0][0] == "get_trending_products"
    assert '"Maillayer"' in observations[0][1]


def test_run_agent_without_tools():
    model = ScriptedModel([AIMessage(content="Hi! Ask me about Product Hunt launches.")])
    result = agent.run_agent("hello", graph=agent.build_graph(model))
    assert result.answer == "Hi! Ask me about Product Hunt launches."
    assert result.tools_used == []


def test_run_agent_stops_at_iteration_limit(mock_feed):
    replies = (_tool_call("get_trending_products", {"limit": 1}, f"call_{i}") for i in itertools.count())
    model = ScriptedModel(replies)
    result = agent.run_agent("loop forever", graph=agent.build_graph(model), max_iterations=2)
    assert result.answer == agent.MAX_ITERATIONS_ANSWER
    assert result.tools_used


def test_stream_agent_yields_node_updates(mock_feed):
    model = ScriptedModel([
        _tool_call("search_products", {"keywords": "email"}, "call_1"),
        AIMessage(content="Found 2 products."),
    ])
    steps = list(agent.stream_agent("email tools?", graph=agent.build_graph(model)))
    assert [name for name, _ in steps] == ["agent", "tools", "agent"]
    assert isinstance(steps[1][1][0], ToolMessage)


def test_summarize_tool_calls_without_output():
    messages = [_tool_call("search_products", {"keywords": "ai"}, "call_9")]
    assert agent.summarize_tool_calls(messages) == [
        {"tool": "search_products", "input": {"keywords": "ai"}, "output": None}]


def test_message_text_joins_content_blocks():
    msg = AIMessage(content=[{"type": "text", "text": "Hello "}, {"type": "text", "text": "world"}])
    assert agent.message_text(msg) == "Hello world"


def test_recursion_limit():
    assert agent.recursion_limit(5) == 11
