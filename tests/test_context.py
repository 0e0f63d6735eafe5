"""Tests for execution contexts."""

import pytest

from agent_harness.agents import ExecutionContext, create_context
from agent_harness.agents.context import MIN_KEPT_MESSAGES


def message(role, size, tag=""):
    return {"role": role, "content": tag + "x" * (size - len(tag))}


def test_agents_attach_and_detach():
    context = create_context("c1")

    context.add_agent("agent-1", object(), "assistant")
    assert context.has_agent("agent-1")
    assert context.agent_count == 1

    assert context.remove_agent("agent-1") is True
    assert context.remove_agent("agent-1") is False
    assert context.agent_count == 0


def test_invalid_message_is_rejected():
    context = ExecutionContext("c1")

    with pytest.raises(ValueError):
        context.add_message({"role": "user"})
    with pytest.raises(ValueError):
        context.add_message({"content": "hi"})

    assert context.get_messages() == []


def test_trim_keeps_system_messages_and_recent_history():
    context = ExecutionContext("c1", max_length=100)
    context.add_message(message("system", 50, "sys"))

    for i in range(20):
        context.add_message(message("user", 10, f"m{i:02d}"))

    messages = context.get_messages()
    assert messages[0]["content"].startswith("sys")
    others = messages[1:]
    assert len(others) == MIN_KEPT_MESSAGES
    assert others[-1]["content"].startswith("m19")
    assert others[0]["content"].startswith("m10")


def test_trim_never_goes_below_minimum():
    context = ExecutionContext("c1", max_length=10)

    for i in range(15):
        context.add_message(message("assistant", 20))

    assert len(context.get_messages()) == MIN_KEPT_MESSAGES


def test_under_limit_nothing_is_trimmed():
    context = ExecutionContext("c1", max_length=1000)
    for _ in range(30):
        context.add_message(message("user", 5))

    assert len(context.get_messages()) == 30


def test_stats_and_clear():
    context = ExecutionContext("c1", max_length=500)
    context.add_agent("agent-1", object(), "user")
    context.add_message(message("user", 12))

    stats = context.get_stats()
    assert stats["message_count"] == 1
    assert stats["context_length"] == 12
    assert stats["agents"] == [{"agent_id": "agent-1", "context_role": "user"}]

    context.clear_messages()
    assert context.get_stats()["message_count"] == 0
