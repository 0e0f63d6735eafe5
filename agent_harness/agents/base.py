"""
Collaborator contracts for the Agent Registry.

The registry never builds an LLM client itself. It receives an agent
factory and a context factory and hands the spawned agent the shared,
non-owned session resources.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Protocol, runtime_checkable

from .context import ExecutionContext


@runtime_checkable
class ConversationalAgent(Protocol):
    """What the registry needs from a spawned agent."""

    context: ExecutionContext

    async def send_message(self, message: str) -> Any:
        ...

    def get_tool_calls(self) -> List[Dict[str, Any]]:
        ...

    def get_parsing_tool_calls(self) -> List[Dict[str, Any]]:
        ...


@dataclass
class SharedResources:
    """Session resources passed through to every agent. The registry does not own them."""
    config: Any = None
    tool_access: Any = None
    snapshot_state: Any = None
    cost_accounting: Any = None


@dataclass
class AgentConfig:
    """Per-agent configuration handed to the agent factory."""
    agent_id: str
    agent_role: str
    context_name: str
    context_role: str = "assistant"


# (agent_config, context, shared_config, tool_access, snapshot_state, cost_accounting) -> agent
AgentFactory = Callable[
    [AgentConfig, ExecutionContext, Any, Any, Any, Any],
    ConversationalAgent,
]

# (name, max_length) -> context
ContextFactory = Callable[[str, int], ExecutionContext]

