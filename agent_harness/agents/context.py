"""
Execution Contexts

A context is the conversation container an agent runs in. Every spawned
agent gets its own; the registry removes the agent from it on despawn.
"""

import logging
from typing import Optional, Dict, List, Any

logger = logging.getLogger("agent-harness.agents.context")

# Oldest non-system messages are dropped while over the limit, but never below this many.
MIN_KEPT_MESSAGES = 10


class ExecutionContext:
    """
    Named, length-bounded message list shared by the agents attached to it.

    Agents are attached with a context role ("user" or "assistant").
    """

    def __init__(
        self,
        name: str,
        max_length: int = 50000,
        starting_messages: Optional[List[Dict[str, Any]]] = None,
    ):
        self.name = name
        self.max_length = max_length
        self.messages: List[Dict[str, Any]] = list(starting_messages or [])
        self._agents: Dict[str, Dict[str, Any]] = {}

        logger.debug(f"Created context: {name} (max length: {max_length})")

    def add_agent(self, agent_id: str, agent: Any, role: str = "assistant"):
        """Attach an agent to this context."""
        self._agents[agent_id] = {"agent": agent, "role": role}
        logger.debug(f"Added agent {agent_id} as {role} to context {self.name}")

    def remove_agent(self, agent_id: str) -> bool:
        """Detach an agent. Returns False if it was not attached."""
        if agent_id not in self._agents:
            return False
        del self._agents[agent_id]
        logger.debug(f"Removed agent {agent_id} from context {self.name}")
        return True

    def has_agent(self, agent_id: str) -> bool:
        return agent_id in self._agents

    @property
    def agent_count(self) -> int:
        return len(self._agents)

    def add_message(self, message: Dict[str, Any]):
        """Append a message, trimming old history if over the limit."""
        if not message or not message.get("role") or not message.get("content"):
            raise ValueError("Invalid message: must have role and content")

        self.messages.append(message)

        if self._length() > self.max_length:
            self._trim()

    def get_messages(self) -> List[Dict[str, Any]]:
        return list(self.messages)

    def clear_messages(self):
        count = len(self.messages)
        self.messages.clear()
        logger.debug(f"Cleared {count} messages from context {self.name}")

    def _length(self) -> int:
        return sum(
            len(m["content"]) for m in self.messages if isinstance(m.get("content"), str)
        )

    def _trim(self):
        original = len(self.messages)
        system = [m for m in self.messages if m.get("role") == "system"]
        other = [m for m in self.messages if m.get("role") != "system"]

        while other and len(other) > MIN_KEPT_MESSAGES:
            self.messages = system + other
            if self._length() <= self.max_length:
                break
            other.pop(0)

        self.messages = system + other
        removed = original - len(self.messages)
        if removed:
            logger.debug(
                f"Trimmed {removed} messages from context {self.name} "
                f"(length: {self._length()}/{self.max_length})"
            )

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "message_count": len(self.messages),
            "context_length": self._length(),
            "max_length": self.max_length,
            "agent_count": self.agent_count,
            "agents": [
                {"agent_id": agent_id, "context_role": entry["role"]}
                for agent_id, entry in self._agents.items()
            ],
        }


def create_context(name: str, max_length: int = 50000) -> ExecutionContext:
    """Default context factory used by the registry."""
    return ExecutionContext(name=name, max_length=max_length)
