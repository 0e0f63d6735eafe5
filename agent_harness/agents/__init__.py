"""
Agent Registry

Spawns, messages and despawns subordinate agents. Each agent gets its own
execution context, and only the parent that spawned an agent may despawn it.
"""

from .base import AgentConfig, ConversationalAgent, SharedResources
from .context import ExecutionContext, create_context
from .models import (
    AgentStatus, AgentRecord, AgentInfo,
    SpawnResult, DespawnResult, MessageResult,
)
from .registry import AgentRegistry
from .roles import RoleCatalog, StaticRoleCatalog
from .tools import ToolCallContext, ToolResult, execute_tool

__all__ = [
    "AgentConfig",
    "ConversationalAgent",
    "SharedResources",
    "ExecutionContext",
    "create_context",
    "AgentStatus",
    "AgentRecord",
    "AgentInfo",
    "SpawnResult",
    "DespawnResult",
    "MessageResult",
    "AgentRegistry",
    "RoleCatalog",
    "StaticRoleCatalog",
    "ToolCallContext",
    "ToolResult",
    "execute_tool",
]
