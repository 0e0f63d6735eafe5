"""
Agent Tools

Handlers behind the delegation tools an orchestrating agent can call:
spawn_agent, despawn_agent, speak_to_agent and get_agents. The caller's
own agent ID (None for the top-level user) is the ownership key.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any, Callable, Awaitable

from .registry import AgentRegistry


@dataclass
class ToolCallContext:
    """Who is calling, and which registry they act on."""
    registry: AgentRegistry
    current_agent_id: Optional[str] = None


@dataclass
class ToolResult:
    """Result of an agent tool call."""
    tool_name: str
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"tool_name": self.tool_name, "success": self.success}
        if self.success:
            result.update(self.data)
        else:
            result["error"] = self.error
            if self.data:
                result["details"] = self.data
        return result


def _missing(params: Dict[str, Any], required: List[str]) -> List[str]:
    return [name for name in required if not isinstance(params.get(name), str) or not params[name]]


async def spawn_agent(ctx: ToolCallContext, params: Dict[str, Any]) -> ToolResult:
    """Spawn a specialized agent and hand it its task."""
    missing = _missing(params, ["role_name", "task_prompt"])
    if missing:
        return ToolResult("spawn_agent", False, error=f"Missing required parameters: {', '.join(missing)}")

    role_name = params["role_name"]
    result = await ctx.registry.spawn_agent(role_name, ctx.current_agent_id)
    if not result.success:
        return ToolResult(
            "spawn_agent", False,
            data={"role_name": role_name},
            error=result.error,
        )

    initial = await ctx.registry.send_message_to_agent(result.agent_id, params["task_prompt"])
    return ToolResult("spawn_agent", True, data={
        "agent_id": result.agent_id,
        "role_name": role_name,
        "created_at": result.created_at.isoformat(),
        "task_delivered": initial.success,
        "response": initial.response if initial.success else None,
        "message": (
            f"Successfully spawned {role_name} agent with ID: {result.agent_id}. "
            "Continue spawning other agents if necessary or wait for messages with results"
        ),
    })


async def despawn_agent(ctx: ToolCallContext, params: Dict[str, Any]) -> ToolResult:
    """Despawn an agent the caller spawned."""
    missing = _missing(params, ["agent_id"])
    if missing:
        return ToolResult("despawn_agent", False, error="Missing required parameters: agent_id")

    result = await ctx.registry.despawn_agent(params["agent_id"], ctx.current_agent_id)
    if not result.success:
        return ToolResult("despawn_agent", False, data={"agent_id": result.agent_id}, error=result.error)

    return ToolResult("despawn_agent", True, data={
        "agent_id": result.agent_id,
        "role_name": result.agent_role,
        "despawned_at": result.despawned_at.isoformat(),
    })


async def speak_to_agent(ctx: ToolCallContext, params: Dict[str, Any]) -> ToolResult:
    """Send a follow-up message to a spawned agent."""
    missing = _missing(params, ["agent_id", "message"])
    if missing:
        return ToolResult("speak_to_agent", False, error=f"Missing required parameters: {', '.join(missing)}")

    agent_id = params["agent_id"]
    if ctx.registry.get_agent_info(agent_id) is None:
        return ToolResult(
            "speak_to_agent", False,
            data={"agent_id": agent_id},
            error=(
                f"Agent with ID {agent_id} not found; use get_agents to list agents "
                "or spawn_agent to create a new one"
            ),
        )

    sender = ctx.current_agent_id or "user"
    full_message = f"speak_to_agent call from {sender} to {agent_id} with message: {params['message']}"
    result = await ctx.registry.send_message_to_agent(agent_id, full_message)
    if not result.success:
        return ToolResult("speak_to_agent", False, data={"agent_id": agent_id}, error=result.error)

    return ToolResult("speak_to_agent", True, data={
        "agent_id": agent_id,
        "response": result.response,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


async def get_agents(ctx: ToolCallContext, params: Dict[str, Any]) -> ToolResult:
    """List the agents spawned by the caller."""
    agents = [info.to_dict() for info in ctx.registry.get_spawned_agents(ctx.current_agent_id)]
    return ToolResult("get_agents", True, data={
        "agents": agents,
        "total_count": len(agents),
        "message": f"Found {len(agents)} agents",
    })


AGENT_TOOLS: Dict[str, Callable[[ToolCallContext, Dict[str, Any]], Awaitable[ToolResult]]] = {
    "spawn_agent": spawn_agent,
    "despawn_agent": despawn_agent,
    "speak_to_agent": speak_to_agent,
    "get_agents": get_agents,
}


async def execute_tool(ctx: ToolCallContext, tool_name: str, params: Optional[Dict[str, Any]] = None) -> ToolResult:
    """Dispatch a delegation tool call by name."""
    handler = AGENT_TOOLS.get(tool_name)
    if handler is None:
        return ToolResult(tool_name, False, error=f"Unknown tool: {tool_name}")
    try:
        return await handler(ctx, params or {})
    except Exception as e:
        return ToolResult(tool_name, False, error=f"Unexpected error in {tool_name}: {e}")
