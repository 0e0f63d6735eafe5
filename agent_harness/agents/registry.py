"""
Agent Registry

Core registry logic: spawn, despawn, and message subordinate agents.
Only the agent that spawned a child may despawn it.
"""

import asyncio
import logging
import secrets
import time
from typing import Optional, List, Dict, Set, Any

from ..errors import HarnessError, ValidationError, NotFoundError, AccessDeniedError, UnexpectedError
from .base import AgentConfig, AgentFactory, ConversationalAgent, ContextFactory, SharedResources
from .context import ExecutionContext, create_context
from .models import (
    AgentStatus, AgentRecord, AgentInfo, utcnow,
    SpawnResult, DespawnResult, MessageResult,
)
from .roles import RoleCatalog

logger = logging.getLogger("agent-harness.agents.registry")


class AgentRegistry:
    """
    Agent Registry

    Owns every live agent, its execution context, and the
    parent -> children ownership index. One instance per session.
    """

    def __init__(
        self,
        roles: RoleCatalog,
        agent_factory: AgentFactory,
        context_factory: ContextFactory = create_context,
        shared: SharedResources = None,
        id_prefix: str = "agent",
        context_max_length: int = 50000,
    ):
        self.roles = roles
        self.agent_factory = agent_factory
        self.context_factory = context_factory
        self.shared = shared or SharedResources()
        self.id_prefix = id_prefix
        self.context_max_length = context_max_length

        self._agents: Dict[str, ConversationalAgent] = {}
        self._contexts: Dict[str, ExecutionContext] = {}
        self._records: Dict[str, AgentRecord] = {}
        self._children: Dict[Optional[str], Set[str]] = {}
        self._message_locks: Dict[str, asyncio.Lock] = {}

        logger.debug("Agent Registry initialized")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def spawn_agent(
        self,
        agent_role: str,
        parent_agent_id: Optional[str],
        context_name: Optional[str] = None,
    ) -> SpawnResult:
        """
        Spawn a new agent owned by ``parent_agent_id``.

        1. Validate role against the role catalog
        2. Allocate agent ID and context name
        3. Build context and agent through the injected factories
        4. Record the agent and its ownership entry
        """
        try:
            if not self.roles.has_role(agent_role):
                raise ValidationError(
                    f"Unknown agent role: {agent_role}. "
                    "Available roles can be checked with the roles command."
                )

            agent_id = self._new_agent_id()
            final_context_name = context_name or f"{agent_id}-context"
            if any(r.context_name == final_context_name for r in self._records.values()):
                raise ValidationError(f"Context {final_context_name} is already in use")

            context = self.context_factory(final_context_name, self.context_max_length)
            agent_config = AgentConfig(
                agent_id=agent_id,
                agent_role=agent_role,
                context_name=final_context_name,
            )
            agent = self.agent_factory(
                agent_config,
                context,
                self.shared.config,
                self.shared.tool_access,
                self.shared.snapshot_state,
                self.shared.cost_accounting,
            )
            if not context.has_agent(agent_id):
                context.add_agent(agent_id, agent, agent_config.context_role)

        except ValidationError as e:
            logger.info(f"Rejected spawn of role {agent_role} by {parent_agent_id}: {e}")
            return SpawnResult(success=False, error=str(e))
        except Exception as e:
            logger.error(f"Failed to spawn agent with role {agent_role}: {e}")
            return SpawnResult(success=False, error=str(UnexpectedError("Failed to spawn agent", e)))

        # No awaits below: record and index are updated together
        record = AgentRecord(
            agent_id=agent_id,
            agent_role=agent_role,
            parent_agent_id=parent_agent_id,
            context_name=final_context_name,
        )
        self._agents[agent_id] = agent
        self._contexts[agent_id] = context
        self._records[agent_id] = record
        self._children.setdefault(parent_agent_id, set()).add(agent_id)
        self._message_locks[agent_id] = asyncio.Lock()

        logger.info(f"Spawned agent {agent_id} (role: {agent_role}) by parent {parent_agent_id}")

        return SpawnResult(
            success=True,
            agent_id=agent_id,
            agent_role=agent_role,
            context_name=final_context_name,
            created_at=record.created_at,
        )

    async def despawn_agent(
        self,
        agent_id: str,
        requesting_parent_id: Optional[str],
    ) -> DespawnResult:
        """Despawn an agent. Only its spawning parent may do this."""
        try:
            record = self._require(agent_id)
            if record.parent_agent_id != requesting_parent_id:
                raise AccessDeniedError(agent_id, record.parent_agent_id, requesting_parent_id)

            self._contexts[agent_id].remove_agent(agent_id)
            record = self._forget(agent_id)

        except HarnessError as e:
            logger.info(f"Despawn of {agent_id} by {requesting_parent_id} refused: {e}")
            return DespawnResult(success=False, agent_id=agent_id, error=str(e))
        except Exception as e:
            logger.error(f"Failed to despawn agent {agent_id}: {e}")
            return DespawnResult(
                success=False,
                agent_id=agent_id,
                error=str(UnexpectedError("Failed to despawn agent", e)),
            )

        logger.info(
            f"Despawned agent {agent_id} (role: {record.agent_role}) by parent {requesting_parent_id}"
        )
        return DespawnResult(
            success=True,
            agent_id=agent_id,
            agent_role=record.agent_role,
            status=record.status,
            despawned_at=record.despawned_at,
        )

    async def send_message_to_agent(self, agent_id: str, message: str) -> MessageResult:
        """Forward a message; messages to one agent are handled in send order."""
        if agent_id not in self._agents:
            return MessageResult(success=False, agent_id=agent_id, error=str(NotFoundError(agent_id)))

        agent = self._agents[agent_id]
        lock = self._message_locks[agent_id]
        try:
            async with lock:
                response = await agent.send_message(message)
        except Exception as e:
            logger.error(f"Failed to send message to agent {agent_id}: {e}")
            return MessageResult(
                success=False,
                agent_id=agent_id,
                error=str(UnexpectedError("Failed to send message", e)),
            )

        return MessageResult(success=True, agent_id=agent_id, response=response)

    def shutdown(self) -> int:
        """Release every agent at session end. Returns how many were released."""
        count = len(self._agents)
        for agent_id in list(self._agents):
            try:
                self._contexts[agent_id].remove_agent(agent_id)
            except Exception as e:
                logger.warning(f"Could not detach agent {agent_id} from its context: {e}")
            self._forget(agent_id)

        if count:
            logger.info(f"Released {count} agent(s) at shutdown")
        return count

    # =========================================================================
    # Queries
    # =========================================================================

    def get_agent_info(self, agent_id: str) -> Optional[AgentInfo]:
        """Get information about an agent, or None."""
        record = self._records.get(agent_id)
        if not record:
            return None
        agent = self._agents[agent_id]
        return AgentInfo(
            agent_id=agent_id,
            agent_role=record.agent_role,
            parent_agent_id=record.parent_agent_id,
            context_name=record.context_name,
            status=record.status,
            created_at=record.created_at,
            initialized=bool(getattr(agent, "initialized", False)),
        )

    def get_spawned_agents(self, parent_agent_id: Optional[str]) -> List[AgentInfo]:
        """Agents spawned by ``parent_agent_id`` that are still active."""
        return [
            self.get_agent_info(agent_id)
            for agent_id in sorted(
                self._children.get(parent_agent_id, ()),
                key=lambda a: self._records[a].created_at,
            )
        ]

    def get_all_active_agents(self) -> List[AgentInfo]:
        return [self.get_agent_info(agent_id) for agent_id in self._agents]

    def get_active_agent_count(self) -> int:
        return len(self._agents)

    def get_agent(self, agent_id: str) -> Optional[ConversationalAgent]:
        """The agent instance, for tool-call introspection."""
        return self._agents.get(agent_id)

    # =========================================================================
    # Internals
    # =========================================================================

    def _new_agent_id(self) -> str:
        while True:
            agent_id = f"{self.id_prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"
            if agent_id not in self._records:
                return agent_id

    def _require(self, agent_id: str) -> AgentRecord:
        record = self._records.get(agent_id)
        if record is None:
            raise NotFoundError(agent_id)
        return record

    def _forget(self, agent_id: str) -> AgentRecord:
        record = self._records.pop(agent_id)
        record.status = AgentStatus.DESPAWNED
        record.despawned_at = utcnow()
        self._agents.pop(agent_id, None)
        self._contexts.pop(agent_id, None)
        self._message_locks.pop(agent_id, None)

        siblings = self._children.get(record.parent_agent_id)
        if siblings is not None:
            siblings.discard(agent_id)
            if not siblings:
                del self._children[record.parent_agent_id]
        return record

    def stats(self) -> Dict[str, Any]:
        """Registry statistics."""
        return {
            "active_agents": len(self._agents),
            "parents": len(self._children),
            "by_role": {
                role: sum(1 for r in self._records.values() if r.agent_role == role)
                for role in {r.agent_role for r in self._records.values()}
            },
        }
