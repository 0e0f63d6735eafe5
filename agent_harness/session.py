"""
Harness Session

One long-lived owner per CLI session for the agent registry and the
snapshot manager. The two never talk to each other; the session starts
and stops them.
"""

import logging
from typing import Optional, Dict, Any

from .config import HarnessConfig
from .agents import AgentRegistry, StaticRoleCatalog, SharedResources, ToolCallContext
from .agents.base import AgentFactory
from .agents.roles import RoleCatalog
from .git import GitPrimitives
from .snapshot import SnapshotManager, CleanupResult

logger = logging.getLogger("agent-harness.session")


class HarnessSession:
    """
    Session lifecycle.

    Usage:
        session = HarnessSession.from_config(config, agent_factory=make_agent)
        await session.start()
        result = await session.registry.spawn_agent("coder", None)
        ...
        await session.shutdown()
    """

    def __init__(
        self,
        registry: AgentRegistry,
        snapshots: SnapshotManager,
        config: Optional[HarnessConfig] = None,
    ):
        self.config = config or HarnessConfig()
        self.registry = registry
        self.snapshots = snapshots
        self._started = False

    @classmethod
    def from_config(
        cls,
        config: HarnessConfig,
        agent_factory: AgentFactory,
        roles: Optional[RoleCatalog] = None,
        git: Optional[GitPrimitives] = None,
        tool_access: Any = None,
        cost_accounting: Any = None,
    ) -> "HarnessSession":
        """Wire a session from configuration."""
        git = git or GitPrimitives(
            repo_path=config.git.repo_path,
            branch_prefix=config.git.branch_prefix,
        )
        snapshots = SnapshotManager(
            git,
            enabled=config.git.enabled,
            force_delete=config.git.force_delete,
            commit_prefix=config.git.commit_prefix,
            history_limit=config.git.history_limit,
        )
        registry = AgentRegistry(
            roles=roles or StaticRoleCatalog(config.roles),
            agent_factory=agent_factory,
            shared=SharedResources(
                config=config,
                tool_access=tool_access,
                snapshot_state=snapshots.state,
                cost_accounting=cost_accounting,
            ),
            id_prefix=config.agents.id_prefix,
            context_max_length=config.agents.context_max_length,
        )
        return cls(registry, snapshots, config)

    async def start(self):
        """Detect git integration. Idempotent."""
        if self._started:
            return
        await self.snapshots.ensure_initialized()
        self._started = True
        logger.info("Session started")

    def tool_context(self, current_agent_id: Optional[str] = None) -> ToolCallContext:
        """Context for routing an agent's delegation tool calls."""
        return ToolCallContext(registry=self.registry, current_agent_id=current_agent_id)

    async def shutdown(self) -> Optional[CleanupResult]:
        """
        Release all agents and retire the temporary branch if it is safe.

        Returns the cleanup result, or None when cleanup was not eligible.
        """
        try:
            released = self.registry.shutdown()
            logger.debug(f"Released {released} agent(s)")
        except Exception as e:
            logger.error(f"Releasing agents failed: {e}")

        decision = await self.snapshots.should_perform_cleanup()
        if not decision.should_cleanup:
            logger.info(f"Skipping branch cleanup: {decision.reason}")
            self._started = False
            return None

        result = await self.snapshots.perform_cleanup()
        if not result.success:
            logger.error(f"Branch cleanup failed: {result.error}")
        self._started = False
        return result

    def status(self) -> Dict[str, Any]:
        return {
            "git": self.snapshots.get_status(),
            "agents": self.registry.stats(),
        }
