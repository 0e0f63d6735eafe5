"""
Agent Harness Errors

Exceptions raised inside the registry and snapshot manager. Public
operations catch these at their boundary and turn them into result
objects; callers only ever see the ``error`` string.
"""


class HarnessError(Exception):
    """Base class for harness failures."""
    pass


class ValidationError(HarnessError):
    """Request refers to something that does not exist in a catalog (e.g. unknown role)."""
    pass


class NotFoundError(HarnessError):
    """Unknown agent ID."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent {agent_id} not found")


class AccessDeniedError(HarnessError):
    """A non-parent tried to despawn an agent."""

    def __init__(self, agent_id: str, owner_id, requester_id):
        self.agent_id = agent_id
        self.owner_id = owner_id
        self.requester_id = requester_id
        super().__init__(
            f"Access denied: Agent {agent_id} can only be despawned by its parent "
            f"{owner_id}, not {requester_id}"
        )


class GitUnavailableError(HarnessError):
    """Git missing, not a repository, or not in temporary-branch mode."""
    pass


class GitStateError(HarnessError):
    """Repository is in a state that blocks the operation (dirty tree, failed switch)."""
    pass


class UnexpectedError(HarnessError):
    """Any other exception, wrapped with context."""

    def __init__(self, context: str, cause: Exception):
        self.cause = cause
        super().__init__(f"{context}: {cause}")
