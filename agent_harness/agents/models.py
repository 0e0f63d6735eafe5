"""
Agent Registry Models

Pydantic models for live agent records and the results of registry operations.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentStatus(str, Enum):
    """Lifecycle status of a spawned agent."""
    ACTIVE = "active"
    DESPAWNED = "despawned"


class AgentRecord(BaseModel):
    """Bookkeeping for one live agent. The instance itself lives in the registry."""
    agent_id: str
    agent_role: str
    parent_agent_id: Optional[str] = Field(None, description="Spawning agent (None = top-level user)")
    context_name: str
    status: AgentStatus = AgentStatus.ACTIVE
    created_at: datetime = Field(default_factory=utcnow)
    despawned_at: Optional[datetime] = None


class AgentInfo(BaseModel):
    """Public view of an agent returned by registry queries."""
    agent_id: str
    agent_role: str
    parent_agent_id: Optional[str] = None
    context_name: str
    status: AgentStatus
    created_at: datetime
    initialized: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "agent_id": self.agent_id,
            "agent_role": self.agent_role,
            "parent_agent_id": self.parent_agent_id,
            "context_name": self.context_name,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "initialized": self.initialized,
        }


# =============================================================================
# Operation Results
# =============================================================================

class SpawnResult(BaseModel):
    """Result of spawning an agent."""
    success: bool
    agent_id: Optional[str] = None
    agent_role: Optional[str] = None
    context_name: Optional[str] = None
    created_at: Optional[datetime] = None

    # Error
    error: Optional[str] = None


class DespawnResult(BaseModel):
    """Result of despawning an agent."""
    success: bool
    agent_id: Optional[str] = None
    agent_role: Optional[str] = None
    status: Optional[AgentStatus] = None
    despawned_at: Optional[datetime] = None

    # Error
    error: Optional[str] = None


class MessageResult(BaseModel):
    """Result of sending a message to an agent."""
    success: bool
    agent_id: Optional[str] = None
    response: Optional[Any] = None

    # Error
    error: Optional[str] = None
