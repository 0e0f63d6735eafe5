"""
Agent Harness - Delegation and Safety Layer for AI Coding Sessions

Two pieces, composed by a session:
1. Agent Registry - spawn, message and despawn subordinate agents
2. Snapshot Manager - disposable git branch around AI-driven edits
"""

__version__ = "0.1.0"

from .config import HarnessConfig, load_config
from .session import HarnessSession

__all__ = [
    "__version__",
    "HarnessConfig",
    "load_config",
    "HarnessSession",
]
