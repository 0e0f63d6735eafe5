"""
Configuration management for Agent Harness.

Supports YAML configuration with environment variable expansion.
"""

import os
import re
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any

import yaml


@dataclass
class AgentsConfig:
    """Agent Registry configuration."""
    id_prefix: str = "agent"
    context_max_length: int = 50000


@dataclass
class GitConfig:
    """Temporary-branch (snapshot) configuration."""
    enabled: bool = True
    repo_path: str = "."
    branch_prefix: str = "synth-dev"
    force_delete: bool = False
    commit_prefix: str = "Synth-Dev"
    history_limit: int = 20


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class RoleConfig:
    """A single agent role from the role catalog."""
    name: str
    level: str = "base"
    description: str = ""
    enabled_tools: List[str] = field(default_factory=list)


@dataclass
class HarnessConfig:
    """Root configuration for Agent Harness."""
    agents: AgentsConfig = field(default_factory=AgentsConfig)
    git: GitConfig = field(default_factory=GitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    roles: Dict[str, RoleConfig] = field(default_factory=dict)


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values."""
    if isinstance(value, str):
        # Match ${VAR} or $VAR patterns
        pattern = r'\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)'

        def replace(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return re.sub(pattern, replace, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(v) for v in value]
    return value


def parse_role_config(name: str, data: Optional[Dict[str, Any]]) -> RoleConfig:
    """Parse a role entry. A bare ``coder:`` with no body is allowed."""
    data = data or {}
    return RoleConfig(
        name=name,
        level=data.get("level", "base"),
        description=data.get("description", ""),
        enabled_tools=data.get("enabled_tools", []),
    )


def parse_config(data: Optional[Dict[str, Any]]) -> HarnessConfig:
    """Build a HarnessConfig from an already-loaded mapping."""
    data = expand_env_vars(data or {})

    agents_data = data.get("agents", {})
    agents = AgentsConfig(
        id_prefix=agents_data.get("id_prefix", "agent"),
        context_max_length=int(agents_data.get("context_max_length", 50000)),
    )

    git_data = data.get("git", {})
    git = GitConfig(
        enabled=git_data.get("enabled", True),
        repo_path=str(git_data.get("repo_path", ".")),
        branch_prefix=git_data.get("branch_prefix", "synth-dev"),
        force_delete=git_data.get("force_delete", False),
        commit_prefix=git_data.get("commit_prefix", "Synth-Dev"),
        history_limit=int(git_data.get("history_limit", 20)),
    )

    logging_data = data.get("logging", {})
    log = LoggingConfig(
        level=str(logging_data.get("level", "INFO")).upper(),
        format=logging_data.get("format", LoggingConfig.format),
    )

    roles = {}
    roles_data = data.get("roles", {})
    if isinstance(roles_data, list):
        roles_data = {name: {} for name in roles_data}
    for name, role_data in roles_data.items():
        roles[name] = parse_role_config(name, role_data)

    return HarnessConfig(agents=agents, git=git, logging=log, roles=roles)


def load_config(path: str | Path) -> HarnessConfig:
    """Load configuration from YAML file."""
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    return parse_config(raw)


def create_default_config() -> str:
    """Generate default configuration YAML."""
    return """# Agent Harness Configuration

agents:
  id_prefix: agent
  # Characters of conversation kept per agent context before trimming
  context_max_length: 50000

# Temporary branch wrapping AI-driven edits
git:
  enabled: true
  repo_path: .
  branch_prefix: synth-dev
  # Use `git branch -D` when retiring the temporary branch
  force_delete: false
  # Commits listed as snapshots while on the temporary branch
  history_limit: 20

logging:
  level: INFO

# Roles agents may be spawned with
roles:
  coder:
    level: base
    description: Writes and edits code
  reviewer:
    level: smart
    description: Reviews changes made by other agents
  # architect:
  #   level: smart
  #   enabled_tools: [read_files, list_directory]
"""
