"""Shared fixtures: a scripted stand-in for the conversational agent and a ready registry."""

import asyncio
import subprocess
from pathlib import Path

import pytest

from agent_harness.agents import AgentRegistry, StaticRoleCatalog


class FakeAgent:
    """Records what it is sent; replies with an echo."""

    def __init__(self, agent_config, context, config, tool_access, snapshot_state, cost_accounting):
        self.agent_id = agent_config.agent_id
        self.agent_role = agent_config.agent_role
        self.context = context
        self.snapshot_state = snapshot_state
        self.initialized = False
        self.events = []
        self.fail_with = None
        self.delays = {}

    async def send_message(self, message):
        self.events.append(("start", message))
        await asyncio.sleep(self.delays.get(message, 0))
        if self.fail_with:
            raise self.fail_with
        self.initialized = True
        self.events.append(("end", message))
        return f"{self.agent_role} got: {message}"

    def get_tool_calls(self):
        return []

    def get_parsing_tool_calls(self):
        return []


@pytest.fixture
def roles():
    return StaticRoleCatalog.from_names("coder", "reviewer", "architect")


@pytest.fixture
def registry(roles):
    return AgentRegistry(roles=roles, agent_factory=FakeAgent)


def run_git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path):
    """A repository on branch ``main`` with one commit."""
    repo = tmp_path / "repo"
    repo.mkdir()
    run_git(repo, "init")
    run_git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(repo, "config", "user.email", "dev@example.com")
    run_git(repo, "config", "user.name", "Dev")
    run_git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("hello\n")
    run_git(repo, "add", "README.md")
    run_git(repo, "commit", "-m", "initial")
    return repo
