"""Tests for YAML configuration loading."""

import pytest
import yaml

from agent_harness.config import (
    HarnessConfig,
    load_config,
    parse_config,
    expand_env_vars,
    create_default_config,
)
from agent_harness.agents import StaticRoleCatalog


def test_defaults_from_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    config = load_config(path)

    assert isinstance(config, HarnessConfig)
    assert config.agents.id_prefix == "agent"
    assert config.agents.context_max_length == 50000
    assert config.git.enabled is True
    assert config.git.branch_prefix == "synth-dev"
    assert config.git.force_delete is False
    assert config.git.history_limit == 20
    assert config.logging.level == "INFO"
    assert config.roles == {}


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_env_var_expansion(monkeypatch):
    monkeypatch.setenv("HARNESS_REPO", "/srv/project")
    monkeypatch.delenv("HARNESS_UNSET", raising=False)

    assert expand_env_vars("${HARNESS_REPO}/src") == "/srv/project/src"
    assert expand_env_vars("$HARNESS_REPO") == "/srv/project"
    assert expand_env_vars("${HARNESS_UNSET}") == "${HARNESS_UNSET}"
    assert expand_env_vars({"a": ["$HARNESS_REPO", 3]}) == {"a": ["/srv/project", 3]}


def test_full_config(tmp_path, monkeypatch):
    monkeypatch.setenv("REPO_DIR", "/work")
    path = tmp_path / "harness.yaml"
    path.write_text(yaml.safe_dump({
        "agents": {"id_prefix": "bot", "context_max_length": "1200"},
        "git": {"repo_path": "${REPO_DIR}", "branch_prefix": "tmp", "force_delete": True, "history_limit": 5},
        "logging": {"level": "debug"},
        "roles": {
            "coder": {"level": "base", "enabled_tools": ["write_file"]},
            "reviewer": None,
        },
    }))

    config = load_config(path)

    assert config.agents.id_prefix == "bot"
    assert config.agents.context_max_length == 1200
    assert config.git.repo_path == "/work"
    assert config.git.branch_prefix == "tmp"
    assert config.git.force_delete is True
    assert config.git.history_limit == 5
    assert config.logging.level == "DEBUG"
    assert config.roles["coder"].enabled_tools == ["write_file"]
    assert config.roles["reviewer"].level == "base"


def test_roles_as_list():
    config = parse_config({"roles": ["coder", "reviewer"]})

    assert sorted(config.roles) == ["coder", "reviewer"]
    assert config.roles["coder"].name == "coder"


def test_default_config_parses():
    config = parse_config(yaml.safe_load(create_default_config()))

    catalog = StaticRoleCatalog(config.roles)
    assert catalog.names() == ["coder", "reviewer"]
    assert catalog.has_role("coder")
    assert not catalog.has_role("architect")
    assert config.git.enabled is True
