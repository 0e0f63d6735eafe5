"""Tests for the Agent Registry."""

import asyncio

import pytest

from agent_harness.agents import AgentRegistry, AgentStatus, ExecutionContext, StaticRoleCatalog

from conftest import FakeAgent


@pytest.mark.asyncio
async def test_spawn_unknown_role(registry):
    result = await registry.spawn_agent("astronaut", "P1")

    assert result.success is False
    assert "Unknown agent role: astronaut" in result.error
    assert registry.get_active_agent_count() == 0
    assert registry.get_spawned_agents("P1") == []


@pytest.mark.asyncio
async def test_spawn_and_despawn_scenario(registry):
    first = await registry.spawn_agent("coder", "P1")
    assert first.success is True
    assert first.agent_role == "coder"
    assert first.context_name == f"{first.agent_id}-context"
    assert first.created_at is not None
    assert registry.get_active_agent_count() == 1

    second = await registry.spawn_agent("reviewer", "P1")
    assert second.success is True
    assert first.agent_id != second.agent_id
    assert len(registry.get_spawned_agents("P1")) == 2

    despawned = await registry.despawn_agent(first.agent_id, "P1")
    assert despawned.success is True
    assert despawned.agent_role == "coder"
    assert despawned.despawned_at is not None

    remaining = registry.get_spawned_agents("P1")
    assert [a.agent_id for a in remaining] == [second.agent_id]
    assert registry.get_active_agent_count() == 1


@pytest.mark.asyncio
async def test_despawn_succeeds_exactly_once(registry):
    spawned = await registry.spawn_agent("coder", "P1")

    assert (await registry.despawn_agent(spawned.agent_id, "P1")).success is True

    again = await registry.despawn_agent(spawned.agent_id, "P1")
    assert again.success is False
    assert "not found" in again.error
    assert registry.get_agent_info(spawned.agent_id) is None


@pytest.mark.asyncio
async def test_despawn_by_other_parent_is_denied(registry):
    spawned = await registry.spawn_agent("coder", "P1")

    denied = await registry.despawn_agent(spawned.agent_id, "P2")

    assert denied.success is False
    assert denied.error.startswith("Access denied")
    info = registry.get_agent_info(spawned.agent_id)
    assert info is not None
    assert info.status == AgentStatus.ACTIVE
    assert registry.get_active_agent_count() == 1
    assert len(registry.get_spawned_agents("P1")) == 1


@pytest.mark.asyncio
async def test_child_cannot_despawn_sibling_or_itself(registry):
    """Only the spawning parent counts; the agent itself or a sibling does not."""
    a = await registry.spawn_agent("coder", "P1")
    b = await registry.spawn_agent("coder", "P1")

    assert (await registry.despawn_agent(a.agent_id, b.agent_id)).success is False
    assert (await registry.despawn_agent(a.agent_id, a.agent_id)).success is False
    assert registry.get_active_agent_count() == 2


@pytest.mark.asyncio
async def test_top_level_user_is_a_parent(registry):
    spawned = await registry.spawn_agent("architect", None)

    assert [a.agent_id for a in registry.get_spawned_agents(None)] == [spawned.agent_id]
    assert (await registry.despawn_agent(spawned.agent_id, "P1")).success is False
    assert (await registry.despawn_agent(spawned.agent_id, None)).success is True


@pytest.mark.asyncio
async def test_ownership_index_tracks_active_children(registry):
    ids = {"P1": [], "P2": []}
    for parent, role in [("P1", "coder"), ("P2", "coder"), ("P1", "reviewer"), ("P2", "architect"), ("P1", "coder")]:
        result = await registry.spawn_agent(role, parent)
        ids[parent].append(result.agent_id)

    await registry.despawn_agent(ids["P1"][1], "P1")
    await registry.despawn_agent(ids["P2"][0], "P1")  # denied
    await registry.despawn_agent(ids["P2"][1], "P2")

    for parent in ("P1", "P2"):
        expected = [
            info for info in registry.get_all_active_agents()
            if info.parent_agent_id == parent
        ]
        assert len(registry.get_spawned_agents(parent)) == len(expected)

    assert registry.get_active_agent_count() == 3
    assert registry.stats()["parents"] == 2

    for agent_id in [ids["P1"][0], ids["P1"][2]]:
        await registry.despawn_agent(agent_id, "P1")
    assert registry.get_spawned_agents("P1") == []
    assert registry.stats()["parents"] == 1


@pytest.mark.asyncio
async def test_agent_info(registry):
    spawned = await registry.spawn_agent("coder", "P1")

    info = registry.get_agent_info(spawned.agent_id)
    assert info.agent_role == "coder"
    assert info.parent_agent_id == "P1"
    assert info.status == AgentStatus.ACTIVE
    assert info.initialized is False
    assert info.to_dict()["status"] == "active"

    assert registry.get_agent_info("agent-missing") is None


@pytest.mark.asyncio
async def test_each_agent_gets_its_own_context(registry):
    a = await registry.spawn_agent("coder", "P1")
    b = await registry.spawn_agent("coder", "P1")

    agent_a = registry.get_agent(a.agent_id)
    agent_b = registry.get_agent(b.agent_id)
    assert agent_a.context is not agent_b.context
    assert agent_a.context.has_agent(a.agent_id)

    await registry.despawn_agent(a.agent_id, "P1")
    assert not agent_a.context.has_agent(a.agent_id)


@pytest.mark.asyncio
async def test_duplicate_context_name_is_rejected(registry):
    first = await registry.spawn_agent("coder", "P1", context_name="shared")
    second = await registry.spawn_agent("coder", "P1", context_name="shared")

    assert first.success is True
    assert second.success is False
    assert "already in use" in second.error
    assert registry.get_active_agent_count() == 1


@pytest.mark.asyncio
async def test_factory_failure_records_nothing(roles):
    def broken_factory(*args):
        raise RuntimeError("no API key")

    registry = AgentRegistry(roles=roles, agent_factory=broken_factory)
    result = await registry.spawn_agent("coder", "P1")

    assert result.success is False
    assert result.error == "Failed to spawn agent: no API key"
    assert registry.get_active_agent_count() == 0
    assert registry.get_spawned_agents("P1") == []


@pytest.mark.asyncio
async def test_send_message(registry):
    spawned = await registry.spawn_agent("coder", "P1")

    result = await registry.send_message_to_agent(spawned.agent_id, "write tests")

    assert result.success is True
    assert result.agent_id == spawned.agent_id
    assert result.response == "coder got: write tests"
    assert registry.get_agent_info(spawned.agent_id).initialized is True


@pytest.mark.asyncio
async def test_send_message_unknown_agent(registry):
    result = await registry.send_message_to_agent("agent-nope", "hello")

    assert result.success is False
    assert "not found" in result.error


@pytest.mark.asyncio
async def test_send_message_collaborator_error_is_returned(registry):
    spawned = await registry.spawn_agent("coder", "P1")
    registry.get_agent(spawned.agent_id).fail_with = ConnectionError("backend down")

    result = await registry.send_message_to_agent(spawned.agent_id, "hello")

    assert result.success is False
    assert "backend down" in result.error
    assert registry.get_active_agent_count() == 1


@pytest.mark.asyncio
async def test_messages_to_one_agent_are_processed_in_send_order(registry):
    spawned = await registry.spawn_agent("coder", "P1")
    agent = registry.get_agent(spawned.agent_id)
    agent.delays = {"slow": 0.05, "fast": 0}

    await asyncio.gather(
        registry.send_message_to_agent(spawned.agent_id, "slow"),
        registry.send_message_to_agent(spawned.agent_id, "fast"),
    )

    assert agent.events == [
        ("start", "slow"), ("end", "slow"),
        ("start", "fast"), ("end", "fast"),
    ]


@pytest.mark.asyncio
async def test_interleaved_spawns_keep_index_consistent(roles):
    registry = AgentRegistry(roles=roles, agent_factory=FakeAgent)

    results = await asyncio.gather(*[
        registry.spawn_agent("coder", f"P{i % 3}") for i in range(12)
    ])

    assert all(r.success for r in results)
    assert len({r.agent_id for r in results}) == 12
    assert sum(len(registry.get_spawned_agents(f"P{i}")) for i in range(3)) == 12


@pytest.mark.asyncio
async def test_shutdown_releases_everything(registry):
    for parent in ("P1", "P1", "P2"):
        await registry.spawn_agent("coder", parent)

    assert registry.shutdown() == 3
    assert registry.get_active_agent_count() == 0
    assert registry.get_spawned_agents("P1") == []
    assert registry.shutdown() == 0


@pytest.mark.asyncio
async def test_shared_resources_are_passed_through():
    from agent_harness.agents import SharedResources

    marker = object()
    registry = AgentRegistry(
        roles=StaticRoleCatalog.from_names("coder"),
        agent_factory=FakeAgent,
        shared=SharedResources(snapshot_state=marker),
    )
    spawned = await registry.spawn_agent("coder", "P1")

    assert registry.get_agent(spawned.agent_id).snapshot_state is marker


class DetachFailingContext(ExecutionContext):
    def remove_agent(self, agent_id):
        raise RuntimeError("context store gone")


@pytest.mark.asyncio
async def test_despawn_marks_record_despawned(registry):
    spawned = await registry.spawn_agent("coder", "P1")

    result = await registry.despawn_agent(spawned.agent_id, "P1")

    assert result.status == AgentStatus.DESPAWNED
    assert result.despawned_at >= spawned.created_at


@pytest.mark.asyncio
async def test_shutdown_survives_context_failures(roles, caplog):
    registry = AgentRegistry(
        roles=roles,
        agent_factory=FakeAgent,
        context_factory=lambda name, max_length: DetachFailingContext(name, max_length),
    )
    for parent in ("P1", "P1", "P2"):
        await registry.spawn_agent("coder", parent)

    assert registry.shutdown() == 3

    assert registry.get_active_agent_count() == 0
    assert registry.get_spawned_agents("P1") == []
    assert registry.stats()["parents"] == 0
    assert "context store gone" in caplog.text


@pytest.mark.asyncio
async def test_despawn_with_failing_context_keeps_agent(roles):
    registry = AgentRegistry(
        roles=roles,
        agent_factory=FakeAgent,
        context_factory=lambda name, max_length: DetachFailingContext(name, max_length),
    )
    spawned = await registry.spawn_agent("coder", "P1")

    result = await registry.despawn_agent(spawned.agent_id, "P1")

    assert result.success is False
    assert result.error == "Failed to despawn agent: context store gone"
    assert registry.get_active_agent_count() == 1
