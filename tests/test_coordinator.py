"""Tests for the async coordinator and its queue messages."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from lazypulumi import coordinator as msgs
from lazypulumi.api.types import AgentMessage, MessageKind, StackUpdate
from lazypulumi.coordinator import Coordinator
from lazypulumi.exceptions import ApiResponseError, NoAccessTokenError, TransportError
from lazypulumi.state import AppState


async def _settle(coord: Coordinator) -> None:
    while coord._tasks:
        await asyncio.gather(*list(coord._tasks))


class TestDrain:
    async def test_drain_empty(self):
        assert Coordinator.drain(asyncio.Queue()) == []

    async def test_drain_preserves_order(self):
        queue: asyncio.Queue = asyncio.Queue()
        for n in range(3):
            queue.put_nowait(n)
        assert Coordinator.drain(queue) == [0, 1, 2]
        assert queue.empty()


class TestClient:
    def test_missing_client_raises(self):
        with pytest.raises(NoAccessTokenError):
            Coordinator(None).client

    def test_custom_spawn_receives_coroutines(self, fake_client):
        spawned = []

        def spawn(coro):
            spawned.append(coro)
            coro.close()

        coord = Coordinator(fake_client, spawn)
        assert coord.refresh("acme") == 10
        assert len(spawned) == 10


class TestRefresh:
    async def test_every_fetch_reports_once(self, fake_client):
        client = fake_client
        coord = Coordinator(client)
        started = coord.refresh("acme")
        await _settle(coord)
        results = Coordinator.drain(coord.data)
        assert len(results) == started
        kinds = {type(m) for m in results}
        assert msgs.StacksLoaded in kinds
        assert msgs.SlashCommandsLoaded in kinds
        client.get_org_recent_updates.assert_awaited_once_with("acme", 15)
        client.get_resource_summary.assert_awaited_once_with("acme", "daily", 30)

    async def test_pending_loads_return_to_zero(self, fake_client):
        client = fake_client
        client.list_services = AsyncMock(side_effect=ApiResponseError(500, "boom"))
        client.search_resources = AsyncMock(side_effect=RuntimeError("bad"))
        coord = Coordinator(client)
        state = AppState()
        state.begin_refresh(coord.refresh("acme"))
        assert state.is_loading
        await _settle(coord)
        for message in Coordinator.drain(coord.data):
            state.apply(message)
        assert state.pending_loads == 0
        assert not state.is_loading

    async def test_failures_are_labelled(self, fake_client):
        client = fake_client
        client.list_services = AsyncMock(side_effect=ApiResponseError(500, "boom"))
        coord = Coordinator(client)
        coord.refresh("acme")
        await _settle(coord)
        failures = [m for m in Coordinator.drain(coord.data) if isinstance(m, msgs.LoadFailed)]
        assert [f.message for f in failures] == ["Services: 500 - boom"]

    async def test_slash_command_failure_yields_empty_list(self, fake_client):
        client = fake_client
        client.list_slash_commands = AsyncMock(side_effect=TransportError("down"))
        coord = Coordinator(client)
        coord.refresh("acme")
        await _settle(coord)
        loaded = [
            m for m in Coordinator.drain(coord.data) if isinstance(m, msgs.SlashCommandsLoaded)
        ]
        assert loaded == [msgs.SlashCommandsLoaded([])]

    async def test_readme_failure_does_not_count(self, fake_client):
        client = fake_client
        client.fetch_readme = AsyncMock(side_effect=TransportError("offline"))
        coord = Coordinator(client)
        coord.load_readme("pulumi/pulumi/aws", "https://example.test/README.md")
        await _settle(coord)
        [failure] = Coordinator.drain(coord.data)
        assert isinstance(failure, msgs.LoadFailed)
        assert not failure.counts_as_load


class TestSingleShot:
    async def test_stack_updates_are_keyed_by_full_name(self, fake_client):
        client = fake_client
        client.get_stack_updates = AsyncMock(
            return_value=[StackUpdate(version=n, result="succeeded") for n in range(15, 0, -1)],
        )
        coord = Coordinator(client)
        coord.load_stack_updates("acme", "web", "dev")
        await _settle(coord)
        [loaded] = Coordinator.drain(coord.data)
        assert loaded.stack == "acme/web/dev"
        assert len(loaded.rows) == 10
        assert loaded.rows[0][0] == "15"

    async def test_open_environment_failure(self, fake_client):
        client = fake_client
        client.open_environment = AsyncMock(side_effect=ApiResponseError(409, "conflict"))
        coord = Coordinator(client)
        coord.open_environment("acme", "proj", "dev")
        await _settle(coord)
        assert Coordinator.drain(coord.data) == [
            msgs.OperationFailed("Failed to open environment: 409 - conflict"),
        ]

    async def test_save_environment_echoes_yaml(self, fake_client):
        client = fake_client
        client.update_environment = AsyncMock(return_value=None)
        coord = Coordinator(client)
        coord.save_environment("acme", "proj", "dev", "values: {}\n")
        await _settle(coord)
        assert Coordinator.drain(coord.data) == [msgs.EnvironmentSaved("proj/dev", "values: {}\n")]

    async def test_organizations_with_cli_default(self, fake_client, monkeypatch):
        client = fake_client
        client.list_organizations = AsyncMock(return_value=["me", "acme"])
        monkeypatch.setattr(
            "lazypulumi.startup.get_default_org", AsyncMock(return_value="acme"),
        )
        coord = Coordinator(client)
        coord.load_organizations()
        await _settle(coord)
        assert Coordinator.drain(coord.data) == [msgs.OrganizationsLoaded(["me", "acme"], "acme")]

    async def test_organizations_without_client(self, monkeypatch):
        monkeypatch.setattr("lazypulumi.startup.get_default_org", AsyncMock(return_value=None))
        coord = Coordinator(None)
        coord.load_organizations()
        await _settle(coord)
        [failed] = Coordinator.drain(coord.data)
        assert failed.message.startswith("Failed to load organizations:")


class TestAgent:
    async def test_new_task(self, fake_client):
        client = fake_client
        client.create_task = AsyncMock(return_value="t-new")
        coord = Coordinator(client)
        coord.send_agent_message("acme", None, "hello", [])
        await _settle(coord)
        assert Coordinator.drain(coord.agent) == [msgs.TaskCreated("t-new")]
        assert coord.data.empty()

    async def test_follow_up(self, fake_client):
        client = fake_client
        client.continue_task = AsyncMock(return_value=None)
        coord = Coordinator(client)
        coord.send_agent_message("acme", "t1", "more")
        await _settle(coord)
        client.continue_task.assert_awaited_once_with("acme", "t1", "more", [])
        assert Coordinator.drain(coord.agent) == [msgs.MessageAccepted("t1")]

    async def test_send_failure(self, fake_client):
        client = fake_client
        client.create_task = AsyncMock(side_effect=ApiResponseError(403, "forbidden"))
        coord = Coordinator(client)
        coord.send_agent_message("acme", None, "hello")
        await _settle(coord)
        assert Coordinator.drain(coord.agent) == [msgs.AgentFailed("403 - forbidden")]

    async def test_poll(self, fake_client):
        client = fake_client
        messages = [AgentMessage(kind=MessageKind.ASSISTANT, content="hi", event_id="e1")]
        client.poll_task = AsyncMock(return_value=(messages, "completed"))
        coord = Coordinator(client)
        coord.poll_agent("acme", "t1")
        await _settle(coord)
        assert Coordinator.drain(coord.agent) == [msgs.PollResult("t1", messages, "completed")]

    async def test_poll_failure(self, fake_client):
        client = fake_client
        client.poll_task = AsyncMock(side_effect=TransportError("timeout"))
        coord = Coordinator(client)
        coord.poll_agent("acme", "t1")
        await _settle(coord)
        assert Coordinator.drain(coord.agent) == [msgs.PollFailed("t1")]
