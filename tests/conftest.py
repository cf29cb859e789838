"""Shared test fixtures for lazypulumi."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from lazypulumi.api.types import AgentTask, Stack


@pytest.fixture
def fake_client() -> MagicMock:
    """A PulumiClient stand-in whose refresh endpoints answer with small fixtures."""
    client = MagicMock()
    client.close = AsyncMock()
    client.list_organizations = AsyncMock(return_value=["me", "acme"])
    client.list_stacks = AsyncMock(return_value=[Stack("acme", "web", "dev")])
    client.list_environments = AsyncMock(return_value=[])
    client.list_tasks = AsyncMock(return_value=[AgentTask(id="t1", name="Fix", status="completed")])
    client.search_resources = AsyncMock(return_value=[])
    client.list_services = AsyncMock(return_value=[])
    client.list_registry_packages = AsyncMock(return_value=[])
    client.list_registry_templates = AsyncMock(return_value=[])
    client.get_org_recent_updates = AsyncMock(return_value=[])
    client.get_resource_summary = AsyncMock(return_value=[])
    client.list_slash_commands = AsyncMock(return_value=[])
    return client
