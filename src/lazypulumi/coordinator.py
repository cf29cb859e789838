"""Async coordinator: turns requests into worker tasks and queue messages.

Workers own nothing mutable. Each one awaits a single API operation and
puts exactly one message on a bounded queue; the UI drains the queues
on every tick without blocking. Results arrive in completion order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

from lazypulumi import startup
from lazypulumi.api.client import PulumiClient
from lazypulumi.api.types import (
    AgentMessage,
    AgentTask,
    EnvironmentSummary,
    OrgStackUpdate,
    RegistryPackage,
    RegistryTemplate,
    Resource,
    ResourceSummaryPoint,
    Service,
    SlashCommand,
    Stack,
    StackUpdate,
)
from lazypulumi.exceptions import LazyPulumiError, NoAccessTokenError

logger = logging.getLogger(__name__)

QUEUE_CAPACITY = 32
STACK_UPDATE_ROWS = 10
RECENT_UPDATES_LIMIT = 15
SUMMARY_LOOKBACK_DAYS = 30

Spawn = Callable[[Coroutine[Any, Any, None]], Any]


# --- Refresh results (each decrements pending loads) ---


@dataclass(frozen=True)
class RefreshResult:
    """Base for messages produced by ``refresh``."""

    @property
    def counts_as_load(self) -> bool:
        return True


@dataclass(frozen=True)
class StacksLoaded(RefreshResult):
    stacks: list[Stack]


@dataclass(frozen=True)
class EnvironmentsLoaded(RefreshResult):
    environments: list[EnvironmentSummary]


@dataclass(frozen=True)
class TasksLoaded(RefreshResult):
    tasks: list[AgentTask]


@dataclass(frozen=True)
class ResourcesLoaded(RefreshResult):
    resources: list[Resource]


@dataclass(frozen=True)
class ServicesLoaded(RefreshResult):
    services: list[Service]


@dataclass(frozen=True)
class PackagesLoaded(RefreshResult):
    packages: list[RegistryPackage]


@dataclass(frozen=True)
class TemplatesLoaded(RefreshResult):
    templates: list[RegistryTemplate]


@dataclass(frozen=True)
class RecentUpdatesLoaded(RefreshResult):
    updates: list[OrgStackUpdate]


@dataclass(frozen=True)
class ResourceSummaryLoaded(RefreshResult):
    points: list[ResourceSummaryPoint]


@dataclass(frozen=True)
class SlashCommandsLoaded(RefreshResult):
    commands: list[SlashCommand]


@dataclass(frozen=True)
class LoadFailed(RefreshResult):
    message: str
    counted: bool = True

    @property
    def counts_as_load(self) -> bool:
        return self.counted


# --- Single-shot results ---


@dataclass(frozen=True)
class ReadmeLoaded:
    package_key: str
    content: str


@dataclass(frozen=True)
class OrganizationsLoaded:
    organizations: list[str]
    default_org: str | None = None


@dataclass(frozen=True)
class StackUpdatesLoaded:
    stack: str
    rows: list[tuple[str, str, str]]


@dataclass(frozen=True)
class EnvironmentDefinitionLoaded:
    environment: str
    yaml: str


@dataclass(frozen=True)
class EnvironmentValuesLoaded:
    environment: str
    values: Any


@dataclass(frozen=True)
class EnvironmentSaved:
    environment: str
    yaml: str


@dataclass(frozen=True)
class TaskDetailsLoaded:
    task: AgentTask


@dataclass(frozen=True)
class OperationFailed:
    message: str


@dataclass(frozen=True)
class CliChecked:
    status: startup.CheckStatus


# --- Agent results ---


@dataclass(frozen=True)
class TaskCreated:
    task_id: str


@dataclass(frozen=True)
class MessageAccepted:
    task_id: str


@dataclass(frozen=True)
class AgentFailed:
    error: str


@dataclass(frozen=True)
class PollResult:
    task_id: str
    messages: list[AgentMessage] = field(default_factory=list)
    status: str | None = None


@dataclass(frozen=True)
class PollFailed:
    task_id: str


class Coordinator:
    """Spawns fetch workers and owns the two result queues."""

    def __init__(
        self,
        client: PulumiClient | None,
        spawn: Spawn | None = None,
        *,
        capacity: int = QUEUE_CAPACITY,
    ) -> None:
        self._client = client
        self._spawn = spawn or self._create_task
        self._tasks: set[asyncio.Task] = set()
        self.data: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self.agent: asyncio.Queue = asyncio.Queue(maxsize=capacity)

    @property
    def client(self) -> PulumiClient:
        if self._client is None:
            raise NoAccessTokenError()
        return self._client

    # --- Draining ---

    @staticmethod
    def drain(queue: asyncio.Queue) -> list:
        """Everything currently queued, without waiting."""
        items = []
        while True:
            try:
                items.append(queue.get_nowait())
            except asyncio.QueueEmpty:
                return items

    # --- Worker plumbing ---

    def _create_task(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _start(self, coro: Coroutine[Any, Any, None]) -> None:
        self._spawn(coro)

    async def _fetch(
        self,
        label: str,
        call: Awaitable[Any],
        wrap: Callable[[Any], Any],
        queue: asyncio.Queue,
        fail: Callable[[str], Any],
    ) -> None:
        try:
            result = await call
        except LazyPulumiError as e:
            logger.warning("%s failed: %s", label, e)
            await queue.put(fail(f"{label}: {e}"))
            return
        except Exception as e:  # noqa: BLE001
            logger.exception("%s failed unexpectedly", label)
            await queue.put(fail(f"{label}: {e}"))
            return
        await queue.put(wrap(result))

    # --- Refresh ---

    def refresh(self, org: str) -> int:
        """Fan out every per-organization fetch; returns how many were started."""
        c = self.client
        jobs: list[tuple[str, Awaitable[Any], Callable[[Any], RefreshResult]]] = [
            ("Stacks", c.list_stacks(org), StacksLoaded),
            ("ESC", c.list_environments(org), EnvironmentsLoaded),
            ("Neo", c.list_tasks(org), TasksLoaded),
            ("Resources", c.search_resources(org), ResourcesLoaded),
            ("Services", c.list_services(org), ServicesLoaded),
            ("Packages", c.list_registry_packages(org), PackagesLoaded),
            ("Templates", c.list_registry_templates(org), TemplatesLoaded),
            ("Recent updates", c.get_org_recent_updates(org, RECENT_UPDATES_LIMIT), RecentUpdatesLoaded),
            (
                "Resource summary",
                c.get_resource_summary(org, "daily", SUMMARY_LOOKBACK_DAYS),
                ResourceSummaryLoaded,
            ),
        ]
        for label, call, wrap in jobs:
            self._start(self._fetch(label, call, wrap, self.data, LoadFailed))
        self._start(self._load_slash_commands(org))
        logger.info("Refresh for org '%s': %d fetches started", org, len(jobs) + 1)
        return len(jobs) + 1

    async def _load_slash_commands(self, org: str) -> None:
        try:
            commands = await self.client.list_slash_commands(org)
        except Exception as e:  # noqa: BLE001
            logger.debug("Neo slash commands unavailable: %s", e)
            commands = []
        await self.data.put(SlashCommandsLoaded(commands))

    def load_readme(self, package_key: str, url: str) -> None:
        self._start(self._fetch(
            "README",
            self.client.fetch_readme(url),
            lambda content: ReadmeLoaded(package_key, content),
            self.data,
            lambda message: LoadFailed(message, counted=False),
        ))

    # --- Single-shot operations ---

    def check_cli(self) -> None:
        self._start(self._check_cli())

    async def _check_cli(self) -> None:
        await self.data.put(CliChecked(await startup.check_cli()))

    def load_organizations(self) -> None:
        self._start(self._load_organizations())

    async def _load_organizations(self) -> None:
        try:
            orgs, default = await asyncio.gather(
                self.client.list_organizations(), startup.get_default_org(),
            )
        except LazyPulumiError as e:
            logger.warning("Organizations failed: %s", e)
            await self.data.put(OperationFailed(f"Failed to load organizations: {e}"))
            return
        await self.data.put(OrganizationsLoaded(orgs, default))

    def set_default_org(self, org: str) -> None:
        self._start(startup.set_default_org(org))

    def load_stack_updates(self, org: str, project: str, stack: str) -> None:
        name = f"{org}/{project}/{stack}"

        def wrap(updates: list[StackUpdate]) -> StackUpdatesLoaded:
            return StackUpdatesLoaded(name, [u.row() for u in updates[:STACK_UPDATE_ROWS]])

        self._start(self._fetch(
            "Failed to load updates",
            self.client.get_stack_updates(org, project, stack),
            wrap,
            self.data,
            OperationFailed,
        ))

    def load_environment_definition(self, org: str, project: str, env: str) -> None:
        name = f"{project}/{env}"
        self._start(self._fetch(
            "Failed to load definition",
            self.client.get_environment_definition(org, project, env),
            lambda text: EnvironmentDefinitionLoaded(name, text),
            self.data,
            OperationFailed,
        ))

    def open_environment(self, org: str, project: str, env: str) -> None:
        name = f"{project}/{env}"
        self._start(self._fetch(
            "Failed to open environment",
            self.client.open_environment(org, project, env),
            lambda values: EnvironmentValuesLoaded(name, values),
            self.data,
            OperationFailed,
        ))

    def save_environment(self, org: str, project: str, env: str, yaml_text: str) -> None:
        name = f"{project}/{env}"
        self._start(self._fetch(
            "Failed to save environment",
            self.client.update_environment(org, project, env, yaml_text),
            lambda _none: EnvironmentSaved(name, yaml_text),
            self.data,
            OperationFailed,
        ))

    def load_task_details(self, org: str, task_id: str) -> None:
        self._start(self._fetch(
            "Failed to load task details",
            self.client.get_task(org, task_id),
            TaskDetailsLoaded,
            self.data,
            OperationFailed,
        ))

    # --- Agent ---

    def send_agent_message(
        self,
        org: str,
        task_id: str | None,
        content: str,
        commands: list[SlashCommand] | None = None,
    ) -> None:
        self._start(self._send_agent_message(org, task_id, content, commands or []))

    async def _send_agent_message(
        self, org: str, task_id: str | None, content: str, commands: list[SlashCommand],
    ) -> None:
        try:
            if task_id is None:
                new_id = await self.client.create_task(org, content, commands)
                message: Any = TaskCreated(new_id)
            else:
                await self.client.continue_task(org, task_id, content, commands)
                message = MessageAccepted(task_id)
        except Exception as e:  # noqa: BLE001
            logger.warning("Neo send failed: %s", e)
            message = AgentFailed(str(e))
        await self.agent.put(message)

    def poll_agent(self, org: str, task_id: str) -> None:
        self._start(self._poll_agent(org, task_id))

    async def _poll_agent(self, org: str, task_id: str) -> None:
        try:
            messages, status = await self.client.poll_task(org, task_id)
        except Exception as e:  # noqa: BLE001
            logger.warning("Failed to poll Neo task %s: %s", task_id, e)
            await self.agent.put(PollFailed(task_id))
            return
        await self.agent.put(PollResult(task_id, messages, status))
