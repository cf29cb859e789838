"""Application state and message application.

``AppState`` is owned by the UI loop. Coordinator messages are folded in
through ``apply``; anything that needs further I/O comes back as an
``Effect`` for the app to carry out.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import yaml

from lazypulumi import coordinator as msgs
from lazypulumi.agent import AgentConversation, PollMode
from lazypulumi.api.types import (
    AgentTask,
    EnvironmentSummary,
    MessageKind,
    OrgStackUpdate,
    RegistryPackage,
    RegistryTemplate,
    Resource,
    ResourceSummaryPoint,
    Service,
    Stack,
)
from lazypulumi.components import ScrollState, Spinner, StatefulList, TextBuffer, TextInput
from lazypulumi.logs import LogBuffer
from lazypulumi.slash import SlashPicker
from lazypulumi.startup import CheckState, CheckStatus, StartupChecks, pick_organization

logger = logging.getLogger(__name__)

TASK_NAME_LIMIT = 50


class Tab(str, Enum):
    DASHBOARD = "Dashboard"
    NEO = "Neo"
    STACKS = "Stacks"
    ESC = "ESC"
    PLATFORM = "Platform"

    @property
    def title(self) -> str:
        return self.value


TAB_ORDER: tuple[Tab, ...] = (Tab.DASHBOARD, Tab.NEO, Tab.STACKS, Tab.ESC, Tab.PLATFORM)


class EnvPane(str, Enum):
    DEFINITION = "Definition"
    VALUES = "Resolved Values"


class PlatformView(str, Enum):
    SERVICES = "Services"
    COMPONENTS = "Components"
    TEMPLATES = "Templates"


PLATFORM_VIEWS: tuple[PlatformView, ...] = (
    PlatformView.SERVICES, PlatformView.COMPONENTS, PlatformView.TEMPLATES,
)


# --- Effects ---


@dataclass(frozen=True)
class Refresh:
    org: str


@dataclass(frozen=True)
class LoadOrganizations:
    pass


@dataclass(frozen=True)
class FetchReadme:
    package_key: str
    url: str


Effect = Refresh | LoadOrganizations | FetchReadme


@dataclass
class SplashState:
    visible: bool = True
    dont_show_again: bool = False
    checks: StartupChecks = field(default_factory=StartupChecks)


@dataclass
class EnvEditor:
    environment: EnvironmentSummary
    buffer: TextBuffer


@dataclass
class AppState:
    org: str | None = None
    preferred_org: str | None = None
    organizations: list[str] = field(default_factory=list)
    tab: Tab = Tab.DASHBOARD

    splash: SplashState = field(default_factory=SplashState)
    data_requested: bool = False

    # Modal surfaces, in router precedence order
    error: str | None = None
    show_help: bool = False
    show_task_details: bool = False
    task_details: AgentTask | None = None
    editor: EnvEditor | None = None
    show_logs: bool = False
    log_scroll: ScrollState = field(default_factory=lambda: ScrollState(pinned=True))
    org_picker: StatefulList[str] | None = None

    # Stacks
    stacks: StatefulList[Stack] = field(default_factory=StatefulList)
    stack_updates: list[tuple[str, str, str]] = field(default_factory=list)
    stack_updates_for: str | None = None

    # ESC
    environments: StatefulList[EnvironmentSummary] = field(default_factory=StatefulList)
    env_pane: EnvPane = EnvPane.DEFINITION
    env_definition: str | None = None
    env_values: str | None = None
    env_scroll: ScrollState = field(default_factory=ScrollState)

    # Neo
    tasks: StatefulList[AgentTask] = field(default_factory=StatefulList)
    show_task_list: bool = True
    agent: AgentConversation = field(default_factory=AgentConversation)
    transcript_scroll: ScrollState = field(default_factory=lambda: ScrollState(pinned=True))
    input: TextInput = field(default_factory=TextInput)
    slash: SlashPicker = field(default_factory=SlashPicker)

    # Platform
    platform_view: PlatformView = PlatformView.SERVICES
    services: StatefulList[Service] = field(default_factory=StatefulList)
    packages: StatefulList[RegistryPackage] = field(default_factory=StatefulList)
    templates: StatefulList[RegistryTemplate] = field(default_factory=StatefulList)
    description_scroll: ScrollState = field(default_factory=ScrollState)
    readme_requested: set[str] = field(default_factory=set)

    # Dashboard
    resources: list[Resource] = field(default_factory=list)
    recent_updates: list[OrgStackUpdate] = field(default_factory=list)
    resource_summary: list[ResourceSummaryPoint] = field(default_factory=list)

    pending_loads: int = 0
    spinner: Spinner = field(default_factory=Spinner)
    log_buffer: LogBuffer | None = None

    # --- Derived ---

    @property
    def is_loading(self) -> bool:
        return self.pending_loads > 0

    @property
    def input_focused(self) -> bool:
        return self.input.focused

    @property
    def agent_visible(self) -> bool:
        return self.tab is Tab.NEO and not self.splash.visible

    @property
    def selected_stack(self) -> Stack | None:
        return self.stacks.selected

    @property
    def selected_environment(self) -> EnvironmentSummary | None:
        return self.environments.selected

    @property
    def selected_package(self) -> RegistryPackage | None:
        return self.packages.selected

    # --- Loading accounting ---

    def begin_refresh(self, started: int) -> None:
        self.pending_loads += started
        self.spinner.message = "Loading..."

    def _finish_load(self) -> None:
        self.pending_loads = max(0, self.pending_loads - 1)

    # --- Tabs ---

    def switch_tab(self, step: int) -> None:
        index = TAB_ORDER.index(self.tab)
        self.set_tab(TAB_ORDER[(index + step) % len(TAB_ORDER)])

    def set_tab(self, tab: Tab) -> None:
        self.tab = tab
        if tab is Tab.NEO and self.agent.task_id is None:
            self.show_task_list = True

    # --- Organizations ---

    def open_org_picker(self) -> None:
        picker: StatefulList[str] = StatefulList(self.organizations)
        if self.org in self.organizations:
            picker.select(self.organizations.index(self.org))
        self.org_picker = picker

    def select_org(self, org: str) -> None:
        """Switch organization and drop everything scoped to the old one."""
        self.org = org
        self.org_picker = None
        self.stack_updates = []
        self.stack_updates_for = None
        self.clear_environment_panes()
        self.agent.start_new()
        self.task_details = None
        self.transcript_scroll.reset(pinned=True)
        self.description_scroll.reset()
        self.readme_requested.clear()
        logger.info("Organization switched to '%s'", org)

    # --- Stacks / ESC helpers ---

    def clear_stack_updates(self) -> None:
        self.stack_updates = []
        self.stack_updates_for = None

    def clear_environment_panes(self) -> None:
        self.env_definition = None
        self.env_values = None
        self.env_scroll.reset()

    def open_editor(self) -> bool:
        env = self.selected_environment
        if env is None:
            return False
        self.editor = EnvEditor(env, TextBuffer.from_text(self.env_definition or ""))
        return True

    # --- Neo helpers ---

    def load_selected_task(self) -> AgentTask | None:
        task = self.tasks.selected
        if task is None:
            return None
        self.agent.load_task(task.id, task.status)
        self.show_task_list = False
        self.transcript_scroll.reset(pinned=True)
        return task

    def start_new_task(self) -> None:
        self.agent.start_new()
        self.show_task_list = False
        self.transcript_scroll.reset(pinned=True)
        self.input.focused = True

    # --- Platform helpers ---

    def set_platform_view(self, view: PlatformView) -> list[Effect]:
        self.platform_view = view
        self.description_scroll.reset()
        return self.readme_effects()

    def readme_effects(self) -> list[Effect]:
        if self.platform_view is not PlatformView.COMPONENTS:
            return []
        pkg = self.selected_package
        if pkg is None or pkg.readme_content is not None or not pkg.readme_url:
            return []
        key = pkg.key()
        if key in self.readme_requested:
            return []
        self.readme_requested.add(key)
        return [FetchReadme(key, pkg.readme_url)]

    # --- Startup ---

    def set_token_check(self, status: CheckStatus) -> None:
        self.splash.checks.token = status

    def set_cli_check(self, status: CheckStatus) -> list[Effect]:
        checks = self.splash.checks
        checks.cli = status
        if checks.any_failed:
            self.splash.visible = True
            return []
        if checks.all_passed and not self.data_requested:
            self.data_requested = True
            return [LoadOrganizations()]
        return []

    def cli_check_started(self) -> None:
        self.splash.checks.cli = CheckStatus(CheckState.RUNNING)

    # --- Message application ---

    def apply(self, message: Any) -> list[Effect]:
        """Fold one coordinator message into the state."""
        if isinstance(message, msgs.RefreshResult) and message.counts_as_load:
            self._finish_load()
        handler = _HANDLERS.get(type(message))
        if handler is None:
            logger.debug("Unhandled message %r", message)
            return []
        return handler(self, message) or []

    def _on_stacks(self, m: msgs.StacksLoaded) -> None:
        self.stacks.set_items(m.stacks)

    def _on_environments(self, m: msgs.EnvironmentsLoaded) -> None:
        self.environments.set_items(m.environments)

    def _on_tasks(self, m: msgs.TasksLoaded) -> None:
        self.tasks.set_items(m.tasks)

    def _on_resources(self, m: msgs.ResourcesLoaded) -> None:
        self.resources = list(m.resources)

    def _on_services(self, m: msgs.ServicesLoaded) -> None:
        self.services.set_items(m.services)

    def _on_packages(self, m: msgs.PackagesLoaded) -> list[Effect]:
        self.packages.set_items(m.packages)
        return self.readme_effects()

    def _on_templates(self, m: msgs.TemplatesLoaded) -> None:
        self.templates.set_items(m.templates)

    def _on_recent_updates(self, m: msgs.RecentUpdatesLoaded) -> None:
        self.recent_updates = list(m.updates)

    def _on_summary(self, m: msgs.ResourceSummaryLoaded) -> None:
        self.resource_summary = list(m.points)

    def _on_slash_commands(self, m: msgs.SlashCommandsLoaded) -> None:
        self.slash.set_commands(m.commands)

    def _on_load_failed(self, m: msgs.LoadFailed) -> None:
        logger.warning("Load failed: %s", m.message)

    def _on_readme(self, m: msgs.ReadmeLoaded) -> None:
        for pkg in self.packages:
            if pkg.key() == m.package_key:
                pkg.readme_content = m.content

    def _on_organizations(self, m: msgs.OrganizationsLoaded) -> list[Effect]:
        self.organizations = list(m.organizations)
        org = pick_organization(self.organizations, self.org, self.preferred_org, m.default_org)
        if org is None:
            self.error = "No organizations available for this account"
            return []
        self.org = org
        return [Refresh(org)]

    def _on_stack_updates(self, m: msgs.StackUpdatesLoaded) -> None:
        stack = self.selected_stack
        if stack is None or stack.full_name != m.stack:
            return
        self.stack_updates = list(m.rows)
        self.stack_updates_for = m.stack

    def _selected_env_is(self, name: str) -> bool:
        env = self.selected_environment
        return env is not None and env.full_name == name

    def _on_env_definition(self, m: msgs.EnvironmentDefinitionLoaded) -> None:
        if not self._selected_env_is(m.environment):
            return
        self.env_definition = m.yaml
        self.env_pane = EnvPane.DEFINITION
        self.env_scroll.reset()

    def _on_env_values(self, m: msgs.EnvironmentValuesLoaded) -> None:
        if not self._selected_env_is(m.environment):
            return
        self.env_values = format_values(m.values)
        self.env_pane = EnvPane.VALUES
        self.env_scroll.reset()

    def _on_env_saved(self, m: msgs.EnvironmentSaved) -> None:
        if self._selected_env_is(m.environment):
            self.env_definition = m.yaml
            self.env_values = None
        logger.info("Environment %s saved", m.environment)

    def _on_task_details(self, m: msgs.TaskDetailsLoaded) -> None:
        self.task_details = m.task
        self.tasks.replace_where(lambda t: t.id == m.task.id, m.task)

    def _on_operation_failed(self, m: msgs.OperationFailed) -> None:
        logger.warning("%s", m.message)
        self.error = m.message

    def _on_cli_checked(self, m: msgs.CliChecked) -> list[Effect]:
        return self.set_cli_check(m.status)

    # Agent queue

    def _on_task_created(self, m: msgs.TaskCreated) -> None:
        prompt = next(
            (msg.content for msg in reversed(self.agent.messages) if msg.kind is MessageKind.USER),
            None,
        )
        if self.agent.mode is PollMode.SENDING and prompt is not None:
            name = prompt if len(prompt) <= TASK_NAME_LIMIT else prompt[:TASK_NAME_LIMIT] + "..."
            self.tasks.insert(0, AgentTask(id=m.task_id, name=name, status="running"))
            self.tasks.select(0)
        self.agent.on_task_created(m.task_id)

    def _on_message_accepted(self, m: msgs.MessageAccepted) -> None:
        self.agent.on_message_accepted(m.task_id)

    def _on_agent_failed(self, m: msgs.AgentFailed) -> None:
        self.agent.on_send_failed(m.error)

    def _on_poll(self, m: msgs.PollResult) -> None:
        self.agent.apply_poll(m.task_id, m.messages, m.status)
        if m.status is None:
            return
        for i, task in enumerate(self.tasks.items):
            if task.id == m.task_id and task.status != m.status:
                self.tasks.items[i] = dataclasses.replace(task, status=m.status)

    def _on_poll_failed(self, m: msgs.PollFailed) -> None:
        self.agent.on_poll_failed(m.task_id)

    # --- Footer ---

    def footer_hint(self) -> str:
        if self.splash.visible:
            checks = self.splash.checks
            if checks.any_failed:
                return "q: quit"
            if checks.all_passed:
                return "Space: toggle | Enter: continue | q: quit"
            return "Running startup checks..."
        if self.error is not None:
            return "Press Esc to dismiss error"
        if self.show_help:
            return "Press ? or Esc to close help"
        if self.show_task_details:
            return "Press d or Esc to close details"
        if self.editor is not None:
            return "Esc: Save & Close | Ctrl+C: Cancel | Tab: Indent"
        if self.show_logs:
            return "j/k: scroll | G: follow | l/Esc: close"
        if self.org_picker is not None:
            return "↑↓: navigate | Enter: select | Esc: cancel"
        if self.input_focused:
            if self.slash.visible:
                return "↑↓: choose command | Tab/Enter: insert | Esc: cancel"
            return "Enter: send | Esc: cancel"
        if self.tab is Tab.DASHBOARD:
            return "Tab: switch | o: org | l: logs | ?: help | r: refresh | q: quit"
        if self.tab is Tab.STACKS:
            return "↑↓: navigate | o: org | l: logs | Enter/u: updates | r: refresh | q: quit"
        if self.tab is Tab.ESC:
            return "↑↓: envs | ←→: panes | j/k: scroll | Enter: load | o: resolve | e: edit | q: quit"
        if self.tab is Tab.NEO:
            if self.show_task_list:
                return "↑↓: tasks | Enter: select | /: commands | n: new | i: type | q: quit"
            return "j/k: scroll | /: commands | d: details | n: new | i: type | Esc: tasks | q: quit"
        return "↑↓: navigate | ←→: switch view | o: org | l: logs | r: refresh | q: quit"


def format_values(values: Any) -> str:
    """Resolved environment values as block-style YAML."""
    if values is None:
        return ""
    return yaml.safe_dump(values, sort_keys=False, default_flow_style=False, allow_unicode=True)


_HANDLERS = {
    msgs.StacksLoaded: AppState._on_stacks,
    msgs.EnvironmentsLoaded: AppState._on_environments,
    msgs.TasksLoaded: AppState._on_tasks,
    msgs.ResourcesLoaded: AppState._on_resources,
    msgs.ServicesLoaded: AppState._on_services,
    msgs.PackagesLoaded: AppState._on_packages,
    msgs.TemplatesLoaded: AppState._on_templates,
    msgs.RecentUpdatesLoaded: AppState._on_recent_updates,
    msgs.ResourceSummaryLoaded: AppState._on_summary,
    msgs.SlashCommandsLoaded: AppState._on_slash_commands,
    msgs.LoadFailed: AppState._on_load_failed,
    msgs.ReadmeLoaded: AppState._on_readme,
    msgs.OrganizationsLoaded: AppState._on_organizations,
    msgs.StackUpdatesLoaded: AppState._on_stack_updates,
    msgs.EnvironmentDefinitionLoaded: AppState._on_env_definition,
    msgs.EnvironmentValuesLoaded: AppState._on_env_values,
    msgs.EnvironmentSaved: AppState._on_env_saved,
    msgs.TaskDetailsLoaded: AppState._on_task_details,
    msgs.OperationFailed: AppState._on_operation_failed,
    msgs.CliChecked: AppState._on_cli_checked,
    msgs.TaskCreated: AppState._on_task_created,
    msgs.MessageAccepted: AppState._on_message_accepted,
    msgs.AgentFailed: AppState._on_agent_failed,
    msgs.PollResult: AppState._on_poll,
    msgs.PollFailed: AppState._on_poll_failed,
}
