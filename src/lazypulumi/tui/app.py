"""lazypulumi TUI: a keyboard-driven client for the Pulumi Cloud platform.

A 100 ms tick drains the coordinator's result queues, folds the messages
into ``AppState``, advances spinners and the Neo poll cadence, then
redraws. Keys go through ``InputRouter``; every network call runs in a
Textual worker that reports back through a queue.

Layout:
  +-----------------------------------------------------+
  | Dashboard | Neo | Stacks | ESC | Platform   org: acme |
  +-----------------------------------------------------+
  |                                                     |
  |  active tab (or splash)          [popup overlay]    |
  |                                                     |
  +-----------------------------------------------------+
  | contextual key hint                                 |
  +-----------------------------------------------------+
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding

from lazypulumi.api.client import PulumiClient
from lazypulumi.api.types import EnvironmentSummary, SlashCommand, Stack
from lazypulumi.config import Preferences, Settings, save_preferences
from lazypulumi.coordinator import Coordinator
from lazypulumi.exceptions import ConfigError
from lazypulumi.logs import LogBuffer
from lazypulumi.startup import CheckState, check_token
from lazypulumi.state import (
    TAB_ORDER,
    AppState,
    Effect,
    FetchReadme,
    LoadOrganizations,
    Refresh,
    Tab,
)
from lazypulumi.tui.commands import LazyPulumiCommands
from lazypulumi.tui.router import InputRouter, KeyPress
from lazypulumi.tui.theme import PULUMI_DARK
from lazypulumi.tui.widgets import ContentView, FooterBar, HeaderBar, PopupLayer

logger = logging.getLogger(__name__)

TICK_SECONDS = 0.1


class LazyPulumiApp(App):
    """lazypulumi TUI."""

    TITLE = "lazypulumi"
    COMMANDS = {LazyPulumiCommands}
    # ctrl+p moves through the slash-command picker
    COMMAND_PALETTE_BINDING = "ctrl+k"

    CSS = """
    Screen {
        layers: base overlay;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "route_key('ctrl+c')", "Quit", show=False, priority=True),
        Binding("tab", "route_key('tab')", "Next tab", show=False, priority=True),
        Binding("shift+tab", "route_key('shift+tab')", "Previous tab", show=False, priority=True),
    ]

    def __init__(
        self,
        settings: Settings,
        *,
        preferences: Preferences | None = None,
        preferences_path: Path | None = None,
        log_buffer: LogBuffer | None = None,
        client: PulumiClient | None = None,
        environ: Mapping[str, str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.settings = settings
        self.preferences = preferences or Preferences()
        self._preferences_path = preferences_path
        self._environ = os.environ if environ is None else environ
        if client is None and settings.access_token:
            client = PulumiClient(settings.access_token, settings.api_url)
        self._client = client
        self.coordinator = Coordinator(client, self._spawn)
        self.state = AppState(preferred_org=settings.organization, log_buffer=log_buffer)
        self.router = InputRouter(self)

    def compose(self) -> ComposeResult:
        yield HeaderBar(self.state, id="header")
        yield ContentView(self.state, id="content")
        yield FooterBar(self.state, id="footer")
        yield PopupLayer(self.state, id="popups")

    async def on_mount(self) -> None:
        self.register_theme(PULUMI_DARK)
        self.theme = "pulumi-dark"
        self.state.splash.visible = self.preferences.show_splash
        self._start_checks()
        self.set_interval(TICK_SECONDS, self._tick)
        self._redraw()

    async def on_unmount(self) -> None:
        if self._client is not None:
            await self._client.close()

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> None:
        self.run_worker(coro, group="fetch", exit_on_error=False)

    def _start_checks(self) -> None:
        token = check_token(self._environ)
        self.state.set_token_check(token)
        if token.state is CheckState.FAILED:
            logger.warning("Startup check failed: %s", token.message)
            self.state.splash.visible = True
        self.state.cli_check_started()
        self.coordinator.check_cli()

    def _tick(self) -> None:
        state = self.state
        messages = Coordinator.drain(self.coordinator.data)
        messages += Coordinator.drain(self.coordinator.agent)
        for message in messages:
            self._run_effects(state.apply(message))

        state.spinner.tick()
        agent = state.agent
        if agent.tick(state.agent_visible) and state.org and agent.task_id:
            self.coordinator.poll_agent(state.org, agent.task_id)
        self._redraw()

    def _run_effects(self, effects: list[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, Refresh):
                self.state.begin_refresh(self.coordinator.refresh(effect.org))
            elif isinstance(effect, LoadOrganizations):
                self.coordinator.load_organizations()
            elif isinstance(effect, FetchReadme):
                self.coordinator.load_readme(effect.package_key, effect.url)

    def _redraw(self) -> None:
        for widget_id in ("#header", "#content", "#footer"):
            self.query_one(widget_id).refresh()
        self.query_one("#popups", PopupLayer).sync()

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.router.route(self.state, KeyPress(event.key, event.character))
        self._redraw()

    def action_route_key(self, key: str) -> None:
        self.router.route(self.state, KeyPress(key))
        self._redraw()

    # ------------------------------------------------------------------
    # Router actions
    # ------------------------------------------------------------------

    def request_quit(self) -> None:
        logger.info("Quit requested")
        self.exit()

    def refresh_data(self) -> None:
        if self.state.org:
            self.state.begin_refresh(self.coordinator.refresh(self.state.org))
        elif self.state.splash.checks.all_passed:
            self.coordinator.load_organizations()

    def dismiss_splash(self, dont_show_again: bool) -> None:
        if not dont_show_again or self._preferences_path is None:
            return
        self.preferences = self.preferences.with_show_splash(False)
        try:
            save_preferences(self._preferences_path, self.preferences)
        except ConfigError as e:
            logger.warning("Could not save preferences: %s", e)

    def set_default_org(self, org: str) -> None:
        self.coordinator.set_default_org(org)

    def load_stack_updates(self, stack: Stack) -> None:
        self.coordinator.load_stack_updates(stack.org_name, stack.project_name, stack.stack_name)

    def load_environment_definition(self, env: EnvironmentSummary) -> None:
        self.coordinator.load_environment_definition(env.organization, env.project, env.name)

    def open_environment(self, env: EnvironmentSummary) -> None:
        self.coordinator.open_environment(env.organization, env.project, env.name)

    def save_environment(self, env: EnvironmentSummary, yaml_text: str) -> None:
        self.coordinator.save_environment(env.organization, env.project, env.name, yaml_text)

    def load_task_details(self, task_id: str) -> None:
        if self.state.org:
            self.coordinator.load_task_details(self.state.org, task_id)

    def send_agent_message(
        self, task_id: str | None, content: str, commands: list[SlashCommand],
    ) -> None:
        if not self.state.org:
            self.state.agent.on_send_failed("no organization selected")
            return
        self.coordinator.send_agent_message(self.state.org, task_id, content, commands)

    def load_readme(self, package_key: str, url: str) -> None:
        self.coordinator.load_readme(package_key, url)

    # ------------------------------------------------------------------
    # Command palette
    # ------------------------------------------------------------------

    def action_palette_command(self, command: str) -> None:
        state = self.state
        if command == "quit":
            self.request_quit()
            return
        if command.startswith("tab_"):
            name = command.removeprefix("tab_")
            tab = next((t for t in TAB_ORDER if t.name.lower() == name), None)
            if tab is not None:
                state.set_tab(tab)
        elif command == "refresh":
            self.refresh_data()
        elif command == "org":
            state.open_org_picker()
        elif command == "new_task":
            state.set_tab(Tab.NEO)
            state.start_new_task()
        elif command == "logs":
            state.show_logs = True
            state.log_scroll.to_bottom()
        elif command == "help":
            state.show_help = True
        self._redraw()
