"""Keyboard routing.

Every key press is offered to the surfaces in a fixed precedence order
and exactly one of them consumes it. The router mutates ``AppState``
directly and hands anything that needs I/O to an ``Actions`` object.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from lazypulumi.api.types import EnvironmentSummary, SlashCommand, Stack
from lazypulumi.state import (
    PLATFORM_VIEWS,
    AppState,
    EnvPane,
    PlatformView,
    Tab,
)

logger = logging.getLogger(__name__)

SCROLL_STEP = 3


@dataclass(frozen=True)
class KeyPress:
    """A key as Textual reports it: a key name plus the printable character."""

    key: str
    char: str | None = None

    @property
    def token(self) -> str:
        """The printable character when there is one, else the key name."""
        if self.char is not None and len(self.char) == 1 and self.char.isprintable():
            return self.char
        return self.key

    @classmethod
    def of(cls, token: str) -> KeyPress:
        """Build a press from a printable character or a key name."""
        if len(token) == 1:
            return cls(token, token)
        if token == "space":
            return cls("space", " ")
        return cls(token)


class Surface(str, Enum):
    SPLASH = "splash"
    ERROR = "error"
    HELP = "help"
    TASK_DETAILS = "task_details"
    EDITOR = "editor"
    LOGS = "logs"
    ORG_PICKER = "org_picker"
    INPUT = "input"
    GLOBAL = "global"
    TAB = "tab"


class Actions(Protocol):
    """Side effects the router may request."""

    def request_quit(self) -> None: ...

    def refresh_data(self) -> None: ...

    def dismiss_splash(self, dont_show_again: bool) -> None: ...

    def set_default_org(self, org: str) -> None: ...

    def load_stack_updates(self, stack: Stack) -> None: ...

    def load_environment_definition(self, env: EnvironmentSummary) -> None: ...

    def open_environment(self, env: EnvironmentSummary) -> None: ...

    def save_environment(self, env: EnvironmentSummary, yaml_text: str) -> None: ...

    def load_task_details(self, task_id: str) -> None: ...

    def send_agent_message(
        self, task_id: str | None, content: str, commands: list[SlashCommand],
    ) -> None: ...

    def load_readme(self, package_key: str, url: str) -> None: ...


class InputRouter:
    def __init__(self, actions: Actions) -> None:
        self.actions = actions

    def route(self, state: AppState, press: KeyPress) -> Surface:
        """Deliver *press* to the highest-precedence active surface."""
        if state.splash.visible:
            self._splash(state, press)
            return Surface.SPLASH
        if state.error is not None:
            if press.token in ("escape", "enter"):
                state.error = None
            return Surface.ERROR
        if state.show_help:
            if press.token in ("escape", "?"):
                state.show_help = False
            return Surface.HELP
        if state.show_task_details:
            if press.token in ("escape", "d"):
                state.show_task_details = False
            return Surface.TASK_DETAILS
        if state.editor is not None:
            self._editor(state, press)
            return Surface.EDITOR
        if state.show_logs:
            self._logs(state, press)
            return Surface.LOGS
        if state.org_picker is not None:
            self._org_picker(state, press)
            return Surface.ORG_PICKER
        if state.input.focused:
            self._input(state, press)
            return Surface.INPUT
        if self._global(state, press):
            return Surface.GLOBAL

        handler = {
            Tab.NEO: self._neo,
            Tab.STACKS: self._stacks,
            Tab.ESC: self._esc,
            Tab.PLATFORM: self._platform,
        }.get(state.tab)
        if handler is not None:
            handler(state, press)
        return Surface.TAB

    # --- Modal surfaces ---

    def _splash(self, state: AppState, press: KeyPress) -> None:
        splash = state.splash
        checks = splash.checks
        t = press.token
        if t == " " and checks.all_passed:
            splash.dont_show_again = not splash.dont_show_again
        elif t in ("enter", "escape") and checks.all_passed:
            splash.visible = False
            self.actions.dismiss_splash(splash.dont_show_again)
        elif (t == "q" and (checks.any_failed or checks.all_complete)) or t == "ctrl+c":
            self.actions.request_quit()

    def _editor(self, state: AppState, press: KeyPress) -> None:
        editor = state.editor
        if editor is None:
            return
        if press.token == "escape":
            if editor.buffer.modified:
                self.actions.save_environment(editor.environment, editor.buffer.text)
            state.editor = None
        elif press.token == "ctrl+c":
            state.editor = None
        else:
            editor.buffer.handle_key(press.key, press.char)

    def _logs(self, state: AppState, press: KeyPress) -> None:
        scroll = state.log_scroll
        t = press.token
        if t in ("escape", "l"):
            state.show_logs = False
        elif t in ("j", "down"):
            scroll.scroll_down(1)
        elif t in ("k", "up"):
            scroll.scroll_up(1)
        elif t == "pagedown":
            scroll.page_down()
        elif t == "pageup":
            scroll.page_up()
        elif t == "g":
            scroll.to_top()
        elif t == "G":
            scroll.to_bottom()

    def _org_picker(self, state: AppState, press: KeyPress) -> None:
        picker = state.org_picker
        if picker is None:
            return
        t = press.token
        if t == "escape":
            state.org_picker = None
        elif t in ("up", "k"):
            picker.previous()
        elif t in ("down", "j"):
            picker.next()
        elif t == "enter":
            org = picker.selected
            if org is None:
                state.org_picker = None
                return
            state.select_org(org)
            self.actions.set_default_org(org)
            self.actions.refresh_data()

    def _input(self, state: AppState, press: KeyPress) -> None:
        text_input = state.input
        slash = state.slash
        t = press.token
        if t == "ctrl+c":
            self.actions.request_quit()
            return
        if t == "escape":
            text_input.focused = False
            slash.close()
            return
        if slash.visible:
            if t in ("up", "ctrl+p"):
                slash.move(-1)
                return
            if t in ("down", "ctrl+n"):
                slash.move(1)
                return
            if t in ("tab", "enter"):
                text_input.set_value(slash.accept(text_input.value))
                return
        if t == "enter":
            self._send(state)
            return
        if text_input.handle_key(press.key, press.char):
            slash.update(text_input.value)

    def _send(self, state: AppState) -> None:
        text = state.input.value
        request = state.agent.begin_send(text)
        if request is None:
            return
        state.input.clear()
        content, commands = state.slash.consume(text)
        state.show_task_list = False
        state.transcript_scroll.to_bottom()
        self.actions.send_agent_message(request.task_id, content, commands)

    # --- Global keys ---

    def _global(self, state: AppState, press: KeyPress) -> bool:
        t = press.token
        if t in ("q", "ctrl+c"):
            self.actions.request_quit()
        elif t == "?":
            state.show_help = True
        elif t == "l":
            state.show_logs = True
            state.log_scroll.to_bottom()
        elif (t == "o" and state.tab is not Tab.ESC) or (t == "O" and state.tab is Tab.ESC):
            state.open_org_picker()
        elif t == "tab":
            state.switch_tab(1)
        elif t == "shift+tab":
            state.switch_tab(-1)
        elif t == "r":
            self.actions.refresh_data()
        else:
            return False
        return True

    # --- Tabs ---

    def _neo(self, state: AppState, press: KeyPress) -> None:
        scroll = state.transcript_scroll
        t = press.token
        if t == "escape":
            state.show_task_list = True
        elif t == "i":
            state.input.focused = True
        elif t == "/":
            state.input.set_value("/")
            state.input.focused = True
            state.slash.show_all()
        elif t == "n":
            state.start_new_task()
        elif t == "up":
            if state.show_task_list:
                state.tasks.previous()
            else:
                scroll.scroll_up(SCROLL_STEP)
        elif t == "down":
            if state.show_task_list:
                state.tasks.next()
            else:
                scroll.scroll_down(SCROLL_STEP)
        elif t == "k":
            scroll.scroll_up(SCROLL_STEP)
        elif t == "j":
            scroll.scroll_down(SCROLL_STEP)
        elif t in ("K", "pageup"):
            scroll.page_up()
        elif t in ("J", "pagedown"):
            scroll.page_down()
        elif t == "g":
            scroll.to_top()
        elif t == "G":
            scroll.to_bottom()
        elif t == "enter":
            if state.show_task_list:
                state.load_selected_task()
        elif t == "d":
            task_id = state.agent.task_id
            if not state.show_task_list and task_id is not None:
                current = next((task for task in state.tasks if task.id == task_id), None)
                if current is not None:
                    state.task_details = current
                state.show_task_details = True
                self.actions.load_task_details(task_id)

    def _stacks(self, state: AppState, press: KeyPress) -> None:
        t = press.token
        if t in ("up", "k"):
            state.stacks.previous()
            state.clear_stack_updates()
        elif t in ("down", "j"):
            state.stacks.next()
            state.clear_stack_updates()
        elif t in ("home", "g"):
            state.stacks.first()
            state.clear_stack_updates()
        elif t in ("end", "G"):
            state.stacks.last()
            state.clear_stack_updates()
        elif t in ("enter", "u"):
            stack = state.selected_stack
            if stack is not None:
                self.actions.load_stack_updates(stack)

    def _esc(self, state: AppState, press: KeyPress) -> None:
        scroll = state.env_scroll
        t = press.token
        if t in ("left", "h"):
            state.env_pane = EnvPane.DEFINITION
            scroll.reset()
        elif t == "right":
            state.env_pane = EnvPane.VALUES
            scroll.reset()
        elif t == "j":
            scroll.scroll_down(SCROLL_STEP)
        elif t == "k":
            scroll.scroll_up(SCROLL_STEP)
        elif t in ("J", "pagedown"):
            scroll.page_down()
        elif t in ("K", "pageup"):
            scroll.page_up()
        elif t == "up":
            state.environments.previous()
            state.clear_environment_panes()
        elif t == "down":
            state.environments.next()
            state.clear_environment_panes()
        elif t in ("home", "g"):
            state.environments.first()
            state.clear_environment_panes()
        elif t in ("end", "G"):
            state.environments.last()
            state.clear_environment_panes()
        elif t == "enter":
            env = state.selected_environment
            if env is not None:
                self.actions.load_environment_definition(env)
        elif t == "o":
            env = state.selected_environment
            if env is not None:
                self.actions.open_environment(env)
        elif t == "e":
            state.open_editor()

    def _platform(self, state: AppState, press: KeyPress) -> None:
        view = state.platform_view
        t = press.token
        selection_changed = False
        if t in ("left", "h", "right"):
            step = -1 if t in ("left", "h") else 1
            index = PLATFORM_VIEWS.index(view)
            self._fetch_readmes(state.set_platform_view(PLATFORM_VIEWS[(index + step) % len(PLATFORM_VIEWS)]))
            return
        if t in ("1", "2", "3"):
            self._fetch_readmes(state.set_platform_view(PLATFORM_VIEWS[int(t) - 1]))
            return

        current = {
            PlatformView.SERVICES: state.services,
            PlatformView.COMPONENTS: state.packages,
            PlatformView.TEMPLATES: state.templates,
        }[view]
        describes = view is not PlatformView.SERVICES
        if t == "up" or (t == "k" and not describes):
            current.previous()
            selection_changed = True
        elif t == "down" or (t == "j" and not describes):
            current.next()
            selection_changed = True
        elif t in ("home", "g"):
            current.first()
            selection_changed = True
        elif t in ("end", "G"):
            current.last()
            selection_changed = True
        elif describes and t == "j":
            state.description_scroll.scroll_down(1)
        elif describes and t == "k":
            state.description_scroll.scroll_up(1)
        elif describes and t in ("J", "pagedown"):
            state.description_scroll.page_down()
        elif describes and t in ("K", "pageup"):
            state.description_scroll.page_up()

        if selection_changed:
            state.description_scroll.reset()
            self._fetch_readmes(state.readme_effects())

    def _fetch_readmes(self, effects: list) -> None:
        for effect in effects:
            self.actions.load_readme(effect.package_key, effect.url)
