"""ESC environments tab: list plus definition and resolved-values panes."""

from __future__ import annotations

from rich.console import RenderableType
from rich.layout import Layout
from rich.syntax import Syntax
from rich.text import Text

from lazypulumi.components import ScrollState
from lazypulumi.state import AppState, EnvPane
from lazypulumi.tui.render.common import ListView, ScrollView, dim, pane

SYNTAX_THEME = "monokai"


def _yaml(text: str) -> RenderableType:
    return Syntax(text, "yaml", theme=SYNTAX_THEME, background_color="default", word_wrap=True)


def _pane(
    state: AppState, which: EnvPane, content: str | None, hint: str,
) -> RenderableType:
    active = state.env_pane is which
    if state.selected_environment is None:
        body: RenderableType = dim("Select an environment")
    elif content is None:
        body = dim(hint)
    else:
        # only the focused pane keeps a scroll position
        scroll = state.env_scroll if active else ScrollState()
        body = ScrollView(_yaml(content), scroll)
    return pane(body, which.value, focused=active)


def render_esc(state: AppState) -> RenderableType:
    rows = [Text(env.full_name) for env in state.environments]
    envs = pane(
        ListView(rows, state.environments.selected_index, empty="No environments"),
        f"Environments ({len(state.environments)})",
    )
    detail = Layout()
    detail.split_column(
        Layout(_pane(state, EnvPane.DEFINITION, state.env_definition,
                     "Press Enter to load definition")),
        Layout(_pane(state, EnvPane.VALUES, state.env_values,
                     "Press 'o' to open and resolve values")),
    )
    root = Layout()
    root.split_row(Layout(envs, ratio=1), Layout(detail, ratio=2))
    return root
