"""Pure renderers from ``AppState`` to Rich renderables."""

from rich.console import RenderableType

from lazypulumi.state import AppState, Tab
from lazypulumi.tui.render.dashboard import render_dashboard
from lazypulumi.tui.render.esc import render_esc
from lazypulumi.tui.render.header import render_footer, render_header
from lazypulumi.tui.render.neo import render_neo
from lazypulumi.tui.render.platform import render_platform
from lazypulumi.tui.render.popups import Popup, active_popup
from lazypulumi.tui.render.splash import render_splash
from lazypulumi.tui.render.stacks import render_stacks

_TABS = {
    Tab.DASHBOARD: render_dashboard,
    Tab.NEO: render_neo,
    Tab.STACKS: render_stacks,
    Tab.ESC: render_esc,
    Tab.PLATFORM: render_platform,
}


def render_content(state: AppState) -> RenderableType:
    return _TABS[state.tab](state)


__all__ = [
    "Popup",
    "active_popup",
    "render_content",
    "render_footer",
    "render_header",
    "render_splash",
]
