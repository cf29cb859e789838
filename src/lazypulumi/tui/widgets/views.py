"""Thin widgets that display renderables built from ``AppState``."""

from __future__ import annotations

from rich.console import RenderableType
from textual.containers import Container
from textual.widget import Widget
from textual.widgets import Static

from lazypulumi.state import AppState
from lazypulumi.tui.render import (
    active_popup,
    render_content,
    render_footer,
    render_header,
    render_splash,
)
from lazypulumi.tui.render.common import Sized


class StateView(Widget):
    """Base for widgets that re-render from shared state on every tick."""

    def __init__(self, state: AppState, **kwargs) -> None:
        super().__init__(**kwargs)
        self.state = state


class HeaderBar(StateView):
    DEFAULT_CSS = """
    HeaderBar {
        height: 3;
        dock: top;
    }
    """

    def render(self) -> RenderableType:
        return render_header(self.state)


class FooterBar(StateView):
    DEFAULT_CSS = """
    FooterBar {
        height: 1;
        dock: bottom;
        background: $surface;
    }
    """

    def render(self) -> RenderableType:
        return render_footer(self.state)


class ContentView(StateView):
    """The active tab, or the splash screen while it is up."""

    DEFAULT_CSS = """
    ContentView {
        height: 1fr;
    }
    """

    def render(self) -> RenderableType:
        if self.state.splash.visible:
            return Sized(render_splash(self.state.splash, self.state.spinner.frame), self.size.height)
        return Sized(render_content(self.state), self.size.height)


class PopupPanel(Static):
    DEFAULT_CSS = """
    PopupPanel {
        background: $surface;
    }
    """


class PopupLayer(Container):
    """Overlay layer that centers the active popup over the content."""

    DEFAULT_CSS = """
    PopupLayer {
        layer: overlay;
        width: 100%;
        height: 100%;
        align: center middle;
        background: transparent;
        display: none;
    }
    """

    def __init__(self, state: AppState, **kwargs) -> None:
        super().__init__(**kwargs)
        self.state = state
        self._title: str | None = None

    def compose(self):
        yield PopupPanel(id="popup")

    def sync(self) -> None:
        popup = active_popup(self.state)
        panel = self.query_one("#popup", PopupPanel)
        if popup is None:
            self.display = False
            self._title = None
            return
        if popup.title != self._title:
            panel.styles.width = f"{popup.width}%"
            panel.styles.height = f"{popup.height}%"
            self._title = popup.title
        panel.update(popup.panel())
        self.display = True
