"""TUI widget components."""

from lazypulumi.tui.widgets.views import (
    ContentView,
    FooterBar,
    HeaderBar,
    PopupLayer,
    PopupPanel,
)

__all__ = [
    "ContentView",
    "FooterBar",
    "HeaderBar",
    "PopupLayer",
    "PopupPanel",
]
