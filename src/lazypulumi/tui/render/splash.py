"""Splash screen with startup check results."""

from __future__ import annotations

from rich.align import Align
from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from lazypulumi import __version__
from lazypulumi.startup import CheckState, CheckStatus
from lazypulumi.state import SplashState
from lazypulumi.tui.theme import ACCENT_AMBER, ACCENT_CYAN, ACCENT_LAVENDER, DIM, TOOL_ERR, TOOL_OK

LOGO = r"""
 _                     ____        _                 _
| |    __ _ _____   _ |  _ \ _   _| |_   _ _ __ ___ (_)
| |   / _` |_  / | | || |_) | | | | | | | | '_ ` _ \| |
| |__| (_| |/ /| |_| ||  __/| |_| | | |_| | | | | | | |
|_____\__,_/___|\__, ||_|    \__,_|_|\__,_|_| |_| |_|_|
                |___/
""".strip("\n")


def check_marker(status: CheckStatus, frame: str) -> Text:
    if status.state is CheckState.PASSED:
        return Text("✓", style=f"bold {TOOL_OK}")
    if status.state is CheckState.FAILED:
        return Text("✗", style=f"bold {TOOL_ERR}")
    if status.state is CheckState.RUNNING:
        return Text(frame, style=ACCENT_AMBER)
    return Text("◌", style=DIM)


def render_splash(splash: SplashState, frame: str) -> RenderableType:
    checks = splash.checks
    rows = Table.grid(padding=(0, 1))
    rows.add_column(no_wrap=True)
    rows.add_column(style="bold", no_wrap=True)
    rows.add_column()
    for label, status in checks.rows():
        message_style = TOOL_ERR if status.state is CheckState.FAILED else DIM
        rows.add_row(check_marker(status, frame), label, Text(status.message, style=message_style))

    footer = Text(justify="center")
    if checks.any_failed:
        footer.append("Startup checks failed. Press ", style=DIM)
        footer.append("q", style=f"bold {ACCENT_CYAN}")
        footer.append(" to quit.", style=DIM)
    elif checks.all_passed:
        box = "[x]" if splash.dont_show_again else "[ ]"
        footer.append(f"{box} Don't show this again\n", style=ACCENT_LAVENDER)
        footer.append("Press ", style=DIM)
        footer.append("Space", style=f"bold {ACCENT_CYAN}")
        footer.append(" to toggle, ", style=DIM)
        footer.append("Enter", style=f"bold {ACCENT_CYAN}")
        footer.append(" to continue", style=DIM)
    else:
        footer.append(f"{frame} Loading...", style=DIM)

    body = Group(
        Align.center(Text(LOGO, style=f"bold {ACCENT_LAVENDER}")),
        Align.center(Text(f"v{__version__}", style=DIM)),
        Text(""),
        Align.center(rows),
        Text(""),
        footer,
    )
    return Align.center(body, vertical="middle")
