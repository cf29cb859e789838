"""Command palette provider for the lazypulumi TUI."""

from __future__ import annotations

from functools import partial

from textual.command import Hit, Hits, Provider

_COMMANDS = [
    ("Refresh data", "refresh", "Reload everything for the current organization"),
    ("Select organization", "org", "Open the organization picker"),
    ("Switch to Dashboard tab", "tab_dashboard", "Counts, resource history and updates"),
    ("Switch to Neo tab", "tab_neo", "Converse with the Neo agent"),
    ("Switch to Stacks tab", "tab_stacks", "Browse stacks and update history"),
    ("Switch to ESC tab", "tab_esc", "Browse and edit ESC environments"),
    ("Switch to Platform tab", "tab_platform", "Services, components and templates"),
    ("Start new Neo task", "new_task", "Clear the conversation and start typing"),
    ("Show logs", "logs", "Open the application log viewer"),
    ("Show help", "help", "List keyboard shortcuts"),
    ("Quit", "quit", "Exit lazypulumi"),
]


class LazyPulumiCommands(Provider):
    """Custom commands for the Ctrl+K command palette."""

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for label, action, help_text in _COMMANDS:
            score = matcher.match(label)
            if score > 0:
                yield Hit(
                    score,
                    matcher.highlight(label),
                    command=partial(
                        self.app.run_action, f"palette_command('{action}')",
                    ),
                    help=help_text,
                )
