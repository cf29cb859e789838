"""CLI entry point for lazypulumi."""

from __future__ import annotations

import sys

import click

from lazypulumi import APP_NAME, __version__
from lazypulumi.config import Settings, config_path, load_preferences, log_path
from lazypulumi.logs import setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name=APP_NAME)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """lazypulumi: keyboard-driven terminal UI for Pulumi Cloud.

    Reads PULUMI_ACCESS_TOKEN, PULUMI_API_URL, PULUMI_ORG and LOG_FILTER
    from the environment.
    """
    if ctx.invoked_subcommand is None:
        _launch_tui()


def _launch_tui() -> None:
    """Launch the TUI and exit with its return code."""
    from lazypulumi.tui.app import LazyPulumiApp

    settings = Settings.from_env()
    log_buffer = setup_logging(log_path(), settings.log_filter)
    prefs_path = config_path()
    app = LazyPulumiApp(
        settings,
        preferences=load_preferences(prefs_path),
        preferences_path=prefs_path,
        log_buffer=log_buffer,
    )
    try:
        app.run()
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if app.return_code:
        sys.exit(app.return_code)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
