"""lazypulumi: a keyboard-driven terminal UI for Pulumi Cloud."""

__version__ = "0.3.0"

APP_NAME = "lazypulumi"
