"""Configuration for lazypulumi.

Two sources: process environment (access token, API URL, initial org,
log filter) read once at startup into ``Settings``, and a small JSON
preferences file holding user choices such as whether to show the
splash screen. The preferences file is rewritten only on splash
dismissal and keeps any keys it does not recognise.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from lazypulumi import APP_NAME
from lazypulumi.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.pulumi.com"

TOKEN_ENV = "PULUMI_ACCESS_TOKEN"
_ENV_NAMES = {
    "access_token": (TOKEN_ENV, "ACCESS_TOKEN"),
    "api_url": ("PULUMI_API_URL", "API_URL"),
    "organization": ("PULUMI_ORG", "ORG"),
    "log_filter": ("LOG_FILTER",),
}


def _first_env(environ: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        if name in environ:
            return environ[name]
    return None


@dataclass(frozen=True)
class Settings:
    """Process-level settings resolved from the environment."""

    access_token: str = ""
    api_url: str = DEFAULT_API_URL
    organization: str | None = None
    log_filter: str = "info"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        api_url = _first_env(env, _ENV_NAMES["api_url"]) or DEFAULT_API_URL
        org = _first_env(env, _ENV_NAMES["organization"]) or None
        return cls(
            access_token=(_first_env(env, _ENV_NAMES["access_token"]) or "").strip(),
            api_url=api_url.rstrip("/"),
            organization=org,
            log_filter=_first_env(env, _ENV_NAMES["log_filter"]) or "info",
        )


@dataclass(frozen=True)
class Preferences:
    """User preferences persisted in ``config.json``."""

    show_splash: bool = True
    extra: dict = field(default_factory=dict)

    def with_show_splash(self, value: bool) -> Preferences:
        return replace(self, show_splash=value)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data["show_splash"] = self.show_splash
        return data


def user_config_dir(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    base = env.get("XDG_CONFIG_HOME")
    return Path(base) if base else Path.home() / ".config"


def user_cache_dir(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    base = env.get("XDG_CACHE_HOME")
    return Path(base) if base else Path.home() / ".cache"


def config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Path of the preferences file."""
    return user_config_dir(environ) / APP_NAME / "config.json"


def log_path(environ: Mapping[str, str] | None = None) -> Path:
    """Path of the application log file."""
    return user_cache_dir(environ) / APP_NAME / "app.log"


def load_preferences(path: Path | None) -> Preferences:
    """Load preferences from *path*, returning defaults when absent or invalid."""
    if path is None or not path.exists():
        return Preferences()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable preferences file %s: %s", path, e)
        return Preferences()
    if not isinstance(raw, dict):
        logger.warning("Ignoring preferences file %s: expected an object", path)
        return Preferences()

    show_splash = raw.get("show_splash", True)
    if not isinstance(show_splash, bool):
        show_splash = True
    extra = {k: v for k, v in raw.items() if k != "show_splash"}
    return Preferences(show_splash=show_splash, extra=extra)


def save_preferences(path: Path, prefs: Preferences) -> None:
    """Write *prefs* to *path*, preserving keys already in the file."""
    existing: dict = {}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                existing = loaded
        except (OSError, ValueError):
            existing = {}
    existing.update(prefs.to_dict())
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(existing, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write preferences to {path}: {e}") from e
