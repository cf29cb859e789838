"""Startup checks and Pulumi CLI helpers.

Two checks gate data loading: the access token must be present and the
``pulumi`` CLI must answer ``pulumi version``. Results are shown on the
splash screen; any failure keeps it up with quit as the only action.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from lazypulumi.config import TOKEN_ENV

logger = logging.getLogger(__name__)

PULUMI_BIN = "pulumi"


class CheckState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class CheckStatus:
    state: CheckState = CheckState.PENDING
    message: str = ""

    @classmethod
    def passed(cls, message: str) -> CheckStatus:
        return cls(CheckState.PASSED, message)

    @classmethod
    def failed(cls, message: str) -> CheckStatus:
        return cls(CheckState.FAILED, message)

    @property
    def is_complete(self) -> bool:
        return self.state in (CheckState.PASSED, CheckState.FAILED)


@dataclass
class StartupChecks:
    token: CheckStatus = field(default_factory=CheckStatus)
    cli: CheckStatus = field(default_factory=CheckStatus)

    def rows(self) -> list[tuple[str, CheckStatus]]:
        return [("Access token", self.token), ("Pulumi CLI", self.cli)]

    @property
    def all_complete(self) -> bool:
        return self.token.is_complete and self.cli.is_complete

    @property
    def all_passed(self) -> bool:
        return self.token.state is CheckState.PASSED and self.cli.state is CheckState.PASSED

    @property
    def any_failed(self) -> bool:
        return CheckState.FAILED in (self.token.state, self.cli.state)


def mask_token(token: str) -> str:
    if len(token) > 12:
        return f"{token[:7]}...{token[-4:]}"
    return "****"


def check_token(environ: Mapping[str, str] | None = None) -> CheckStatus:
    env = os.environ if environ is None else environ
    token = env.get(TOKEN_ENV)
    if token is None:
        token = env.get("ACCESS_TOKEN")
    if token is None:
        return CheckStatus.failed(f"{TOKEN_ENV} not set")
    if not token.strip():
        return CheckStatus.failed(f"{TOKEN_ENV} is empty")
    return CheckStatus.passed(mask_token(token.strip()))


async def _run_cli(*args: str) -> tuple[int, str, str]:
    process = await asyncio.create_subprocess_exec(
        PULUMI_BIN,
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return (
        process.returncode if process.returncode is not None else -1,
        stdout.decode("utf-8", errors="replace").strip(),
        stderr.decode("utf-8", errors="replace").strip(),
    )


async def check_cli() -> CheckStatus:
    try:
        code, out, err = await _run_cli("version")
    except FileNotFoundError:
        return CheckStatus.failed("Pulumi CLI not found in PATH")
    except OSError as e:
        return CheckStatus.failed(f"Failed to run CLI: {e}")
    if code != 0:
        return CheckStatus.failed(f"CLI error: {err}")
    return CheckStatus.passed(f"Version: {out}")


async def get_default_org() -> str | None:
    """The CLI's default organization, if one is configured."""
    try:
        code, out, _err = await _run_cli("org", "get-default")
    except OSError as e:
        logger.debug("pulumi org get-default failed: %s", e)
        return None
    if code != 0 or not out:
        return None
    return out.splitlines()[0].strip() or None


async def set_default_org(org: str) -> None:
    try:
        code, _out, err = await _run_cli("org", "set-default", org)
    except OSError as e:
        logger.warning("pulumi org set-default %s failed: %s", org, e)
        return
    if code != 0:
        logger.warning("pulumi org set-default %s exited %d: %s", org, code, err)


def pick_organization(orgs: list[str], *preferred: str | None) -> str | None:
    """First preferred org that is in *orgs*, else the first org."""
    for candidate in preferred:
        if candidate and candidate in orgs:
            return candidate
    return orgs[0] if orgs else None
