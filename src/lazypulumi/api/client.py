"""Async HTTP client for the Pulumi Cloud REST API.

Every method returns typed records from ``lazypulumi.api.types`` and
raises a subclass of ``ApiError`` on failure. The client is shared by
all worker tasks; ``httpx.AsyncClient`` is created lazily on first use.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import httpx
import yaml

from lazypulumi.api.events import events_to_messages
from lazypulumi.api.types import (
    AgentMessage,
    AgentTask,
    EnvironmentSummary,
    OrgStackUpdate,
    RegistryPackage,
    RegistryTemplate,
    Resource,
    ResourceSummaryPoint,
    Service,
    SlashCommand,
    Stack,
    StackUpdate,
)
from lazypulumi.config import DEFAULT_API_URL
from lazypulumi.exceptions import (
    ApiResponseError,
    NoAccessTokenError,
    ParseError,
    TransportError,
)

logger = logging.getLogger(__name__)

MAX_TOKEN_PAGES = 100
MAX_RESOURCE_PAGES = 100
MAX_EVENT_PAGES = 10
PAGE_SIZE = 100
_PREVIEW_CHARS = 1000


def _preview(text: str) -> str:
    return text[:_PREVIEW_CHARS]


def _now_rfc3339() -> str:
    return datetime.now(UTC).isoformat()


def _next_token(body: dict) -> str | None:
    token = body.get("continuationToken") or body.get("nextToken")
    return str(token) if token else None


class PulumiClient:
    """Thin async client wrapping the Pulumi Cloud REST API."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_API_URL,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        if not access_token:
            raise NoAccessTokenError()
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"token {self._access_token}",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # --- Transport helpers ---

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        try:
            r = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise TransportError(f"{method} {url}: {e}") from e
        if r.is_error:
            logger.warning("%s %s -> %s", method, url, r.status_code)
            raise ApiResponseError(r.status_code, r.text)
        return r

    async def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        r = await self._send(method, url, **kwargs)
        try:
            return r.json()
        except ValueError as e:
            logger.error(
                "Failed to parse response from %s: %s. Response: %s",
                url, e, _preview(r.text),
            )
            raise ParseError(f"Failed to parse response from {url}") from e

    async def _object(self, method: str, url: str, **kwargs: Any) -> dict:
        body = await self._json(method, url, **kwargs)
        if not isinstance(body, dict):
            logger.error("Expected an object from %s, got: %s", url, _preview(str(body)))
            raise ParseError(f"Unexpected response shape from {url}")
        return body

    async def _paginate(
        self,
        url: str,
        items_key: str,
        params: dict | None = None,
        *,
        max_pages: int = MAX_TOKEN_PAGES,
    ) -> list[dict]:
        """Follow ``continuationToken``/``nextToken`` until exhausted or capped."""
        items: list[dict] = []
        query = dict(params or {})
        for _ in range(max_pages):
            body = await self._json("GET", url, params=query)
            if isinstance(body, list):
                items.extend(x for x in body if isinstance(x, dict))
                return items
            if not isinstance(body, dict):
                raise ParseError(f"Unexpected response shape from {url}")
            items.extend(x for x in body.get(items_key) or [] if isinstance(x, dict))
            token = _next_token(body)
            if not token:
                return items
            query["continuationToken"] = token
        logger.warning("Pagination cap of %d pages reached for %s", max_pages, url)
        return items

    # --- Organizations ---

    async def list_organizations(self) -> list[str]:
        """Organizations of the current user, personal account first."""
        body = await self._object("GET", "/api/user")
        orgs = [
            str(o["githubLogin"])
            for o in body.get("organizations") or []
            if isinstance(o, dict) and o.get("githubLogin")
        ]
        login = body.get("githubLogin")
        if login and login not in orgs:
            orgs.insert(0, str(login))
        return orgs

    # --- Stacks ---

    async def list_stacks(self, org: str) -> list[Stack]:
        raw = await self._paginate("/api/user/stacks", "stacks", {"organization": org})
        return [Stack.from_api(s) for s in raw]

    async def get_stack_updates(
        self, org: str, project: str, stack: str, page_size: int = 20,
    ) -> list[StackUpdate]:
        body = await self._object(
            "GET",
            f"/api/stacks/{org}/{project}/{stack}/updates",
            params={"pageSize": page_size},
        )
        return [StackUpdate.from_api(u) for u in body.get("updates") or [] if isinstance(u, dict)]

    async def get_org_recent_updates(self, org: str, limit: int = 15) -> list[OrgStackUpdate]:
        body = await self._object("GET", f"/api/orgs/{org}/updates", params={"pageSize": limit})
        updates = body.get("updates") or []
        return [OrgStackUpdate.from_api(u) for u in updates if isinstance(u, dict)][:limit]

    async def get_resource_summary(
        self, org: str, granularity: str = "daily", lookback_days: int = 30,
    ) -> list[ResourceSummaryPoint]:
        body = await self._object(
            "GET",
            f"/api/orgs/{org}/resources/summary",
            params={"granularity": granularity, "lookbackDays": lookback_days},
        )
        return [
            ResourceSummaryPoint.from_api(p)
            for p in body.get("summary") or [] if isinstance(p, dict)
        ]

    # --- ESC ---

    async def list_environments(self, org: str) -> list[EnvironmentSummary]:
        raw = await self._paginate(f"/api/esc/environments/{org}", "environments")
        logger.info("ESC environments: %d fetched for org '%s'", len(raw), org)
        return [EnvironmentSummary.from_api(e) for e in raw]

    async def get_environment_definition(self, org: str, project: str, env: str) -> str:
        """YAML source of an environment."""
        r = await self._send("GET", f"/api/esc/environments/{org}/{project}/{env}")
        content_type = r.headers.get("content-type", "")
        if "json" not in content_type:
            return r.text
        try:
            body = r.json()
        except ValueError as e:
            raise ParseError("Failed to parse environment definition") from e
        if isinstance(body, dict) and isinstance(body.get("yaml"), str):
            return body["yaml"]
        if isinstance(body, dict) and body.get("definition") is not None:
            return yaml.safe_dump(body["definition"], sort_keys=False)
        return r.text

    async def open_environment(self, org: str, project: str, env: str) -> Any:
        """Open a session on an environment and read its resolved values.

        Raises ``ParseError`` carrying the joined diagnostics when the
        server refuses to open the environment.
        """
        base = f"/api/esc/environments/{org}/{project}/{env}"
        opened = await self._object("POST", f"{base}/open")

        diagnostics = opened.get("diagnostics") or []
        if diagnostics:
            parts = []
            for d in diagnostics:
                if isinstance(d, dict):
                    summary = d.get("summary", "unknown error")
                    path = d.get("path")
                    parts.append(f"{summary} at {path}" if path else str(summary))
                else:
                    parts.append(str(d))
            raise ParseError("; ".join(parts))

        raw_id = opened.get("id")
        if raw_id is None or raw_id == "":
            logger.error("Open environment response without id: %s", _preview(str(opened)))
            raise ParseError("Open environment response carried no session id")
        session_id = str(raw_id)

        return await self._json("GET", f"{base}/open/{session_id}")

    async def update_environment(self, org: str, project: str, env: str, yaml_text: str) -> None:
        await self._send(
            "PATCH",
            f"/api/esc/environments/{org}/{project}/{env}",
            content=yaml_text.encode("utf-8"),
            headers={"Content-Type": "application/x-yaml"},
        )

    # --- Neo ---

    async def list_tasks(self, org: str) -> list[AgentTask]:
        raw = await self._paginate(
            f"/api/preview/agents/{org}/tasks", "tasks", {"pageSize": PAGE_SIZE},
        )
        return [AgentTask.from_api(t) for t in raw]

    async def get_task(self, org: str, task_id: str) -> AgentTask:
        body = await self._object("GET", f"/api/preview/agents/{org}/tasks/{task_id}")
        return AgentTask.from_api(body)

    async def get_task_events(self, org: str, task_id: str) -> list[AgentMessage]:
        raw = await self._paginate(
            f"/api/preview/agents/{org}/tasks/{task_id}/events",
            "events",
            {"pageSize": PAGE_SIZE},
            max_pages=MAX_EVENT_PAGES,
        )
        return events_to_messages(raw)

    @staticmethod
    def _message_body(content: str, commands: list[SlashCommand] | None) -> dict:
        body: dict = {
            "type": "user_message",
            "content": content,
            "timestamp": _now_rfc3339(),
        }
        if commands:
            body["commands"] = {cmd.reference(): cmd.to_payload() for cmd in commands}
        return body

    async def create_task(
        self, org: str, content: str, commands: list[SlashCommand] | None = None,
    ) -> str:
        """Start a task; returns its id."""
        body = await self._object(
            "POST",
            f"/api/preview/agents/{org}/tasks",
            json={"message": self._message_body(content, commands)},
        )
        task_id = body.get("taskId") or body.get("id")
        if not task_id:
            raise ParseError("Create task response carried no task id")
        return str(task_id)

    async def continue_task(
        self,
        org: str,
        task_id: str,
        content: str,
        commands: list[SlashCommand] | None = None,
    ) -> None:
        """Append a user message to a task. The API answers 202 with no body."""
        await self._send(
            "POST",
            f"/api/preview/agents/{org}/tasks/{task_id}",
            json={"event": self._message_body(content, commands)},
        )

    async def list_slash_commands(self, org: str) -> list[SlashCommand]:
        body = await self._json("GET", f"/api/preview/agents/{org}/commands")
        if isinstance(body, dict):
            body = body.get("commands") or []
        if not isinstance(body, list):
            raise ParseError("Unexpected slash commands response")
        return [SlashCommand.from_api(c) for c in body if isinstance(c, dict) and c.get("name")]

    async def poll_task(self, org: str, task_id: str) -> tuple[list[AgentMessage], str | None]:
        """Fetch events and task status concurrently.

        A metadata failure yields a ``None`` status; an events failure
        propagates.
        """
        events, meta = await asyncio.gather(
            self.get_task_events(org, task_id),
            self.get_task(org, task_id),
            return_exceptions=True,
        )
        if isinstance(events, BaseException):
            raise events
        status = None
        if isinstance(meta, BaseException):
            logger.debug("Task metadata fetch failed for %s: %s", task_id, meta)
        else:
            status = meta.status
        return events, status

    # --- Resources and platform ---

    async def search_resources(self, org: str, query: str = "") -> list[Resource]:
        resources: list[Resource] = []
        for page in range(1, MAX_RESOURCE_PAGES + 1):
            body = await self._object(
                "GET",
                f"/api/orgs/{org}/search/resourcesv2",
                params={"query": query, "page": page, "size": PAGE_SIZE},
            )
            batch = [r for r in body.get("resources") or [] if isinstance(r, dict)]
            resources.extend(Resource.from_api(r) for r in batch)
            pagination = body.get("pagination")
            has_next = isinstance(pagination, dict) and bool(pagination.get("next"))
            if not has_next or len(batch) < PAGE_SIZE:
                break
        return resources

    async def list_services(self, org: str) -> list[Service]:
        raw = await self._paginate(f"/api/orgs/{org}/services", "services")
        return [Service.from_api(s) for s in raw]

    async def list_registry_packages(self, org: str) -> list[RegistryPackage]:
        raw = await self._paginate(
            "/api/preview/registry/packages", "packages", {"orgLogin": org, "limit": 50},
        )
        return [RegistryPackage.from_api(p) for p in raw]

    async def list_registry_templates(self, org: str) -> list[RegistryTemplate]:
        raw = await self._paginate(
            "/api/preview/registry/templates", "templates", {"orgLogin": org},
        )
        return [RegistryTemplate.from_api(t) for t in raw]

    async def fetch_readme(self, url: str) -> str:
        """Fetch a README from its own host, without the API credentials."""
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport, follow_redirects=True,
        ) as client:
            try:
                r = await client.get(url)
            except httpx.TransportError as e:
                raise TransportError(f"GET {url}: {e}") from e
        if r.is_error:
            raise ApiResponseError(r.status_code, r.text)
        return r.text
