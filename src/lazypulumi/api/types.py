"""Typed records for Pulumi Cloud API responses.

Each record has a ``from_api`` constructor that tolerates missing and
null fields; the REST payloads vary between endpoints and versions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

RUNNING_STATUSES = frozenset({"running", "in_progress", "pending"})


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _opt_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def format_timestamp(ts: int | None, fmt: str = "%Y-%m-%d %H:%M") -> str:
    """Format a unix timestamp, or ``"Unknown"`` when absent or invalid."""
    if ts is None:
        return "Unknown"
    try:
        return datetime.fromtimestamp(ts, tz=UTC).strftime(fmt)
    except (OverflowError, OSError, ValueError):
        return "Unknown"


# --- Stacks ---


@dataclass(frozen=True)
class Stack:
    org_name: str
    project_name: str
    stack_name: str
    last_update: int | None = None
    resource_count: int | None = None
    url: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> Stack:
        return cls(
            org_name=_str(data.get("orgName")),
            project_name=_str(data.get("projectName")),
            stack_name=_str(data.get("stackName")),
            last_update=_opt_int(data.get("lastUpdate")),
            resource_count=_opt_int(data.get("resourceCount")),
            url=_opt_str(data.get("url")),
        )

    @property
    def full_name(self) -> str:
        return f"{self.org_name}/{self.project_name}/{self.stack_name}"

    def last_update_formatted(self) -> str:
        if self.last_update is None:
            return "Never"
        return format_timestamp(self.last_update, "%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class ResourceChanges:
    create: int = 0
    update: int = 0
    delete: int = 0
    same: int = 0

    @classmethod
    def from_api(cls, data: Any) -> ResourceChanges | None:
        if not isinstance(data, dict):
            return None
        return cls(
            create=_opt_int(data.get("create")) or 0,
            update=_opt_int(data.get("update")) or 0,
            delete=_opt_int(data.get("delete")) or 0,
            same=_opt_int(data.get("same")) or 0,
        )

    def summary(self) -> str:
        parts = []
        if self.create:
            parts.append(f"+{self.create}")
        if self.update:
            parts.append(f"~{self.update}")
        if self.delete:
            parts.append(f"-{self.delete}")
        return " ".join(parts) if parts else "no changes"


@dataclass(frozen=True)
class StackUpdate:
    version: int
    start_time: int | None = None
    end_time: int | None = None
    result: str | None = None
    resource_changes: ResourceChanges | None = None

    @classmethod
    def from_api(cls, data: dict) -> StackUpdate:
        info = data.get("info") if isinstance(data.get("info"), dict) else data
        return cls(
            version=_opt_int(data.get("version", info.get("version"))) or 0,
            start_time=_opt_int(info.get("startTime")),
            end_time=_opt_int(info.get("endTime")),
            result=_opt_str(info.get("result")),
            resource_changes=ResourceChanges.from_api(info.get("resourceChanges")),
        )

    def row(self) -> tuple[str, str, str]:
        """Display triple: version, result, start time."""
        return (
            str(self.version),
            self.result or "Unknown",
            format_timestamp(self.start_time),
        )


_RESULT_SYMBOLS = {"succeeded": "✓", "failed": "✗", "in-progress": "⟳"}


@dataclass(frozen=True)
class OrgStackUpdate:
    """One entry of the organization-wide recent update feed."""

    project_name: str
    stack_name: str
    kind: str = ""
    result: str = ""
    start_time: int | None = None
    version: int = 0
    resource_changes: ResourceChanges | None = None
    requested_by: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> OrgStackUpdate:
        requested = data.get("requestedBy")
        if isinstance(requested, dict):
            requested = requested.get("githubLogin") or requested.get("name")
        return cls(
            project_name=_str(data.get("projectName")),
            stack_name=_str(data.get("stackName")),
            kind=_str(data.get("kind")),
            result=_str(data.get("result")),
            start_time=_opt_int(data.get("startTime")),
            version=_opt_int(data.get("version")) or 0,
            resource_changes=ResourceChanges.from_api(data.get("resourceChanges")),
            requested_by=_opt_str(requested),
        )

    @property
    def stack_display(self) -> str:
        return f"{self.project_name}/{self.stack_name}"

    @property
    def result_symbol(self) -> str:
        return _RESULT_SYMBOLS.get(self.result, "?")

    def changes_summary(self) -> str:
        return self.resource_changes.summary() if self.resource_changes else ""


@dataclass(frozen=True)
class ResourceSummaryPoint:
    year: int
    month: int
    day: int
    resources: int

    @classmethod
    def from_api(cls, data: dict) -> ResourceSummaryPoint:
        return cls(
            year=_opt_int(data.get("year")) or 0,
            month=_opt_int(data.get("month")) or 0,
            day=_opt_int(data.get("day")) or 0,
            resources=_opt_int(data.get("resources")) or 0,
        )

    def date_label(self) -> str:
        months = "Jan Feb Mar Apr May Jun Jul Aug Sep Oct Nov Dec".split()
        name = months[self.month - 1] if 1 <= self.month <= 12 else "???"
        return f"{name} {self.day}"


# --- ESC ---


@dataclass(frozen=True)
class EnvironmentSummary:
    organization: str
    project: str
    name: str
    created: str | None = None
    modified: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> EnvironmentSummary:
        return cls(
            organization=_str(data.get("organization")),
            project=_str(data.get("project")),
            name=_str(data.get("name")),
            created=_opt_str(data.get("created")),
            modified=_opt_str(data.get("modified")),
        )

    @property
    def full_name(self) -> str:
        return f"{self.project}/{self.name}"


# --- Neo (agent) ---


class MessageKind(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_CALL = "tool_call"
    TOOL_RESPONSE = "tool_response"
    TOOL_ERROR = "tool_error"
    APPROVAL_REQUEST = "approval_request"
    TASK_NAME_CHANGE = "task_name_change"


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    args: Any = None

    @classmethod
    def from_api(cls, data: dict) -> ToolCall:
        return cls(id=_str(data.get("id")), name=_str(data.get("name")), args=data.get("args"))

    def args_preview(self, limit: int = 80) -> str:
        if self.args in (None, {}, []):
            return ""
        text = self.args if isinstance(self.args, str) else json.dumps(self.args)
        return text if len(text) <= limit else text[: limit - 3] + "..."


@dataclass(frozen=True)
class AgentMessage:
    """One transcript entry translated from a task event."""

    kind: MessageKind
    content: str
    role: str = ""
    timestamp: str | None = None
    tool_name: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    event_id: str | None = None

    @classmethod
    def user(cls, content: str) -> AgentMessage:
        return cls(kind=MessageKind.USER, content=content, role="user")

    @property
    def key(self) -> tuple:
        """Identity used to reconcile a polled transcript with the local one."""
        if self.event_id:
            return (self.event_id, self.kind, self.content)
        return (self.kind, self.content)


@dataclass(frozen=True)
class TaskUser:
    name: str | None = None
    login: str | None = None

    @property
    def display(self) -> str:
        return self.name or self.login or "unknown"


@dataclass(frozen=True)
class LinkedPullRequest:
    number: int | None = None
    title: str | None = None
    url: str | None = None
    repository: str | None = None
    state: str | None = None


@dataclass(frozen=True)
class TaskEntity:
    entity_type: str | None = None
    name: str | None = None
    project: str | None = None
    stack: str | None = None
    url: str | None = None
    org: str | None = None
    forge: str | None = None
    id: str | None = None

    def describe(self) -> str:
        kind = self.entity_type or "entity"
        if kind == "stack":
            label = "/".join(p for p in (self.project, self.stack or self.name) if p)
        elif kind == "repository":
            label = "/".join(p for p in (self.org, self.name) if p)
        else:
            label = self.name or self.id or ""
        return f"{kind}: {label}" if label else kind


@dataclass(frozen=True)
class TaskPolicy:
    name: str | None = None
    pack_name: str | None = None
    enforcement_level: str | None = None


@dataclass(frozen=True)
class AgentTask:
    id: str
    name: str | None = None
    status: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    url: str | None = None
    started_by: TaskUser | None = None
    is_shared: bool | None = None
    linked_prs: tuple[LinkedPullRequest, ...] = ()
    entities: tuple[TaskEntity, ...] = ()
    policies: tuple[TaskPolicy, ...] = ()

    @classmethod
    def from_api(cls, data: dict) -> AgentTask:
        user = data.get("startedBy") or data.get("createdBy")
        started_by = None
        if isinstance(user, dict):
            started_by = TaskUser(name=_opt_str(user.get("name")), login=_opt_str(user.get("login")))
        return cls(
            id=_str(data.get("id")),
            name=_opt_str(data.get("name")),
            status=_opt_str(data.get("status")),
            created_at=_opt_str(data.get("createdAt")),
            updated_at=_opt_str(data.get("updatedAt")),
            url=_opt_str(data.get("url")),
            started_by=started_by,
            is_shared=data.get("isShared") if isinstance(data.get("isShared"), bool) else None,
            linked_prs=tuple(
                LinkedPullRequest(
                    number=_opt_int(pr.get("number")),
                    title=_opt_str(pr.get("title")),
                    url=_opt_str(pr.get("url")),
                    repository=_opt_str(pr.get("repository")),
                    state=_opt_str(pr.get("state")),
                )
                for pr in _list(data.get("linkedPrs")) if isinstance(pr, dict)
            ),
            entities=tuple(
                TaskEntity(
                    entity_type=_opt_str(e.get("type")),
                    name=_opt_str(e.get("name")),
                    project=_opt_str(e.get("project")),
                    stack=_opt_str(e.get("stack")),
                    url=_opt_str(e.get("url")),
                    org=_opt_str(e.get("org")),
                    forge=_opt_str(e.get("forge")),
                    id=_opt_str(e.get("id")),
                )
                for e in _list(data.get("entities")) if isinstance(e, dict)
            ),
            policies=tuple(
                TaskPolicy(
                    name=_opt_str(p.get("name")),
                    pack_name=_opt_str(p.get("packName")),
                    enforcement_level=_opt_str(p.get("enforcementLevel")),
                )
                for p in _list(data.get("policies")) if isinstance(p, dict)
            ),
        )

    @property
    def display_name(self) -> str:
        return self.name or self.id[:8]

    @property
    def is_running(self) -> bool:
        return (self.status or "") in RUNNING_STATUSES


@dataclass(frozen=True)
class SlashCommand:
    """A Neo slash command from the ``/commands`` endpoint."""

    name: str
    prompt: str = ""
    description: str = ""
    built_in: bool = False
    modified_at: str | None = None
    tag: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> SlashCommand:
        return cls(
            name=_str(data.get("name")),
            prompt=_str(data.get("prompt")),
            description=_str(data.get("description")),
            built_in=bool(data.get("builtIn", False)),
            modified_at=_opt_str(data.get("modifiedAt")),
            tag=_opt_str(data.get("tag")),
        )

    @property
    def canonical(self) -> str:
        return f"/{self.name}"

    def reference(self) -> str:
        """Inline reference the agent API expects in message content."""
        return "{{cmd:%s:%s}}" % (self.name, self.tag or "")

    def to_payload(self) -> dict:
        return {
            "name": self.name,
            "prompt": self.prompt,
            "description": self.description,
            "builtIn": self.built_in,
            "modifiedAt": self.modified_at or "",
            "tag": self.tag or "",
        }


# --- Resources and platform ---


@dataclass(frozen=True)
class Resource:
    resource_type: str
    name: str
    id: str | None = None
    stack: str | None = None
    project: str | None = None
    package: str | None = None
    modified: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> Resource:
        return cls(
            resource_type=_str(data.get("type")),
            name=_str(data.get("name")),
            id=_opt_str(data.get("id")),
            stack=_opt_str(data.get("stack")),
            project=_opt_str(data.get("project")),
            package=_opt_str(data.get("package")),
            modified=_opt_str(data.get("modified")),
        )


@dataclass(frozen=True)
class Service:
    organization_name: str
    name: str
    description: str | None = None
    owner: str | None = None
    stacks: int = 0
    environments: int = 0
    created_at: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> Service:
        owner = data.get("owner")
        owner_name = None
        if isinstance(owner, dict):
            owner_name = f"{owner.get('name', '')} ({owner.get('type', '')})"
        counts = data.get("itemCountSummary") if isinstance(data.get("itemCountSummary"), dict) else {}
        return cls(
            organization_name=_str(data.get("organizationName")),
            name=_str(data.get("name")),
            description=_opt_str(data.get("description")),
            owner=owner_name,
            stacks=_opt_int(counts.get("stacks")) or 0,
            environments=_opt_int(counts.get("environments")) or 0,
            created_at=_opt_str(data.get("createdAt")),
        )

    def item_count(self) -> str:
        return f"{self.stacks} stacks, {self.environments} envs"


@dataclass
class RegistryPackage:
    """Registry package; ``readme_content`` is filled in lazily."""

    name: str
    publisher: str | None = None
    source: str | None = None
    version: str | None = None
    title: str | None = None
    description: str | None = None
    repository_url: str | None = None
    readme_url: str | None = None
    readme_content: str | None = field(default=None, compare=False)

    @classmethod
    def from_api(cls, data: dict) -> RegistryPackage:
        return cls(
            name=_str(data.get("name")),
            publisher=_opt_str(data.get("publisher")),
            source=_opt_str(data.get("source")),
            version=_opt_str(data.get("version")),
            title=_opt_str(data.get("title")),
            description=_opt_str(data.get("description")),
            repository_url=_opt_str(data.get("repositoryUrl")),
            readme_url=_opt_str(data.get("readmeURL") or data.get("readmeUrl")),
        )

    def key(self) -> str:
        return f"{self.source or 'pulumi'}/{self.publisher or 'unknown'}/{self.name}"

    @property
    def display_name(self) -> str:
        return self.title or self.name


@dataclass(frozen=True)
class RegistryTemplate:
    name: str
    publisher: str | None = None
    source: str | None = None
    version: str | None = None
    display_name: str | None = None
    description: str | None = None
    language: str | None = None
    runtime_name: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> RegistryTemplate:
        runtime = data.get("runtime")
        return cls(
            name=_str(data.get("name")),
            publisher=_opt_str(data.get("publisher")),
            source=_opt_str(data.get("source")),
            version=_opt_str(data.get("version")),
            display_name=_opt_str(data.get("displayName")),
            description=_opt_str(data.get("description")),
            language=_opt_str(data.get("language")),
            runtime_name=_opt_str(runtime.get("name")) if isinstance(runtime, dict) else None,
        )

    @property
    def display(self) -> str:
        return self.display_name or self.name

    def full_name(self) -> str:
        return f"{self.source or 'private'}/{self.publisher or 'unknown'}/{self.name}"
