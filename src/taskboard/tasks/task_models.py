# src/taskboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Board column a task sits in.

    Values double as the wire identifiers. Every column may move to every other
    column; there is no enforced workflow order.
    """

    BACKLOG = "Backlog"
    IN_PROGRESS = "InProgress"
    REVIEW = "Review"
    DONE = "Done"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        """Accept the canonical value or a loose alias ("in-progress", "todo", ...)."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError(f"Invalid status: {raw!r}")
        key = raw.strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        try:
            return _STATUS_ALIASES[key]
        except KeyError:
            raise ValueError(f"Invalid status: {raw!r}") from None

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.BACKLOG
        try:
            return cls(raw)
        except ValueError:
            return cls.BACKLOG


_STATUS_ALIASES: dict[str, TaskStatus] = {
    "backlog": TaskStatus.BACKLOG,
    "todo": TaskStatus.BACKLOG,
    "inprogress": TaskStatus.IN_PROGRESS,
    "doing": TaskStatus.IN_PROGRESS,
    "review": TaskStatus.REVIEW,
    "done": TaskStatus.DONE,
}

# Board column order, left to right.
COLUMNS: tuple[TaskStatus, ...] = tuple(TaskStatus)


class Priority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, raw: Any) -> Priority:
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError(f"Invalid priority: {raw!r}")
        for member in cls:
            if member.value.lower() == raw.strip().lower():
                return member
        raise ValueError(f"Invalid priority: {raw!r}")

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


def parse_due_date(raw: Any) -> date | None:
    """Normalize a due date.

    Accepts:
      - None -> None
      - date / datetime instances
      - ISO strings, optionally with a time part ('2025-11-30' or '2025-11-30T12:00:00Z')
    Raises ValueError for anything else.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return date.fromisoformat(text.split("T", 1)[0])
        except ValueError:
            raise ValueError(f"Invalid date string: {raw!r}") from None
    raise ValueError(f"Invalid date type: {type(raw).__name__}")


def ts_to_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def iso_to_ts(raw: Any) -> float:
    if isinstance(raw, (int, float)):
        return float(raw)
    if not raw:
        return 0.0
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00")).timestamp()


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return cls(id=str(data["id"]), name=str(data["name"]))


@dataclass(frozen=True, slots=True)
class User:
    id: str
    name: str
    email: str | None = None
    image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email, "image": self.image}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            email=data.get("email"),
            image=data.get("image"),
        )


@dataclass(frozen=True, slots=True)
class Subtask:
    id: str
    task_id: str
    title: str
    is_completed: bool
    created_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "title": self.title,
            "isCompleted": self.is_completed,
            "createdAt": ts_to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Subtask:
        return cls(
            id=str(data["id"]),
            task_id=str(data["taskId"]),
            title=str(data["title"]),
            is_completed=bool(data.get("isCompleted", False)),
            created_at=iso_to_ts(data.get("createdAt")),
        )


@dataclass(frozen=True, slots=True)
class Attachment:
    """File metadata owned by a task. Uploading is handled outside the board."""

    id: str
    task_id: str
    file_name: str
    file_url: str | None
    created_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "fileName": self.file_name,
            "fileUrl": self.file_url,
            "createdAt": ts_to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Attachment:
        return cls(
            id=str(data["id"]),
            task_id=str(data["taskId"]),
            file_name=str(data["fileName"]),
            file_url=data.get("fileUrl"),
            created_at=iso_to_ts(data.get("createdAt")),
        )


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str | None
    status: TaskStatus
    priority: Priority
    due_date: date | None
    project_id: str | None
    assignee_id: str | None
    created_at: float
    updated_at: float

    # Joined on read.
    project: Project | None = None
    assignee: User | None = None
    subtasks: tuple[Subtask, ...] = ()
    attachments: tuple[Attachment, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "projectId": self.project_id,
            "assigneeId": self.assignee_id,
            "createdAt": ts_to_iso(self.created_at),
            "updatedAt": ts_to_iso(self.updated_at),
            "project": self.project.to_dict() if self.project else None,
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "subtasks": [s.to_dict() for s in self.subtasks],
            "attachments": [a.to_dict() for a in self.attachments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        project = data.get("project")
        assignee = data.get("assignee")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            description=data.get("description"),
            status=TaskStatus.parse(data["status"]),
            priority=Priority.parse(data["priority"]),
            due_date=parse_due_date(data.get("dueDate")),
            project_id=data.get("projectId"),
            assignee_id=data.get("assigneeId"),
            created_at=iso_to_ts(data.get("createdAt")),
            updated_at=iso_to_ts(data.get("updatedAt")),
            project=Project.from_dict(project) if project else None,
            assignee=User.from_dict(assignee) if assignee else None,
            subtasks=tuple(Subtask.from_dict(s) for s in data.get("subtasks") or []),
            attachments=tuple(Attachment.from_dict(a) for a in data.get("attachments") or []),
        )


@dataclass(slots=True)
class TaskDraft:
    """Creation payload. Unset status/priority fall back to Backlog/Medium in the store."""

    title: str
    description: str | None = None
    status: TaskStatus | str | None = None
    priority: Priority | str | None = None
    due_date: date | str | None = None
    project_id: str | None = None
    assignee_id: str | None = None
