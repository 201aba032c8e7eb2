# src/taskboard/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from ..core.errors import NotFoundError, StoreError, ValidationError
from .task_models import (
    Attachment,
    Priority,
    Project,
    Subtask,
    Task,
    TaskDraft,
    TaskStatus,
    User,
    parse_due_date,
)

logger = logging.getLogger(__name__)

# Keys accepted by update_task(); anything else is a caller bug.
TASK_PATCH_FIELDS = frozenset(
    {"title", "description", "status", "priority", "due_date", "project_id", "assignee_id"}
)
SUBTASK_PATCH_FIELDS = frozenset({"title", "is_completed"})


def _new_id() -> str:
    return uuid.uuid4().hex


def _require_title(raw: Any, what: str = "Title") -> str:
    """Reject blank text; the value itself is stored exactly as sent."""
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(f"{what} is required")
    return raw


def _coerce_status(raw: Any) -> TaskStatus:
    try:
        return TaskStatus.parse(raw)
    except ValueError as exc:
        raise ValidationError(str(exc)) from None


def _coerce_priority(raw: Any) -> Priority:
    try:
        return Priority.parse(raw)
    except ValueError as exc:
        raise ValidationError(str(exc)) from None


def _coerce_due_date(raw: Any) -> str | None:
    try:
        d = parse_due_date(raw)
    except ValueError as exc:
        raise ValidationError(str(exc)) from None
    return d.isoformat() if d else None


def _coerce_optional_text(raw: Any, what: str) -> str | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"{what} must be a string")
    return raw


class TaskStore:
    """
    SQLite entity store for tasks, subtasks, attachments, projects and users.

    Schema:
    - create tables if missing
    - add columns to tasks with ALTER TABLE when an older DB lacks them

    Consistency:
    - each method opens its own SQLite connection and commits once
    - writes to one row are serialized by SQLite (last write wins, no version check)
    - deleting a task removes its subtasks and attachments in the same transaction
    """

    def __init__(self, db_path: str | Path = "taskboard.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except StoreError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        try:
            conn.row_factory = sqlite3.Row
            self._configure_conn(conn)
        except BaseException:
            conn.close()
            raise
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, roll back on any error.

        sqlite3 errors surface as StoreError; domain errors pass through unchanged.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open database {self._db_path}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError(str(exc)) from exc
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT,
                    image TEXT,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'Backlog',
                    priority TEXT NOT NULL DEFAULT 'Medium',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("due_date", "TEXT")
            add_col("project_id", "TEXT REFERENCES projects(id) ON DELETE SET NULL")
            add_col("assignee_id", "TEXT REFERENCES users(id) ON DELETE SET NULL")

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS subtasks (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS attachments (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    file_name TEXT NOT NULL,
                    file_url TEXT,
                    created_at REAL NOT NULL
                )
                """
            )

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status, created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_subtasks_task ON subtasks(task_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_attachments_task ON attachments(task_id)")

    @staticmethod
    def _row_to_subtask(row: sqlite3.Row) -> Subtask:
        return Subtask(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            title=str(row["title"]),
            is_completed=bool(row["is_completed"]),
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _row_to_attachment(row: sqlite3.Row) -> Attachment:
        return Attachment(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            file_name=str(row["file_name"]),
            file_url=row["file_url"],
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(id=str(row["id"]), name=str(row["name"]))

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(id=str(row["id"]), name=str(row["name"]), email=row["email"], image=row["image"])

    @staticmethod
    def _select_in(
        conn: sqlite3.Connection, sql_head: str, ids: Iterable[str], order_by: str = ""
    ) -> list[sqlite3.Row]:
        id_list = list(dict.fromkeys(ids))
        if not id_list:
            return []
        placeholders = ",".join("?" for _ in id_list)
        return conn.execute(f"{sql_head} ({placeholders}) {order_by}", id_list).fetchall()

    def _hydrate(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Task]:
        """Join projects, assignees, subtasks and attachments onto task rows."""
        task_ids = [str(r["id"]) for r in rows]

        projects = {
            p.id: p
            for p in map(
                self._row_to_project,
                self._select_in(
                    conn,
                    "SELECT * FROM projects WHERE id IN",
                    (r["project_id"] for r in rows if r["project_id"]),
                ),
            )
        }
        users = {
            u.id: u
            for u in map(
                self._row_to_user,
                self._select_in(
                    conn,
                    "SELECT * FROM users WHERE id IN",
                    (r["assignee_id"] for r in rows if r["assignee_id"]),
                ),
            )
        }

        subtasks: dict[str, list[Subtask]] = {tid: [] for tid in task_ids}
        for srow in self._select_in(
            conn,
            "SELECT * FROM subtasks WHERE task_id IN",
            task_ids,
            "ORDER BY created_at ASC, rowid ASC",
        ):
            st = self._row_to_subtask(srow)
            subtasks[st.task_id].append(st)

        attachments: dict[str, list[Attachment]] = {tid: [] for tid in task_ids}
        for arow in self._select_in(
            conn,
            "SELECT * FROM attachments WHERE task_id IN",
            task_ids,
            "ORDER BY created_at ASC, rowid ASC",
        ):
            att = self._row_to_attachment(arow)
            attachments[att.task_id].append(att)

        out: list[Task] = []
        for row in rows:
            tid = str(row["id"])
            raw_due = row["due_date"]
            out.append(
                Task(
                    id=tid,
                    title=str(row["title"]),
                    description=row["description"],
                    status=TaskStatus.from_db(row["status"]),
                    priority=Priority.from_db(row["priority"]),
                    due_date=parse_due_date(raw_due) if raw_due else None,
                    project_id=row["project_id"],
                    assignee_id=row["assignee_id"],
                    created_at=float(row["created_at"] or 0.0),
                    updated_at=float(row["updated_at"] or 0.0),
                    project=projects.get(row["project_id"]) if row["project_id"] else None,
                    assignee=users.get(row["assignee_id"]) if row["assignee_id"] else None,
                    subtasks=tuple(subtasks[tid]),
                    attachments=tuple(attachments[tid]),
                )
            )
        return out

    def _load_task(self, conn: sqlite3.Connection, task_id: str) -> Task:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise NotFoundError("task", task_id)
        return self._hydrate(conn, [row])[0]

    @staticmethod
    def _check_refs(
        conn: sqlite3.Connection, *, project_id: str | None, assignee_id: str | None
    ) -> None:
        if project_id is not None:
            if conn.execute("SELECT 1 FROM projects WHERE id = ?", (project_id,)).fetchone() is None:
                raise ValidationError(f"Unknown projectId: {project_id}")
        if assignee_id is not None:
            if conn.execute("SELECT 1 FROM users WHERE id = ?", (assignee_id,)).fetchone() is None:
                raise ValidationError(f"Unknown assigneeId: {assignee_id}")

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def create_task(self, draft: TaskDraft) -> Task:
        title = _require_title(draft.title)
        status = TaskStatus.BACKLOG if draft.status is None else _coerce_status(draft.status)
        priority = Priority.MEDIUM if draft.priority is None else _coerce_priority(draft.priority)
        description = _coerce_optional_text(draft.description, "Description")
        due_date = _coerce_due_date(draft.due_date)
        project_id = _coerce_optional_text(draft.project_id, "projectId")
        assignee_id = _coerce_optional_text(draft.assignee_id, "assigneeId")

        task_id = _new_id()
        now = time.time()

        with self._connect() as conn:
            self._check_refs(conn, project_id=project_id, assignee_id=assignee_id)
            conn.execute(
                """
                INSERT INTO tasks(
                    id, title, description, status, priority, due_date,
                    project_id, assignee_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    title,
                    description,
                    status.value,
                    priority.value,
                    due_date,
                    project_id,
                    assignee_id,
                    now,
                    now,
                ),
            )
            task = self._load_task(conn, task_id)

        logger.debug(
            "Task created id=%s status=%s priority=%s", task_id, status.value, priority.value
        )
        return task

    def get_task(self, task_id: str) -> Task:
        with self._connect() as conn:
            return self._load_task(conn, task_id)

    def list_tasks(
        self, *, status: TaskStatus | str | None = None, project_id: str | None = None
    ) -> list[Task]:
        """
        All tasks, newest first.

        status and project_id are exact-match filters; None means "any".
        """
        where: list[str] = []
        params: list[Any] = []

        if status is not None:
            where.append("status = ?")
            params.append(_coerce_status(status).value)

        if project_id is not None:
            where.append("project_id = ?")
            params.append(project_id)

        sql = "SELECT * FROM tasks"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, rowid DESC"

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return self._hydrate(conn, rows)

    def update_task(self, task_id: str, patch: Mapping[str, Any]) -> Task:
        """
        Partial update.

        - keys absent from patch are left untouched
        - None on description/due_date/project_id/assignee_id clears the value
        - title/status/priority, when present, must be non-empty / valid
        """
        unknown = set(patch) - TASK_PATCH_FIELDS
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        fields: list[str] = []
        params: list[Any] = []

        if "title" in patch:
            fields.append("title = ?")
            params.append(_require_title(patch["title"]))

        if "description" in patch:
            fields.append("description = ?")
            params.append(_coerce_optional_text(patch["description"], "Description"))

        if "status" in patch:
            fields.append("status = ?")
            params.append(_coerce_status(patch["status"]).value)

        if "priority" in patch:
            fields.append("priority = ?")
            params.append(_coerce_priority(patch["priority"]).value)

        if "due_date" in patch:
            fields.append("due_date = ?")
            params.append(_coerce_due_date(patch["due_date"]))

        project_id = _coerce_optional_text(patch.get("project_id"), "projectId")
        if "project_id" in patch:
            fields.append("project_id = ?")
            params.append(project_id)

        assignee_id = _coerce_optional_text(patch.get("assignee_id"), "assigneeId")
        if "assignee_id" in patch:
            fields.append("assignee_id = ?")
            params.append(assignee_id)

        with self._connect() as conn:
            if conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone() is None:
                raise NotFoundError("task", task_id)
            self._check_refs(conn, project_id=project_id, assignee_id=assignee_id)

            if fields:
                fields.append("updated_at = ?")
                params.append(time.time())
                params.append(task_id)
                conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)
                logger.debug("Task updated id=%s fields=%s", task_id, sorted(patch))

            return self._load_task(conn, task_id)

    def delete_task(self, task_id: str) -> None:
        """Delete a task with its subtasks and attachments as one unit."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM attachments WHERE task_id = ?", (task_id,))
            n_att = cur.rowcount
            cur.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
            n_sub = cur.rowcount
            cur.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            if cur.rowcount == 0:
                raise NotFoundError("task", task_id)

        logger.debug(
            "Task deleted id=%s subtasks=%s attachments=%s", task_id, n_sub, n_att
        )

    # ---- subtasks ----

    def create_subtask(self, task_id: str, title: Any) -> Subtask:
        clean = _require_title(title)
        subtask_id = _new_id()
        now = time.time()

        with self._connect() as conn:
            if conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone() is None:
                raise NotFoundError("task", task_id)
            conn.execute(
                "INSERT INTO subtasks(id, task_id, title, is_completed, created_at) "
                "VALUES (?, ?, ?, 0, ?)",
                (subtask_id, task_id, clean, now),
            )
            row = conn.execute("SELECT * FROM subtasks WHERE id = ?", (subtask_id,)).fetchone()

        logger.debug("Subtask created id=%s task_id=%s", subtask_id, task_id)
        return self._row_to_subtask(row)

    def get_subtask(self, subtask_id: str) -> Subtask:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM subtasks WHERE id = ?", (subtask_id,)).fetchone()
        if row is None:
            raise NotFoundError("subtask", subtask_id)
        return self._row_to_subtask(row)

    def list_subtasks(self, task_id: str) -> list[Subtask]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM subtasks WHERE task_id = ? ORDER BY created_at ASC, rowid ASC",
                (task_id,),
            ).fetchall()
        return [self._row_to_subtask(r) for r in rows]

    def update_subtask(self, subtask_id: str, patch: Mapping[str, Any]) -> Subtask:
        unknown = set(patch) - SUBTASK_PATCH_FIELDS
        if unknown:
            raise ValidationError(f"Unknown subtask fields: {', '.join(sorted(unknown))}")

        fields: list[str] = []
        params: list[Any] = []

        if "title" in patch:
            fields.append("title = ?")
            params.append(_require_title(patch["title"]))

        if "is_completed" in patch:
            done = patch["is_completed"]
            if not isinstance(done, bool):
                raise ValidationError("isCompleted must be a boolean")
            fields.append("is_completed = ?")
            params.append(int(done))

        with self._connect() as conn:
            if fields:
                params.append(subtask_id)
                cur = conn.execute(
                    f"UPDATE subtasks SET {', '.join(fields)} WHERE id = ?", params
                )
                if cur.rowcount == 0:
                    raise NotFoundError("subtask", subtask_id)
            row = conn.execute("SELECT * FROM subtasks WHERE id = ?", (subtask_id,)).fetchone()

        if row is None:
            raise NotFoundError("subtask", subtask_id)
        return self._row_to_subtask(row)

    def delete_subtask(self, subtask_id: str) -> None:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM subtasks WHERE id = ?", (subtask_id,))
            if cur.rowcount == 0:
                raise NotFoundError("subtask", subtask_id)

    # ---- attachments (metadata only) ----

    def add_attachment(self, task_id: str, file_name: str, file_url: str | None = None) -> Attachment:
        """Record attachment metadata for a task; the file itself lives elsewhere."""
        clean = _require_title(file_name, "File name")
        attachment_id = _new_id()
        now = time.time()

        with self._connect() as conn:
            if conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone() is None:
                raise NotFoundError("task", task_id)
            conn.execute(
                "INSERT INTO attachments(id, task_id, file_name, file_url, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (attachment_id, task_id, clean, file_url, now),
            )

        return Attachment(
            id=attachment_id, task_id=task_id, file_name=clean, file_url=file_url, created_at=now
        )

    def count_orphans(self) -> int:
        """Subtasks and attachments whose owning task no longer exists (should always be 0)."""
        with self._connect() as conn:
            (n_sub,) = conn.execute(
                "SELECT COUNT(*) FROM subtasks WHERE task_id NOT IN (SELECT id FROM tasks)"
            ).fetchone()
            (n_att,) = conn.execute(
                "SELECT COUNT(*) FROM attachments WHERE task_id NOT IN (SELECT id FROM tasks)"
            ).fetchone()
        return int(n_sub) + int(n_att)

    # ---- projects / users ----

    def list_projects(self) -> list[Project]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM projects ORDER BY created_at ASC, rowid ASC").fetchall()
        return [self._row_to_project(r) for r in rows]

    def create_project(self, name: Any) -> Project:
        clean = _require_title(name, "Name")
        project = Project(id=_new_id(), name=clean)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO projects(id, name, created_at) VALUES (?, ?, ?)",
                (project.id, project.name, time.time()),
            )
        logger.debug("Project created id=%s name=%s", project.id, project.name)
        return project

    def list_users(self) -> list[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at ASC, rowid ASC").fetchall()
        return [self._row_to_user(r) for r in rows]

    def create_user(self, name: Any, email: str | None = None, image: str | None = None) -> User:
        clean = _require_title(name, "Name")
        user = User(
            id=_new_id(),
            name=clean,
            email=_coerce_optional_text(email, "Email"),
            image=_coerce_optional_text(image, "Image"),
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO users(id, name, email, image, created_at) VALUES (?, ?, ?, ?, ?)",
                (user.id, user.name, user.email, user.image, time.time()),
            )
        logger.debug("User created id=%s name=%s", user.id, user.name)
        return user
