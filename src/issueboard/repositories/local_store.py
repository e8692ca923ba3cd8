"""SQLite cache of projects and tasks.

This is the read model the board is drawn from. It is only ever written
with data that came back from GitHub, and it never talks to the network.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..models import Project, Task, TaskStatus
from ..utils import from_iso, to_iso

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    repo_ref TEXT NOT NULL UNIQUE,
    description TEXT,
    created_at TEXT NOT NULL,
    last_synced TEXT
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    issue_number INTEGER NOT NULL,
    title TEXT NOT NULL,
    body TEXT,
    status TEXT NOT NULL,
    labels_json TEXT NOT NULL DEFAULT '[]',
    url TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (project_id, issue_number)
);

CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id);
CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
"""

_PROJECT_COLUMNS = "id, repo_ref, description, created_at, last_synced"
_TASK_COLUMNS = (
    "id, project_id, issue_number, title, body, status, labels_json, url, created_at, updated_at"
)


class StoreError(Exception):
    """Local persistence failed. Nothing from the failed call was committed."""

    pass


class LocalStore:
    """SQLite-backed store for Project and Task records.

    One connection is shared by every thread; a single lock serializes all
    reads and writes, and each public call is its own transaction.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Open (or create) the database and ensure the schema exists.

        Args:
            db_path: Database file, or ":memory:"

        Raises:
            StoreError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open project database {self.db_path}: {e}") from e

        logger.debug("Opened project store at %s", self.db_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> LocalStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock for one transaction, mapping sqlite errors to StoreError."""
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                logger.error("Store operation failed: %s", e)
                raise StoreError(str(e)) from e

    # --- Projects ---

    def upsert_project(self, project: Project) -> Project:
        """Insert a project or update the one with the same repo_ref.

        The stored id and created_at win over the incoming record's, so
        repeated upserts of a repository never create a second row.

        Returns:
            The project as stored
        """
        with self._transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO projects ({_PROJECT_COLUMNS})
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(repo_ref) DO UPDATE SET
                    description = excluded.description,
                    last_synced = excluded.last_synced
                """,
                (
                    project.id,
                    project.repo_ref,
                    project.description,
                    to_iso(project.created_at),
                    to_iso(project.last_synced) if project.last_synced else None,
                ),
            )
            row = conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE repo_ref = ?",
                (project.repo_ref,),
            ).fetchone()
        return _row_to_project(row)

    def list_projects(self) -> list[Project]:
        """All projects, most recently synced first and never-synced last."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT {_PROJECT_COLUMNS} FROM projects
                ORDER BY last_synced IS NULL, last_synced DESC, repo_ref
                """
            ).fetchall()
        return [_row_to_project(row) for row in rows]

    def get_project(self, project_id: str) -> Project | None:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE id = ?",
                (project_id,),
            ).fetchone()
        return _row_to_project(row) if row else None

    def get_project_by_repo(self, repo_ref: str) -> Project | None:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE repo_ref = ?",
                (repo_ref,),
            ).fetchone()
        return _row_to_project(row) if row else None

    def delete_project(self, project_id: str) -> None:
        """Delete a project and every task it owns."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM tasks WHERE project_id = ?", (project_id,))
            conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        logger.info("Deleted project %s", project_id)

    # --- Tasks ---

    def upsert_task(self, task: Task) -> Task:
        """Insert a task or update the one with the same (project_id, issue_number).

        Idempotent: writing the same record twice leaves the same row.

        Returns:
            The task as stored
        """
        with self._transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO tasks ({_TASK_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_id, issue_number) DO UPDATE SET
                    title = excluded.title,
                    body = excluded.body,
                    status = excluded.status,
                    labels_json = excluded.labels_json,
                    url = excluded.url,
                    updated_at = excluded.updated_at
                """,
                (
                    task.id,
                    task.project_id,
                    task.issue_number,
                    task.title,
                    task.body,
                    task.status.value,
                    json.dumps(task.labels),
                    task.url,
                    to_iso(task.created_at),
                    to_iso(task.updated_at),
                ),
            )
            row = conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE project_id = ? AND issue_number = ?",
                (task.project_id, task.issue_number),
            ).fetchone()
        return _row_to_task(row)

    def get_task(self, project_id: str, issue_number: int) -> Task | None:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE project_id = ? AND issue_number = ?",
                (project_id, issue_number),
            ).fetchone()
        return _row_to_task(row) if row else None

    def list_tasks(self, project_id: str) -> list[Task]:
        """Tasks of a project ordered by issue number."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE project_id = ? ORDER BY issue_number",
                (project_id,),
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def delete_task(self, project_id: str, issue_number: int) -> None:
        """Delete one task. Missing tasks are not an error."""
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM tasks WHERE project_id = ? AND issue_number = ?",
                (project_id, issue_number),
            )

    def count_tasks_by_status(self, project_id: str) -> list[tuple[TaskStatus, int]]:
        """Task counts for the statuses that have at least one task."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) FROM tasks WHERE project_id = ? GROUP BY status",
                (project_id,),
            ).fetchall()

        counts: dict[TaskStatus, int] = {}
        for status_value, count in rows:
            status = _parse_stored_status(status_value)
            counts[status] = counts.get(status, 0) + count
        return [(status, counts[status]) for status in TaskStatus if status in counts]


def _parse_stored_status(value: str) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        logger.warning("Unknown stored status '%s', treating as todo", value)
        return TaskStatus.TODO


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        repo_ref=row["repo_ref"],
        description=row["description"],
        created_at=from_iso(row["created_at"]),
        last_synced=from_iso(row["last_synced"]) if row["last_synced"] else None,
    )


def _row_to_task(row: sqlite3.Row) -> Task:
    try:
        labels = json.loads(row["labels_json"])
    except ValueError:
        logger.warning("Corrupt labels for task %s, ignoring", row["id"])
        labels = []
    return Task(
        id=row["id"],
        project_id=row["project_id"],
        issue_number=row["issue_number"],
        title=row["title"],
        body=row["body"],
        status=_parse_stored_status(row["status"]),
        labels=labels,
        url=row["url"],
        created_at=from_iso(row["created_at"]),
        updated_at=from_iso(row["updated_at"]),
    )
