"""Markdown task store: one file per task with YAML frontmatter."""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import yaml

from task_board.models import (
    Task,
    TaskPriority,
    TaskStatus,
    clamp_progress,
    normalize_assignees,
    normalize_tags,
    parse_instant,
)

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"^(---\s*\n)(.*?)(\n---)", re.DOTALL)


class TaskStore(Protocol):
    """Protocol for the task persistence collaborator."""

    def list_tasks(self) -> list[Task]:
        """List all tasks."""
        ...

    def read_task(self, task_id: str) -> Task:
        """Read a specific task by ID."""
        ...

    def update_task_status(self, task_id: str, status: str) -> None:
        """Update the status field of a task."""
        ...

    def delete_task(self, task_id: str) -> None:
        """Delete a task."""
        ...


class MarkdownTaskStore:
    """Task store over a folder of markdown files.

    The file stem is the task id, frontmatter holds the fields and the body
    is the description.
    """

    def __init__(self, tasks_dir: str | Path) -> None:
        """Initialize store with the folder holding task files."""
        self._tasks_dir = Path(tasks_dir)

    @property
    def tasks_dir(self) -> Path:
        return self._tasks_dir

    def list_tasks(self) -> list[Task]:
        """List all tasks; files that fail to parse are skipped."""
        tasks: list[Task] = []
        if not self._tasks_dir.exists():
            logger.warning(f"[TaskStore] Folder not found: {self._tasks_dir}")
            return tasks
        for file_path in sorted(self._tasks_dir.glob("*.md")):
            try:
                tasks.append(self._parse_task(file_path))
            except Exception as e:
                logger.warning(f"[TaskStore] Failed to parse {file_path.name}: {e}")
                continue
        return tasks

    def read_task(self, task_id: str) -> Task:
        """Read a specific task by ID (filename without .md)."""
        return self._parse_task(self._task_path(task_id))

    def update_task_status(self, task_id: str, status: str) -> None:
        """Set status and updated_at in the task frontmatter.

        Raises:
            FileNotFoundError: If the task does not exist
            ValueError: If status is not a valid TaskStatus or the file has
                no valid frontmatter
        """
        parsed = TaskStatus.parse(status)
        if parsed is None:
            raise ValueError(f"Invalid status: {status}")

        file_path = self._task_path(task_id)
        content, encoding = self._read_text(file_path)

        match = _FRONTMATTER_RE.match(content)
        if not match:
            raise ValueError(f"Task {task_id} has no frontmatter")

        try:
            data = yaml.safe_load(match.group(2)) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in task {task_id}") from e

        data["status"] = parsed.value
        data["updated_at"] = datetime.now(timezone.utc).isoformat()

        new_frontmatter = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
        new_content = f"---\n{new_frontmatter}---" + content[match.end() :]
        file_path.write_text(new_content, encoding=encoding)
        logger.info(f"[TaskStore] {task_id} status -> {parsed.value}")

    def delete_task(self, task_id: str) -> None:
        """Remove the task file."""
        self._task_path(task_id).unlink()
        logger.info(f"[TaskStore] Deleted {task_id}")

    def _task_path(self, task_id: str) -> Path:
        # Reject ids that would escape the tasks folder
        if not task_id or "/" in task_id or "\\" in task_id or task_id.startswith("."):
            raise FileNotFoundError(f"Task not found: {task_id}")
        file_path = self._tasks_dir / f"{task_id}.md"
        if not file_path.exists():
            raise FileNotFoundError(f"Task not found: {task_id}")
        return file_path

    def _read_text(self, file_path: Path) -> tuple[str, str]:
        # Try UTF-8 first, fallback to latin-1 for non-UTF-8 files
        try:
            return file_path.read_text(encoding="utf-8"), "utf-8"
        except UnicodeDecodeError:
            return file_path.read_text(encoding="latin-1"), "latin-1"

    def _parse_task(self, file_path: Path) -> Task:
        """Parse markdown file into Task object."""
        content, _ = self._read_text(file_path)
        frontmatter = self._extract_frontmatter(content)
        task_id = file_path.stem

        raw_status = frontmatter.get("status")
        status: TaskStatus | str = TaskStatus.TODO
        if raw_status is not None:
            # Unknown statuses are kept verbatim so the board can report them
            status = TaskStatus.parse(raw_status) or str(raw_status)

        raw_priority = frontmatter.get("priority")
        priority: TaskPriority | str = TaskPriority.MEDIUM
        if raw_priority is not None:
            priority = TaskPriority.parse(raw_priority) or str(raw_priority)

        return Task(
            id=task_id,
            title=str(frontmatter.get("title") or task_id),
            description=self._extract_description(content),
            status=status,
            priority=priority,
            due_date=self._parse_date(frontmatter.get("due_date"), task_id),
            assigned_to=normalize_assignees(frontmatter.get("assigned_to")),
            account_id=self._optional_str(frontmatter.get("account_id")),
            account_name=self._optional_str(frontmatter.get("account_name")),
            category_id=self._optional_str(frontmatter.get("category_id")),
            tags=normalize_tags(frontmatter.get("tags")),
            progress=clamp_progress(frontmatter.get("progress", 0)),
            created_at=self._parse_timestamp(frontmatter.get("created_at")),
            updated_at=self._parse_timestamp(frontmatter.get("updated_at")),
        )

    def _optional_str(self, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    def _parse_date(self, value: Any, task_id: str) -> datetime | str | None:
        """Parse due date; unparseable values are kept as raw strings."""
        if value is None or value == "":
            return None
        try:
            return parse_instant(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"[TaskStore] Task {task_id} has malformed due_date {value!r}: {e}")
            return str(value)

    def _parse_timestamp(self, value: Any) -> datetime | None:
        if value is None or value == "":
            return None
        try:
            return parse_instant(value)
        except (TypeError, ValueError):
            return None

    def _extract_frontmatter(self, content: str) -> dict[str, Any]:
        """Extract YAML frontmatter from markdown content."""
        match = re.match(r"^---\s*\n(.*?)\n---", content, re.DOTALL)
        if not match:
            return {}

        try:
            data = yaml.safe_load(match.group(1))
            return data if isinstance(data, dict) else {}
        except yaml.YAMLError:
            return {}

    def _extract_description(self, content: str) -> str:
        """Return the body after the frontmatter, whitespace-trimmed."""
        match = re.match(r"^---\s*\n.*?\n---\s*\n?", content, re.DOTALL)
        if match:
            content = content[match.end() :]
        return content.strip()
