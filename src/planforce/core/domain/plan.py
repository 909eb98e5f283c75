"""
Plan and Task Models

Single source of truth for the plan structures the orchestrator works on.
A Plan is an ordered list of Tasks addressed by their stable ``index``.
These are plain data structures; the planner tools and nodes mutate them.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETE = "complete"


_STATUS_ALIASES = {
    "open": "pending",
    "todo": "pending",
    "inprogress": "in_progress",
    "running": "in_progress",
    "done": "complete",
    "completed": "complete",
    "success": "complete",
    "succeeded": "complete",
    "fail": "failed",
    "error": "failed",
}


def parse_task_status(value: Any) -> TaskStatus:
    """Parse a status string coming from the model into a TaskStatus.

    Accepts common aliases like "done" -> COMPLETE or "todo" -> PENDING.
    Unlike a lenient parser this raises on unknown values, so a malformed
    update never silently resets a task.

    Raises:
        ValueError: If the value cannot be mapped to a TaskStatus
    """
    if isinstance(value, TaskStatus):
        return value
    text = str(value or "").strip().replace("-", "_").replace(" ", "_").lower()
    normalized = _STATUS_ALIASES.get(text, text)
    try:
        return TaskStatus(normalized)
    except ValueError:
        raise ValueError(f"Unknown task status: {value!r}") from None


@dataclass
class Task:
    title: str
    index: int
    status: TaskStatus = TaskStatus.PENDING
    retry_count: int = 0
    result: Any = None
    failed_attempts: int = 0  # recorded failures, the first one is not a retry

    def record_status(self, status: TaskStatus, executed: bool = False) -> None:
        """
        Apply a status transition and the retry bookkeeping.

        A failure is recorded when the task enters FAILED, or when it fails
        again after being executed in the current cycle. Every recorded
        failure after the first increments ``retry_count``.

        Args:
            status: New status proposed for the task
            executed: Whether the task was part of the cycle just executed
        """
        if status == TaskStatus.FAILED and (self.status != TaskStatus.FAILED or executed):
            self.failed_attempts += 1
            if self.failed_attempts > 1:
                self.retry_count += 1
        self.status = status

    def bump_retry(self, value: int) -> None:
        """Apply an explicit retry count. Never lowers the current value."""
        self.retry_count = max(self.retry_count, int(value))

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "index": self.index,
            "status": self.status.value,
            "retry": self.retry_count,
            "result": self.result,
            "failed_attempts": self.failed_attempts,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Task":
        return Task(
            title=str(data.get("title", "")),
            index=int(data["index"]),
            status=parse_task_status(data.get("status") or TaskStatus.PENDING),
            retry_count=int(data.get("retry", data.get("retry_count", 0)) or 0),
            result=data.get("result"),
            failed_attempts=int(data.get("failed_attempts", 0) or 0),
        )


@dataclass
class Plan:
    title: str
    tasks: list[Task] = field(default_factory=list)
    status: PlanStatus = PlanStatus.ACTIVE
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def get_task(self, index: int) -> Task | None:
        """Get a task by its index (not its list position)."""
        for task in self.tasks:
            if task.index == index:
                return task
        return None

    def pending_tasks(self) -> list[Task]:
        return [t for t in self.tasks if t.status == TaskStatus.PENDING]

    def is_finished(self) -> bool:
        """True when every task is complete."""
        return bool(self.tasks) and all(t.status == TaskStatus.COMPLETE for t in self.tasks)

    def next_index(self) -> int:
        return max((t.index for t in self.tasks), default=-1) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Plan":
        return Plan(
            id=str(data.get("id") or uuid.uuid4().hex),
            title=str(data.get("title", "")),
            status=PlanStatus(data.get("status", PlanStatus.ACTIVE.value)),
            tasks=[Task.from_dict(t) for t in data.get("tasks", []) or []],
        )

    def to_markdown(self) -> str:
        """Render the plan as a GitHub-style checklist."""
        lines = [f"## {self.title} ({self.status.value}) - {self.id}"]
        if not self.tasks:
            lines.append("_No tasks._")
        for task in sorted(self.tasks, key=lambda t: t.index):
            checked = "x" if task.status == TaskStatus.COMPLETE else " "
            line = f"{task.index}. [{checked}] {task.title} `{task.status.value}`"
            if task.retry_count:
                line += f" (retries: {task.retry_count})"
            lines.append(line)
        return "\n".join(lines)
