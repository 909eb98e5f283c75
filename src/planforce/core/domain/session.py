"""
Session State

The one mutable value owned by the orchestrator for a single user request.
Every node receives it explicitly; nothing else keeps references to its
plans or tasks beyond one cycle. Concurrent requests need independent
instances.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from planforce.core.domain.models import TaskOutcome
from planforce.core.domain.plan import Plan, PlanStatus


class EndedBy(str, Enum):
    PLANNER_ANSWER = "planner_answer"


class ChatHistory:
    """
    Append-only chat history used for prompting continuity.

    Only the last ``n`` messages are sent to the model; the full list is
    kept for the caller.
    """

    def __init__(self, messages: list[dict[str, Any]] | None = None):
        self._messages: list[dict[str, Any]] = list(messages or [])

    def add_message(self, content: str, role: str) -> None:
        """
        Append a message.

        Args:
            content: Message text
            role: "user" or "assistant"
        """
        self._messages.append({"role": role, "content": content})

    def get_last_n_messages(self, n: int) -> list[dict[str, Any]]:
        if n <= 0:
            return []
        return [dict(m) for m in self._messages[-n:]]

    def to_list(self) -> list[dict[str, Any]]:
        return [dict(m) for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)


@dataclass
class SessionState:
    input: str
    plans: list[Plan] = field(default_factory=list)
    active_plan_id: str | None = None
    selected_task_indexes: list[int] = field(default_factory=list)
    ended_by: EndedBy | None = None
    chat_history: ChatHistory = field(default_factory=ChatHistory)

    # Per-turn fields
    executor_input: str | None = None
    executor_outcomes: list[TaskOutcome] = field(default_factory=list)
    answer: str | None = None
    forced_termination: bool = False

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def get_plan(self, plan_id: str | None) -> Plan | None:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        return None

    def active_plan(self) -> Plan | None:
        return self.get_plan(self.active_plan_id)

    def add_plan(self, plan: Plan) -> None:
        """Append a plan and make it the active one. Clears the previous selection."""
        self.plans.append(plan)
        self.active_plan_id = plan.id
        self.selected_task_indexes = []

    def is_active_plan_complete(self) -> bool:
        plan = self.active_plan()
        return plan is not None and plan.status == PlanStatus.COMPLETE

    def plans_as_dicts(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.plans]

    def plans_json(self) -> str:
        return json.dumps(self.plans_as_dicts(), ensure_ascii=False, default=str)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "input": self.input,
            "plans": self.plans_as_dicts(),
            "active_plan_id": self.active_plan_id,
            "selected_task_indexes": list(self.selected_task_indexes),
            "ended_by": self.ended_by.value if self.ended_by else None,
            "chat_history": self.chat_history.to_list(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SessionState":
        ended_by = data.get("ended_by")
        return SessionState(
            session_id=str(data.get("session_id") or uuid.uuid4().hex),
            input=str(data.get("input", "")),
            plans=[Plan.from_dict(p) for p in data.get("plans", []) or []],
            active_plan_id=data.get("active_plan_id"),
            selected_task_indexes=[int(i) for i in data.get("selected_task_indexes", []) or []],
            ended_by=EndedBy(ended_by) if ended_by else None,
            chat_history=ChatHistory(data.get("chat_history")),
        )
