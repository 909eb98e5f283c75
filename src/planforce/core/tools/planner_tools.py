# ============================================
# PLANNER TOOLS - create / update / select / terminate
# ============================================
"""
Capabilities the planner nodes expose to the inference gateway.

Each tool validates the model's arguments with a pydantic model and operates
on the SessionState passed in by the node. Invalid arguments raise
MalformedActionError instead of proceeding with partial data.
"""

from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from planforce.core.domain.errors import MalformedActionError
from planforce.core.domain.plan import Plan, PlanStatus, Task, TaskStatus, parse_task_status
from planforce.core.domain.session import SessionState
from planforce.core.tools.base import AgentNodeType, Tool

CREATE_PLAN = "create_plan"
UPDATE_PLAN = "update_plan"
SELECT_TASKS = "select_tasks"
TERMINATE = "terminate"


class TaskSpec(BaseModel):
    title: str = Field(min_length=1, description="What needs to be done")


class CreatePlanArgs(BaseModel):
    title: str = Field(min_length=1, description="Short description of the overall goal")
    tasks: list[TaskSpec] = Field(min_length=1, description="Ordered tasks to execute")

    @field_validator("tasks", mode="before")
    @classmethod
    def _accept_plain_titles(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"title": v} if isinstance(v, str) else v for v in value]
        return value


class TaskUpdate(BaseModel):
    index: int = Field(ge=0, description="Index of the task to update")
    status: TaskStatus | None = Field(default=None, description="pending, in_progress, complete or failed")
    retry: int | None = Field(default=None, ge=0, description="Retry count of the task")
    result: Any = Field(default=None, description="Result produced by the task")
    title: str | None = Field(default=None, description="Title, required when adding a new task")

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return parse_task_status(value)


class UpdatePlanArgs(BaseModel):
    plan_id: str = Field(min_length=1, description="Id of the plan to update")
    tasks: list[TaskUpdate] = Field(min_length=1, description="Per-task updates")


class SelectTasksArgs(BaseModel):
    plan_id: str = Field(min_length=1, description="Id of the plan the tasks belong to")
    task_indexes: list[int] = Field(min_length=1, description="Indexes of the tasks to run next")


class TerminateArgs(BaseModel):
    reason: str = Field(default="", description="Why no further tasks should run")


class PlanningTool(Tool):
    """Base for tools that operate on the planner's session state."""

    binds_session = True
    args_model: type[BaseModel]

    def __init__(self):
        self.logger = structlog.get_logger().bind(component="planner_tools", tool=self.name)

    @property
    def node_types(self) -> tuple[AgentNodeType, ...]:
        return (AgentNodeType.PLANNER,)

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return self.args_model.model_json_schema()

    def parse_args(self, **kwargs) -> BaseModel:
        try:
            return self.args_model.model_validate(kwargs)
        except ValidationError as e:
            raise MalformedActionError(self.name, str(e), kwargs) from e

    def validate_params(self, **kwargs) -> tuple[bool, str | None]:
        try:
            self.args_model.model_validate(kwargs)
        except ValidationError as e:
            return False, str(e)
        return True, None

    @staticmethod
    def _require_plan(session: SessionState, action: str, plan_id: str) -> Plan:
        plan = session.get_plan(plan_id)
        if plan is None:
            raise MalformedActionError(action, f"unknown plan id {plan_id!r}", {"plan_id": plan_id})
        return plan


class CreatePlanTool(PlanningTool):
    args_model = CreatePlanArgs

    @property
    def name(self) -> str:
        return CREATE_PLAN

    @property
    def description(self) -> str:
        return "Create a new plan: a title and an ordered list of tasks that achieve the user's request."

    async def execute(self, session: SessionState, **kwargs) -> dict[str, Any]:
        args = self.parse_args(**kwargs)
        plan = Plan(
            title=args.title,
            tasks=[Task(title=item.title, index=i) for i, item in enumerate(args.tasks)],
        )
        session.add_plan(plan)
        self.logger.info("plan_created", plan_id=plan.id, task_count=len(plan.tasks))
        return {"success": True, "plan": plan.to_dict(), "output": plan.to_markdown()}


class UpdatePlanTool(PlanningTool):
    args_model = UpdatePlanArgs

    @property
    def name(self) -> str:
        return UPDATE_PLAN

    @property
    def description(self) -> str:
        return (
            "Update tasks of an existing plan from the execution results: "
            "status, retry count and result per task index. "
            "A new index with a title adds a task."
        )

    async def execute(self, session: SessionState, **kwargs) -> dict[str, Any]:
        args = self.parse_args(**kwargs)
        plan = self._require_plan(session, self.name, args.plan_id)
        executed = set(session.selected_task_indexes) if session.active_plan_id == plan.id else set()

        changed: list[int] = []
        for update in args.tasks:
            task = plan.get_task(update.index)
            if task is None:
                if not update.title:
                    raise MalformedActionError(
                        self.name,
                        f"task index {update.index} does not exist in plan {plan.id} and no title was given",
                        kwargs,
                    )
                task = Task(title=update.title, index=update.index)
                plan.tasks.append(task)
            elif update.title:
                task.title = update.title

            if update.status is not None:
                task.record_status(update.status, executed=update.index in executed)
            if update.retry is not None:
                task.bump_retry(update.retry)
            if update.result is not None:
                task.result = update.result
            changed.append(update.index)

        self.logger.info("plan_updated", plan_id=plan.id, updated_indexes=changed)
        return {"success": True, "plan": plan.to_dict(), "output": plan.to_markdown()}


class SelectTasksTool(PlanningTool):
    args_model = SelectTasksArgs

    @property
    def name(self) -> str:
        return SELECT_TASKS

    @property
    def description(self) -> str:
        return "Select the tasks of a plan that should be executed next."

    async def execute(self, session: SessionState, **kwargs) -> dict[str, Any]:
        args = self.parse_args(**kwargs)
        plan = self._require_plan(session, self.name, args.plan_id)
        if plan.status == PlanStatus.COMPLETE:
            raise MalformedActionError(self.name, f"plan {plan.id} is already complete", kwargs)

        tasks: list[Task] = []
        for index in args.task_indexes:
            task = plan.get_task(index)
            if task is None:
                raise MalformedActionError(self.name, f"task index {index} does not exist in plan {plan.id}", kwargs)
            if task.status == TaskStatus.COMPLETE:
                # Finished tasks keep their status and result
                self.logger.warning("completed_task_skipped", plan_id=plan.id, index=index)
                continue
            tasks.append(task)

        if not tasks:
            raise MalformedActionError(self.name, "all selected tasks are already complete", kwargs)

        for task in tasks:
            task.status = TaskStatus.IN_PROGRESS

        return {
            "success": True,
            "plan_id": plan.id,
            "task_indexes": [task.index for task in tasks],
            "output": self.build_executor_input(plan, tasks),
        }

    @staticmethod
    def build_executor_input(plan: Plan, tasks: list[Task]) -> str:
        lines = [f"Execute the following tasks of plan '{plan.title}' (id: {plan.id}):"]
        for task in tasks:
            line = f"- [{task.index}] {task.title}"
            if task.retry_count:
                line += f" (retry {task.retry_count})"
            lines.append(line)
        return "\n".join(lines)


class TerminateTool(PlanningTool):
    args_model = TerminateArgs

    @property
    def name(self) -> str:
        return TERMINATE

    @property
    def description(self) -> str:
        return "Stop executing tasks: the plan is done or cannot make further progress."

    async def execute(self, session: SessionState, **kwargs) -> dict[str, Any]:
        args = self.parse_args(**kwargs)
        self.logger.info("terminate_requested", plan_id=session.active_plan_id, reason=args.reason)
        return {"success": True, "output": args.reason or "terminated"}


def planner_tools() -> list[PlanningTool]:
    """The four built-in planner capabilities."""
    return [CreatePlanTool(), UpdatePlanTool(), SelectTasksTool(), TerminateTool()]
