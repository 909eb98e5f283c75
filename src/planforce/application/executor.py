"""
Application Layer - Task Executor

Reference implementation of the external executor: runs the tasks the
planner selected with a native tool-calling loop over the EXECUTOR
capabilities and reports one outcome record per task index.

Hosts with their own execution runtime can replace it; the orchestrator
only needs the outcome records.
"""

from typing import Any

import structlog

from planforce.core.domain.errors import (
    CapabilityError,
    CapabilityNotFoundError,
    InferenceGatewayError,
    MalformedActionError,
)
from planforce.core.domain.models import ExecutorHandoff, PromptContext, TaskOutcome
from planforce.core.domain.session import SessionState
from planforce.core.interfaces.llm import InferenceGatewayProtocol
from planforce.core.registry import CapabilityRegistry
from planforce.core.tools.base import AgentNodeType
from planforce.infrastructure.tools.tool_converter import (
    assistant_tool_calls_to_message,
    tool_result_to_message,
)

# Outcome channel for task-level records not tied to a single tool call
TASK_CHANNEL = "task"

EXECUTOR_SYSTEM_PROMPT = """
# Task Executor

You execute exactly one task of a plan using the available tools.

## Rules
- Call the tools needed for the current task only.
- If information is missing, use `ask_user` when it is available.
- When the task is done (or cannot be done), reply with a short summary of
  the result or the error. Do not call further tools after that.
"""


class LLMTaskExecutor:
    def __init__(
        self,
        gateway: InferenceGatewayProtocol,
        registry: CapabilityRegistry,
        model: str | None = None,
        max_steps: int = 8,
        system_prompt: str = EXECUTOR_SYSTEM_PROMPT,
    ):
        self.gateway = gateway
        self.registry = registry
        self.model = model
        self.max_steps = max_steps
        self.system_prompt = system_prompt
        self.logger = structlog.get_logger().bind(component="task_executor")

    async def execute(self, handoff: ExecutorHandoff, state: SessionState) -> list[TaskOutcome]:
        """
        Run every selected task and collect its outcome record.

        Args:
            handoff: Plan id, task indexes and instruction from the selector
            state: Session state of the request

        Returns:
            One TaskOutcome per selected task index, in selection order
        """
        plan = state.get_plan(handoff.active_plan_id)
        tool_names = [entry["name"] for entry in self.registry.list(AgentNodeType.EXECUTOR)]
        openai_tools = self.registry.to_openai_tools(tool_names)

        outcomes: list[TaskOutcome] = []
        for index in handoff.selected_task_indexes:
            task = plan.get_task(index) if plan else None
            title = task.title if task else f"task {index}"
            outcome = await self._run_task(index, title, handoff.executor_input, tool_names, openai_tools, state)
            outcomes.append(outcome)

        self.logger.info(
            "execution_complete",
            session_id=state.session_id,
            plan_id=handoff.active_plan_id,
            succeeded=[o.task_index for o in outcomes if o.success],
            failed=[o.task_index for o in outcomes if not o.success],
        )
        return outcomes

    async def _run_task(
        self,
        index: int,
        title: str,
        executor_input: str,
        tool_names: list[str],
        openai_tools: list[dict[str, Any]],
        state: SessionState,
    ) -> TaskOutcome:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": f"{executor_input}\n\nCurrent task [{index}]: {title}"},
        ]
        last_tool: str | None = None
        last_call_id: str | None = None
        last_result: dict[str, Any] = {}

        for step in range(1, self.max_steps + 1):
            self.logger.debug("task_step", task_index=index, step=step)
            try:
                response = await self.gateway.invoke(
                    PromptContext(
                        messages=messages,
                        available_actions=openai_tools,
                        tool_choice="auto" if openai_tools else "none",
                        model=self.model,
                        temperature=0.2,
                    )
                )
            except (InferenceGatewayError, MalformedActionError) as e:
                self.logger.error("task_llm_failed", task_index=index, error=str(e))
                return TaskOutcome(task_index=index, tool_name=TASK_CHANNEL, success=False, error=str(e))

            if not response.actions:
                success = bool(last_result.get("success", True))
                self.logger.info("task_finished", task_index=index, step=step, success=success)
                return TaskOutcome(
                    task_index=index,
                    tool_name=last_tool or TASK_CHANNEL,
                    content=response.text or last_result.get("output"),
                    success=success,
                    error=None if success else last_result.get("error"),
                    call_id=last_call_id,
                )

            messages.append(assistant_tool_calls_to_message(response.actions))
            for action in response.actions:
                if action.name in tool_names:
                    result = await self._invoke_tool(action.name, action.arguments, state)
                else:
                    result = {"success": False, "error": f"Tool not available: {action.name}"}
                last_tool, last_call_id, last_result = action.name, action.call_id, result
                messages.append(tool_result_to_message(action.call_id, action.name, result))

                if not result.get("success"):
                    self.logger.warning("tool_failed", task_index=index, tool=action.name, error=result.get("error"))

        self.logger.warning("task_max_steps_exceeded", task_index=index, max_steps=self.max_steps)
        return TaskOutcome(
            task_index=index,
            tool_name=last_tool or TASK_CHANNEL,
            content=last_result.get("output"),
            success=False,
            error=f"Exceeded maximum steps ({self.max_steps})",
            call_id=last_call_id,
        )

    async def _invoke_tool(self, name: str, args: dict[str, Any], state: SessionState) -> dict[str, Any]:
        """Invoke a capability; its errors become unsuccessful results the model can react to."""
        try:
            return await self.registry.invoke(name, args, session=state)
        except (CapabilityError, CapabilityNotFoundError, MalformedActionError) as e:
            return {"success": False, "error": str(e)}
