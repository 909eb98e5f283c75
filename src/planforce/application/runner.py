"""
Application Layer - Planning Agent

Drives a complete user request: alternates orchestrator turns with executor
runs until the planner answers or the turn limit is reached.
"""

import structlog

from planforce.application.executor import LLMTaskExecutor
from planforce.core.domain.models import RunResult, TaskOutcome
from planforce.core.domain.session import SessionState
from planforce.core.planning.orchestrator import PlannerOrchestrator


class PlanningAgent:
    def __init__(
        self,
        orchestrator: PlannerOrchestrator,
        executor: LLMTaskExecutor,
        max_turns: int = 20,
    ):
        self.orchestrator = orchestrator
        self.executor = executor
        self.max_turns = max_turns
        self.logger = structlog.get_logger().bind(component="planning_agent")

    async def run(self, goal: str, session: SessionState | None = None) -> RunResult:
        """
        Execute ``goal`` to completion.

        Args:
            goal: The user's request
            session: Session of a previous request to continue the
                conversation with; a fresh one is created when omitted

        Returns:
            RunResult with status "completed", "forced_termination" or
            "max_turns_exceeded"
        """
        if session is None:
            state = SessionState(input=goal)
        else:
            state = session
            state.input = goal
        state.chat_history.add_message(goal, "user")

        self.logger.info("run_start", session_id=state.session_id, goal=goal[:100])

        outcomes: list[TaskOutcome] | None = None
        all_outcomes: list[TaskOutcome] = []

        for turn in range(1, self.max_turns + 1):
            result = await self.orchestrator.run_turn(state, outcomes)

            if result.status == "answered":
                status = "forced_termination" if result.forced_termination else "completed"
                self.logger.info("run_complete", session_id=state.session_id, status=status, turns=turn)
                return RunResult(
                    session_id=state.session_id,
                    status=status,
                    answer=result.answer or "",
                    turns=turn,
                    plans=state.plans_as_dicts(),
                    outcomes=all_outcomes,
                )

            outcomes = await self.executor.execute(result.handoff, state)
            all_outcomes.extend(outcomes)

        self.logger.warning("run_max_turns_exceeded", session_id=state.session_id, max_turns=self.max_turns)
        return RunResult(
            session_id=state.session_id,
            status="max_turns_exceeded",
            answer=f"Exceeded maximum turns ({self.max_turns})",
            turns=self.max_turns,
            plans=state.plans_as_dicts(),
            outcomes=all_outcomes,
        )
