"""
Planner Orchestrator

Finite-state controller for one logical turn of the planner:

    START -> CREATE_PLAN | UPDATE_PLAN -> SELECT_TASKS -> END | ANSWER -> END

A turn either hands selected tasks to an external executor (status
"continue") or produces the final answer (status "answered"). The caller
runs the tasks and feeds their outcome records into the next turn, which
re-enters at START with the same SessionState.

Node errors are not caught here; the caller decides whether to re-run the
turn. The only controlled stop is the termination policy inside the
selector.
"""

from enum import Enum

import structlog

from planforce.core.domain.errors import InvalidTransitionError
from planforce.core.domain.models import ExecutorHandoff, TaskOutcome, TurnResult
from planforce.core.domain.session import EndedBy, SessionState
from planforce.core.planning.answer import AnswerSynthesizer
from planforce.core.planning.compiler import PlanCompiler
from planforce.core.planning.reconciler import PlanReconciler
from planforce.core.planning.selector import SelectionSignal, TaskSelector
from planforce.core.registry import CapabilityRegistry


class OrchestratorState(str, Enum):
    START = "start"
    CREATE_PLAN = "create_plan"
    UPDATE_PLAN = "update_plan"
    SELECT_TASKS = "select_tasks"
    ANSWER = "answer"
    END = "end"


TRANSITIONS: dict[OrchestratorState, frozenset[OrchestratorState]] = {
    OrchestratorState.START: frozenset({OrchestratorState.CREATE_PLAN, OrchestratorState.UPDATE_PLAN}),
    OrchestratorState.CREATE_PLAN: frozenset({OrchestratorState.SELECT_TASKS}),
    OrchestratorState.UPDATE_PLAN: frozenset({OrchestratorState.SELECT_TASKS}),
    OrchestratorState.SELECT_TASKS: frozenset({OrchestratorState.END, OrchestratorState.ANSWER}),
    OrchestratorState.ANSWER: frozenset({OrchestratorState.END}),
    OrchestratorState.END: frozenset(),
}


def should_create_plan(state: SessionState) -> bool:
    """Compile-vs-reconcile decision taken at START."""
    if not state.plans:
        return True
    return state.is_active_plan_complete() or state.ended_by == EndedBy.PLANNER_ANSWER


class PlannerOrchestrator:
    def __init__(
        self,
        registry: CapabilityRegistry,
        compiler: PlanCompiler,
        reconciler: PlanReconciler,
        selector: TaskSelector,
        answerer: AnswerSynthesizer,
    ):
        self.registry = registry
        self.compiler = compiler
        self.reconciler = reconciler
        self.selector = selector
        self.answerer = answerer
        self.logger = structlog.get_logger().bind(component="planner_orchestrator")

    async def run_turn(
        self,
        state: SessionState,
        outcomes: list[TaskOutcome] | None = None,
    ) -> TurnResult:
        """
        Run one turn from START to END.

        Args:
            state: Session state of the request (mutated in place)
            outcomes: Outcome records of the tasks selected in the previous turn

        Returns:
            TurnResult with either an executor hand-off or the final answer
        """
        self.registry.freeze()
        if outcomes is not None:
            state.executor_outcomes = list(outcomes)

        current = OrchestratorState.START
        trace = [current.value]
        signal: SelectionSignal | None = None

        target = OrchestratorState.CREATE_PLAN if should_create_plan(state) else OrchestratorState.UPDATE_PLAN
        # Per-turn fields are reset only after the decision above has read ended_by
        state.ended_by = None
        state.answer = None
        state.forced_termination = False
        self.logger.info("turn_started", session_id=state.session_id, entry=target.value, plans=len(state.plans))
        current = self._transition(current, target, trace)

        while current != OrchestratorState.END:
            if current == OrchestratorState.CREATE_PLAN:
                await self.compiler.run(state)
                current = self._transition(current, OrchestratorState.SELECT_TASKS, trace)

            elif current == OrchestratorState.UPDATE_PLAN:
                await self.reconciler.run(state)
                current = self._transition(current, OrchestratorState.SELECT_TASKS, trace)

            elif current == OrchestratorState.SELECT_TASKS:
                signal = await self.selector.run(state)
                if signal == SelectionSignal.CONTINUE and state.selected_task_indexes and state.answer is None:
                    current = self._transition(current, OrchestratorState.END, trace)
                else:
                    current = self._transition(current, OrchestratorState.ANSWER, trace)

            elif current == OrchestratorState.ANSWER:
                await self.answerer.run(state)
                current = self._transition(current, OrchestratorState.END, trace)

        if state.ended_by is not None:
            result = TurnResult(
                status="answered",
                answer=state.answer,
                trace=trace,
                forced_termination=state.forced_termination,
            )
        else:
            result = TurnResult(
                status="continue",
                handoff=ExecutorHandoff(
                    active_plan_id=state.active_plan_id,
                    selected_task_indexes=list(state.selected_task_indexes),
                    executor_input=state.executor_input or "",
                ),
                trace=trace,
            )

        self.logger.info(
            "turn_complete",
            session_id=state.session_id,
            status=result.status,
            signal=signal.value if signal else None,
            trace=trace,
        )
        return result

    def _transition(
        self,
        current: OrchestratorState,
        target: OrchestratorState,
        trace: list[str],
    ) -> OrchestratorState:
        if target not in TRANSITIONS[current]:
            raise InvalidTransitionError(f"Transition {current.value} -> {target.value} is not allowed")
        self.logger.debug("state_transition", source=current.value, target=target.value)
        trace.append(target.value)
        return target
