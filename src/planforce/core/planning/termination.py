"""
Termination Policy

Pure predicate evaluated before task selection: once any task of any plan
has failed more often than the retry ceiling allows, the plan is terminated
without consulting the inference gateway.
"""

from planforce.core.domain.plan import Plan, Task, TaskStatus

DEFAULT_RETRY_CEILING = 3


class TerminationPolicy:
    def __init__(self, retry_ceiling: int = DEFAULT_RETRY_CEILING):
        if retry_ceiling < 0:
            raise ValueError("retry_ceiling must be >= 0")
        self.retry_ceiling = retry_ceiling

    def is_breached(self, task: Task) -> bool:
        # Exceeding the ceiling trips the policy, reaching it does not
        return task.status == TaskStatus.FAILED and task.retry_count > self.retry_ceiling

    def find_breach(self, plans: list[Plan]) -> tuple[Plan, Task] | None:
        """Return the first (plan, task) pair over the ceiling, if any."""
        for plan in plans:
            for task in plan.tasks:
                if self.is_breached(task):
                    return plan, task
        return None

    def should_terminate(self, plans: list[Plan]) -> bool:
        return self.find_breach(plans) is not None
