"""System prompts for the planner nodes."""

from planforce.core.prompts.planner_prompts import PlannerPrompts

__all__ = ["PlannerPrompts"]
