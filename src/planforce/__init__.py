"""
planforce - plan-based task orchestration for tool-using LLM agents.

Turns a free-form goal into a plan of retryable tasks, reconciles executor
results back into the plan, selects what runs next and decides when to stop
and answer.
"""

__version__ = "0.1.0"
