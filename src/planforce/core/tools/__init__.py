"""
Capabilities exposed to the inference gateway.

Contains:
- Tool / FunctionTool: Base capability interface
- Planner tools: create_plan, update_plan, select_tasks, terminate
- AskUserTool: Executor-side clarification
"""

from planforce.core.tools.ask_user_tool import AskUserTool
from planforce.core.tools.base import AgentNodeType, FunctionTool, Tool
from planforce.core.tools.planner_tools import planner_tools

__all__ = ["AgentNodeType", "AskUserTool", "FunctionTool", "Tool", "planner_tools"]
