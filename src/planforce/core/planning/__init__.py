"""Planner nodes and the orchestrator state machine."""
