"""Orchestration core: domain model, capabilities and planner nodes."""
