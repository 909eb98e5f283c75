"""Protocols the core depends on."""
