"""Application layer: executor, multi-turn runner and wiring."""
