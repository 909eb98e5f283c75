"""Tool message conversion for native function calling."""
