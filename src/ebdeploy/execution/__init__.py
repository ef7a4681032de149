"""Execution-control primitives (deadlines) used by the pollers."""
