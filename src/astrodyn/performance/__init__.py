"""Parallel execution helpers for the grid searches."""
