"""Performance-management metrics."""

from .fitness import (
    LoadState,
    acute_chronic_ratio,
    calculate_ewma,
    calculate_load_states,
)

__all__ = [
    "LoadState",
    "acute_chronic_ratio",
    "calculate_ewma",
    "calculate_load_states",
]
