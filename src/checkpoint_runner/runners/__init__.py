"""
Runners layer - Execution engines for task graphs.

Runners resolve tasks, execute them in order and manage checkpoints.
"""

from .base import RunnerCallbacks, RunnerOptions, RunReport
from .sequential import TaskRunner, print_failure

__all__ = [
    "RunnerCallbacks",
    "RunnerOptions",
    "RunReport",
    "TaskRunner",
    "print_failure",
]
