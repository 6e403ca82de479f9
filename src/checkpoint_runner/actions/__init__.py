"""
Actions layer - Reusable task actions.

All functions are CLI-agnostic and return typed results.
"""

from .shell import CommandResult, run_command

__all__ = [
    "run_command",
    "CommandResult",
]
