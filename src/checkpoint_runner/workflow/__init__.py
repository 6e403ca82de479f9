"""
Workflow layer - Task and pipeline definitions.

Tasks are DATA STRUCTURES that describe units of work and their ordering.
They do NOT decide when to run - that's the runner's job.
"""

from .graph import resolve_tasks, task_names
from .pipeline import Pipeline, PipelineContext, PipelineTaskSpec, load_pipeline
from .tasks import Task, TaskOutcome, TaskStatus, task

__all__ = [
    "Task",
    "TaskOutcome",
    "TaskStatus",
    "task",
    "resolve_tasks",
    "task_names",
    "Pipeline",
    "PipelineContext",
    "PipelineTaskSpec",
    "load_pipeline",
]
