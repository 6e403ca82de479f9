"""
Checkpoint Runner (ckr) - Resumable task pipelines

Runs multi-step, side-effecting workflows with:
- Dependency-ordered task resolution
- Git staging of each task's files on success, discard on failure
- JSON checkpoints after every backupable task
- Resumption from the last checkpoint after a crash or abort
"""

__version__ = "0.1.0"
__package_name__ = "checkpoint-runner"
__short_name__ = "ckr"
