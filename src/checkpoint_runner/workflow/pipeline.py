"""
Pipeline factory - Builds tasks from a YAML pipeline definition.

Each pipeline task runs one shell command. Commands run in the directory
holding the pipeline file; the stripped stdout of every finished task is
kept in the PipelineContext and exported to later commands as
CKR_OUTPUT_<NAME>. Outputs are carried in checkpoints so a resumed run
sees the same values.

Example:
    name: release
    targets: [publish]
    tasks:
      - name: init
        run: ./scripts/init.sh
        required: true
      - name: build
        run: make build
        depends_on: [init]
        files_to_stage: [dist/VERSION]
      - name: publish
        run: make publish
        depends_on: [build]
        stop_exit_code: 75
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from ..actions.shell import run_command
from ..constants import DEFAULT_BACKUP_EXPIRATION, DEFAULT_BACKUP_FILENAME, OUTPUT_ENV_PREFIX
from ..errors import PipelineDefinitionError
from .tasks import Task, TaskAction, TaskOutcome

if TYPE_CHECKING:
    from ..backup import Backup
    from ..runners.base import RunnerCallbacks, RunnerOptions


def output_env_name(task_name: str) -> str:
    """Environment variable exporting a task's output: build-docs -> CKR_OUTPUT_BUILD_DOCS."""
    return OUTPUT_ENV_PREFIX + re.sub(r"[^A-Za-z0-9]", "_", task_name).upper()


@dataclass
class PipelineContext:
    """State shared by the tasks of one pipeline run."""

    outputs: dict[str, str] = field(default_factory=dict)

    def env(self) -> dict[str, str]:
        return {output_env_name(name): value for name, value in self.outputs.items()}


@dataclass
class PipelineTaskSpec:
    """One task entry of a pipeline file."""

    name: str
    run: str
    description: str = ""
    depends_on: list[str] = field(default_factory=list)
    files_to_stage: list[str] = field(default_factory=list)
    required: bool = False
    backupable: bool = True
    stop_exit_code: int | None = None
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> PipelineTaskSpec:
        if not isinstance(data, dict):
            raise PipelineDefinitionError(f"Task entry must be a mapping, got {data!r}")
        if not data.get("name"):
            raise PipelineDefinitionError("Task entry is missing 'name'")
        name = str(data["name"])
        if not data.get("run"):
            raise PipelineDefinitionError(f"Task {name} is missing 'run'")

        known = {f.name for f in fields(cls)}
        spec = cls(name=name, run=str(data["run"]))
        for key, value in data.items():
            if key in ("name", "run"):
                continue
            if key not in known:
                raise PipelineDefinitionError(f"Task {name}: unknown key {key!r}")
            setattr(spec, key, _check_field(name, key, value))
        return spec


def _string_list(value: Any) -> list[str] | None:
    """A string or a list of strings as a list, None for anything else."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    return None


def _check_field(task_name: str, key: str, value: Any) -> Any:
    """Validate one optional task field and return its normalised value."""

    def invalid(expected: str) -> PipelineDefinitionError:
        return PipelineDefinitionError(f"Task {task_name}: {key!r} must be {expected}, got {value!r}")

    if key in ("depends_on", "files_to_stage"):
        items = _string_list(value)
        if items is None:
            raise invalid("a string or a list of strings")
        return items
    if key == "env":
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise invalid("a mapping")
        return {str(k): str(v) for k, v in value.items()}
    if key in ("required", "backupable"):
        if not isinstance(value, bool):
            raise invalid("true or false")
        return value
    if key == "stop_exit_code":
        # bool is an int subclass; `true` is not an exit code
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise invalid("an integer")
        return value
    if value is None:
        return ""
    if not isinstance(value, str):
        raise invalid("a string")
    return value


def make_command_action(spec: PipelineTaskSpec, cwd: Path) -> TaskAction:
    """Create the async action running a task's command."""
    allowed = (spec.stop_exit_code,) if spec.stop_exit_code is not None else ()

    async def action(context: PipelineContext) -> TaskOutcome | None:
        result = await run_command(
            spec.run,
            cwd=cwd,
            env={**context.env(), **spec.env},
            allowed_codes=allowed,
        )
        if spec.stop_exit_code is not None and result.returncode == spec.stop_exit_code:
            return TaskOutcome.STOP
        context.outputs[spec.name] = result.stdout.strip()
        return None

    action.__name__ = spec.name
    return action


@dataclass
class Pipeline:
    """A loaded pipeline: its tasks and the targets to run."""

    name: str
    root: Path
    tasks: dict[str, Task] = field(default_factory=dict)
    targets: list[Task] = field(default_factory=list)

    @property
    def default_backup_path(self) -> Path:
        return self.root / DEFAULT_BACKUP_FILENAME

    def runner_options(
        self,
        backup_file_path: Path | None = None,
        backup_expiration: float = DEFAULT_BACKUP_EXPIRATION,
        callbacks: RunnerCallbacks | None = None,
    ) -> RunnerOptions:
        """Runner options persisting and restoring PipelineContext outputs."""
        from ..runners.base import RunnerCallbacks, RunnerOptions

        def create_backup_data(_task: Task, context: PipelineContext) -> dict[str, Any]:
            return {"outputs": dict(context.outputs)}

        def restore_backup(backup: Backup, context: PipelineContext) -> None:
            outputs = (backup.data or {}).get("outputs") or {}
            context.outputs.update({str(k): str(v) for k, v in outputs.items()})

        return RunnerOptions(
            backup_file_path=backup_file_path,
            backup_expiration=backup_expiration,
            restore_backup=restore_backup,
            create_backup_data=create_backup_data,
            callbacks=callbacks or RunnerCallbacks(),
        )


def build_pipeline(data: dict, root: Path, default_name: str = "pipeline") -> Pipeline:
    """
    Create a pipeline from parsed YAML data.

    Args:
        data: Mapping with 'tasks' and optional 'name' and 'targets'
        root: Directory commands run in
        default_name: Name used when data has none

    Returns:
        Pipeline whose targets are ready to hand to a TaskRunner

    Raises:
        PipelineDefinitionError: Invalid structure, unknown or cyclic dependencies
    """
    if not isinstance(data, dict):
        raise PipelineDefinitionError("Pipeline file must contain a mapping")

    raw_tasks = data.get("tasks")
    if not raw_tasks or not isinstance(raw_tasks, list):
        raise PipelineDefinitionError("Pipeline must define a non-empty 'tasks' list")

    specs: dict[str, PipelineTaskSpec] = {}
    for entry in raw_tasks:
        spec = PipelineTaskSpec.from_dict(entry)
        if spec.name in specs:
            raise PipelineDefinitionError(f"Duplicate task name: {spec.name}")
        specs[spec.name] = spec

    pipeline = Pipeline(name=str(data.get("name") or default_name), root=root)
    building: list[str] = []

    def build(name: str) -> Task:
        if name in pipeline.tasks:
            return pipeline.tasks[name]
        if name in building:
            cycle = building[building.index(name) :] + [name]
            raise PipelineDefinitionError(f"Dependency cycle: {' -> '.join(cycle)}")

        spec = specs[name]
        building.append(name)
        dependencies = []
        for dep in spec.depends_on:
            if dep not in specs:
                raise PipelineDefinitionError(f"Task {name} depends on unknown task {dep}")
            dependencies.append(build(dep))
        building.pop()

        pipeline.tasks[name] = Task(
            name=name,
            action=make_command_action(spec, root),
            depends_on=dependencies,
            files_to_stage=spec.files_to_stage,
            required=spec.required,
            backupable=spec.backupable,
            description=spec.description or spec.run,
        )
        return pipeline.tasks[name]

    for name in specs:
        build(name)

    targets = data.get("targets")
    if targets is None:
        target_names = list(specs)
    else:
        target_names = _string_list(targets)
        if not target_names:
            raise PipelineDefinitionError(f"'targets' must be a task name or a list of task names, got {targets!r}")
    for name in target_names:
        if name not in pipeline.tasks:
            raise PipelineDefinitionError(f"Unknown target: {name}")
    pipeline.targets = [pipeline.tasks[name] for name in target_names]

    return pipeline


def load_pipeline(path: Path) -> Pipeline:
    """Load a pipeline definition from a YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise PipelineDefinitionError(f"Invalid YAML in {path}: {e}") from e

    return build_pipeline(data, root=path.resolve().parent, default_name=path.stem)
