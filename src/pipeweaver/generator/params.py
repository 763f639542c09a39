"""Template parameter derivation for generated DAGs.

Maps a PipelineDefinition onto the flat set of variables the DAG
templates consume. Derivation rules:

- schedule_interval: the schedule expression wrapped in double quotes,
  or the UNSCHEDULED sentinel (Python ``None``) when no expression is set
- task_name: the first step's name, or DEFAULT_TASK_NAME without steps
- data-source fields: the first DataRef, scanning steps in order and each
  step's inputs before its outputs, whose kind contains the source-system
  name (case-insensitive). Unmatched systems yield empty strings.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from src.pipeweaver.definitions.models import DataRef, PipelineDefinition, Schedule, Step

UNSCHEDULED = "None"
DEFAULT_TASK_NAME = "default_task"
DEFAULT_OWNER = "pipeweaver"


@dataclass(frozen=True)
class SourceSystem:
    """A data system the templates know how to address.

    Attributes:
        name: Matched case-insensitively against DataRef.kind.
        fields: DataRef attributes exported as template variables.
    """

    name: str
    fields: Tuple[str, ...]


KNOWN_SOURCE_SYSTEMS: Tuple[SourceSystem, ...] = (
    SourceSystem("postgres", ("host", "database", "table")),
    SourceSystem("snowflake", ("database", "table")),
    SourceSystem("s3", ("path",)),
)


class DagTemplateParams(BaseModel):
    """Variables available to DAG templates."""

    pipeline_name: str
    pipeline_description: str = ""
    pipeline_version: str = ""
    owner: str = DEFAULT_OWNER
    schedule_interval: str = UNSCHEDULED
    task_name: str = DEFAULT_TASK_NAME

    postgres_host: str = ""
    postgres_database: str = ""
    postgres_table: str = ""

    snowflake_database: str = ""
    snowflake_table: str = ""

    s3_path: str = ""

    failure_emails: List[str] = Field(default_factory=list)

    def to_template_vars(self) -> Dict[str, object]:
        return self.model_dump()


def build_template_params(definition: PipelineDefinition) -> DagTemplateParams:
    """Derive template parameters from a parsed definition.

    Args:
        definition: The parsed pipeline definition.

    Returns:
        DagTemplateParams ready for rendering.
    """
    values: Dict[str, object] = {
        "pipeline_name": definition.name,
        "pipeline_description": definition.description,
        "pipeline_version": definition.version,
        "owner": _owner_name(definition),
        "schedule_interval": schedule_interval(definition.schedule),
        "task_name": task_name(definition.steps),
        "failure_emails": failure_emails(definition.steps),
    }

    for system in KNOWN_SOURCE_SYSTEMS:
        ref = find_data_ref(definition.steps, system.name)
        for field_name in system.fields:
            values[f"{system.name}_{field_name}"] = (
                getattr(ref, field_name) if ref is not None else ""
            )

    return DagTemplateParams(**values)


def schedule_interval(schedule: Optional[Schedule]) -> str:
    """Render a schedule as a quoted expression or the UNSCHEDULED sentinel."""
    if schedule is None or not schedule.expression:
        return UNSCHEDULED
    return f'"{schedule.expression}"'


def task_name(steps: List[Step]) -> str:
    """Name of the first step, or the default task name."""
    if not steps:
        return DEFAULT_TASK_NAME
    return steps[0].name


def find_data_ref(steps: List[Step], system_name: str) -> Optional[DataRef]:
    """Find the first DataRef whose kind mentions the given system.

    Steps are scanned in order; within a step, inputs are scanned before
    outputs.

    Args:
        steps: Pipeline steps in declaration order.
        system_name: Source-system name, e.g. "postgres".

    Returns:
        The first matching DataRef, or None.
    """
    needle = system_name.lower()
    for step in steps:
        for ref in list(step.inputs) + list(step.outputs):
            if needle in ref.kind.lower():
                return ref
    return None


def failure_emails(steps: List[Step]) -> List[str]:
    """Collect e-mail recipients of on_failure notifications, de-duplicated."""
    emails: List[str] = []
    for step in steps:
        if step.notifications is None:
            continue
        for target in step.notifications.on_failure:
            if target.method.lower() != "email":
                continue
            for recipient in target.recipients:
                if recipient and recipient not in emails:
                    emails.append(recipient)
    return emails


def _owner_name(definition: PipelineDefinition) -> str:
    for owner in definition.owners:
        if owner.name:
            return owner.name
    return DEFAULT_OWNER
