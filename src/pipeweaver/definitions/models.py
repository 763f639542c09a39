"""Pipeline definition models.

This module defines the data models for the declarative pipeline
definitions that users commit under the definitions root, including:
- PipelineDefinition: Top-level pipeline document
- Step: A discrete stage (ingestion, transformation, export, ...)
- DataRef: A named data location read or written by a step
- Schedule, Owner, Notifications, Resources: Supporting metadata

The models use Pydantic for validation. The ``type`` and ``table_name``
keys on data references are accepted as aliases of ``kind`` and ``table``.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class DataRef(BaseModel):
    """Reference to a named data location.

    Attributes:
        name: Logical name of the data set.
        kind: Storage system kind (e.g. "postgres", "snowflake", "s3").
        path: Object-store path, for file-like systems.
        table: Table name, for database systems.
        host: Database host.
        database: Database name.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""

    kind: str = Field(
        default="",
        validation_alias=AliasChoices("kind", "type"),
        description="Storage system kind, matched against known source systems",
    )

    path: str = ""

    table: str = Field(
        default="",
        validation_alias=AliasChoices("table", "table_name"),
        description="Table name for database-backed systems",
    )

    host: str = ""

    database: str = ""


class NotificationTarget(BaseModel):
    """Where and how a step notification is delivered."""

    method: str
    recipients: List[str] = Field(default_factory=list)
    channel: str = ""


class Notifications(BaseModel):
    """Notification targets for step success and failure."""

    on_success: List[NotificationTarget] = Field(default_factory=list)
    on_failure: List[NotificationTarget] = Field(default_factory=list)


class Step(BaseModel):
    """A discrete stage in the pipeline.

    Attributes:
        name: Step name, unique within the definition.
        type: Step category (ingestion, transformation, ...).
        description: Free-form description.
        depends_on: Names of steps that must run before this one.
        inputs: Ordered data references the step reads.
        outputs: Ordered data references the step writes.
        config: Opaque step configuration.
        transformation_query: Optional SQL executed by the step.
        notifications: Optional success/failure notification targets.
    """

    name: str = Field(..., min_length=1)
    type: str = ""
    description: str = ""
    depends_on: List[str] = Field(default_factory=list)
    inputs: List[DataRef] = Field(default_factory=list)
    outputs: List[DataRef] = Field(default_factory=list)
    config: Any = None
    transformation_query: str = ""
    notifications: Optional[Notifications] = None


class Schedule(BaseModel):
    """When the pipeline runs."""

    type: str = ""
    expression: str = ""


class Owner(BaseModel):
    """A pipeline owner."""

    name: str = ""
    email: str = ""


class Resources(BaseModel):
    """Optional platform-level resources for the pipeline."""

    compute_cluster: str = ""
    storage_location: str = ""


class PipelineDefinition(BaseModel):
    """Parsed pipeline definition document.

    Attributes:
        name: Pipeline name, used as the DAG id.
        version: Definition format version; selects the DAG template.
        domain: Business domain the pipeline belongs to.
        description: Human-readable description.
        owners: Pipeline owners.
        schedule: Optional schedule; absent means unscheduled.
        parameters: Free-form pipeline parameters.
        steps: Ordered pipeline steps.
        resources: Optional platform resources.
    """

    name: str = ""
    version: str = ""
    domain: str = ""
    description: str = ""
    owners: List[Owner] = Field(default_factory=list)
    schedule: Optional[Schedule] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    steps: List[Step] = Field(default_factory=list)
    resources: Optional[Resources] = None

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        """Accept unquoted YAML versions such as ``version: 1.0``."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def step_names(self) -> List[str]:
        """Return step names in declaration order."""
        return [step.name for step in self.steps]
