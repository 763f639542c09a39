"""Pipeline definition models and parsing.

Definitions are YAML documents committed under the definitions root that
describe a data pipeline: its schedule, steps, and the data each step
reads and writes.
"""

from src.pipeweaver.definitions.models import (
    DataRef,
    NotificationTarget,
    Notifications,
    Owner,
    PipelineDefinition,
    Resources,
    Schedule,
    Step,
)
from src.pipeweaver.definitions.parser import (
    DefinitionValidationError,
    parse_definition,
    validate_step_graph,
)

__all__ = [
    "DataRef",
    "DefinitionValidationError",
    "NotificationTarget",
    "Notifications",
    "Owner",
    "PipelineDefinition",
    "Resources",
    "Schedule",
    "Step",
    "parse_definition",
    "validate_step_graph",
]
