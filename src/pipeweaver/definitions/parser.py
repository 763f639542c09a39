"""Pipeline definition parsing and validation.

Turns the raw bytes of a definition file into a validated
PipelineDefinition. Two document shapes are accepted:

    pipeline:            # wrapped form, optional top-level resources
      name: ...
      steps: [...]
    resources: {...}

or the same pipeline mapping without the ``pipeline`` wrapper.

Beyond schema validation, the step graph is checked: step names must be
unique, every ``depends_on`` entry must name an existing step, and the
dependency graph must be acyclic.
"""

import logging
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from src.pipeweaver.definitions.models import PipelineDefinition, Step
from src.pipeweaver.errors import ParseFailure

logger = logging.getLogger(__name__)


class DefinitionValidationError(ParseFailure):
    """Raised when a definition parses but violates step-graph invariants.

    Attributes:
        problems: Human-readable description of every violation found.
    """

    def __init__(self, problems: List[str], source_path: Optional[str] = None):
        self.problems = problems
        location = f" in {source_path}" if source_path else ""
        super().__init__(
            f"Invalid pipeline definition{location}: " + "; ".join(problems),
            source_path=source_path,
        )


def parse_definition(content: bytes, source_path: str = "") -> PipelineDefinition:
    """Parse and validate a pipeline definition document.

    Args:
        content: Raw file content (UTF-8 YAML).
        source_path: Repository path of the file, used in error messages.

    Returns:
        The validated PipelineDefinition.

    Raises:
        ParseFailure: If the content is not valid YAML or does not match
            the definition schema.
        DefinitionValidationError: If the step graph is inconsistent.
    """
    document = _load_yaml(content, source_path)
    pipeline_data = _unwrap_pipeline(document, source_path)

    try:
        definition = PipelineDefinition.model_validate(pipeline_data)
    except ValidationError as exc:
        raise ParseFailure(
            f"Pipeline definition {source_path or '<memory>'} does not match "
            f"the schema: {exc.error_count()} error(s): {exc}",
            source_path=source_path,
        ) from exc

    validate_step_graph(definition, source_path)

    logger.debug(
        "Parsed pipeline definition",
        extra={
            "source_path": source_path,
            "pipeline": definition.name,
            "version": definition.version,
            "step_count": len(definition.steps),
        },
    )
    return definition


def validate_step_graph(
    definition: PipelineDefinition, source_path: str = ""
) -> None:
    """Check step-name uniqueness, dependency references and acyclicity.

    Args:
        definition: The definition to check.
        source_path: Repository path, used in error messages.

    Raises:
        DefinitionValidationError: Listing every problem found.
    """
    problems: List[str] = []

    seen: set = set()
    for name in definition.step_names():
        if name in seen:
            problems.append(f"duplicate step name '{name}'")
        seen.add(name)

    for step in definition.steps:
        for dependency in step.depends_on:
            if dependency not in seen:
                problems.append(
                    f"step '{step.name}' depends on unknown step '{dependency}'"
                )

    # Cycle detection is only meaningful once references resolve.
    if not problems:
        cycle = _find_cycle(definition.steps)
        if cycle:
            problems.append("dependency cycle " + " -> ".join(cycle))

    if problems:
        raise DefinitionValidationError(problems, source_path=source_path)


def _load_yaml(content: bytes, source_path: str) -> Any:
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseFailure(
            f"Pipeline definition {source_path or '<memory>'} is not valid UTF-8",
            source_path=source_path,
        ) from exc

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseFailure(
            f"Pipeline definition {source_path or '<memory>'} is not valid YAML: {exc}",
            source_path=source_path,
        ) from exc


def _unwrap_pipeline(document: Any, source_path: str) -> Dict[str, Any]:
    if not isinstance(document, dict):
        raise ParseFailure(
            f"Pipeline definition {source_path or '<memory>'} must be a mapping, "
            f"got {type(document).__name__}",
            source_path=source_path,
        )

    pipeline = document.get("pipeline")
    if pipeline is None:
        return document

    if not isinstance(pipeline, dict):
        raise ParseFailure(
            f"'pipeline' in {source_path or '<memory>'} must be a mapping",
            source_path=source_path,
        )

    merged = dict(pipeline)
    if "resources" in document and "resources" not in merged:
        merged["resources"] = document["resources"]
    return merged


def _find_cycle(steps: List[Step]) -> Optional[List[str]]:
    """Return one dependency cycle as a list of step names, or None.

    Depth-first search with an explicit stack, so arbitrarily long
    dependency chains are handled without recursion.
    """
    graph = {step.name: list(step.depends_on) for step in steps}
    done: set = set()

    for root in graph:
        if root in done:
            continue
        path: List[str] = [root]
        on_path: Dict[str, int] = {root: 0}
        pending = [iter(graph[root])]

        while pending:
            dependency = next(pending[-1], None)
            if dependency is None:
                pending.pop()
                finished = path.pop()
                del on_path[finished]
                done.add(finished)
                continue
            if dependency in on_path:
                return path[on_path[dependency]:] + [dependency]
            if dependency in done:
                continue
            on_path[dependency] = len(path)
            path.append(dependency)
            pending.append(iter(graph.get(dependency, [])))
    return None
