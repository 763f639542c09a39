"""Airflow DAG generation from pipeline definitions.

This module turns a parsed PipelineDefinition into DAG source code:
- params: derives template variables (schedule, task, data sources)
- templates: resolves the template for the definition's version
- renderer: Jinja2 rendering with strict undefined handling
- generator: ties the three together into a GeneratedArtifact
"""

from src.pipeweaver.generator.generator import ArtifactGenerator, GeneratedArtifact
from src.pipeweaver.generator.params import (
    DEFAULT_TASK_NAME,
    UNSCHEDULED,
    DagTemplateParams,
    build_template_params,
)
from src.pipeweaver.generator.renderer import DagRenderer, RenderError
from src.pipeweaver.generator.templates import TemplateNotFound, TemplateStore

__all__ = [
    "ArtifactGenerator",
    "DEFAULT_TASK_NAME",
    "DagRenderer",
    "DagTemplateParams",
    "GeneratedArtifact",
    "RenderError",
    "TemplateNotFound",
    "TemplateStore",
    "UNSCHEDULED",
    "build_template_params",
]
