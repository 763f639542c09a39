"""Artifact generation: pipeline definition to rendered DAG source.

The generator is pure apart from reading the template resource: the same
definition and template always produce the same bytes.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.pipeweaver.definitions.models import PipelineDefinition
from src.pipeweaver.generator.params import build_template_params
from src.pipeweaver.generator.renderer import DagRenderer
from src.pipeweaver.generator.templates import TemplateStore


@dataclass(frozen=True)
class GeneratedArtifact:
    """A rendered DAG file ready to be written to the working tree.

    Attributes:
        target_path: Repository-relative output path.
        content: Rendered file content.
        source_path: Repository-relative path of the source definition.
        template_version: Definition version used to select the template.
    """

    target_path: str
    content: bytes
    source_path: str = ""
    template_version: str = ""


class ArtifactGenerator:
    """Renders pipeline definitions into Airflow DAG source files.

    Attributes:
        template_store: Resolves the template for a definition version.
        renderer: Substitutes template parameters into the template.
    """

    def __init__(
        self,
        template_store: Optional[TemplateStore] = None,
        renderer: Optional[DagRenderer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.template_store = template_store or TemplateStore()
        self.renderer = renderer or DagRenderer()
        self._logger = logger or logging.getLogger(__name__)

    def render(self, definition: PipelineDefinition) -> bytes:
        """Render a definition with the template selected by its version.

        Raises:
            TemplateNotFound: If no template matches the definition version.
            RenderError: If rendering fails.
        """
        template = self.template_store.load(definition.version)
        params = build_template_params(definition)
        rendered = self.renderer.render(template, params.to_template_vars())

        self._logger.info(
            "DAG generated successfully",
            extra={"pipeline": definition.name, "version": definition.version},
        )
        return rendered.encode("utf-8")

    def generate(
        self,
        definition: PipelineDefinition,
        target_path: str,
        source_path: str = "",
    ) -> GeneratedArtifact:
        """Render a definition into a GeneratedArtifact at target_path.

        Args:
            definition: The parsed pipeline definition.
            target_path: Repository-relative path the artifact is written to.
            source_path: Repository-relative path of the definition.

        Returns:
            The rendered artifact.

        Raises:
            TemplateNotFound: If no template matches the definition version.
            RenderError: If rendering fails.
        """
        content = self.render(definition)
        return GeneratedArtifact(
            target_path=target_path,
            content=content,
            source_path=source_path,
            template_version=definition.version,
        )
