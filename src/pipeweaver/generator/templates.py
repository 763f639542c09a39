"""DAG template lookup.

Templates are plain files named ``<base name>.<version>`` (by default
``dag_template.py.tmpl.1.0``) stored in a templates directory. The
packaged directory next to this module is used unless another one is
configured.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from src.pipeweaver.errors import TemplateFailure

DEFAULT_TEMPLATE_BASE_NAME = "dag_template.py.tmpl"
PACKAGED_TEMPLATES_DIR = Path(__file__).parent / "templates"

# Versions become part of a file name; anything else could escape the directory.
_VERSION_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class TemplateNotFound(TemplateFailure):
    """Raised when no template exists for a definition version.

    Attributes:
        version: The requested definition version.
        template_path: The path that was looked up, if one was built.
    """

    def __init__(self, version: str, template_path: Optional[Path] = None):
        self.version = version
        self.template_path = template_path
        location = f" at {template_path}" if template_path else ""
        super().__init__(f"No DAG template for version '{version}'{location}")


class TemplateStore:
    """Resolves and reads versioned DAG templates.

    Attributes:
        templates_dir: Directory holding the template files.
        base_name: File-name prefix shared by all template versions.
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        base_name: str = DEFAULT_TEMPLATE_BASE_NAME,
        logger: Optional[logging.Logger] = None,
    ):
        self.templates_dir = Path(templates_dir) if templates_dir else PACKAGED_TEMPLATES_DIR
        self.base_name = base_name
        self._logger = logger or logging.getLogger(__name__)

    def template_path(self, version: str) -> Path:
        """Build the template path for a version.

        Raises:
            TemplateNotFound: If the version is empty or not a safe file-name suffix.
        """
        if not version or not _VERSION_PATTERN.match(version) or ".." in version:
            raise TemplateNotFound(version)
        return self.templates_dir / f"{self.base_name}.{version}"

    def load(self, version: str) -> str:
        """Read the template text for a definition version.

        Args:
            version: The definition's declared version.

        Returns:
            Template source text.

        Raises:
            TemplateNotFound: If no template file exists for the version.
        """
        path = self.template_path(version)
        try:
            text = path.read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise TemplateNotFound(version, path) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateFailure(f"Failed to read template {path}: {exc}") from exc

        self._logger.debug("Loaded DAG template", extra={"template_path": str(path)})
        return text

    def available_versions(self) -> List[str]:
        """List the versions that have a template, sorted."""
        if not self.templates_dir.is_dir():
            return []
        prefix = f"{self.base_name}."
        return sorted(
            entry.name[len(prefix):]
            for entry in self.templates_dir.iterdir()
            if entry.is_file() and entry.name.startswith(prefix)
        )
