"""Mapping between definition paths and generated artifact paths.

Repository paths always use forward slashes, so posixpath is used
regardless of the host platform.
"""

import posixpath
from typing import Iterable, List

DEFAULT_DEFINITIONS_ROOT = "pipelines/"
DEFAULT_OUTPUT_ROOT = "airflow-dags/"
ARTIFACT_EXTENSION = ".py"


def is_definition_path(path: str, definitions_root: str = DEFAULT_DEFINITIONS_ROOT) -> bool:
    return path.startswith(definitions_root)


def definition_paths(
    paths: Iterable[str],
    definitions_root: str = DEFAULT_DEFINITIONS_ROOT,
) -> List[str]:
    """Paths under definitions_root, in input order."""
    return [path for path in paths if is_definition_path(path, definitions_root)]


def artifact_path_for(
    definition_path: str,
    definitions_root: str = DEFAULT_DEFINITIONS_ROOT,
    output_root: str = DEFAULT_OUTPUT_ROOT,
) -> str:
    """Output path for a definition file.

    The definitions root is replaced by the output root and the file
    extension by ``.py``.

    Example:
        >>> artifact_path_for("pipelines/sales/orders.yaml")
        'airflow-dags/sales/orders.py'
    """
    relative = definition_path[len(definitions_root):] if is_definition_path(
        definition_path, definitions_root
    ) else definition_path
    joined = posixpath.join(output_root, relative)
    stem, _ = posixpath.splitext(joined)
    return stem + ARTIFACT_EXTENSION
