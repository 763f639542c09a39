"""Versioned Tree capability and its git implementation.

The orchestrator only depends on the VersionedTree protocol; the
GitWorkingTree implementation drives the git CLI against one checkout.
"""

from src.pipeweaver.repository.base import (
    GitCommandError,
    TreeFileNotFound,
    VersionedTree,
    VersionedTreeError,
)
from src.pipeweaver.repository.git_tree import GitWorkingTree

__all__ = [
    "GitCommandError",
    "GitWorkingTree",
    "TreeFileNotFound",
    "VersionedTree",
    "VersionedTreeError",
]
