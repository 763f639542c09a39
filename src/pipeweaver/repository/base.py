"""Versioned Tree capability.

The orchestrator mutates a single working checkout through this protocol
only. Implementations raise VersionedTreeError (a CollaboratorFailure) for
every failed operation.
"""

from typing import Optional, Protocol, runtime_checkable

from src.pipeweaver.errors import CollaboratorFailure


class VersionedTreeError(CollaboratorFailure):
    """Raised when a Versioned Tree operation fails."""

    pass


class TreeFileNotFound(VersionedTreeError):
    """Raised when a requested file does not exist in the working tree.

    Attributes:
        path: Repository-relative path that was requested.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found in working tree: {path}", operation="read_file")


class GitCommandError(VersionedTreeError):
    """Raised when a git command exits non-zero, times out or cannot start.

    Attributes:
        command: The git sub-command that failed (credentials redacted).
        returncode: Process exit code, or None if the process never finished.
        stderr: Captured standard error (credentials redacted).
    """

    def __init__(
        self,
        command: str,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
        operation: Optional[str] = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git {command} failed: {message}", operation=operation)


@runtime_checkable
class VersionedTree(Protocol):
    """Protocol for the single working checkout mutated by workflows.

    All paths are relative to the repository root.
    """

    async def read_file(self, path: str) -> bytes:
        """Return file content.

        Raises:
            TreeFileNotFound: If the file does not exist.
        """
        ...

    async def create_branch(self, name: str) -> None:
        """Create a branch at the current HEAD without switching to it."""
        ...

    async def switch_branch(self, name: str) -> None:
        """Check out an existing branch."""
        ...

    async def write_file(self, path: str, content: bytes) -> None:
        """Write a file, creating parent directories, and stage it."""
        ...

    async def commit_and_push(self, message: str) -> None:
        """Commit staged changes as the bot identity and push the branch."""
        ...

    async def switch_to_default(self) -> None:
        """Check out the default branch, discarding uncommitted changes."""
        ...

    async def delete_branch(self, name: str) -> None:
        """Delete a local branch."""
        ...
