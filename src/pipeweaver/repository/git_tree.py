"""Git working tree backed by the git CLI.

Implements the VersionedTree protocol against a single local checkout,
running git as asyncio subprocesses so the event loop is never blocked.
The checkout is cloned (single branch) on first use and reset to the
remote default branch on every later start and again before each new
working branch is created.

Credentials are embedded in the remote URL handed to git and are redacted
from every log line and error message.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from src.pipeweaver.repository.base import (
    GitCommandError,
    TreeFileNotFound,
    VersionedTreeError,
)

GIT_COMMAND_TIMEOUT_SECONDS = 300
REDACTED = "***"


class GitWorkingTree:
    """VersionedTree implementation over a local git checkout.

    Attributes:
        repo_path: Directory holding the checkout.
        remote_url: HTTPS clone URL without credentials.
        default_branch: Branch that pull requests target.
        author_name: Commit author/committer name.
        author_email: Commit author/committer e-mail.
        command_timeout: Seconds before a git command is killed.
    """

    def __init__(
        self,
        repo_path: Path,
        remote_url: str,
        default_branch: str = "main",
        username: str = "",
        token: str = "",
        author_name: str = "Pipeweaver Bot",
        author_email: str = "pipeweaver-bot@users.noreply.github.com",
        command_timeout: int = GIT_COMMAND_TIMEOUT_SECONDS,
        git_executable: str = "git",
        logger: Optional[logging.Logger] = None,
    ):
        self.repo_path = Path(repo_path)
        self.remote_url = remote_url
        self.default_branch = default_branch
        self.author_name = author_name
        self.author_email = author_email
        self.command_timeout = command_timeout
        self.git_executable = git_executable
        self._username = username
        self._token = token
        self._logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        """Clone the repository, or refresh an existing checkout.

        An existing checkout is force-reset to the remote default branch so
        a crash in the middle of a previous workflow cannot leak state.

        Raises:
            GitCommandError: If any git command fails.
        """
        if (self.repo_path / ".git").is_dir():
            self._logger.info(
                "Refreshing existing checkout",
                extra={"repo_path": str(self.repo_path)},
            )
            await self._run_git("remote", "set-url", "origin", self._authenticated_url())
            await self._sync_default("prepare")
            return

        self._logger.info(
            "Cloning repository",
            extra={"remote_url": self.remote_url, "repo_path": str(self.repo_path)},
        )
        try:
            self.repo_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise VersionedTreeError(
                f"Failed to create {self.repo_path.parent}: {exc}", operation="prepare"
            ) from exc

        await self._run_git(
            "clone",
            "--branch",
            self.default_branch,
            "--single-branch",
            self._authenticated_url(),
            str(self.repo_path),
            cwd=self.repo_path.parent,
        )

    # ------------------------------------------------------------------
    # VersionedTree protocol
    # ------------------------------------------------------------------

    async def read_file(self, path: str) -> bytes:
        full_path = self._resolve(path)
        if not full_path.is_file():
            raise TreeFileNotFound(path)
        try:
            return full_path.read_bytes()
        except OSError as exc:
            raise VersionedTreeError(
                f"Failed to read {path}: {exc}", operation="read_file"
            ) from exc

    async def create_branch(self, name: str) -> None:
        """Create ``name`` at the current remote default-branch tip."""
        await self._sync_default("create_branch")
        await self._run_git("branch", name, operation="create_branch")

    async def switch_branch(self, name: str) -> None:
        await self._run_git("checkout", name, operation="switch_branch")

    async def write_file(self, path: str, content: bytes) -> None:
        full_path = self._resolve(path)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(content)
        except OSError as exc:
            raise VersionedTreeError(
                f"Failed to write {path}: {exc}", operation="write_file"
            ) from exc

        await self._run_git("add", "--", path, operation="write_file")
        self._logger.debug("Staged file", extra={"path": path, "bytes": len(content)})

    async def commit_and_push(self, message: str) -> None:
        # Regenerating an unchanged definition stages nothing; the commit is
        # still made so the pull request records the run.
        await self._run_git(
            "-c",
            f"user.name={self.author_name}",
            "-c",
            f"user.email={self.author_email}",
            "commit",
            "--allow-empty",
            "-m",
            message,
            operation="commit_and_push",
        )
        await self._run_git("push", "origin", "HEAD", operation="commit_and_push")

    async def switch_to_default(self) -> None:
        await self._run_git("checkout", "-f", self.default_branch, operation="switch_to_default")

    async def delete_branch(self, name: str) -> None:
        await self._run_git("branch", "-D", name, operation="delete_branch")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _sync_default(self, operation: str) -> None:
        """Fetch the default branch and force the checkout onto its tip."""
        await self._run_git("fetch", "origin", self.default_branch, operation=operation)
        await self._run_git("checkout", "-f", self.default_branch, operation=operation)
        await self._run_git(
            "reset", "--hard", f"origin/{self.default_branch}", operation=operation
        )

    def _resolve(self, path: str) -> Path:
        """Resolve a repository-relative path, rejecting escapes."""
        root = self.repo_path.resolve()
        full_path = (root / path).resolve()
        if full_path == root or not full_path.is_relative_to(root):
            raise VersionedTreeError(
                f"Path {path!r} is outside the working tree", operation="resolve"
            )
        return full_path

    def _authenticated_url(self) -> str:
        if not self._token:
            return self.remote_url
        parts = urlsplit(self.remote_url)
        user = quote(self._username or "x-access-token", safe="")
        netloc = f"{user}:{quote(self._token, safe='')}@{parts.hostname}"
        if parts.port:
            netloc += f":{parts.port}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    def _redact(self, text: str) -> str:
        if self._token:
            text = text.replace(quote(self._token, safe=""), REDACTED)
            text = text.replace(self._token, REDACTED)
        return text

    def _environment(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        return env

    async def _run_git(
        self,
        *args: str,
        cwd: Optional[Path] = None,
        operation: Optional[str] = None,
    ) -> bytes:
        """Run a git command and return its stdout.

        Raises:
            GitCommandError: If git exits non-zero, times out or cannot start.
        """
        command = self._redact(" ".join(args))
        self._logger.debug("Running git", extra={"command": command})

        try:
            process = await asyncio.create_subprocess_exec(
                self.git_executable,
                *args,
                cwd=str(cwd or self.repo_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._environment(),
            )
        except OSError as exc:
            raise GitCommandError(
                command, f"failed to execute git: {exc}", operation=operation
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.command_timeout,
            )
        except asyncio.TimeoutError as exc:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            raise GitCommandError(
                command,
                f"timed out after {self.command_timeout}s",
                operation=operation,
            ) from exc

        if process.returncode != 0:
            error_output = self._redact(stderr.decode("utf-8", errors="replace").strip())
            raise GitCommandError(
                command,
                error_output or f"exit code {process.returncode}",
                returncode=process.returncode,
                stderr=error_output,
                operation=operation,
            )

        return stdout
