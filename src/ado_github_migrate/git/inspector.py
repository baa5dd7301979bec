"""Read-only inspection of a local mirror."""

import asyncio
from pathlib import Path
from typing import FrozenSet

from loguru import logger as default_logger

from ..models.repository import RepoSnapshot
from .command import run_git
from .exceptions import GitError, GitErrorKind


class RepositoryInspector:
    """Summarises a local repository's branches, tags and commit count."""

    def __init__(self, timeout: int = 600, logger=None):
        self.timeout = timeout
        self.logger = (logger or default_logger).bind(component='RepositoryInspector')

    async def inspect(self, repository_path: str) -> RepoSnapshot:
        """Take a snapshot of a local repository.

        Args:
            repository_path: Path of a bare or working repository

        Returns:
            Branch names, tag names and the number of commits reachable
            from them

        Raises:
            GitError: INSPECT_FAILED if the path isn't a readable repository
        """
        if not Path(repository_path).is_dir():
            raise GitError(
                GitErrorKind.INSPECT_FAILED,
                f'Repository path does not exist: {repository_path}',
            )

        branches = await self._ref_names(repository_path, 'refs/heads/')
        tags = await self._ref_names(repository_path, 'refs/tags/')

        commit_count = 0
        if branches or tags:
            output = await self._git(
                repository_path, ['rev-list', '--count', '--branches', '--tags']
            )
            commit_count = int(output.strip() or 0)

        snapshot = RepoSnapshot(
            branch_names=branches, tag_names=tags, commit_count=commit_count
        )
        self.logger.info(
            f'Inspected {repository_path}: {snapshot.branch_count} branches, '
            f'{snapshot.tag_count} tags, {snapshot.commit_count} commits'
        )
        return snapshot

    async def _ref_names(self, repository_path: str, prefix: str) -> FrozenSet[str]:
        output = await self._git(
            repository_path, ['for-each-ref', '--format=%(refname)', prefix]
        )
        return frozenset(
            line.strip()[len(prefix):]
            for line in output.splitlines()
            if line.strip().startswith(prefix)
        )

    async def _git(self, repository_path: str, args) -> str:
        try:
            result = await run_git(
                args, cwd=repository_path, timeout=self.timeout, logger=self.logger
            )
        except (asyncio.TimeoutError, OSError) as e:
            raise GitError(
                GitErrorKind.INSPECT_FAILED,
                f'git {args[0]} failed in {repository_path}: {e!r}',
            ) from e

        if not result.success:
            raise GitError(
                GitErrorKind.INSPECT_FAILED,
                f'git {args[0]} failed in {repository_path}: {result.stderr.strip()}',
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result.stdout
