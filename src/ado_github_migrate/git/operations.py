"""Git client facade used by the migration steps."""

import shutil
from pathlib import Path

from loguru import logger as default_logger

from ..models.repository import RepoSnapshot
from .clone import GitCloner
from .inspector import RepositoryInspector
from .push import GitPusher


class GitClient:
    """Mirror clone, mirror push and inspection against local working copies."""

    def __init__(self, timeout: int = 3600, logger=None):
        """Initialize git client.

        Args:
            timeout: Timeout for a single git command in seconds
            logger: Run logger
        """
        self.timeout = timeout
        self.cloner = GitCloner(timeout=timeout, logger=logger)
        self.pusher = GitPusher(timeout=timeout, logger=logger)
        self.inspector = RepositoryInspector(timeout=timeout, logger=logger)
        self.logger = (logger or default_logger).bind(component='GitClient')

    async def mirror_clone(self, source_url: str, destination_path: str) -> RepoSnapshot:
        """Mirror-clone ``source_url`` into ``destination_path`` and inspect it.

        Destructive: an existing ``destination_path`` is wiped first.
        """
        repo_path = await self.cloner.mirror_clone(source_url, destination_path)
        return await self.inspector.inspect(repo_path)

    async def mirror_push(self, repository_path: str, destination_url: str) -> None:
        await self.pusher.mirror_push(repository_path, destination_url)

    async def inspect(self, repository_path: str) -> RepoSnapshot:
        return await self.inspector.inspect(repository_path)

    def remove_working_copy(self, repository_path: str) -> None:
        path = Path(repository_path)
        if path.exists():
            shutil.rmtree(path)
            self.logger.debug(f'Removed working copy {path}')
