"""Git mirror pushing."""

import asyncio
from pathlib import Path

from loguru import logger as default_logger

from .command import mask_credentials, run_git
from .exceptions import GitError, GitErrorKind


class GitPusher:
    """Pushes every ref of a local mirror to a remote."""

    def __init__(self, timeout: int = 3600, logger=None):
        """Initialize git pusher.

        Args:
            timeout: Seconds before a push is abandoned
            logger: Run logger
        """
        self.timeout = timeout
        self.logger = (logger or default_logger).bind(component='GitPusher')

    async def mirror_push(self, repository_path: str, destination_url: str) -> None:
        """Push all refs of the local mirror with ``git push --mirror``.

        A failed push is not retried. Pushing the same mirror again after
        fixing the cause is safe.

        Args:
            repository_path: Local mirror path
            destination_url: Remote URL, credentials included

        Raises:
            GitError: PUSH_FAILED on a missing mirror, nonzero exit or timeout
        """
        masked_url = mask_credentials(destination_url)

        if not Path(repository_path).is_dir():
            raise GitError(
                GitErrorKind.PUSH_FAILED,
                f'Working copy does not exist: {repository_path}',
            )

        self.logger.info(f'Mirror pushing {repository_path} to {masked_url}')

        try:
            result = await run_git(
                ['push', '--mirror', destination_url],
                cwd=repository_path,
                timeout=self.timeout,
                logger=self.logger,
            )
        except asyncio.TimeoutError as e:
            raise GitError(
                GitErrorKind.PUSH_FAILED,
                f'Git push to {masked_url} timed out after {self.timeout} seconds',
            ) from e
        except OSError as e:
            raise GitError(
                GitErrorKind.PUSH_FAILED, f'Could not run git push: {e}'
            ) from e

        if not result.success:
            raise GitError(
                GitErrorKind.PUSH_FAILED,
                f'Git push to {masked_url} failed with return code '
                f'{result.returncode}: {result.stderr.strip() or "Unknown error"}',
                returncode=result.returncode,
                stderr=result.stderr,
            )

        self.logger.info(f'Git push completed successfully to {masked_url}')
