"""Git mirror cloning."""

import asyncio
import os
import shutil
from pathlib import Path

from loguru import logger as default_logger

from .command import mask_credentials, run_git
from .exceptions import GitError, GitErrorKind


class GitCloner:
    """Creates full mirror copies of remote repositories."""

    def __init__(self, timeout: int = 3600, logger=None):
        """Initialize git cloner.

        Args:
            timeout: Seconds before a clone is abandoned
            logger: Run logger
        """
        self.timeout = timeout
        self.logger = (logger or default_logger).bind(component='GitCloner')

    async def mirror_clone(self, source_url: str, destination_path: str) -> str:
        """Mirror-clone a repository (all branches, tags and refs).

        ``destination_path`` is owned by the caller exclusively: anything
        already there is deleted before cloning. On failure no partial copy
        is left behind.

        Args:
            source_url: Remote URL, credentials included
            destination_path: Local path for the bare mirror

        Returns:
            The absolute path of the mirror

        Raises:
            GitError: PATH_UNWRITABLE if the path can't be (re)created,
                CLONE_FAILED on a failed or timed-out clone
        """
        repo_path = Path(destination_path).resolve()
        masked_url = mask_credentials(source_url)
        self.logger.info(f'Mirror cloning {masked_url} into {repo_path}')

        self._prepare_path(repo_path)

        try:
            result = await run_git(
                ['clone', '--mirror', source_url, str(repo_path)],
                cwd=str(repo_path.parent),
                timeout=self.timeout,
                logger=self.logger,
            )
        except asyncio.TimeoutError as e:
            self._remove_partial(repo_path)
            raise GitError(
                GitErrorKind.CLONE_FAILED,
                f'Git clone of {masked_url} timed out after {self.timeout} seconds',
            ) from e
        except OSError as e:
            self._remove_partial(repo_path)
            raise GitError(
                GitErrorKind.CLONE_FAILED, f'Could not run git clone: {e}'
            ) from e
        except asyncio.CancelledError:
            self._remove_partial(repo_path)
            raise

        if not result.success:
            self._remove_partial(repo_path)
            raise GitError(
                GitErrorKind.CLONE_FAILED,
                f'Git clone of {masked_url} failed with return code '
                f'{result.returncode}: {result.stderr.strip() or "Unknown error"}',
                returncode=result.returncode,
                stderr=result.stderr,
            )

        self.logger.info(f'Git clone completed successfully to {repo_path}')
        return str(repo_path)

    def _prepare_path(self, repo_path: Path) -> None:
        try:
            if repo_path.is_dir() and not repo_path.is_symlink():
                self.logger.warning(f'Removing existing working copy at {repo_path}')
                shutil.rmtree(repo_path)
            elif repo_path.exists() or repo_path.is_symlink():
                repo_path.unlink()
            repo_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise GitError(
                GitErrorKind.PATH_UNWRITABLE,
                f'Cannot prepare working copy path {repo_path}: {e}',
            ) from e

        if not os.access(repo_path.parent, os.W_OK):
            raise GitError(
                GitErrorKind.PATH_UNWRITABLE,
                f'Working copy parent is not writable: {repo_path.parent}',
            )

    def _remove_partial(self, repo_path: Path) -> None:
        if repo_path.exists():
            shutil.rmtree(repo_path, ignore_errors=True)
            self.logger.debug(f'Removed partial clone at {repo_path}')
