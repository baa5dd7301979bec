"""Git operations module for repository migration."""

from .clone import GitCloner
from .command import authenticated_url, mask_credentials
from .exceptions import GitError, GitErrorKind
from .inspector import RepositoryInspector
from .operations import GitClient
from .push import GitPusher

__all__ = [
    'GitCloner',
    'GitClient',
    'GitError',
    'GitErrorKind',
    'GitPusher',
    'RepositoryInspector',
    'authenticated_url',
    'mask_credentials',
]
