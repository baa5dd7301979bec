"""Git operation exceptions."""

from enum import Enum
from typing import Optional


class GitErrorKind(str, Enum):
    """Classification of git failures."""

    CLONE_FAILED = 'clone_failed'
    PUSH_FAILED = 'push_failed'
    PATH_UNWRITABLE = 'path_unwritable'
    INSPECT_FAILED = 'inspect_failed'


class GitError(Exception):
    """Raised when a git subprocess or its working directory fails."""

    def __init__(
        self,
        kind: GitErrorKind,
        message: str,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.returncode = returncode
        self.stderr = stderr
