"""Git subprocess execution."""

import asyncio
import os
import re
import signal
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from loguru import logger as default_logger

_POSIX = os.name == 'posix'
_CREDENTIALS_IN_URL = re.compile(r'(https?://)[^/@\s]+@')


@dataclass
class GitCommandResult:
    """Result of a git command."""

    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def lines(self) -> List[str]:
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


def mask_credentials(text: str) -> str:
    """Replace any ``user:token@`` part of URLs in ``text``."""
    return _CREDENTIALS_IN_URL.sub(r'\1***@', text or '')


def authenticated_url(url: str, username: str, token: Optional[str]) -> str:
    """Embed credentials into an HTTPS remote URL.

    Existing user info is replaced. Non-HTTP URLs (SSH, local paths) and
    calls without a token are returned unchanged.

    Args:
        url: Remote URL
        username: User name to pair with the token
        token: Access token

    Returns:
        URL with credentials
    """
    if not token or not url.startswith(('http://', 'https://')):
        return url
    parts = urlsplit(url)
    host = parts.hostname or ''
    if parts.port:
        host = f'{host}:{parts.port}'
    netloc = f'{quote(username, safe="")}:{quote(token, safe="")}@{host}'
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


async def run_git(
    args: List[str],
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
    logger=None,
) -> GitCommandResult:
    """Run a git command.

    Args:
        args: Arguments after ``git``
        cwd: Working directory
        timeout: Seconds before the process is killed
        logger: Logger for the (masked) command line

    Returns:
        Command result; a nonzero return code is not raised

    Raises:
        asyncio.TimeoutError: If the command outlives ``timeout``; the
            process group is killed then, and on cancellation as well
        FileNotFoundError: If the git binary is missing
    """
    log = logger or default_logger
    cmd = ['git', *args]
    log.debug(f'Running git command: {mask_credentials(" ".join(cmd))} in {cwd}')

    env = dict(os.environ)
    env['GIT_TERMINAL_PROMPT'] = '0'

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
        env=env,
        start_new_session=_POSIX,
    )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except BaseException:
        # Covers our own timeout and cancellation from an outer step timeout.
        _kill(process)
        await process.wait()
        raise

    result = GitCommandResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors='replace') if stdout else '',
        stderr=mask_credentials(stderr.decode(errors='replace') if stderr else ''),
    )

    log.debug(f'Git command return code: {result.returncode}')
    if result.stderr:
        log.debug(f'Git command stderr: {result.stderr.strip()}')

    return result


def _kill(process) -> None:
    """Kill a git process and the helpers it spawned (remote-https, aliases)."""
    if process.returncode is not None:
        return
    try:
        if _POSIX:
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass
