"""Logging utilities for the migration tool."""

import sys
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger

CONSOLE_FORMAT = (
    '<green>{time:YYYY-MM-DD HH:mm:ss}</green> | '
    '<level>{level: <8}</level> | '
    '<cyan>{extra[component]}</cyan> | '
    '<level>{message}</level>'
)

FILE_FORMAT = (
    '{time:YYYY-MM-DD HH:mm:ss} | '
    '{level: <8} | '
    '{extra[run_id]} | '
    '{extra[component]} | '
    '{message}'
)

VALID_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class RunLogger:
    """A loguru logger bound to one run, plus the sinks it owns."""

    run_id: str
    logger: Any
    handler_ids: List[int] = field(default_factory=list)

    def close(self) -> None:
        """Remove the sinks added for this run."""
        for handler_id in self.handler_ids:
            try:
                logger.remove(handler_id)
            except ValueError:
                pass
        self.handler_ids = []


def create_run_logger(
    run_id: Optional[str] = None,
    level: str = 'INFO',
    log_file: Optional[str] = None,
    console: Any = None,
) -> RunLogger:
    """Create a logger whose console and file sinks only see this run.

    Sinks are filtered on the bound ``run_id``, so independent runs in one
    process never share output and no global handler state is replaced.

    Args:
        run_id: Identifier bound to every record (generated if omitted)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        console: Console stream, defaults to stderr

    Returns:
        The run logger handle
    """
    level = level.upper()
    if level not in VALID_LEVELS:
        raise ValueError(f'Log level must be one of: {VALID_LEVELS}')

    run_id = run_id or uuid.uuid4().hex[:8]

    def only_this_run(record) -> bool:
        return record['extra'].get('run_id') == run_id

    handler_ids = [
        logger.add(
            console or sys.stderr,
            format=CONSOLE_FORMAT,
            level=level,
            colorize=console is None,
            filter=only_this_run,
        )
    ]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler_ids.append(
            logger.add(
                str(log_path),
                format=FILE_FORMAT,
                level=level,
                filter=only_this_run,
                encoding='utf-8',
            )
        )

    bound = logger.bind(run_id=run_id, component='migration')
    bound.debug(f'Logging initialized with level: {level}')
    if log_file:
        bound.debug(f'Log file: {log_file}')

    return RunLogger(run_id=run_id, logger=bound, handler_ids=handler_ids)


def disable_default_sink() -> None:
    """Drop loguru's default stderr sink so only run sinks print."""
    try:
        logger.remove(0)
    except ValueError:
        pass


def get_logger(component: str, base=None):
    """Bind a component name onto a (run) logger.

    Args:
        component: Component name shown in log lines
        base: Run logger to extend, defaults to the loguru logger

    Returns:
        Logger instance
    """
    return (base or logger).bind(component=component)
