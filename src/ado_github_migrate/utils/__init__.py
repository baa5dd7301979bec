"""Utility helpers."""

from .logging import RunLogger, create_run_logger, disable_default_sink, get_logger

__all__ = ['RunLogger', 'create_run_logger', 'disable_default_sink', 'get_logger']
