"""Tests for run-scoped logging."""

import io

import pytest
from loguru import logger

from ado_github_migrate.utils.logging import create_run_logger, get_logger


class TestRunLogger:
    """Test logger construction and sink isolation."""

    def test_messages_reach_own_sink(self):
        """Test that a run logger writes to its console sink."""
        stream = io.StringIO()
        run = create_run_logger(run_id='run-a', level='INFO', console=stream)
        try:
            get_logger('GitClient', run.logger).info('cloning')
        finally:
            run.close()

        output = stream.getvalue()
        assert 'cloning' in output
        assert 'GitClient' in output

    def test_runs_are_isolated(self):
        """Test that sinks only see their own run."""
        first, second = io.StringIO(), io.StringIO()
        run_a = create_run_logger(run_id='a', console=first)
        run_b = create_run_logger(run_id='b', console=second)
        try:
            run_a.logger.info('from a')
            run_b.logger.info('from b')
            logger.bind(component='other').info('unscoped')
        finally:
            run_a.close()
            run_b.close()

        assert 'from a' in first.getvalue() and 'from b' not in first.getvalue()
        assert 'from b' in second.getvalue() and 'from a' not in second.getvalue()
        assert 'unscoped' not in first.getvalue()

    def test_level_filtering(self):
        """Test that records below the level are dropped."""
        stream = io.StringIO()
        run = create_run_logger(level='warning', console=stream)
        try:
            run.logger.info('quiet')
            run.logger.warning('loud')
        finally:
            run.close()

        assert 'quiet' not in stream.getvalue()
        assert 'loud' in stream.getvalue()

    def test_file_sink(self, tmp_path):
        """Test the log file sink carries the run id."""
        log_file = tmp_path / 'logs' / 'migration.log'
        run = create_run_logger(run_id='filerun', console=io.StringIO(), log_file=str(log_file))
        try:
            run.logger.info('to file')
        finally:
            run.close()

        content = log_file.read_text(encoding='utf-8')
        assert 'to file' in content
        assert 'filerun' in content

    def test_close_removes_sinks(self):
        """Test that closed runs stop writing."""
        stream = io.StringIO()
        run = create_run_logger(console=stream)
        run.close()
        run.close()

        run.logger.info('after close')

        assert 'after close' not in stream.getvalue()

    def test_invalid_level(self):
        """Test level validation."""
        with pytest.raises(ValueError):
            create_run_logger(level='CHATTY')
