"""Tests for CLI interface."""

import os
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from click.testing import CliRunner

from ado_github_migrate.cli.main import cli
from ado_github_migrate.config.exceptions import ConfigError, ConfigErrorKind
from ado_github_migrate.models import (
    MigrationReport,
    MigrationState,
    StepOutcome,
    StepResult,
)


def finished_report(state=MigrationState.COMPLETED):
    report = MigrationReport('legacy', 'acme/legacy')
    report.append(
        StepResult(step_name='analysis', outcome=StepOutcome.SUCCESS, diagnostics=('cloned',))
    )
    if state == MigrationState.ABORTED:
        report.append(
            StepResult(
                step_name='transfer',
                outcome=StepOutcome.FAILED,
                diagnostics=('push rejected',),
                error_kind='push_failed',
            )
        )
    report.finalize(state)
    return report


class TestCLI:
    """Test CLI commands."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text(
            yaml.dump(
                {
                    'source': {
                        'organization': 'contoso',
                        'project': 'fabrikam',
                        'token': 'ado',
                    },
                    'destination': {'token': 'gh'},
                    'migration': {
                        'source_repo': 'legacy',
                        'destination_repo': 'acme/legacy',
                        'pipeline_id': 12,
                    },
                    'report': {'path': str(tmp_path / 'report.md')},
                }
            ),
            encoding='utf-8',
        )
        return str(path)

    def test_cli_help(self):
        """Test CLI help command."""
        result = self.runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        for command in (
            'init',
            'migrate',
            'analyze',
            'transfer',
            'repoint-pipeline',
            'apply-permissions',
            'validate',
            'status',
        ):
            assert command in result.output

    def test_cli_version(self):
        """Test CLI version command."""
        result = self.runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert '0.1.0' in result.output

    def test_init_command(self, tmp_path):
        """Test init command."""
        config_path = tmp_path / 'config.yaml'
        mapping_path = tmp_path / 'permissions.yaml'

        result = self.runner.invoke(
            cli, ['init', '--output', str(config_path), '--mapping-output', str(mapping_path)]
        )

        assert result.exit_code == 0
        assert 'Configuration template created' in result.output
        content = config_path.read_text(encoding='utf-8')
        assert 'source:' in content
        assert 'destination:' in content
        assert 'migration:' in content
        assert 'sourceGroup' in mapping_path.read_text(encoding='utf-8')

    def test_status_command(self, config_file):
        """Test status shows the effective configuration."""
        result = self.runner.invoke(cli, ['--config', config_file, 'status'])

        assert result.exit_code == 0
        assert 'Migration Configuration' in result.output
        assert 'contoso/fabrikam' in result.output
        assert 'acme/legacy' in result.output

    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_status_check(self, mock_engine, config_file):
        """Test connectivity checks from status."""
        mock_engine.return_value.check_connectivity.return_value = {
            'source': True,
            'destination': True,
        }

        result = self.runner.invoke(cli, ['--config', config_file, 'status', '--check'])

        assert result.exit_code == 0, result.output
        assert 'Connected to Azure DevOps' in result.output
        assert 'Connected to GitHub' in result.output

    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_status_check_failure(self, mock_engine, config_file):
        """Test that a failed connectivity check exits 1."""
        mock_engine.return_value.check_connectivity.return_value = {
            'source': True,
            'destination': False,
        }

        result = self.runner.invoke(cli, ['--config', config_file, 'status', '--check'])

        assert result.exit_code == 1
        assert 'Cannot connect to GitHub' in result.output

    def test_config_file_must_exist(self):
        """Test a missing configuration file."""
        result = self.runner.invoke(cli, ['--config', '/nonexistent/config.yaml', 'status'])

        assert result.exit_code != 0

    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_migrate_success(self, mock_engine, config_file):
        """Test a completed migration exits 0."""
        mock_engine.return_value.migrate = AsyncMock(return_value=finished_report())

        result = self.runner.invoke(
            cli,
            [
                '--config',
                config_file,
                'migrate',
                '--source-repo',
                'other',
                '--skip-pipeline',
                '--dry-run',
            ],
        )

        assert result.exit_code == 0, result.output
        assert 'Migration completed successfully' in result.output
        config = mock_engine.call_args[0][0]
        assert config.migration.source_repo == 'other'
        assert config.migration.destination_repo == 'acme/legacy'
        assert config.migration.skip_pipeline is True
        assert config.migration.dry_run is True
        assert config.migration.pipeline_id == 12
        assert mock_engine.call_args[1]['steps'] is None

    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_migrate_aborted(self, mock_engine, config_file):
        """Test an aborted migration exits 1 and names the failing step."""
        mock_engine.return_value.migrate = AsyncMock(
            return_value=finished_report(MigrationState.ABORTED)
        )

        result = self.runner.invoke(cli, ['--config', config_file, 'migrate'])

        assert result.exit_code == 1
        assert 'aborted in transfer' in result.output
        assert 'push_failed' in result.output
        assert 'push rejected' in result.output

    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_migrate_step_selection(self, mock_engine, config_file):
        """Test repeatable --step."""
        mock_engine.return_value.migrate = AsyncMock(return_value=finished_report())

        result = self.runner.invoke(
            cli,
            ['--config', config_file, 'migrate', '--step', 'transfer', '--step', 'analysis'],
        )

        assert result.exit_code == 0, result.output
        assert set(mock_engine.call_args[1]['steps']) == {'transfer', 'analysis'}

    def test_migrate_rejects_unknown_step(self, config_file):
        """Test step name validation."""
        result = self.runner.invoke(cli, ['--config', config_file, 'migrate', '--step', 'deploy'])

        assert result.exit_code == 2

    @pytest.mark.parametrize(
        'command,step',
        [
            ('analyze', 'analysis'),
            ('transfer', 'transfer'),
            ('repoint-pipeline', 'pipeline_repoint'),
            ('apply-permissions', 'permission_apply'),
            ('validate', 'validation'),
        ],
    )
    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_single_step_commands(self, mock_engine, command, step, config_file):
        """Test that each step command runs exactly its step."""
        mock_engine.return_value.migrate = AsyncMock(return_value=finished_report())

        result = self.runner.invoke(cli, ['--config', config_file, command])

        assert result.exit_code == 0, result.output
        assert mock_engine.call_args[1]['steps'] == [step]

    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_token_from_environment(self, mock_engine, config_file):
        """Test token flags fall back to environment variables."""
        mock_engine.return_value.migrate = AsyncMock(return_value=finished_report())

        result = self.runner.invoke(
            cli,
            ['--config', config_file, 'analyze'],
            env={'ADO_TOKEN': 'from-env', 'GITHUB_TOKEN': 'gh-env'},
        )

        assert result.exit_code == 0, result.output
        config = mock_engine.call_args[0][0]
        assert config.source.token == 'from-env'
        assert config.destination.token == 'gh-env'

    @patch('ado_github_migrate.cli.main.MigrationEngine')
    def test_config_error_exits_1(self, mock_engine, config_file):
        """Test that a bad mapping file fails the command."""
        mock_engine.return_value.migrate = AsyncMock(
            side_effect=ConfigError(ConfigErrorKind.MISSING_FILE, 'mapping not found')
        )

        result = self.runner.invoke(cli, ['--config', config_file, 'migrate'])

        assert result.exit_code == 1
        assert 'mapping not found' in result.output

    def test_invalid_override(self, config_file):
        """Test that overrides are validated."""
        result = self.runner.invoke(
            cli, ['--config', config_file, 'migrate', '--working-path', '/tmp/x', '--pipeline-id', 'abc']
        )

        assert result.exit_code == 2

    def test_no_configuration(self, tmp_path):
        """Test running without any configuration."""
        cwd = os.getcwd()
        os.chdir(tmp_path)
        try:
            with patch('ado_github_migrate.config.config.load_dotenv'):
                result = self.runner.invoke(cli, ['migrate'], env={'ADO_ORGANIZATION': None, 'ADO_PROJECT': None})
        finally:
            os.chdir(cwd)

        assert result.exit_code == 1
        assert 'No configuration found' in result.output
