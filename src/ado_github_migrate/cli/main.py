"""Main CLI entry point for the Azure DevOps to GitHub migration tool."""

import sys
import asyncio
from typing import Any, Dict, Iterable, Optional
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..config.config import Config
from ..config.mapping import write_sample_mapping
from ..migration.engine import MigrationEngine
from ..migration.orchestrator import STEP_NAMES
from ..models.report import MigrationReport, MigrationState, StepOutcome
from ..utils.logging import create_run_logger, disable_default_sink

console = Console()

OUTCOME_STYLES = {
    StepOutcome.SUCCESS: '[green]✓ success[/green]',
    StepOutcome.SKIPPED: '[dim]- skipped[/dim]',
    StepOutcome.WARNING: '[yellow]! warning[/yellow]',
    StepOutcome.FAILED: '[red]✗ failed[/red]',
}


@click.group()
@click.version_option(version=__version__, prog_name='ado-github-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """Migrate a repository from Azure DevOps to GitHub, repoint its pipeline and carry over team permissions."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    # Run loggers add their own sinks
    disable_default_sink()


def migration_options(func):
    """Options that override the loaded configuration for a run."""
    options = [
        click.option('--source-repo', help='Source Azure DevOps repository name'),
        click.option('--destination-repo', help='Destination GitHub repository (owner/name)'),
        click.option('--working-path', help='Local mirror path (wiped before cloning)'),
        click.option('--pipeline-id', type=int, help='Pipeline definition to repoint'),
        click.option(
            '--mapping-file',
            type=click.Path(),
            help='Permission mapping file (YAML or JSON)',
        ),
        click.option(
            '--source-token',
            envvar='ADO_TOKEN',
            help='Azure DevOps personal access token',
        ),
        click.option(
            '--destination-token',
            envvar='GITHUB_TOKEN',
            help='GitHub token',
        ),
        click.option('--log-file', type=click.Path(), help='Log file path'),
        click.option('--report', 'report_path', type=click.Path(), help='Markdown report path'),
        click.option('--skip-pipeline', is_flag=True, help='Do not repoint the pipeline'),
        click.option(
            '--skip-permissions', is_flag=True, help='Do not apply team permissions'
        ),
        click.option(
            '--dry-run',
            is_flag=True,
            help='Perform a dry run without making remote changes',
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_overrides(options: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Translate CLI flags into configuration overrides; unset flags stay None."""
    return {
        'source': {'token': options.get('source_token')},
        'destination': {'token': options.get('destination_token')},
        'migration': {
            'source_repo': options.get('source_repo'),
            'destination_repo': options.get('destination_repo'),
            'working_path': options.get('working_path'),
            'pipeline_id': options.get('pipeline_id'),
            'mapping_file': options.get('mapping_file'),
            'skip_pipeline': True if options.get('skip_pipeline') else None,
            'skip_permissions': True if options.get('skip_permissions') else None,
            'dry_run': True if options.get('dry_run') else None,
        },
        'logging': {'file': options.get('log_file')},
        'report': {'path': options.get('report_path')},
    }


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
@click.option(
    '--mapping-output',
    default='permissions.yaml',
    help='Output permission mapping file path',
)
@click.pass_context
def init(ctx: click.Context, output: str, mapping_output: str) -> None:
    """Initialize a new configuration file and a sample permission mapping."""
    console.print(
        Panel.fit(
            '[bold green]Azure DevOps to GitHub Migration[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)
        console.print(f'[green]✓[/green] Configuration template created at: {output}')

        write_sample_mapping(mapping_output)
        console.print(
            f'[green]✓[/green] Sample permission mapping created at: {mapping_output}'
        )
        console.print(
            f'[yellow]Please edit {output} with your organization details[/yellow]'
        )

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)


@cli.command()
@migration_options
@click.option(
    '--step',
    'steps',
    multiple=True,
    type=click.Choice(STEP_NAMES),
    help='Run only the given step(s); repeatable, order is fixed',
)
@click.pass_context
def migrate(ctx: click.Context, steps, **options) -> None:
    """Run the migration: analysis, transfer, pipeline repoint, permissions, validation."""
    _run(ctx, options, steps or None, title='Starting migration...')


@cli.command()
@migration_options
@click.pass_context
def analyze(ctx: click.Context, **options) -> None:
    """Read both repositories and mirror-clone the source."""
    _run(ctx, options, ['analysis'], title='Analyzing repositories...')


@cli.command()
@migration_options
@click.pass_context
def transfer(ctx: click.Context, **options) -> None:
    """Mirror-push the source repository to the destination."""
    _run(ctx, options, ['transfer'], title='Transferring repository...')


@cli.command('repoint-pipeline')
@migration_options
@click.pass_context
def repoint_pipeline(ctx: click.Context, **options) -> None:
    """Point the pipeline definition at the destination repository."""
    _run(ctx, options, ['pipeline_repoint'], title='Repointing pipeline...')


@cli.command('apply-permissions')
@migration_options
@click.pass_context
def apply_permissions(ctx: click.Context, **options) -> None:
    """Apply the permission mapping as destination team memberships."""
    _run(ctx, options, ['permission_apply'], title='Applying permissions...')


@cli.command()
@migration_options
@click.pass_context
def validate(ctx: click.Context, **options) -> None:
    """Compare the destination repository with the local source mirror."""
    _run(ctx, options, ['validation'], title='Validating migration...')


@cli.command()
@click.option(
    '--check',
    is_flag=True,
    help='Test connectivity to Azure DevOps and GitHub',
)
@click.pass_context
def status(ctx: click.Context, check: bool) -> None:
    """Show the effective migration configuration."""
    console.print(
        Panel.fit(
            '[bold magenta]Azure DevOps to GitHub Migration[/bold magenta]\n'
            'Migration Configuration',
            border_style='magenta',
        )
    )

    try:
        config = _load_config(ctx)

        table = Table(title='Migration Configuration')
        table.add_column('Setting', style='cyan')
        table.add_column('Value', style='green')

        migration = config.migration
        table.add_row('Source URL', config.source.url)
        table.add_row(
            'Source Project', f'{config.source.organization}/{config.source.project}'
        )
        table.add_row('Source Repository', migration.source_repo or '-')
        table.add_row('Destination URL', config.destination.url)
        table.add_row('Destination Repository', migration.destination_repo or '-')
        table.add_row('Working Path', migration.working_path)
        table.add_row(
            'Pipeline',
            '✗' if migration.skip_pipeline else str(migration.pipeline_id or '-'),
        )
        table.add_row(
            'Permission Mapping',
            '✗' if migration.skip_permissions else (migration.mapping_file or '-'),
        )
        table.add_row('Dry Run', '✓' if migration.dry_run else '✗')
        table.add_row('Step Timeout', f'{migration.step_timeout}s')
        table.add_row('Report', config.report.path)

        console.print(table)

        if check:
            _check_connectivity(config)

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to load status: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


def _check_connectivity(config: Config) -> None:
    """Test both platform connections; exits 1 if either fails."""
    with console.status('[bold green]Testing connectivity...'):
        results = MigrationEngine(config, write_report=False).check_connectivity()

    labels = {'source': 'Azure DevOps', 'destination': 'GitHub'}
    for platform, ok in results.items():
        if ok:
            console.print(f'[green]✓[/green] Connected to {labels[platform]}')
        else:
            console.print(f'[red]✗[/red] Cannot connect to {labels[platform]}')

    if not all(results.values()):
        sys.exit(1)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')
        return Config.from_file(config_path)
    else:
        # Try to load from default locations
        default_paths = ['config.yaml', 'config.yml', '.ado-github-migrate.yaml']
        for path in default_paths:
            if Path(path).exists():
                return Config.from_file(path)

        # Fall back to environment variables
        try:
            return Config.from_env()
        except ValueError:
            raise FileNotFoundError(
                'No configuration found. Use --config to specify a file or run '
                '"ado-github-migrate init" to create one.'
            )


def _run(
    ctx: click.Context,
    options: Dict[str, Any],
    steps: Optional[Iterable[str]],
    title: str,
) -> None:
    """Load config, run the selected steps and exit with the run status."""
    console.print(
        Panel.fit(
            f'[bold blue]Azure DevOps to GitHub Migration[/bold blue]\n{title}',
            border_style='blue',
        )
    )

    verbose = ctx.obj.get('verbose', False)
    try:
        config = _load_config(ctx).with_overrides(_build_overrides(options))
    except Exception as e:
        console.print(f'[red]✗[/red] Invalid configuration: {e}')
        sys.exit(1)

    if config.migration.dry_run:
        console.print(
            '[yellow]Running in dry-run mode - no remote changes will be made[/yellow]'
        )

    run_logger = create_run_logger(
        level='DEBUG' if verbose else config.logging.level,
        log_file=config.logging.file,
    )
    try:
        engine = MigrationEngine(config, logger=run_logger.logger, steps=steps)
        report = asyncio.run(engine.migrate())
    except Exception as e:
        console.print(f'[red]✗[/red] Migration failed: {e}')
        if verbose:
            console.print_exception()
        sys.exit(1)
    finally:
        run_logger.close()

    _display_report(report)
    console.print(f'\n[blue]Report written to:[/blue] {config.report.path}')

    if report.state != MigrationState.COMPLETED:
        sys.exit(1)


def _display_report(report: MigrationReport) -> None:
    """Display the step results of a run."""
    table = Table(title='Migration Summary')
    table.add_column('Step', style='cyan')
    table.add_column('Outcome')
    table.add_column('Duration', style='blue')
    table.add_column('Details')

    for result in report.results:
        table.add_row(
            result.step_name,
            OUTCOME_STYLES[result.outcome],
            f'{result.duration_seconds:.1f}s',
            result.diagnostics[0] if result.diagnostics else '',
        )

    console.print(table)

    for result in report.warnings:
        console.print(f'\n[yellow]Warnings in {result.step_name}:[/yellow]')
        for message in result.diagnostics:
            console.print(f'  • {message}')

    failed = report.failed_step
    if failed:
        console.print(
            f'\n[red]✗ Migration aborted in {failed.step_name} '
            f'({failed.error_kind})[/red]'
        )
        for message in failed.diagnostics:
            console.print(f'  • {message}')
    else:
        console.print('\n[green]✓[/green] Migration completed successfully')


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)
    except Exception as e:
        console.print(f'[red]Error: {e}[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
