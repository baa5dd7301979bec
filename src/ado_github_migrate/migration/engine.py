"""Migration engine - main entry point for migration operations."""

from typing import Dict, Optional, Sequence, Tuple

from loguru import logger as default_logger

from ..api.azure_devops import AzureDevOpsClient
from ..api.github import GitHubClient
from ..api.rate_limiter import RetryPolicy
from ..config.config import Config
from ..config.mapping import load_permission_mappings
from ..git.operations import GitClient
from ..models.intent import MigrationIntent
from ..models.report import MigrationReport
from .orchestrator import MigrationOrchestrator
from .report_writer import ReportWriter
from .steps import GitRemotes, MigrationContext


class MigrationEngine:
    """Wires configuration, clients and the orchestrator for one run."""

    def __init__(
        self,
        config: Config,
        logger=None,
        steps: Optional[Sequence[str]] = None,
        write_report: bool = True,
    ):
        """Initialize migration engine.

        Args:
            config: Migration configuration
            logger: Run logger injected into every component
            steps: Step names to run (all when omitted)
            write_report: Persist the report files after the run
        """
        self.config = config
        self.steps = list(steps) if steps else None
        self.write_report = write_report
        self.base_logger = logger or default_logger
        self.logger = self.base_logger.bind(component='MigrationEngine')

    def build_intent(self) -> MigrationIntent:
        """Build the run intent, reading the permission mapping file.

        Raises:
            ConfigError: If the mapping file is missing or malformed
            ValueError: If the source or destination repository is unset
        """
        migration = self.config.migration
        if not migration.source_repo:
            raise ValueError('No source repository configured (migration.source_repo)')
        if not migration.destination_repo:
            raise ValueError(
                'No destination repository configured (migration.destination_repo)'
            )

        mappings = None
        if migration.mapping_file and not migration.skip_permissions:
            mappings = load_permission_mappings(migration.mapping_file)
            self.logger.info(
                f'Loaded {len(mappings.entries)} permission mappings from '
                f'{migration.mapping_file}'
            )

        return MigrationIntent(
            source_repo=migration.source_repo,
            destination_repo=migration.destination_repo,
            working_path=migration.working_path,
            pipeline_id=migration.pipeline_id,
            permission_mappings=mappings,
            skip_pipeline=migration.skip_pipeline,
            skip_permissions=migration.skip_permissions,
            dry_run=migration.dry_run,
        )

    def _retry_policy(self) -> RetryPolicy:
        retry = self.config.retry
        return RetryPolicy(
            max_attempts=retry.max_attempts,
            backoff_factor=retry.backoff_factor,
            max_backoff=retry.max_backoff,
            logger=self.base_logger,
        )

    def _create_clients(self) -> Tuple[AzureDevOpsClient, GitHubClient]:
        destination = self.config.destination
        owner = (self.config.migration.destination_repo or '').split('/')[0]

        source_client = AzureDevOpsClient(
            self.config.source, retry_policy=self._retry_policy(), logger=self.base_logger
        )
        try:
            destination_client = GitHubClient(
                destination,
                organization=destination.organization or owner or None,
                retry_policy=self._retry_policy(),
                logger=self.base_logger,
            )
        except Exception:
            source_client.close()
            raise
        return source_client, destination_client

    def check_connectivity(self) -> Dict[str, bool]:
        """Test connectivity to Azure DevOps and GitHub.

        Returns:
            Connection result per platform, keyed ``source``/``destination``

        Raises:
            UnauthorizedError: If a platform token is missing
        """
        self.logger.info('Testing connectivity to Azure DevOps and GitHub')
        source_client, destination_client = self._create_clients()
        try:
            results = {
                'source': source_client.test_connection(),
                'destination': destination_client.test_connection(),
            }
        finally:
            source_client.close()
            destination_client.close()

        if all(results.values()):
            self.logger.info('Connectivity tests passed')
        return results

    async def migrate(self) -> MigrationReport:
        """Run the migration and return the finalized report."""
        # Mapping errors must surface before any client exists.
        intent = self.build_intent()

        source_client, destination_client = self._create_clients()

        git = self.config.git
        context = MigrationContext(
            intent=intent,
            source_client=source_client,
            destination_client=destination_client,
            git=GitClient(timeout=git.timeout, logger=self.base_logger),
            remotes=GitRemotes(
                source_username=git.source_username,
                source_token=self.config.source.token,
                destination_base_url=self.config.destination.git_url,
                destination_username=git.destination_username,
                destination_token=self.config.destination.token,
            ),
            cleanup_verify=git.cleanup_verify,
        )
        orchestrator = MigrationOrchestrator(
            context,
            step_timeout=self.config.migration.step_timeout,
            logger=self.base_logger,
            steps=self.steps,
        )

        try:
            report = await orchestrator.run()
        finally:
            source_client.close()
            destination_client.close()

        if self.write_report:
            ReportWriter(
                self.config.report.path,
                self.config.report.json_path,
                logger=self.base_logger,
            ).write(report)
        return report
