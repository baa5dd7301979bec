"""Migration steps and the context they share."""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger as default_logger
from pydantic import BaseModel, ConfigDict, Field

from ..api.exceptions import ApiError
from ..git.command import authenticated_url
from ..models.intent import MigrationIntent
from ..models.permission import MembershipIntent
from ..models.pipeline import PipelineRepositoryPatch
from ..models.report import MigrationState, StepOutcome, StepResult
from ..models.repository import RepoMetadata, RepoSnapshot
from .mapper import translate


class GitRemotes(BaseModel):
    """Builds authenticated git remote URLs for both platforms."""

    model_config = ConfigDict(frozen=True)

    source_username: str = Field(default='pat')
    source_token: Optional[str] = Field(default=None, repr=False)
    destination_base_url: str = Field(default='https://github.com')
    destination_username: str = Field(default='x-access-token')
    destination_token: Optional[str] = Field(default=None, repr=False)

    def source(self, clone_url: str) -> str:
        return authenticated_url(clone_url, self.source_username, self.source_token)

    def destination(self, repo: str, clone_url: Optional[str] = None) -> str:
        url = clone_url or f'{self.destination_base_url.rstrip("/")}/{repo}.git'
        return authenticated_url(
            url, self.destination_username, self.destination_token
        )


class MigrationContext(BaseModel):
    """Collaborators and run state shared by the steps."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    intent: MigrationIntent = Field(..., description='Declared run intent')
    source_client: Any = Field(..., description='Source platform client')
    destination_client: Any = Field(..., description='Destination platform client')
    git: Any = Field(..., description='Git client')
    remotes: GitRemotes = Field(default_factory=GitRemotes)
    cleanup_verify: bool = Field(
        default=True, description='Remove the verification clone afterwards'
    )

    # State filled in by the steps
    source_metadata: Optional[RepoMetadata] = None
    destination_metadata: Optional[RepoMetadata] = None
    source_snapshot: Optional[RepoSnapshot] = None
    applied_memberships: List[MembershipIntent] = Field(default_factory=list)


class MigrationStep(ABC):
    """One step of the migration.

    ``execute`` raises ``GitError``/``ApiError`` for unrecoverable failures;
    the orchestrator turns those into failed results.
    """

    name = 'step'
    state = MigrationState.IDLE

    def __init__(self, context: MigrationContext, logger=None):
        self.context = context
        self.intent = context.intent
        self.logger = (logger or default_logger).bind(component=self.__class__.__name__)
        self.started_at = datetime.now()

    def skip_reason(self) -> Optional[str]:
        """Return why the step is skipped, or None to run it."""
        return None

    @abstractmethod
    async def execute(self) -> StepResult:
        """Run the step."""

    async def run(self) -> StepResult:
        self.started_at = datetime.now()
        reason = self.skip_reason()
        if reason:
            self.logger.info(f'Skipping {self.name}: {reason}')
            return self.create_result(StepOutcome.SKIPPED, [reason])
        self.logger.info(f'Starting {self.name}')
        return await self.execute()

    def create_result(
        self,
        outcome: StepOutcome,
        diagnostics: Optional[List[str]] = None,
        metrics: Optional[Dict[str, Any]] = None,
        error_kind: Optional[str] = None,
    ) -> StepResult:
        return StepResult(
            step_name=self.name,
            outcome=outcome,
            diagnostics=tuple(diagnostics or ()),
            metrics=dict(metrics or {}),
            error_kind=error_kind,
            started_at=self.started_at,
            completed_at=datetime.now(),
        )

    async def _call(self, func, *args, **kwargs):
        """Run a blocking client call off the event loop.

        Threads can't be interrupted, so a cancelled step waits for the call
        already in flight before unwinding. No later call is started and the
        client is not closed under a running request.
        """
        call = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
        try:
            return await asyncio.shield(call)
        except asyncio.CancelledError:
            await asyncio.gather(call, return_exceptions=True)
            raise

    async def _source_metadata(self) -> RepoMetadata:
        if self.context.source_metadata is None:
            self.context.source_metadata = await self._call(
                self.context.source_client.get_repository, self.intent.source_repo
            )
        return self.context.source_metadata

    async def _destination_metadata(self) -> RepoMetadata:
        if self.context.destination_metadata is None:
            self.context.destination_metadata = await self._call(
                self.context.destination_client.get_repository,
                self.intent.destination_repo,
            )
        return self.context.destination_metadata

    async def _clone_source(self) -> RepoSnapshot:
        source = await self._source_metadata()
        snapshot = await self.context.git.mirror_clone(
            self.context.remotes.source(source.clone_url), self.intent.working_path
        )
        self.context.source_snapshot = snapshot
        return snapshot


class AnalysisStep(MigrationStep):
    """Read both repositories and mirror-clone the source."""

    name = 'analysis'
    state = MigrationState.ANALYZING

    async def execute(self) -> StepResult:
        source = await self._source_metadata()
        destination = await self._destination_metadata()
        snapshot = await self._clone_source()

        diagnostics = [
            f'Source repository {source.name} (default branch '
            f'{source.default_branch or "unset"})',
            f'Destination repository {self.intent.destination_repo} exists',
            f'Mirrored {snapshot.branch_count} branches, {snapshot.tag_count} tags, '
            f'{snapshot.commit_count} commits into {self.intent.working_path}',
        ]
        if destination.size:
            diagnostics.append(
                'Destination repository is not empty; the mirror push replaces its refs'
            )

        metrics = snapshot.metrics()
        if source.size is not None:
            metrics['source_size'] = source.size
        return self.create_result(StepOutcome.SUCCESS, diagnostics, metrics)


class TransferStep(MigrationStep):
    """Mirror-push the working copy to the destination."""

    name = 'transfer'
    state = MigrationState.TRANSFERRING

    async def execute(self) -> StepResult:
        diagnostics = []
        snapshot = self.context.source_snapshot
        if snapshot is None:
            snapshot = await self._clone_source()
            diagnostics.append(f'Cloned source into {self.intent.working_path}')

        if self.intent.dry_run:
            diagnostics.append(
                f'Dry run: would push {snapshot.branch_count} branches and '
                f'{snapshot.tag_count} tags to {self.intent.destination_repo}'
            )
            return self.create_result(
                StepOutcome.SKIPPED, diagnostics, snapshot.metrics()
            )

        destination = self.context.destination_metadata
        url = self.context.remotes.destination(
            self.intent.destination_repo, destination.clone_url if destination else None
        )
        await self.context.git.mirror_push(self.intent.working_path, url)

        diagnostics.append(
            f'Pushed {snapshot.branch_count} branches and {snapshot.tag_count} tags '
            f'to {self.intent.destination_repo}'
        )
        return self.create_result(StepOutcome.SUCCESS, diagnostics, snapshot.metrics())


class PipelineRepointStep(MigrationStep):
    """Point the source pipeline definition at the destination repository."""

    name = 'pipeline_repoint'
    state = MigrationState.REPOINTING_PIPELINE

    def skip_reason(self) -> Optional[str]:
        if self.intent.skip_pipeline:
            return 'Pipeline repoint disabled'
        if self.intent.pipeline_id is None:
            return 'No pipeline configured'
        return None

    async def execute(self) -> StepResult:
        pipeline_id = self.intent.pipeline_id
        source_client = self.context.source_client
        definition = await self._call(source_client.get_pipeline_definition, pipeline_id)
        destination = await self._destination_metadata()

        patch = PipelineRepositoryPatch(
            url=destination.clone_url,
            type='GitHub',
            name=self.intent.destination_repo,
            default_branch=f'refs/heads/{destination.default_branch}'
            if destination.default_branch
            else None,
        )
        metrics = {'pipeline_id': pipeline_id}
        if definition.revision is not None:
            metrics['revision'] = definition.revision

        if patch.is_applied_to(definition):
            return self.create_result(
                StepOutcome.SUCCESS,
                [f'Pipeline {definition.name} already builds {patch.url}'],
                metrics,
            )

        change = (
            f'{definition.repository_type}:{definition.repository_url} -> '
            f'{patch.type}:{patch.url}'
        )
        if self.intent.dry_run:
            return self.create_result(
                StepOutcome.SKIPPED,
                [f'Dry run: would repoint pipeline {definition.name} ({change})'],
                metrics,
            )

        updated = await self._call(
            source_client.update_pipeline_definition, pipeline_id, patch
        )
        if updated.revision is not None:
            metrics['revision'] = updated.revision
        return self.create_result(
            StepOutcome.SUCCESS,
            [f'Repointed pipeline {definition.name} ({change})'],
            metrics,
        )


class PermissionApplyStep(MigrationStep):
    """Translate the group mapping table and apply it as team memberships."""

    name = 'permission_apply'
    state = MigrationState.APPLYING_PERMISSIONS

    def skip_reason(self) -> Optional[str]:
        if self.intent.skip_permissions:
            return 'Permission apply disabled'
        if not self.intent.wants_permissions:
            return 'No permission mappings configured'
        return None

    def _group_members_lookup(self):
        table = self.intent.permission_mappings
        cache: Dict[str, List[str]] = {}

        def lookup(group: str) -> List[str]:
            if group not in cache:
                principals = self.context.source_client.get_group_members(group)
                cache[group] = [table.resolve_user(p) for p in principals]
            return cache[group]

        return lookup

    async def execute(self) -> StepResult:
        table = self.intent.permission_mappings
        intents = await self._call(
            translate, table.entries, self._group_members_lookup()
        )
        self.logger.info(f'Translated {len(table.entries)} mappings into {len(intents)} memberships')

        diagnostics = []
        pending = 0
        if self.intent.dry_run:
            diagnostics.extend(
                f'Dry run: would set {i.user_id} as {i.role.value} of {i.team_id}'
                for i in intents
            )
        else:
            for membership in intents:
                state = await self._call(
                    self.context.destination_client.upsert_team_membership,
                    membership.team_id,
                    membership.user_id,
                    membership.role,
                )
                if state == 'pending':
                    pending += 1
                    diagnostics.append(
                        f'{membership.user_id} invited to {membership.team_id} '
                        f'(pending acceptance)'
                    )
            self.context.applied_memberships = list(intents)
            diagnostics.insert(0, f'Applied {len(intents)} team memberships')

        metrics = {
            'mappings': len(table.entries),
            'memberships': len(intents),
            'teams': len({i.team_id for i in intents}),
            'pending': pending,
        }
        outcome = StepOutcome.SKIPPED if self.intent.dry_run else StepOutcome.SUCCESS
        return self.create_result(outcome, diagnostics, metrics)


class ValidationStep(MigrationStep):
    """Compare the destination with the source and spot-check memberships.

    API failures here only produce warnings. Branches or tags missing on the
    destination fail the step.
    """

    name = 'validation'
    state = MigrationState.VALIDATING

    def skip_reason(self) -> Optional[str]:
        if self.intent.dry_run:
            return 'Dry run: nothing was pushed to validate'
        return None

    async def execute(self) -> StepResult:
        diagnostics: List[str] = []
        outcome = StepOutcome.SUCCESS
        error_kind = None

        source = self.context.source_snapshot
        if source is None:
            source = await self.context.git.inspect(self.intent.working_path)

        destination = await self._clone_destination()
        diff = source.diff(destination)
        metrics = {
            'destination_branch_count': destination.branch_count,
            'destination_tag_count': destination.tag_count,
            'destination_commit_count': destination.commit_count,
            'missing_branches': len(diff.missing_branches),
            'missing_tags': len(diff.missing_tags),
        }

        if not diff.is_superset:
            outcome = StepOutcome.FAILED
            error_kind = 'ref_mismatch'
            if diff.missing_branches:
                diagnostics.append(
                    f'Branches missing on destination: {", ".join(diff.missing_branches)}'
                )
            if diff.missing_tags:
                diagnostics.append(
                    f'Tags missing on destination: {", ".join(diff.missing_tags)}'
                )
        elif not diff.is_empty:
            outcome = StepOutcome.WARNING
            error_kind = 'ref_divergence'
            if diff.extra_branches:
                diagnostics.append(
                    f'Extra branches on destination: {", ".join(diff.extra_branches)}'
                )
            if diff.extra_tags:
                diagnostics.append(
                    f'Extra tags on destination: {", ".join(diff.extra_tags)}'
                )
            if diff.commit_delta:
                diagnostics.append(
                    f'Commit count differs: source {source.commit_count}, '
                    f'destination {destination.commit_count}'
                )
        else:
            diagnostics.append(
                f'Destination matches source: {destination.branch_count} branches, '
                f'{destination.tag_count} tags, {destination.commit_count} commits'
            )

        membership_warnings, membership_error = await self._check_memberships(metrics)
        if membership_warnings:
            diagnostics.extend(membership_warnings)
            if outcome == StepOutcome.SUCCESS:
                outcome = StepOutcome.WARNING
                error_kind = membership_error or 'membership_mismatch'

        return self.create_result(outcome, diagnostics, metrics, error_kind)

    async def _clone_destination(self) -> RepoSnapshot:
        verify_path = self.intent.verify_path
        destination = self.context.destination_metadata
        url = self.context.remotes.destination(
            self.intent.destination_repo, destination.clone_url if destination else None
        )
        try:
            return await self.context.git.mirror_clone(url, verify_path)
        finally:
            if self.context.cleanup_verify:
                self.context.git.remove_working_copy(verify_path)

    async def _check_memberships(self, metrics: Dict[str, Any]):
        applied = self.context.applied_memberships
        if not applied:
            return [], None

        expected: Dict[str, List[str]] = {}
        for membership in applied:
            expected.setdefault(membership.team_id, [])
            if membership.user_id not in expected[membership.team_id]:
                expected[membership.team_id].append(membership.user_id)

        warnings: List[str] = []
        missing_total = 0
        error_kind = None
        client = self.context.destination_client
        for team, users in expected.items():
            try:
                members = await self._call(client.get_team_members, team)
                invited = await self._call(client.get_pending_team_invitations, team)
            except ApiError as e:
                self.logger.warning(f'Could not verify team {team}: {e}')
                warnings.append(f'Could not verify team {team}: {e.kind.value} ({e})')
                error_kind = error_kind or e.kind.value
                continue

            # GitHub logins are case-insensitive
            present = {login.lower() for login in members} | {
                login.lower() for login in invited
            }
            missing = [u for u in users if u.lower() not in present]
            missing_total += len(missing)
            if missing:
                warnings.append(f'Team {team} is missing: {", ".join(missing)}')

        metrics['missing_members'] = missing_total
        return warnings, error_kind
