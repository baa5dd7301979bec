"""Migration orchestrator: runs the steps in order and keeps the report."""

import asyncio
from datetime import datetime
from typing import List, Optional, Sequence, Type

from loguru import logger as default_logger

from ..api.exceptions import ApiError, ApiErrorKind
from ..git.exceptions import GitError
from ..models.report import MigrationReport, MigrationState, StepOutcome, StepResult
from .steps import (
    AnalysisStep,
    MigrationContext,
    MigrationStep,
    PermissionApplyStep,
    PipelineRepointStep,
    TransferStep,
    ValidationStep,
)

# Fixed execution order; a subset keeps this order.
STEP_SEQUENCE: List[Type[MigrationStep]] = [
    AnalysisStep,
    TransferStep,
    PipelineRepointStep,
    PermissionApplyStep,
    ValidationStep,
]

STEP_NAMES = [step.name for step in STEP_SEQUENCE]


class MigrationOrchestrator:
    """Sequential state machine over the migration steps.

    One orchestrator drives exactly one run. The first failed step moves the
    run to ``ABORTED`` and no later step starts.
    """

    def __init__(
        self,
        context: MigrationContext,
        step_timeout: float = 3600,
        logger=None,
        steps: Optional[Sequence[str]] = None,
    ):
        """Initialize migration orchestrator.

        Args:
            context: Shared migration context
            step_timeout: Upper bound for a single step in seconds
            logger: Run logger
            steps: Names of the steps to run (all when omitted)
        """
        unknown = set(steps or ()) - set(STEP_NAMES)
        if unknown:
            raise ValueError(
                f'Unknown step(s): {", ".join(sorted(unknown))}. '
                f'Valid steps: {", ".join(STEP_NAMES)}'
            )

        self.context = context
        self.step_timeout = step_timeout
        self.base_logger = logger or default_logger
        self.logger = self.base_logger.bind(component='MigrationOrchestrator')
        self.steps: List[MigrationStep] = [
            step_cls(context, logger=self.base_logger)
            for step_cls in STEP_SEQUENCE
            if steps is None or step_cls.name in steps
        ]
        self.report = MigrationReport(
            source_repo=context.intent.source_repo,
            destination_repo=context.intent.destination_repo,
            dry_run=context.intent.dry_run,
        )
        self._state = MigrationState.IDLE

    @property
    def state(self) -> MigrationState:
        return self._state

    def _transition(self, state: MigrationState) -> None:
        self.logger.debug(f'State {self._state.value} -> {state.value}')
        self._state = state
        self.report.state = state

    async def run(self) -> MigrationReport:
        """Run the selected steps and return the finalized report."""
        if self._state != MigrationState.IDLE:
            raise RuntimeError('Migration orchestrator has already run')

        intent = self.context.intent
        self.logger.info(
            f'Starting migration {intent.source_repo} -> {intent.destination_repo}'
            + (' (dry run)' if intent.dry_run else '')
        )

        final_state = MigrationState.COMPLETED
        for step in self.steps:
            self._transition(step.state)
            result = await self._run_step(step)
            self.report.append(result)
            self._log_result(result)

            if result.failed:
                final_state = MigrationState.ABORTED
                break

        self._transition(final_state)
        self.report.finalize(final_state)

        if final_state == MigrationState.ABORTED:
            failed = self.report.failed_step
            self.logger.error(
                f'Migration aborted in {failed.step_name} ({failed.error_kind})'
            )
        else:
            self.logger.info(f'Migration completed with {len(self.report)} step(s)')
        return self.report

    async def _run_step(self, step: MigrationStep) -> StepResult:
        started_at = datetime.now()
        try:
            return await asyncio.wait_for(step.run(), timeout=self.step_timeout)
        except asyncio.TimeoutError:
            return self._failure(
                step,
                started_at,
                ApiErrorKind.NETWORK.value,
                f'{step.name} timed out after {self.step_timeout}s',
            )
        except GitError as e:
            return self._failure(step, started_at, e.kind.value, str(e))
        except ApiError as e:
            return self._failure(step, started_at, e.kind.value, str(e))
        except Exception as e:
            self.logger.exception(f'Unexpected error in {step.name}')
            return self._failure(
                step, started_at, 'unexpected', f'{type(e).__name__}: {e}'
            )

    def _failure(
        self, step: MigrationStep, started_at: datetime, kind: str, message: str
    ) -> StepResult:
        return StepResult(
            step_name=step.name,
            outcome=StepOutcome.FAILED,
            diagnostics=(message,),
            error_kind=kind,
            started_at=started_at,
            completed_at=datetime.now(),
        )

    def _log_result(self, result: StepResult) -> None:
        message = f'{result.step_name}: {result.outcome.value}'
        if result.diagnostics:
            message += f' - {result.diagnostics[0]}'
        if result.outcome == StepOutcome.FAILED:
            self.logger.error(message)
        elif result.outcome == StepOutcome.WARNING:
            self.logger.warning(message)
        else:
            self.logger.info(message)
