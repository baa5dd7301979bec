"""Step results and the migration report."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class StepOutcome(str, Enum):
    """Outcome of a single migration step."""

    SUCCESS = 'success'
    SKIPPED = 'skipped'
    FAILED = 'failed'
    WARNING = 'warning'


class MigrationState(str, Enum):
    """Orchestrator states, in execution order."""

    IDLE = 'idle'
    ANALYZING = 'analyzing'
    TRANSFERRING = 'transferring'
    REPOINTING_PIPELINE = 'repointing_pipeline'
    APPLYING_PERMISSIONS = 'applying_permissions'
    VALIDATING = 'validating'
    COMPLETED = 'completed'
    ABORTED = 'aborted'

    @property
    def terminal(self) -> bool:
        return self in (MigrationState.COMPLETED, MigrationState.ABORTED)


Number = Union[int, float]


class StepResult(BaseModel):
    """Result of one step. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    step_name: str = Field(..., description='Step name')
    outcome: StepOutcome = Field(..., description='Step outcome')
    diagnostics: Tuple[str, ...] = Field(
        default_factory=tuple, description='Ordered diagnostic messages'
    )
    metrics: Dict[str, Number] = Field(
        default_factory=dict, description='Numeric metrics (commit_count, ...)'
    )
    error_kind: Optional[str] = Field(
        default=None, description='Error kind when the step failed or warned'
    )
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime = Field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.outcome == StepOutcome.FAILED

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


class MigrationReport:
    """Append-only record of the step results of one run."""

    def __init__(self, source_repo: str, destination_repo: str, dry_run: bool = False):
        self.source_repo = source_repo
        self.destination_repo = destination_repo
        self.dry_run = dry_run
        self.started_at = datetime.now()
        self.completed_at: Optional[datetime] = None
        self.state = MigrationState.IDLE
        self._results: List[StepResult] = []

    @property
    def results(self) -> Tuple[StepResult, ...]:
        return tuple(self._results)

    @property
    def finalized(self) -> bool:
        return self.completed_at is not None

    @property
    def failed_step(self) -> Optional[StepResult]:
        for result in self._results:
            if result.failed:
                return result
        return None

    @property
    def warnings(self) -> List[StepResult]:
        return [r for r in self._results if r.outcome == StepOutcome.WARNING]

    def append(self, result: StepResult) -> None:
        if self.finalized:
            raise RuntimeError('Cannot append to a finalized migration report')
        self._results.append(result)

    def finalize(self, state: MigrationState) -> None:
        if not state.terminal:
            raise ValueError(f'Report can only be finalized in a terminal state: {state}')
        if self.finalized:
            raise RuntimeError('Migration report already finalized')
        self.state = state
        self.completed_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_repo': self.source_repo,
            'destination_repo': self.destination_repo,
            'dry_run': self.dry_run,
            'state': self.state.value,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat()
            if self.completed_at
            else None,
            'steps': [r.model_dump(mode='json') for r in self._results],
        }

    def __len__(self) -> int:
        return len(self._results)
