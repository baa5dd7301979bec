"""Data models for the migration run."""

from .intent import MigrationIntent
from .permission import (
    MembershipIntent,
    PermissionMappingEntry,
    PermissionMappingTable,
    SourceRole,
    TeamRole,
)
from .pipeline import PipelineDefinition, PipelineRepositoryPatch
from .report import MigrationReport, MigrationState, StepOutcome, StepResult
from .repository import RepoMetadata, RepoSnapshot, SnapshotDiff

__all__ = [
    'MigrationIntent',
    'MembershipIntent',
    'PermissionMappingEntry',
    'PermissionMappingTable',
    'SourceRole',
    'TeamRole',
    'PipelineDefinition',
    'PipelineRepositoryPatch',
    'MigrationReport',
    'MigrationState',
    'StepOutcome',
    'StepResult',
    'RepoMetadata',
    'RepoSnapshot',
    'SnapshotDiff',
]
