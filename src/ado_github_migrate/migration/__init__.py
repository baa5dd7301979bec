"""Migration orchestration module."""

from .engine import MigrationEngine
from .mapper import translate, translate_role
from .orchestrator import STEP_NAMES, MigrationOrchestrator
from .report_writer import ReportWriter, render_json, render_markdown
from .steps import (
    AnalysisStep,
    GitRemotes,
    MigrationContext,
    MigrationStep,
    PermissionApplyStep,
    PipelineRepointStep,
    TransferStep,
    ValidationStep,
)

__all__ = [
    'MigrationEngine',
    'translate',
    'translate_role',
    'STEP_NAMES',
    'MigrationOrchestrator',
    'ReportWriter',
    'render_json',
    'render_markdown',
    'AnalysisStep',
    'GitRemotes',
    'MigrationContext',
    'MigrationStep',
    'PermissionApplyStep',
    'PipelineRepointStep',
    'TransferStep',
    'ValidationStep',
]
