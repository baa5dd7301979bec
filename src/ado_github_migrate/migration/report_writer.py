"""Markdown and JSON rendering of a migration report."""

import json
from pathlib import Path
from typing import List, Optional

from loguru import logger as default_logger

from ..models.report import MigrationReport, StepOutcome, StepResult

OUTCOME_MARKERS = {
    StepOutcome.SUCCESS: 'OK',
    StepOutcome.SKIPPED: 'SKIPPED',
    StepOutcome.WARNING: 'WARNING',
    StepOutcome.FAILED: 'FAILED',
}


def _cell(value: object) -> str:
    """Make a value safe inside a markdown table cell."""
    return ' '.join(str(value).split()).replace('|', '\\|')


def _item(message: str) -> str:
    """Flatten a multi-line message (e.g. git stderr) into one list item."""
    return ' '.join(message.split())


def _detail(result: StepResult) -> str:
    if result.outcome in (StepOutcome.FAILED, StepOutcome.WARNING) and result.diagnostics:
        return result.diagnostics[0]
    return ''


def render_markdown(report: MigrationReport) -> str:
    """Render a report as a markdown document."""
    lines = [
        f'# Migration report: {report.source_repo} -> {report.destination_repo}',
        '',
        f'- State: **{report.state.value}**',
        f'- Started: {report.started_at.isoformat(timespec="seconds")}',
    ]
    if report.completed_at:
        duration = (report.completed_at - report.started_at).total_seconds()
        lines.append(
            f'- Completed: {report.completed_at.isoformat(timespec="seconds")} '
            f'({duration:.1f}s)'
        )
    if report.dry_run:
        lines.append('- Dry run: no remote changes were made')

    lines += [
        '',
        '| Step | Outcome | Duration | Error | Detail |',
        '| --- | --- | --- | --- | --- |',
    ]
    for result in report.results:
        lines.append(
            f'| {_cell(result.step_name)} | {OUTCOME_MARKERS[result.outcome]} | '
            f'{result.duration_seconds:.1f}s | {_cell(result.error_kind or "")} | '
            f'{_cell(_detail(result))} |'
        )

    for result in report.results:
        lines += ['', f'## {result.step_name}', '']
        if result.diagnostics:
            lines.extend(f'- {_item(message)}' for message in result.diagnostics)
        else:
            lines.append('- No diagnostics')
        if result.metrics:
            lines.append('')
            lines.extend(
                f'- `{name}`: {value}' for name, value in sorted(result.metrics.items())
            )

    return '\n'.join(lines) + '\n'


def render_json(report: MigrationReport) -> str:
    return json.dumps(report.to_dict(), indent=2)


class ReportWriter:
    """Writes a finalized report to disk."""

    def __init__(self, path: str, json_path: Optional[str] = None, logger=None):
        self.path = path
        self.json_path = json_path
        self.logger = (logger or default_logger).bind(component='ReportWriter')

    def write(self, report: MigrationReport) -> List[str]:
        """Write the markdown (and optional JSON) report.

        Args:
            report: Finalized migration report

        Returns:
            Paths written
        """
        if not report.finalized:
            raise ValueError('Only finalized reports can be written')

        written = [self._write(self.path, render_markdown(report))]
        if self.json_path:
            written.append(self._write(self.json_path, render_json(report)))

        self.logger.info(f'Migration report written to {", ".join(written)}')
        return written

    @staticmethod
    def _write(path: str, content: str) -> str:
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(content, encoding='utf-8')
        return str(output)
