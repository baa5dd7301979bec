"""Configuration management for the migration tool."""

from typing import Optional, Dict, Any
from pathlib import Path
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml
from dotenv import load_dotenv


def _validate_http_url(v: str) -> str:
    if not v.startswith(('http://', 'https://')):
        raise ValueError('URL must start with http:// or https://')
    return v.rstrip('/')


class AzureDevOpsConfig(BaseModel):
    """Configuration for the source Azure DevOps organization."""

    url: str = Field(default='https://dev.azure.com', description='Azure DevOps URL')
    graph_url: str = Field(
        default='https://vssps.dev.azure.com',
        description='Azure DevOps Graph (identity) API URL',
    )
    organization: str = Field(..., description='Organization name')
    project: str = Field(..., description='Project name')
    token: Optional[str] = Field(default=None, description='Personal access token')
    api_version: str = Field(default='7.1', description='REST API version')
    timeout: int = Field(default=30, description='Request timeout in seconds')
    rate_limit_per_second: float = Field(
        default=10.0, description='API requests per second limit'
    )

    @field_validator('url', 'graph_url')
    @classmethod
    def validate_url(cls, v):
        """Validate URL format."""
        return _validate_http_url(v)

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Validate rate limit is positive."""
        if v <= 0:
            raise ValueError('Rate limit must be positive')
        return v


class GitHubConfig(BaseModel):
    """Configuration for the destination GitHub organization."""

    url: str = Field(default='https://api.github.com', description='GitHub API URL')
    git_url: str = Field(
        default='https://github.com', description='Base URL for git remotes'
    )
    organization: Optional[str] = Field(
        default=None,
        description='Organization owning the teams; defaults to the repository owner',
    )
    token: Optional[str] = Field(default=None, description='Personal access token')
    api_version: str = Field(default='2022-11-28', description='REST API version')
    timeout: int = Field(default=30, description='Request timeout in seconds')
    rate_limit_per_second: float = Field(
        default=10.0, description='API requests per second limit'
    )

    @field_validator('url', 'git_url')
    @classmethod
    def validate_url(cls, v):
        """Validate URL format."""
        return _validate_http_url(v)

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Validate rate limit is positive."""
        if v <= 0:
            raise ValueError('Rate limit must be positive')
        return v


class RetryConfig(BaseModel):
    """Retry settings for rate-limited and network-failed API calls."""

    max_attempts: int = Field(default=4, description='Attempts per request')
    backoff_factor: float = Field(default=1.0, description='Base backoff in seconds')
    max_backoff: float = Field(default=60.0, description='Longest single wait')

    @field_validator('max_attempts')
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError('max_attempts must be at least 1')
        return v


class MigrationConfig(BaseModel):
    """Migration-specific configuration."""

    source_repo: Optional[str] = Field(
        default=None, description='Source repository name'
    )
    destination_repo: Optional[str] = Field(
        default=None, description='Destination repository (owner/name)'
    )
    working_path: str = Field(
        default='./migration-workdir/repo.git',
        description='Local mirror path, wiped at the start of every run',
    )
    pipeline_id: Optional[int] = Field(
        default=None, description='Pipeline definition to repoint'
    )
    mapping_file: Optional[str] = Field(
        default=None, description='Permission mapping file'
    )
    skip_pipeline: bool = Field(default=False, description='Skip pipeline repoint')
    skip_permissions: bool = Field(
        default=False, description='Skip permission apply'
    )
    dry_run: bool = Field(default=False, description='Perform dry run without changes')
    step_timeout: int = Field(
        default=3600, description='Timeout for a single step in seconds'
    )

    @field_validator('step_timeout')
    @classmethod
    def validate_step_timeout(cls, v):
        """Validate step timeout is positive."""
        if v <= 0:
            raise ValueError('Step timeout must be positive')
        return v


class GitConfig(BaseModel):
    """Git operations configuration."""

    timeout: int = Field(
        default=3600, description='Git operation timeout in seconds (default: 1 hour)'
    )
    source_username: str = Field(
        default='pat', description='User name paired with the source token in URLs'
    )
    destination_username: str = Field(
        default='x-access-token',
        description='User name paired with the destination token in URLs',
    )
    cleanup_verify: bool = Field(
        default=True,
        description='Remove the destination verification clone after validation',
    )

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError('Git timeout must be positive')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class ReportConfig(BaseModel):
    """Report output configuration."""

    path: str = Field(default='migration_report.md', description='Markdown report path')
    json_path: Optional[str] = Field(
        default=None, description='Optional machine-readable report path'
    )


class Config(BaseModel):
    """Main configuration class for the migration tool."""

    model_config = ConfigDict(extra='forbid')

    source: AzureDevOpsConfig = Field(..., description='Source Azure DevOps settings')
    destination: GitHubConfig = Field(
        default_factory=GitHubConfig, description='Destination GitHub settings'
    )
    retry: RetryConfig = Field(default_factory=RetryConfig, description='Retry settings')
    migration: MigrationConfig = Field(
        default_factory=MigrationConfig, description='Migration settings'
    )
    git: GitConfig = Field(
        default_factory=GitConfig, description='Git operations settings'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )
    report: ReportConfig = Field(
        default_factory=ReportConfig, description='Report settings'
    )

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        # Load .env file if it exists
        load_dotenv()

        pipeline_id = os.getenv('MIGRATION_PIPELINE_ID')
        config_data = {
            'source': {
                'url': os.getenv('ADO_URL'),
                'organization': os.getenv('ADO_ORGANIZATION'),
                'project': os.getenv('ADO_PROJECT'),
                'token': os.getenv('ADO_TOKEN'),
            },
            'destination': {
                'url': os.getenv('GITHUB_API_URL'),
                'organization': os.getenv('GITHUB_ORG'),
                'token': os.getenv('GITHUB_TOKEN'),
            },
            'migration': {
                'source_repo': os.getenv('MIGRATION_SOURCE_REPO'),
                'destination_repo': os.getenv('MIGRATION_DESTINATION_REPO'),
                'working_path': os.getenv('MIGRATION_WORKING_PATH'),
                'pipeline_id': int(pipeline_id) if pipeline_id else None,
                'mapping_file': os.getenv('MIGRATION_MAPPING_FILE'),
                'dry_run': os.getenv('MIGRATION_DRY_RUN', 'false').lower() == 'true',
            },
            'git': {
                'timeout': int(os.getenv('GIT_TIMEOUT', 3600)),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
            'report': {
                'path': os.getenv('REPORT_PATH'),
                'json_path': os.getenv('REPORT_JSON_PATH'),
            },
        }

        # Remove None values
        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def with_overrides(self, overrides: Dict[str, Dict[str, Any]]) -> 'Config':
        """Return a copy with per-section overrides applied.

        ``None`` values in ``overrides`` are ignored, so unset CLI flags
        leave the loaded configuration untouched.
        """
        data = self.model_dump()
        for section, values in self._remove_none_values(overrides).items():
            data.setdefault(section, {}).update(values)
        return type(self)(**data)

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'source': {
                'url': 'https://dev.azure.com',
                'organization': 'your-organization',
                'project': 'your-project',
                'token': 'your-azure-devops-personal-access-token',
                'api_version': '7.1',
                'timeout': 30,
            },
            'destination': {
                'url': 'https://api.github.com',
                'organization': 'your-github-org',
                'token': 'your-github-personal-access-token',
                'timeout': 30,
            },
            'retry': {
                'max_attempts': 4,
                'backoff_factor': 1.0,
                'max_backoff': 60.0,
            },
            'migration': {
                'source_repo': 'source-repository',
                'destination_repo': 'your-github-org/destination-repository',
                'working_path': './migration-workdir/repo.git',
                'pipeline_id': None,
                'mapping_file': 'permissions.yaml',
                'skip_pipeline': False,
                'skip_permissions': False,
                'dry_run': False,
                'step_timeout': 3600,
            },
            'git': {
                'timeout': 3600,
            },
            'logging': {
                'level': 'INFO',
                'file': 'migration.log',
            },
            'report': {
                'path': 'migration_report.md',
                'json_path': 'migration_report.json',
            },
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )
