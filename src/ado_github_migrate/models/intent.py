"""Migration intent model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .permission import PermissionMappingTable


class MigrationIntent(BaseModel):
    """Declared intent of one migration run. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    source_repo: str = Field(..., description='Source repository name')
    destination_repo: str = Field(
        ..., description='Destination repository as owner/name'
    )
    working_path: str = Field(
        ..., description='Local working copy path, wiped at the start of a run'
    )
    pipeline_id: Optional[int] = Field(
        default=None, description='Source pipeline definition to repoint'
    )
    permission_mappings: Optional[PermissionMappingTable] = Field(
        default=None, description='Group to team mapping table'
    )
    skip_pipeline: bool = Field(default=False, description='Skip pipeline repoint')
    skip_permissions: bool = Field(
        default=False, description='Skip permission apply'
    )
    dry_run: bool = Field(default=False, description='Plan only, write nothing remote')

    @field_validator('destination_repo')
    @classmethod
    def validate_destination_repo(cls, v):
        """Destination must be given as owner/name."""
        parts = v.strip().strip('/').split('/')
        if len(parts) != 2 or not all(parts):
            raise ValueError('destination_repo must be in the form owner/name')
        return '/'.join(parts)

    @property
    def verify_path(self) -> str:
        """Scratch path used to clone the destination during validation."""
        return self.working_path.rstrip('/\\') + '.verify'

    @property
    def wants_pipeline(self) -> bool:
        return not self.skip_pipeline and self.pipeline_id is not None

    @property
    def wants_permissions(self) -> bool:
        return (
            not self.skip_permissions
            and self.permission_mappings is not None
            and len(self.permission_mappings.entries) > 0
        )
