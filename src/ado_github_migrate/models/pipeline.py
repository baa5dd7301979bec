"""Pipeline definition models."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PipelineDefinition(BaseModel):
    """Build pipeline definition on the source platform."""

    id: int = Field(..., description='Definition ID')
    name: str = Field(..., description='Definition name')
    revision: Optional[int] = Field(default=None, description='Definition revision')
    repository_url: Optional[str] = Field(
        default=None, description='URL of the repository the pipeline builds'
    )
    repository_type: Optional[str] = Field(
        default=None, description='Repository provider type (TfsGit, GitHub, ...)'
    )
    raw: Dict[str, Any] = Field(
        default_factory=dict, description='Definition document as returned by the API'
    )

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'PipelineDefinition':
        repository = data.get('repository') or {}
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            revision=data.get('revision'),
            repository_url=repository.get('url'),
            repository_type=repository.get('type'),
            raw=data,
        )


class PipelineRepositoryPatch(BaseModel):
    """Repository-binding fields to change on a pipeline definition.

    Only these fields are written; the rest of the definition is left as the
    platform currently holds it.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description='New repository URL')
    type: str = Field(default='GitHub', description='New repository provider type')
    name: Optional[str] = Field(default=None, description='New repository name')
    default_branch: Optional[str] = Field(
        default=None, description='New default branch ref'
    )

    def as_repository_fields(self) -> Dict[str, Any]:
        fields = {'url': self.url, 'type': self.type}
        if self.name is not None:
            fields['name'] = self.name
        if self.default_branch is not None:
            fields['defaultBranch'] = self.default_branch
        return fields

    def is_applied_to(self, definition: PipelineDefinition) -> bool:
        """Check whether the definition already carries this binding."""
        return (
            (definition.repository_url or '').rstrip('/')
            == self.url.rstrip('/')
            and (definition.repository_type or '').lower() == self.type.lower()
        )
