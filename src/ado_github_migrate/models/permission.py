"""Permission mapping models."""

from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceRole(str, Enum):
    """Coarse role granted to a source group."""

    ADMIN = 'admin'
    PUSH = 'push'
    PULL = 'pull'
    WRITE = 'write'
    READ = 'read'


class TeamRole(str, Enum):
    """Team membership role on the destination platform."""

    MAINTAINER = 'maintainer'
    MEMBER = 'member'


class PermissionMappingEntry(BaseModel):
    """One row of the group -> team -> role mapping table."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='forbid')

    source_group: str = Field(
        ..., alias='sourceGroup', description='Source platform group name'
    )
    destination_team: str = Field(
        ..., alias='destinationTeam', description='Destination team slug'
    )
    role: SourceRole = Field(..., description='Role granted to the group')

    @field_validator('source_group', 'destination_team')
    @classmethod
    def validate_not_blank(cls, v):
        """Reject empty group or team names."""
        if not v or not v.strip():
            raise ValueError('must not be blank')
        return v.strip()

    @field_validator('role', mode='before')
    @classmethod
    def normalize_role(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class PermissionMappingTable(BaseModel):
    """Ordered mapping table read once per run.

    Duplicate source groups are allowed and applied in order.
    """

    model_config = ConfigDict(frozen=True)

    entries: Tuple[PermissionMappingEntry, ...] = Field(
        default_factory=tuple, description='Mapping entries in file order'
    )
    users: Dict[str, str] = Field(
        default_factory=dict,
        description='Source principal name -> destination login overrides',
    )

    def resolve_user(self, principal: str) -> str:
        """Map a source principal name to a destination login.

        Principals without an override fall back to their local part, so
        ``alice@contoso.com`` becomes ``alice``.
        """
        if principal in self.users:
            return self.users[principal]
        return principal.split('@', 1)[0]


class MembershipIntent(BaseModel):
    """A desired (team, user, role) assignment on the destination."""

    model_config = ConfigDict(frozen=True)

    team_id: str = Field(..., description='Destination team slug')
    user_id: str = Field(..., description='Destination user login')
    role: TeamRole = Field(..., description='Destination team role')

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.team_id, self.user_id, self.role.value)
