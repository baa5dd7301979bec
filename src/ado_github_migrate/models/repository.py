"""Repository models."""

from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SnapshotDiff(BaseModel):
    """Ref-level differences between two repository snapshots."""

    model_config = ConfigDict(frozen=True)

    missing_branches: List[str] = Field(
        default_factory=list, description='Branches absent from the other side'
    )
    extra_branches: List[str] = Field(
        default_factory=list, description='Branches only on the other side'
    )
    missing_tags: List[str] = Field(
        default_factory=list, description='Tags absent from the other side'
    )
    extra_tags: List[str] = Field(
        default_factory=list, description='Tags only on the other side'
    )
    commit_delta: int = Field(default=0, description='Other minus self commit count')

    @property
    def is_empty(self) -> bool:
        return not (
            self.missing_branches
            or self.extra_branches
            or self.missing_tags
            or self.extra_tags
            or self.commit_delta
        )

    @property
    def is_superset(self) -> bool:
        """True when the other side holds every branch and tag of this side."""
        return not (self.missing_branches or self.missing_tags)


class RepoSnapshot(BaseModel):
    """Point-in-time summary of a repository's refs.

    Two snapshots are equal when their branch sets, tag sets and commit
    counts are equal.
    """

    model_config = ConfigDict(frozen=True)

    branch_names: FrozenSet[str] = Field(
        default_factory=frozenset, description='Branch names under refs/heads'
    )
    tag_names: FrozenSet[str] = Field(
        default_factory=frozenset, description='Tag names under refs/tags'
    )
    commit_count: int = Field(default=0, ge=0, description='Commits reachable from refs')

    @property
    def branch_count(self) -> int:
        return len(self.branch_names)

    @property
    def tag_count(self) -> int:
        return len(self.tag_names)

    def diff(self, other: 'RepoSnapshot') -> SnapshotDiff:
        """Compare this snapshot against another one.

        Args:
            other: Snapshot taken later or elsewhere (e.g. the destination)

        Returns:
            Refs missing from or extra on ``other`` relative to this snapshot
        """
        return SnapshotDiff(
            missing_branches=sorted(self.branch_names - other.branch_names),
            extra_branches=sorted(other.branch_names - self.branch_names),
            missing_tags=sorted(self.tag_names - other.tag_names),
            extra_tags=sorted(other.tag_names - self.tag_names),
            commit_delta=other.commit_count - self.commit_count,
        )

    def metrics(self) -> dict:
        return {
            'branch_count': self.branch_count,
            'tag_count': self.tag_count,
            'commit_count': self.commit_count,
        }


class RepoMetadata(BaseModel):
    """Repository metadata as reported by a hosting platform."""

    id: str = Field(..., description='Platform repository identifier')
    name: str = Field(..., description='Repository name')
    clone_url: str = Field(..., description='HTTPS clone URL')
    web_url: Optional[str] = Field(default=None, description='Web URL')
    default_branch: Optional[str] = Field(
        default=None, description='Default branch name'
    )
    size: Optional[int] = Field(default=None, description='Repository size')
