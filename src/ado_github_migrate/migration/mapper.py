"""Translation of group permission mappings into team membership intents."""

from typing import Callable, Dict, Iterable, List, Sequence, Union

from ..models.permission import (
    MembershipIntent,
    PermissionMappingEntry,
    SourceRole,
    TeamRole,
)

GroupMembersLookup = Callable[[str], Sequence[str]]

# Only admin escalates; every other source role lands on plain membership.
ROLE_TRANSLATION: Dict[str, TeamRole] = {
    SourceRole.ADMIN.value: TeamRole.MAINTAINER,
    SourceRole.PUSH.value: TeamRole.MEMBER,
    SourceRole.PULL.value: TeamRole.MEMBER,
    SourceRole.WRITE.value: TeamRole.MEMBER,
    SourceRole.READ.value: TeamRole.MEMBER,
}


def translate_role(role: Union[SourceRole, str]) -> TeamRole:
    """Map a source group role onto a destination team role."""
    key = role.value if isinstance(role, SourceRole) else str(role).lower()
    return ROLE_TRANSLATION.get(key, TeamRole.MEMBER)


def translate(
    mapping_table: Iterable[PermissionMappingEntry],
    group_members_lookup: GroupMembersLookup,
) -> List[MembershipIntent]:
    """Expand mapping entries into one membership intent per group member.

    Output order is mapping order, then member order within each group, so
    the same inputs always give the same sequence.

    Args:
        mapping_table: Mapping entries in file order
        group_members_lookup: Resolves a source group to its member ids

    Returns:
        Membership intents
    """
    intents: List[MembershipIntent] = []
    for entry in mapping_table:
        role = translate_role(entry.role)
        for user_id in group_members_lookup(entry.source_group):
            intents.append(
                MembershipIntent(
                    team_id=entry.destination_team, user_id=user_id, role=role
                )
            )
    return intents
