"""Tests for permission translation."""

from ado_github_migrate.migration.mapper import translate, translate_role
from ado_github_migrate.models.permission import (
    PermissionMappingEntry,
    SourceRole,
    TeamRole,
)


def entry(group, team, role):
    return PermissionMappingEntry(sourceGroup=group, destinationTeam=team, role=role)


class TestTranslateRole:
    """Test the role table."""

    def test_admin_is_maintainer(self):
        """Test admin escalation."""
        assert translate_role(SourceRole.ADMIN) == TeamRole.MAINTAINER
        assert translate_role('ADMIN') == TeamRole.MAINTAINER

    def test_everything_else_is_member(self):
        """Test push, pull, write, read and unknown roles."""
        assert translate_role(SourceRole.PUSH) == TeamRole.MEMBER
        assert translate_role(SourceRole.PULL) == TeamRole.MEMBER
        assert translate_role(SourceRole.WRITE) == TeamRole.MEMBER
        assert translate_role(SourceRole.READ) == TeamRole.MEMBER
        assert translate_role('triage') == TeamRole.MEMBER


class TestTranslate:
    """Test mapping expansion."""

    def setup_method(self):
        """Set up test fixtures."""
        self.groups = {
            'Developers': ['alice', 'bob'],
            'Admins': ['carol'],
            'Readers': ['dave', 'alice'],
            'Empty': [],
        }
        self.lookup = self.groups.__getitem__

    def test_developers_push(self):
        """Test the basic push mapping."""
        intents = translate([entry('Developers', 'dev-team', 'push')], self.lookup)

        assert [i.as_tuple() for i in intents] == [
            ('dev-team', 'alice', 'member'),
            ('dev-team', 'bob', 'member'),
        ]

    def test_order_follows_table_then_members(self):
        """Test output ordering."""
        table = [
            entry('Readers', 'readers', 'pull'),
            entry('Admins', 'core', 'admin'),
            entry('Developers', 'dev-team', 'push'),
        ]

        intents = translate(table, self.lookup)

        assert [i.as_tuple() for i in intents] == [
            ('readers', 'dave', 'member'),
            ('readers', 'alice', 'member'),
            ('core', 'carol', 'maintainer'),
            ('dev-team', 'alice', 'member'),
            ('dev-team', 'bob', 'member'),
        ]

    def test_deterministic(self):
        """Test that equal inputs give equal outputs."""
        table = [entry('Developers', 'dev-team', 'push'), entry('Admins', 'core', 'admin')]

        assert translate(table, self.lookup) == translate(table, self.lookup)

    def test_only_destination_roles(self):
        """Test the role codomain and the admin/maintainer correspondence."""
        table = [
            entry('Developers', 'a', 'push'),
            entry('Admins', 'b', 'admin'),
            entry('Readers', 'c', 'pull'),
        ]
        roles_by_team = {'a': 'push', 'b': 'admin', 'c': 'pull'}

        for intent in translate(table, self.lookup):
            assert intent.role in (TeamRole.MAINTAINER, TeamRole.MEMBER)
            assert (intent.role == TeamRole.MAINTAINER) == (
                roles_by_team[intent.team_id] == 'admin'
            )

    def test_empty_group_and_table(self):
        """Test that empty inputs produce no intents."""
        assert translate([entry('Empty', 'x', 'admin')], self.lookup) == []
        assert translate([], self.lookup) == []

    def test_duplicate_entries_kept(self):
        """Test that duplicates are applied in order."""
        table = [entry('Admins', 'core', 'push'), entry('Admins', 'core', 'admin')]

        assert [i.role for i in translate(table, self.lookup)] == [
            TeamRole.MEMBER,
            TeamRole.MAINTAINER,
        ]

    def test_lookup_called_per_entry(self):
        """Test that the lookup is used as given."""
        calls = []

        def lookup(group):
            calls.append(group)
            return ['zoe']

        translate([entry('A', 'a', 'pull'), entry('B', 'b', 'pull')], lookup)

        assert calls == ['A', 'B']
