"""GitHub (destination platform) client."""

from typing import Any, Dict, List, Optional, Set

from ..config.config import GitHubConfig
from ..models.permission import TeamRole
from ..models.repository import RepoMetadata
from .client import PlatformClient
from .exceptions import UnauthorizedError
from .rate_limiter import RetryPolicy


class GitHubClient(PlatformClient):
    """Client for repositories and team memberships on GitHub."""

    platform_name = 'GitHub'

    def __init__(
        self,
        config: GitHubConfig,
        organization: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        logger=None,
        per_page: int = 100,
    ):
        """Initialize GitHub client.

        Args:
            config: GitHub configuration
            organization: Organization owning the teams, overrides config
            retry_policy: Retry policy for retryable errors
            logger: Run logger
            per_page: Page size for list endpoints

        Raises:
            UnauthorizedError: If no token is configured
        """
        if not config.token:
            raise UnauthorizedError('No GitHub token provided')

        super().__init__(
            base_url=config.url,
            timeout=config.timeout,
            rate_limit_per_second=config.rate_limit_per_second,
            retry_policy=retry_policy,
            logger=logger,
        )
        self.config = config
        self.organization = organization or config.organization
        self.per_page = per_page
        self.session.headers.update(
            {
                'Authorization': f'Bearer {config.token}',
                'Accept': 'application/vnd.github+json',
                'X-GitHub-Api-Version': config.api_version,
            }
        )

        self.logger.info(f'Initialized GitHub client for {config.url}')

    def _org(self) -> str:
        if not self.organization:
            raise ValueError('GitHub organization is not configured')
        return self.organization

    def _ping(self) -> bool:
        return self.get('/user').success

    def _get_paginated(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Get all pages of a list endpoint.

        Args:
            endpoint: API endpoint
            params: Query parameters

        Returns:
            List of all items from all pages
        """
        all_items: List[Dict[str, Any]] = []
        page = 1
        params = dict(params or {})
        params['per_page'] = self.per_page

        while True:
            params['page'] = page
            response = self.get(endpoint, params=dict(params))

            items = response.data
            if not items:
                break

            all_items.extend(items)

            if len(items) < self.per_page:
                break

            page += 1

        self.logger.debug(f'Retrieved {len(all_items)} items from {endpoint}')
        return all_items

    def get_repository(self, full_name: str) -> RepoMetadata:
        """Get repository metadata.

        Args:
            full_name: Repository as owner/name

        Returns:
            Repository metadata
        """
        data = self.get(f'/repos/{full_name}').data
        return RepoMetadata(
            id=str(data['id']),
            name=data['name'],
            clone_url=data['clone_url'],
            web_url=data.get('html_url'),
            default_branch=data.get('default_branch'),
            size=data.get('size'),
        )

    def upsert_team_membership(self, team: str, user: str, role: TeamRole) -> str:
        """Add a user to a team or update their role.

        Applying the same (team, user, role) again leaves the membership
        unchanged.

        Args:
            team: Team slug
            user: User login
            role: Team role

        Returns:
            Membership state reported by GitHub (``active`` or ``pending``)
        """
        role_value = TeamRole(role).value
        response = self.put(
            f'/orgs/{self._org()}/teams/{team}/memberships/{user}',
            data={'role': role_value},
        )
        state = (response.data or {}).get('state', 'active')
        self.logger.debug(f'Membership {team}/{user} set to {role_value} ({state})')
        return state

    def get_team_members(self, team: str) -> Set[str]:
        """List the logins of a team's active members.

        Args:
            team: Team slug

        Returns:
            Set of member logins
        """
        members = self._get_paginated(f'/orgs/{self._org()}/teams/{team}/members')
        return {member['login'] for member in members}

    def get_pending_team_invitations(self, team: str) -> Set[str]:
        """List logins invited to a team who have not accepted yet."""
        invitations = self._get_paginated(
            f'/orgs/{self._org()}/teams/{team}/invitations'
        )
        return {i['login'] for i in invitations if i.get('login')}
