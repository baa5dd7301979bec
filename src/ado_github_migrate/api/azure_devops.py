"""Azure DevOps (source platform) client."""

from typing import Any, Dict, Iterator, List, Optional, Set
from urllib.parse import quote

import requests

from ..config.config import AzureDevOpsConfig
from ..models.pipeline import PipelineDefinition, PipelineRepositoryPatch
from ..models.repository import RepoMetadata
from .client import APIResponse, PlatformClient
from .exceptions import NotFoundError, UnauthorizedError
from .rate_limiter import RetryPolicy

CONTINUATION_HEADER = 'X-MS-ContinuationToken'

# Graph descriptors of user principals; everything else is a group or service.
USER_DESCRIPTOR_PREFIXES = ('aad.', 'msa.', 'unauth.', 'bnd.')
GROUP_DESCRIPTOR_PREFIXES = ('vssgp.', 'aadgp.')


class AzureDevOpsClient(PlatformClient):
    """Client for repositories, build definitions and groups in Azure DevOps."""

    platform_name = 'Azure DevOps'

    def __init__(
        self,
        config: AzureDevOpsConfig,
        retry_policy: Optional[RetryPolicy] = None,
        logger=None,
    ):
        """Initialize Azure DevOps client.

        Args:
            config: Azure DevOps configuration
            retry_policy: Retry policy for retryable errors
            logger: Run logger

        Raises:
            UnauthorizedError: If no token is configured
        """
        if not config.token:
            raise UnauthorizedError('No Azure DevOps personal access token provided')

        super().__init__(
            base_url=config.url,
            timeout=config.timeout,
            rate_limit_per_second=config.rate_limit_per_second,
            retry_policy=retry_policy,
            logger=logger,
        )
        self.config = config
        self.session.auth = ('', config.token)

        self.project_url = (
            f'{config.url}/{quote(config.organization)}/{quote(config.project)}'
        )
        self.graph_base = f'{config.graph_url}/{quote(config.organization)}'
        self.api_version = config.api_version
        self.graph_api_version = f'{config.api_version}-preview.1'

        self.logger.info(
            f'Initialized Azure DevOps client for '
            f'{config.organization}/{config.project}'
        )

    def _handle_response(self, response: requests.Response) -> APIResponse:
        # An expired or wrong PAT yields a 203 with the HTML sign-in page.
        if response.status_code == 203:
            raise UnauthorizedError(
                'Azure DevOps authentication failed (sign-in page returned)',
                status_code=203,
            )
        return super()._handle_response(response)

    def _params(self, graph: bool = False, **extra) -> Dict[str, Any]:
        params = {
            'api-version': self.graph_api_version if graph else self.api_version
        }
        params.update({k: v for k, v in extra.items() if v is not None})
        return params

    def _ping(self) -> bool:
        response = self.get(
            f'{self.config.url}/{quote(self.config.organization)}'
            f'/_apis/projects/{quote(self.config.project)}',
            params=self._params(),
        )
        return response.success

    def get_repository(self, name: str) -> RepoMetadata:
        """Get repository metadata.

        Args:
            name: Repository name or ID within the project

        Returns:
            Repository metadata
        """
        response = self.get(
            f'{self.project_url}/_apis/git/repositories/{quote(name)}',
            params=self._params(),
        )
        data = response.data
        return RepoMetadata(
            id=str(data['id']),
            name=data['name'],
            clone_url=data['remoteUrl'],
            web_url=data.get('webUrl'),
            default_branch=_short_ref(data.get('defaultBranch')),
            size=data.get('size'),
        )

    def get_pipeline_definition(self, definition_id: int) -> PipelineDefinition:
        """Get a build pipeline definition.

        Args:
            definition_id: Definition ID

        Returns:
            Pipeline definition including the raw document
        """
        response = self.get(
            f'{self.project_url}/_apis/build/definitions/{definition_id}',
            params=self._params(),
        )
        return PipelineDefinition.from_api(response.data)

    def update_pipeline_definition(
        self, definition_id: int, patch: PipelineRepositoryPatch
    ) -> PipelineDefinition:
        """Change only the repository binding of a pipeline definition.

        The definition is read fresh and written back with its current
        revision, so Azure DevOps rejects the update instead of overwriting
        an edit made in between. Fields other than the repository binding are
        sent exactly as read.

        Args:
            definition_id: Definition ID
            patch: Repository fields to set

        Returns:
            The updated definition
        """
        current = self.get_pipeline_definition(definition_id)
        body = dict(current.raw)
        repository = dict(body.get('repository') or {})
        repository.update(patch.as_repository_fields())
        body['repository'] = repository

        self.logger.info(
            f'Repointing pipeline {definition_id} (revision {current.revision}) '
            f'from {current.repository_url} to {patch.url}'
        )
        response = self.put(
            f'{self.project_url}/_apis/build/definitions/{definition_id}',
            data=body,
            params=self._params(),
        )
        return PipelineDefinition.from_api(response.data or body)

    def _paginate_graph(self, endpoint: str, **params) -> Iterator[Dict[str, Any]]:
        continuation = None
        while True:
            response = self.get(
                endpoint,
                params=self._params(graph=True, continuationToken=continuation, **params),
            )
            for item in (response.data or {}).get('value', []):
                yield item
            continuation = response.headers.get(CONTINUATION_HEADER)
            if not continuation:
                break

    def find_group(self, group: str) -> Dict[str, Any]:
        """Find a security group by principal or display name.

        ``[Project]\\Contributors`` style principal names match exactly.
        Plain display names prefer groups scoped to the configured project.

        Raises:
            NotFoundError: If no group matches
        """
        project_prefix = f'[{self.config.project}]\\'.lower()
        display_matches = []
        for candidate in self._paginate_graph(f'{self.graph_base}/_apis/graph/groups'):
            principal = (candidate.get('principalName') or '').lower()
            if principal == group.lower():
                return candidate
            if (candidate.get('displayName') or '').lower() == group.lower():
                display_matches.append(candidate)

        if not display_matches:
            raise NotFoundError(f'Azure DevOps group not found: {group}')

        for candidate in display_matches:
            if (candidate.get('principalName') or '').lower().startswith(project_prefix):
                return candidate
        return display_matches[0]

    def get_group_members(self, group: str) -> List[str]:
        """List the user principal names in a security group.

        Nested groups are expanded depth-first; each user appears once, at
        its first position.

        Args:
            group: Group principal or display name

        Returns:
            Principal names in membership order
        """
        descriptor = self.find_group(group)['descriptor']
        members: List[str] = []
        self._collect_members(descriptor, members, seen=set())
        self.logger.info(f'Resolved {len(members)} members of group {group}')
        return members

    def _collect_members(
        self, descriptor: str, members: List[str], seen: Set[str]
    ) -> None:
        seen.add(descriptor)
        response = self.get(
            f'{self.graph_base}/_apis/graph/Memberships/{descriptor}',
            params=self._params(graph=True, direction='down'),
        )
        for membership in (response.data or {}).get('value', []):
            member = membership['memberDescriptor']
            if member in seen:
                continue
            if member.startswith(USER_DESCRIPTOR_PREFIXES):
                seen.add(member)
                principal = self._get_user_principal(member)
                if principal and principal not in members:
                    members.append(principal)
            elif member.startswith(GROUP_DESCRIPTOR_PREFIXES):
                self._collect_members(member, members, seen)
            else:
                self.logger.debug(f'Skipping non-user member {member}')

    def _get_user_principal(self, descriptor: str) -> Optional[str]:
        response = self.get(
            f'{self.graph_base}/_apis/graph/users/{descriptor}',
            params=self._params(graph=True),
        )
        data = response.data or {}
        return data.get('principalName') or data.get('mailAddress')


def _short_ref(ref: Optional[str]) -> Optional[str]:
    if ref and ref.startswith('refs/heads/'):
        return ref[len('refs/heads/'):]
    return ref
