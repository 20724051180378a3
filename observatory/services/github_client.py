"""
GitHub API client for a GitHub App.

Responsibilities:
- Installation discovery and registration
- Listing open pull requests and reading their diffs
- Posting conflict notifications
"""

import asyncio
import logging
from typing import Any, List

import httpx
from unidiff import PatchSet

from observatory.core.config import settings
from observatory.core.exceptions import RemoteError, TokenExchangeError
from observatory.schemas.github import (
    Installation,
    InstallationRepositories,
    IssueComment,
    PullRequest,
    Repository,
)
from observatory.services.credentials import CredentialStore
from observatory.services.diff import parse_diff
from observatory.services.github_api import GitHub, default_headers
from observatory.services.installations import InstallationRegistry

logger = logging.getLogger(__name__)

MAX_PAGES = 99
PER_PAGE = 100


class GitHubClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credentials: CredentialStore,
        registry: InstallationRegistry,
        max_retries: int = settings.HTTP_MAX_RETRIES,
        retry_base_delay: float = settings.HTTP_RETRY_BASE_DELAY,
    ):
        self.http_client = http_client
        self.credentials = credentials
        self.registry = registry
        self.max_retries = max(1, max_retries)
        self.retry_base_delay = retry_base_delay

    async def _send(self, method: str, url: str, token: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http_client.request(
                method, url, headers=default_headers(token), **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(f"Error at {url}: {e!r}")
            raise RemoteError(f"{method} {url} failed: {e}", url) from e

        if response.is_error:
            logger.error(f"Error at {url}: HTTP {response.status_code}: {response.text}")
            logger.error(f"Headers: {dict(response.headers)}")
            raise RemoteError(
                f"{method} {url} returned HTTP {response.status_code}",
                url,
                status_code=response.status_code,
            )
        return response

    async def _get(self, url: str, token: str, **kwargs) -> httpx.Response:
        """GET with exponential backoff on 5xx, 429 and transport errors"""
        for attempt in range(self.max_retries):
            try:
                return await self._send("GET", url, token, **kwargs)
            except RemoteError as e:
                if not e.retryable or attempt == self.max_retries - 1:
                    raise
                delay = self.retry_base_delay * (2**attempt)
                logger.warning(
                    f"Retrying {url} in {delay:.1f}s (attempt {attempt + 2}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")

    async def _get_json(self, url: str, token: str, **kwargs) -> Any:
        response = await self._get(url, token, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from {url}: {e}")
            raise RemoteError(f"Invalid JSON from {url}", url, response.status_code) from e

    async def installations(self) -> List[Installation]:
        items = await self._get_json(GitHub.app_installations(), self.credentials.get_jwt())
        return [Installation.model_validate(item) for item in items]

    async def installation_repositories(self, installation_id: int) -> List[Repository]:
        token = await self.credentials.get_installation_token(installation_id)
        payload = await self._get_json(
            GitHub.installation_repos(), token, params={"per_page": PER_PAGE}
        )
        return InstallationRepositories.model_validate(payload).repositories

    async def add_installation(self, installation: Installation) -> None:
        repositories = await self.installation_repositories(installation.id)
        self.registry.register(installation, repositories)

    def remove_installation(self, installation_id: int) -> None:
        self.registry.remove(installation_id)

    async def discover_installations(self) -> None:
        """Register every installation of the app. A broken installation does not stop the others."""
        installations = await self.installations()
        for installation in installations:
            try:
                await self.add_installation(installation)
            except (RemoteError, TokenExchangeError) as e:
                logger.error(f"Failed to register installation {installation.id}: {e}")
        logger.info(f"Discovered {len(installations)} installations")

    async def pick_token(self, full_repo_name: str) -> str:
        installation_id = self.registry.require_tenant(full_repo_name)
        return await self.credentials.get_installation_token(installation_id)

    async def pulls(self, full_repo_name: str) -> List[PullRequest]:
        """List open pull requests, oldest first"""
        token = await self.pick_token(full_repo_name)
        out: List[PullRequest] = []
        for page in range(1, MAX_PAGES + 1):
            items = await self._get_json(
                GitHub.pulls(full_repo_name),
                token,
                params={
                    "state": "open",
                    "direction": "asc",
                    "sort": "created",
                    "per_page": PER_PAGE,
                    "page": page,
                },
            )
            if not items:
                break
            out.extend(PullRequest.model_validate(item) for item in items)
        return out

    async def read_pull_diff(self, full_repo_name: str, pull_number: int) -> PatchSet:
        token = await self.pick_token(full_repo_name)
        response = await self._get(
            GitHub.diff_url(full_repo_name, pull_number), token, follow_redirects=True
        )
        return parse_diff(response.text)

    async def attach_diff(self, full_repo_name: str, pull: PullRequest) -> PullRequest:
        pull.diff = await self.read_pull_diff(full_repo_name, pull.number)
        return pull

    async def post_comment(self, full_repo_name: str, issue_number: int, body: str) -> None:
        """Post a comment. Never retried: a repeated POST would duplicate the comment."""
        token = await self.pick_token(full_repo_name)
        await self._send(
            "POST",
            GitHub.comments(full_repo_name, issue_number),
            token,
            json=IssueComment(body=body).model_dump(),
        )
        logger.info(f"Posted comment on {full_repo_name}#{issue_number}")
