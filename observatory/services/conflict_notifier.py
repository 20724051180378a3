import asyncio
import logging
from typing import List, Set, Tuple

from observatory.core.config import settings
from observatory.core.exceptions import ObservatoryError
from observatory.schemas.conflict import Conflict
from observatory.schemas.github import PullRequest
from observatory.services.comments import render_conflict
from observatory.services.conflicts import compare_pulls
from observatory.services.github_client import GitHubClient

logger = logging.getLogger(__name__)


class ConflictNotifier:
    """Compares a pull request against the other open pulls and comments on conflicts"""

    def __init__(self, client: GitHubClient, max_concurrent_diffs: int = settings.MAX_CONCURRENT_DIFFS):
        self.client = client
        # Shared by all events so one busy repository cannot flood github.com
        self._diff_slots = asyncio.Semaphore(max(1, max_concurrent_diffs))
        # (repository, conflict) pairs already posted by this process
        self._posted: Set[Tuple[str, Conflict]] = set()

    async def _compare(
        self, full_repo_name: str, new_pull: PullRequest, other_pull: PullRequest
    ) -> List[Conflict]:
        try:
            async with self._diff_slots:
                await self.client.attach_diff(full_repo_name, other_pull)
            return compare_pulls(new_pull, other_pull)
        except ObservatoryError as e:
            logger.error(
                f"Skipping {full_repo_name}#{new_pull.number} vs #{other_pull.number}: {e}"
            )
            return []

    async def find_conflicts(self, full_repo_name: str, new_pull: PullRequest) -> List[Conflict]:
        if new_pull.diff is None:
            await self.client.attach_diff(full_repo_name, new_pull)

        others = [
            pull for pull in await self.client.pulls(full_repo_name) if pull.number != new_pull.number
        ]
        results = await asyncio.gather(
            *(self._compare(full_repo_name, new_pull, other) for other in others)
        )
        conflicts = sorted(conflict for result in results for conflict in result)
        logger.info(
            f"{full_repo_name}#{new_pull.number}: {len(conflicts)} conflicts "
            f"against {len(others)} open pull requests"
        )
        return conflicts

    async def notify(self, full_repo_name: str, conflict: Conflict) -> bool:
        """Post a conflict once. Returns False if it was already posted or posting failed."""
        key = (full_repo_name, conflict)
        if key in self._posted:
            logger.debug(f"Already notified {full_repo_name}#{conflict.trigger} about #{conflict.original}")
            return False

        self._posted.add(key)
        try:
            await self.client.post_comment(full_repo_name, conflict.trigger, render_conflict(conflict))
        except ObservatoryError as e:
            self._posted.discard(key)
            logger.error(f"Failed to notify {full_repo_name}#{conflict.trigger}: {e}")
            return False
        return True

    async def process_pull(self, full_repo_name: str, new_pull: PullRequest) -> List[Conflict]:
        conflicts = await self.find_conflicts(full_repo_name, new_pull)
        for conflict in conflicts:
            await self.notify(full_repo_name, conflict)
        return conflicts

    def forget_pull(self, full_repo_name: str, pull_number: int) -> None:
        """Drop posted conflicts involving a pull that is no longer open"""
        stale = {
            key
            for key in self._posted
            if key[0] == full_repo_name and pull_number in (key[1].trigger, key[1].original)
        }
        self._posted -= stale
        logger.debug(f"Forgot {len(stale)} notifications for {full_repo_name}#{pull_number}")
