from typing import Dict

from observatory.core.config import settings


class GitHub:
    """URL builders for the endpoints Observatory talks to"""

    @staticmethod
    def pulls(full_repo_name: str) -> str:
        return f"{settings.GITHUB_API_ROOT}/repos/{full_repo_name}/pulls"

    @staticmethod
    def app_installations() -> str:
        return f"{settings.GITHUB_API_ROOT}/app/installations"

    @staticmethod
    def installation_tokens(installation_id: int) -> str:
        return f"{settings.GITHUB_API_ROOT}/app/installations/{installation_id}/access_tokens"

    @staticmethod
    def installation_repos() -> str:
        return f"{settings.GITHUB_API_ROOT}/installation/repositories"

    @staticmethod
    def comments(full_repo_name: str, issue_number: int) -> str:
        return f"{settings.GITHUB_API_ROOT}/repos/{full_repo_name}/issues/{issue_number}/comments"

    @staticmethod
    def diff_url(full_repo_name: str, pull_number: int) -> str:
        # Diffs are served by github.com, not the API host
        return f"{settings.GITHUB_ROOT}/{full_repo_name}/pull/{pull_number}.diff"


def default_headers(token: str) -> Dict[str, str]:
    return {
        "Accept": "application/vnd.github+json",
        "User-Agent": settings.USER_AGENT,
        "Authorization": f"Bearer {token}",
    }
