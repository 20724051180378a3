import logging
import threading
from typing import Dict, List, Optional

from observatory.core.exceptions import NoCredentialsForRepo
from observatory.schemas.github import Installation, Repository
from observatory.services.credentials import CredentialStore

logger = logging.getLogger(__name__)


class InstallationRegistry:
    """Known GitHub App installations and the repositories each one can access"""

    def __init__(self, credentials: CredentialStore):
        self.credentials = credentials
        self._lock = threading.Lock()
        self._installations: Dict[int, Installation] = {}

    def register(self, installation: Installation, repositories: List[Repository]) -> None:
        installation = installation.model_copy(update={"repositories": list(repositories)})
        with self._lock:
            self._installations[installation.id] = installation
        logger.info(
            f"Registered installation {installation.id} ({installation.account.login}) "
            f"with {len(repositories)} repositories"
        )

    def remove(self, installation_id: int) -> None:
        with self._lock:
            self._installations.pop(installation_id, None)
        self.credentials.evict(installation_id)
        logger.info(f"Removed installation {installation_id}")

    def resolve_tenant(self, full_repo_name: str) -> Optional[int]:
        with self._lock:
            for installation_id, installation in self._installations.items():
                if any(r.full_name == full_repo_name for r in installation.repositories):
                    return installation_id
        return None

    def require_tenant(self, full_repo_name: str) -> int:
        installation_id = self.resolve_tenant(full_repo_name)
        if installation_id is None:
            raise NoCredentialsForRepo(full_repo_name)
        return installation_id

    def installations(self) -> List[Installation]:
        with self._lock:
            return list(self._installations.values())
