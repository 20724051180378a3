import hashlib
import hmac
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel

from observatory.core.exceptions import ObservatoryError
from observatory.schemas.github import (
    InstallationEvent,
    InstallationRepositoriesEvent,
    PullRequestEvent,
)
from observatory.services.conflict_notifier import ConflictNotifier
from observatory.services.github_client import GitHubClient

from .base import WebhookHandler

logger = logging.getLogger(__name__)

PULL_REQUEST_ACTIONS = {"opened", "reopened", "synchronize"}
INSTALL_ACTIONS = {"created", "new_permissions_accepted", "unsuspend"}
UNINSTALL_ACTIONS = {"deleted", "suspend"}

EVENT_SCHEMAS = {
    "pull_request": PullRequestEvent,
    "installation": InstallationEvent,
    "installation_repositories": InstallationRepositoriesEvent,
}


class GitHubWebhookHandler(WebhookHandler):
    def __init__(self, webhook_secret: str, client: GitHubClient, notifier: ConflictNotifier):
        self.webhook_secret = webhook_secret
        self.client = client
        self.notifier = notifier

    def validate_webhook(self, headers: Mapping[str, str], body: bytes) -> bool:
        headers = {k.lower(): v for k, v in headers.items()}
        if "x-hub-signature-256" not in headers:
            return False

        signature = headers["x-hub-signature-256"]
        expected_signature = (
            "sha256="
            + hmac.new(self.webhook_secret.encode(), body, hashlib.sha256).hexdigest()
        )

        return hmac.compare_digest(signature, expected_signature)

    def parse_event(self, event: str, payload: Dict[str, Any]) -> Optional[BaseModel]:
        """Raises pydantic.ValidationError on a malformed payload of a handled event"""
        schema = EVENT_SCHEMAS.get(event)
        if schema is None:
            return None
        return schema.model_validate(payload)

    async def handle_event(self, event: BaseModel) -> None:
        try:
            if isinstance(event, PullRequestEvent):
                await self.handle_pull_request(event)
            elif isinstance(event, InstallationEvent):
                await self.handle_installation(event)
            elif isinstance(event, InstallationRepositoriesEvent):
                await self.handle_installation_repositories(event)
        except ObservatoryError as e:
            logger.error(f"Failed to handle {type(event).__name__}: {e}")

    async def handle_pull_request(self, event: PullRequestEvent) -> None:
        if event.action == "closed":
            self.notifier.forget_pull(event.repository.full_name, event.pull_request.number)
            return
        if event.action not in PULL_REQUEST_ACTIONS:
            logger.debug(f"Ignoring pull_request action {event.action}")
            return
        await self.notifier.process_pull(event.repository.full_name, event.pull_request)

    async def handle_installation(self, event: InstallationEvent) -> None:
        installation = event.installation
        if event.action in INSTALL_ACTIONS:
            # The payload lists repositories, but only for some actions; ask the API instead.
            await self.client.add_installation(installation)
        elif event.action in UNINSTALL_ACTIONS:
            self.client.remove_installation(installation.id)
        else:
            logger.debug(f"Ignoring installation action {event.action}")

    async def handle_installation_repositories(self, event: InstallationRepositoriesEvent) -> None:
        await self.client.add_installation(event.installation)
