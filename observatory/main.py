import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from observatory.api.webhook_routes import router as webhook_router
from observatory.core.config import Settings, get_settings
from observatory.core.exceptions import RemoteError
from observatory.services.conflict_notifier import ConflictNotifier
from observatory.services.credentials import CredentialStore
from observatory.services.github_client import GitHubClient
from observatory.services.installations import InstallationRegistry
from observatory.services.webhook_handlers.github import GitHubWebhookHandler

logger = logging.getLogger("observatory")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as http_client:
            credentials = CredentialStore(
                settings.GITHUB_APP_ID,
                settings.private_key(),
                http_client,
                timeout=settings.HTTP_TIMEOUT,
            )
            registry = InstallationRegistry(credentials)
            client = GitHubClient(
                http_client,
                credentials,
                registry,
                max_retries=settings.HTTP_MAX_RETRIES,
                retry_base_delay=settings.HTTP_RETRY_BASE_DELAY,
            )
            app.state.registry = registry
            notifier = ConflictNotifier(client, settings.MAX_CONCURRENT_DIFFS)
            app.state.github_handler = GitHubWebhookHandler(
                settings.GITHUB_WEBHOOK_SECRET, client, notifier
            )

            if settings.DISCOVER_ON_STARTUP:
                # KeySigningError is fatal here: the app cannot authenticate at all
                try:
                    await client.discover_installations()
                except RemoteError as e:
                    logger.error(f"Installation discovery failed, waiting for webhooks: {e}")

            logger.info(f"{settings.PROJECT_NAME} started")
            yield

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    app.include_router(webhook_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
