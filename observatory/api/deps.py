from fastapi import Request

from observatory.services.installations import InstallationRegistry
from observatory.services.webhook_handlers.github import GitHubWebhookHandler


def get_github_handler(request: Request) -> GitHubWebhookHandler:
    return request.app.state.github_handler


def get_registry(request: Request) -> InstallationRegistry:
    return request.app.state.registry
