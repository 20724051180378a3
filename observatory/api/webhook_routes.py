import json
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from pydantic import ValidationError

from observatory.api.deps import get_github_handler, get_registry
from observatory.services.installations import InstallationRegistry
from observatory.services.webhook_handlers.github import GitHubWebhookHandler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/github", status_code=202)
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: Optional[str] = Header(None),
    handler: GitHubWebhookHandler = Depends(get_github_handler),
):
    body = await request.body()

    if not handler.validate_webhook(request.headers, body):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    if x_github_event == "ping":
        return {"status": "pong"}

    try:
        payload = json.loads(body)
        event = handler.parse_event(x_github_event or "", payload)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Malformed {x_github_event} payload: {e}")
        raise HTTPException(status_code=400, detail="Malformed webhook payload")

    if event is None:
        return {"status": "ignored", "event": x_github_event}

    background_tasks.add_task(handler.handle_event, event)
    return {"status": "accepted", "event": x_github_event}


@router.get("/installations")
async def list_installations(registry: InstallationRegistry = Depends(get_registry)):
    return [
        {
            "id": installation.id,
            "account": installation.account.login,
            "repositories": [r.full_name for r in installation.repositories],
        }
        for installation in registry.installations()
    ]
