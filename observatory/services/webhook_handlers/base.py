from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel


class WebhookHandler(ABC):
    @abstractmethod
    def validate_webhook(self, headers: Mapping[str, str], body: bytes) -> bool:
        """Validate the webhook signature/authenticity"""
        pass

    @abstractmethod
    def parse_event(self, event: str, payload: Dict[str, Any]) -> Optional[BaseModel]:
        """Convert a webhook payload to a typed event, or None if the event is not handled"""
        pass

    @abstractmethod
    async def handle_event(self, event: BaseModel) -> None:
        """Act on a parsed event"""
        pass
