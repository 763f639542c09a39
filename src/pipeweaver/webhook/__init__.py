"""Git push webhook boundary.

This module provides:
- WebhookHandler: signature verification and push payload parsing
- TriggerEvent: immutable parsed push consumed by the orchestrator
"""

from src.pipeweaver.webhook.handler import WebhookHandler, is_push_event
from src.pipeweaver.webhook.models import CommitInfo, RepositoryRef, TriggerEvent

__all__ = [
    "CommitInfo",
    "RepositoryRef",
    "TriggerEvent",
    "WebhookHandler",
    "is_push_event",
]
