from typing import Any, List, Optional

from pydantic import BaseModel


class TriggerWebhookRequest(BaseModel):
    webhook_id: Optional[str] = None
    bot_id: Optional[str] = None
    event_type: Optional[str] = None
    payload: Optional[dict[str, Any]] = None


class DeliveryOutcome(BaseModel):
    webhook_id: str
    status: Optional[int] = None
    error: Optional[str] = None


class TriggerWebhookResponse(BaseModel):
    success: bool
    triggered: int
    successful: int = 0
    results: List[DeliveryOutcome] = []
