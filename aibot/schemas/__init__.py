from aibot.schemas.appointment import TrackAppointmentRequest, TrackAppointmentResponse
from aibot.schemas.chat import ChatRequest, ChatResponse, ErrorResponse, HistoryMessage
from aibot.schemas.webhook import DeliveryOutcome, TriggerWebhookRequest, TriggerWebhookResponse

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "HistoryMessage",
    "TrackAppointmentRequest",
    "TrackAppointmentResponse",
    "TriggerWebhookRequest",
    "TriggerWebhookResponse",
    "DeliveryOutcome",
]
