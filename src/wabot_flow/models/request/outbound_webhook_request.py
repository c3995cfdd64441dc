from pydantic import BaseModel
from wabot_flow.models.outbound_webhook_data import OutboundEvent


class OutboundWebhookCreateRequest(BaseModel):
    url: str
    trigger: OutboundEvent = "message_received"
    is_active: bool = True
