from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Literal
from datetime import datetime

OutboundEvent = Literal["message_received", "response_sent", "flow_completed", "error"]

class OutboundWebhookData(BaseModel):
    """
    User-configured URL notified when `trigger` happens
    """
    id: Optional[str] = None  # MongoDB _id
    user_id: str
    url: str
    trigger: OutboundEvent = "message_received"
    is_active: bool = True
    last_call: Optional[datetime] = None
    failure_count: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class OutboundEventEnvelope(BaseModel):
    """
    Fixed JSON body POSTed to outbound webhooks
    """
    event: OutboundEvent
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    data: Dict[str, Any] = Field(default_factory=dict)
