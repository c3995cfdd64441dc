from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

class MessageData(BaseModel):
    """
    Inbound or outbound WhatsApp message record
    """
    id: Optional[str] = None  # MongoDB _id
    user_id: str  # Dashboard user owning the bot
    bot_id: Optional[str] = None  # Unknown until the bot is resolved for inbound messages
    flow_id: Optional[str] = None
    from_number: str
    to_number: str
    content: str
    type: str = "text"
    direction: Literal["incoming", "outgoing"] = "incoming"
    status: Literal["received", "sending", "sent", "failed"] = "received"
    wa_message_id: Optional[str] = None  # Cloud API message id (wamid...)
    error: Optional[str] = None
    received_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
