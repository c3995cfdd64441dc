from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class FlowStateData(BaseModel):
    """
    Pointer to the current node of one conversation.
    Unique per (bot_id, user_number), upserted after each processed message.
    """
    id: Optional[str] = None  # MongoDB _id
    bot_id: str
    user_number: str  # End-user phone number
    flow_id: Optional[str] = None  # Flow the current node belongs to
    current_node: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
