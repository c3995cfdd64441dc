from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class BotData(BaseModel):
    id: Optional[str] = None  # MongoDB _id
    user_id: str  # Owner of the bot
    name: str
    description: Optional[str] = ""
    phone_number: str  # WhatsApp number the bot answers on, matched against inbound "to"
    is_active: bool = True
    last_activity_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
