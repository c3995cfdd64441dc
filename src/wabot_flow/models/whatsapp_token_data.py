from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class WhatsAppTokenData(BaseModel):
    """
    WhatsApp Cloud API credentials of a user's bot
    """
    id: Optional[str] = None  # MongoDB _id
    user_id: str
    bot_id: Optional[str] = None
    access_token: str
    phone_number_id: str  # Cloud API phone number id, used in /{phone_number_id}/messages
    business_account_id: Optional[str] = None  # WABA id
    phone_number: Optional[str] = None  # Display number without leading "+"
    valid_until: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def is_expired(self) -> bool:
        return self.valid_until is not None and self.valid_until < datetime.utcnow()
