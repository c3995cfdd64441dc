from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class WhatsAppConfigRequest(BaseModel):
    access_token: str
    phone_number_id: str
    bot_id: Optional[str] = None
    business_account_id: Optional[str] = None
    phone_number: Optional[str] = None
    valid_until: Optional[datetime] = None
