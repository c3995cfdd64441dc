from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class WebhookConfigData(BaseModel):
    """
    Per-user inbound webhook configuration. The token authenticates POST /webhook?token=...
    """
    id: Optional[str] = None  # MongoDB _id
    user_id: str
    token: str
    url: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
