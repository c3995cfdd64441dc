from typing import Optional
from pydantic import BaseModel


class BotCreateRequest(BaseModel):
    name: str
    phone_number: str
    description: Optional[str] = ""
    is_active: bool = True


class BotUpdateRequest(BaseModel):
    name: Optional[str] = None
    phone_number: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
