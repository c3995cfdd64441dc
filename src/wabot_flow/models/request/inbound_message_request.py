from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


class InboundMessageRequest(BaseModel):
    """
    Request model for the token-authenticated webhook.
    Body shape is {"from", "to", "content", "type"}; "from" is exposed as `sender`.
    """
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(..., alias="from", description="End-user phone number")
    to: str = Field(..., description="Bot phone number the message was sent to")
    content: str = Field(..., description="Message text")
    type: Optional[str] = Field(default="text", description="Message type, defaults to text")

    @field_validator("sender", "to", "content")
    @classmethod
    def must_not_be_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("type")
    @classmethod
    def default_type(cls, value: Optional[str]) -> str:
        return value or "text"
