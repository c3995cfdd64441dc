from typing import Optional
from pydantic import BaseModel, Field


class WebhookMessageResponse(BaseModel):
    """
    Response model for webhook message processing.
    Indicates whether the flow ran and where the conversation now stands.
    """
    message: str = Field(..., description="Human-readable message")
    status: str = Field(..., description="Interpreter status (waiting, completed, no_match, no_active_flow, bot_inactive, ...)")
    flow_id: Optional[str] = Field(None, description="Active flow ID if one was found")
    current_node_id: Optional[str] = Field(None, description="Current node ID after processing")
    messages_sent: int = Field(default=0, description="Number of bot messages sent while processing")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Webhook processed successfully",
                "status": "waiting",
                "flow_id": "6650f1c2a1b2c3d4e5f60718",
                "current_node_id": "2",
                "messages_sent": 1
            }
        }
