from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


class FlowLogData(BaseModel):
    """
    One interpreter step for a conversation.
    Tracks node processing for the flow logs page and auditing.
    """
    id: Optional[str] = None  # MongoDB _id
    flow_id: str = Field(..., description="Flow ID where the node exists")
    bot_id: str = Field(..., description="Bot running the flow")
    user_number: str = Field(..., description="End-user phone number")
    step: str = Field(..., description="Node ID that was processed")
    type: str = Field(..., description="Type of node (input, message, condition)")
    status: Literal["success", "warning", "error"] = Field(default="success", description="Step outcome")
    details: Optional[str] = Field(None, description="Human readable description of the step")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When the step was processed")
