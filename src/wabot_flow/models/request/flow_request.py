from typing import Optional
from pydantic import BaseModel
from wabot_flow.models.flow_data import FlowGraph


class FlowCreateRequest(BaseModel):
    bot_id: str
    name: str = "New flow"
    description: Optional[str] = ""
    data: FlowGraph = FlowGraph()


class FlowUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    data: Optional[FlowGraph] = None


class FlowStatusRequest(BaseModel):
    is_active: bool
