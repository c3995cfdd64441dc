from typing import Optional, List, Literal
from pydantic import BaseModel, Field

FlowRunStatus = Literal[
    "waiting",         # stopped on a condition node awaiting the next message
    "no_match",        # no condition matched, conversation stays on the node
    "completed",       # reached a message node without outgoing edge
    "no_active_flow",
    "node_not_found",
    "max_steps",       # chaining stopped by the cycle guard
    "bot_inactive",
]


class FlowRunResult(BaseModel):
    """
    Outcome of running the flow interpreter for one inbound message
    """
    status: FlowRunStatus
    flow_id: Optional[str] = None
    previous_node_id: Optional[str] = None
    current_node_id: Optional[str] = None
    sent_messages: List[str] = Field(default_factory=list)
    visited_nodes: List[str] = Field(default_factory=list)
