from pydantic import BaseModel, Field, Discriminator, ConfigDict, AliasChoices
from typing import Optional, List, Union, Literal, Annotated
from datetime import datetime

# Start node the flow builder creates for every new flow
START_NODE_ID = "1"

SUPPORTED_CONDITION_OPERATORS = [
    "Equal",
    "NotEqual",
    "Contains",
    "NotContains",
    "StartsWith",
    "EndsWith",
    "Regex",
    "GreaterThan",
    "LessThan",
    "Any",
]

class FlowNodePosition(BaseModel):
    x: float = 0
    y: float = 0

class FlowCondition(BaseModel):
    """
    Declarative branch of a condition node: compare the incoming text with
    `value` using `operator` and jump to `next_node` on a match.
    """
    id: Optional[str] = None
    operator: str = "Equal"
    value: str = ""
    next_node: str = Field(..., validation_alias=AliasChoices("next_node", "nextNode"))

# Base FlowNode with common fields
class BaseFlowNode(BaseModel):
    model_config = ConfigDict(extra='allow')  # Builder-only fields (style, width, ...) are kept

    id: str
    type: str
    label: Optional[str] = ""
    position: FlowNodePosition = Field(default_factory=FlowNodePosition)

# Start Node
class InputNode(BaseFlowNode):
    type: Literal["input"]

# Message Node
class MessageNode(BaseFlowNode):
    type: Literal["message"]
    content: str = ""

# Condition Node
class ConditionNode(BaseFlowNode):
    type: Literal["condition"]
    conditions: List[FlowCondition] = []
    fallback: Optional[str] = None  # Sent when no condition matches

# Union of all node types with discriminator
FlowNode = Annotated[
    Union[
        InputNode,
        MessageNode,
        ConditionNode
    ],
    Discriminator("type")
]

class FlowEdge(BaseModel):
    id: str
    source: str
    target: str
    type: Optional[str] = "default"

class FlowGraph(BaseModel):
    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []

    def get_node(self, node_id: str) -> Optional[BaseFlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_next_node_id(self, node_id: str) -> Optional[str]:
        """
        Target of the first edge leaving node_id, or None for a leaf node.
        """
        for edge in self.edges:
            if edge.source == node_id:
                return edge.target
        return None

    def validate_graph(self) -> List[str]:
        """
        Return a list of problems: duplicate node ids, unknown condition
        operators, and edges or conditions pointing at missing nodes.
        """
        errors: List[str] = []
        node_ids = set()
        for node in self.nodes:
            if node.id in node_ids:
                errors.append(f"Duplicate node id '{node.id}'")
            node_ids.add(node.id)

        for edge in self.edges:
            if edge.source not in node_ids:
                errors.append(f"Edge '{edge.id}' source '{edge.source}' is not a node of this flow")
            if edge.target not in node_ids:
                errors.append(f"Edge '{edge.id}' target '{edge.target}' is not a node of this flow")

        for node in self.nodes:
            if not isinstance(node, ConditionNode):
                continue
            for condition in node.conditions:
                if condition.operator not in SUPPORTED_CONDITION_OPERATORS:
                    errors.append(f"Condition on node '{node.id}' uses unsupported operator '{condition.operator}'")
                if condition.next_node not in node_ids:
                    errors.append(f"Condition on node '{node.id}' points at missing node '{condition.next_node}'")

        return errors

class FlowData(BaseModel):
    id: Optional[str] = None  # MongoDB _id
    bot_id: str
    user_id: str
    name: str = "New flow"
    description: Optional[str] = ""
    is_active: bool = False
    data: FlowGraph = Field(default_factory=FlowGraph)
    last_execution: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
