from typing import Optional, List, Dict, Any

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Database
from wabot_flow.database.flow_db import FlowDB

# Services
from wabot_flow.services.bot_service import BotService

# Models
from wabot_flow.models.flow_data import FlowData, FlowGraph, START_NODE_ID
from wabot_flow.models.flow_log_data import FlowLogData
from wabot_flow.models.request.flow_request import FlowCreateRequest, FlowUpdateRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowNotFoundException, FlowValidationException

class FlowService:
    def __init__(self, log_util: LogUtil, flow_db: FlowDB, bot_service: BotService):
        self.log_util = log_util
        self.flow_db = flow_db
        self.bot_service = bot_service

    def _validate_graph(self, graph: FlowGraph) -> None:
        errors = graph.validate_graph()
        if errors:
            self.log_util.warning(service_name="FlowService", message=f"Flow graph rejected: {'; '.join(errors)}")
            raise FlowValidationException(message="; ".join(errors))

    async def create_flow(self, user_id: str, request: FlowCreateRequest) -> FlowData:
        """
        Create a new flow for one of the user's bots. New flows start inactive.
        """
        bot = await self.bot_service.get_bot(user_id, request.bot_id)
        self._validate_graph(request.data)

        flow = await self.flow_db.create_flow(FlowData(
            bot_id=bot.id,
            user_id=user_id,
            name=request.name,
            description=request.description,
            is_active=False,
            data=request.data
        ))

        self.log_util.info(
            service_name="FlowService",
            message=f"Flow '{flow.name}' created successfully with ID: {flow.id} for bot {bot.id}"
        )
        return flow

    async def get_flows_list(self, user_id: str, bot_id: Optional[str] = None) -> List[FlowData]:
        if bot_id:
            bot = await self.bot_service.get_bot(user_id, bot_id)
            return await self.flow_db.get_flows_by_bot(bot.id)
        return await self.flow_db.get_flows_by_user(user_id)

    async def get_flow_detail(self, user_id: str, flow_id: str) -> FlowData:
        flow = await self.flow_db.get_flow(flow_id)
        if flow is None or flow.user_id != user_id:
            raise FlowNotFoundException(message="Flow not found")
        return flow

    async def update_flow(self, user_id: str, flow_id: str, request: FlowUpdateRequest) -> FlowData:
        flow = await self.get_flow_detail(user_id, flow_id)

        fields: Dict[str, Any] = {}
        if request.name is not None:
            fields["name"] = request.name
        if request.description is not None:
            fields["description"] = request.description
        if request.data is not None:
            self._validate_graph(request.data)
            if flow.is_active and request.data.get_node(START_NODE_ID) is None:
                raise FlowValidationException(message=f"Active flow must keep start node '{START_NODE_ID}'")
            fields["data"] = request.data.model_dump()

        if not fields:
            return flow

        updated = await self.flow_db.update_flow(flow.id, fields)
        if updated is None:
            raise FlowNotFoundException(message="Flow not found")

        self.log_util.info(service_name="FlowService", message=f"Flow {flow.id} updated")
        return updated

    async def update_flow_status(self, user_id: str, flow_id: str, is_active: bool) -> FlowData:
        """
        Activate or deactivate a flow. A bot has at most one active flow, so
        activating one deactivates the others of the same bot.
        """
        flow = await self.get_flow_detail(user_id, flow_id)

        if is_active:
            if flow.data.get_node(START_NODE_ID) is None:
                raise FlowValidationException(message=f"Flow has no start node '{START_NODE_ID}'")
            deactivated = await self.flow_db.deactivate_other_flows(flow.bot_id, keep_flow_id=flow.id)
            if deactivated:
                self.log_util.info(
                    service_name="FlowService",
                    message=f"Deactivated {deactivated} other flow(s) of bot {flow.bot_id}"
                )

        updated = await self.flow_db.update_flow(flow.id, {"is_active": is_active})
        if updated is None:
            raise FlowNotFoundException(message="Flow not found")

        self.log_util.info(
            service_name="FlowService",
            message=f"Flow {flow.id} {'activated' if is_active else 'deactivated'}"
        )
        return updated

    async def delete_flow(self, user_id: str, flow_id: str) -> bool:
        flow = await self.get_flow_detail(user_id, flow_id)
        return await self.flow_db.delete_flow(flow.id)

    async def get_flow_logs(self, user_id: str, flow_id: str, limit: int = 200) -> List[FlowLogData]:
        flow = await self.get_flow_detail(user_id, flow_id)
        return await self.flow_db.get_flow_logs(flow.id, limit=limit)
