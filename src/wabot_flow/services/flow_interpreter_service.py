"""
Flow Interpreter Service
Advances a conversation through the bot's active flow graph for each inbound message.
"""
from typing import Optional

from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.database.flow_db import FlowDB
from wabot_flow.models.bot_data import BotData
from wabot_flow.models.flow_data import FlowData, ConditionNode, MessageNode, START_NODE_ID
from wabot_flow.models.flow_log_data import FlowLogData
from wabot_flow.models.response.flow_run_result import FlowRunResult
from wabot_flow.services.condition_evaluation_service import ConditionEvaluationService
from wabot_flow.services.message_sender_service import MessageSenderService
from wabot_flow.services.event_dispatch_service import EventDispatchService
from wabot_flow.services.conversation_lock_service import ConversationLockService


class FlowInterpreterService:
    """
    State machine over flow nodes. The state of a conversation is the id of
    its current node, stored per (bot, user number).

    For one inbound message the interpreter walks the graph from the current node:
    - input: follow the first outgoing edge
    - message: send the content, follow the first outgoing edge; a message
      node without outgoing edge completes the flow
    - condition: match the inbound text against the branches once; a
      condition reached after the text was used, or after the bot replied in
      this run, waits for the next message
    """

    def __init__(
        self,
        log_util: LogUtil,
        flow_db: FlowDB,
        condition_evaluation_service: ConditionEvaluationService,
        message_sender_service: MessageSenderService,
        event_dispatch_service: EventDispatchService,
        conversation_lock_service: ConversationLockService,
        max_steps: int = 25
    ):
        self.log_util = log_util
        self.flow_db = flow_db
        self.condition_evaluation_service = condition_evaluation_service
        self.message_sender_service = message_sender_service
        self.event_dispatch_service = event_dispatch_service
        self.conversation_lock_service = conversation_lock_service
        self.max_steps = max_steps

    async def process_message(self, bot: BotData, user_number: str, content: str) -> FlowRunResult:
        """
        Run the bot's active flow for one message of user_number.
        Messages of the same conversation are processed one at a time.
        """
        lock = self.conversation_lock_service.get_lock(bot.id, user_number)
        async with lock:
            return await self._process_message(bot, user_number, content)

    async def _process_message(self, bot: BotData, user_number: str, content: str) -> FlowRunResult:
        flow = await self.flow_db.get_active_flow(bot.id)
        if flow is None:
            self.log_util.warning(
                service_name="FlowInterpreterService",
                message=f"No active flow for bot {bot.id}, message from {user_number} not processed"
            )
            return FlowRunResult(status="no_active_flow")

        state = await self.flow_db.get_flow_state(bot.id, user_number)
        # A state saved under another flow is stale: the bot switched flows since the last message
        resumed = state is not None and (state.flow_id is None or state.flow_id == flow.id)
        start_node_id = state.current_node if resumed else START_NODE_ID

        self.log_util.info(
            service_name="FlowInterpreterService",
            message=f"Processing message from {user_number} on bot {bot.id}, flow {flow.id}, current node {start_node_id}"
        )

        result = FlowRunResult(
            status="waiting",
            flow_id=flow.id,
            previous_node_id=start_node_id
        )
        node_id: Optional[str] = start_node_id
        reply_consumed = False
        completed = False

        while True:
            if len(result.visited_nodes) >= self.max_steps:
                result.status = "max_steps"
                await self._log_step(flow, bot, user_number, node_id, "unknown", "warning",
                                     f"Stopped after {self.max_steps} steps, the flow may contain a cycle")
                break

            node = flow.data.get_node(node_id)
            if node is None:
                self.log_util.error(
                    service_name="FlowInterpreterService",
                    message=f"Node {node_id} not found in flow {flow.id}, conversation {user_number} left unchanged"
                )
                await self._log_step(flow, bot, user_number, node_id, "unknown", "error",
                                     f"Node {node_id} not found in flow")
                result.status = "node_not_found"
                result.current_node_id = state.current_node if resumed else None
                return result

            if isinstance(node, ConditionNode):
                if reply_consumed or result.sent_messages:
                    # The user has not answered what was just sent
                    result.status = "waiting"
                    break

                result.visited_nodes.append(node.id)
                reply_consumed = True
                matched = self.condition_evaluation_service.find_matching_condition(node.conditions, content)
                if matched is None:
                    await self._log_step(flow, bot, user_number, node.id, node.type, "warning",
                                         f"No condition matched '{content}'")
                    if node.fallback:
                        await self.message_sender_service.send_text(bot, user_number, node.fallback, flow.id)
                        result.sent_messages.append(node.fallback)
                    result.status = "no_match"
                    break

                await self._log_step(flow, bot, user_number, node.id, node.type, "success",
                                     f"{matched.operator} '{matched.value}' matched, next node {matched.next_node}")
                node_id = matched.next_node
                continue

            result.visited_nodes.append(node.id)
            if isinstance(node, MessageNode):
                if node.content:
                    await self.message_sender_service.send_text(bot, user_number, node.content, flow.id)
                    result.sent_messages.append(node.content)
                    await self._log_step(flow, bot, user_number, node.id, node.type, "success",
                                         f"Sent message to {user_number}")
                else:
                    await self._log_step(flow, bot, user_number, node.id, node.type, "warning",
                                         "Message node has no content, nothing sent")
            else:
                await self._log_step(flow, bot, user_number, node.id, node.type, "success", "Entered node")

            next_node_id = flow.data.get_next_node_id(node.id)
            if next_node_id is None:
                completed = True
                break
            node_id = next_node_id

        if completed:
            await self.flow_db.delete_flow_state(bot.id, user_number)
            result.status = "completed"
            result.current_node_id = None
            self.log_util.info(
                service_name="FlowInterpreterService",
                message=f"Flow {flow.id} completed for {user_number} on bot {bot.id}"
            )
            await self.event_dispatch_service.dispatch(
                user_id=bot.user_id,
                event="flow_completed",
                data={"bot_id": bot.id, "flow_id": flow.id, "user_number": user_number}
            )
        else:
            await self.flow_db.upsert_flow_state(
                bot_id=bot.id,
                user_number=user_number,
                current_node=node_id,
                flow_id=flow.id
            )
            result.current_node_id = node_id

        await self.flow_db.touch_flow_execution(flow.id)
        await self.flow_db.touch_bot_activity(bot.id)

        self.log_util.info(
            service_name="FlowInterpreterService",
            message=f"Conversation {user_number} on bot {bot.id}: {result.status}, node {start_node_id} -> {result.current_node_id}, {len(result.sent_messages)} message(s) sent"
        )
        return result

    async def _log_step(self, flow: FlowData, bot: BotData, user_number: str, node_id: Optional[str],
                        node_type: str, status: str, details: str) -> None:
        try:
            await self.flow_db.save_flow_log(FlowLogData(
                flow_id=flow.id,
                bot_id=bot.id,
                user_number=user_number,
                step=node_id or "",
                type=node_type,
                status=status,
                details=details
            ))
        except Exception as e:
            self.log_util.warning(
                service_name="FlowInterpreterService",
                message=f"Could not save flow log for node {node_id} of flow {flow.id}: {str(e)}"
            )
