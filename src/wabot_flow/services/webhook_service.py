import json
from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import ValidationError

# Utils
from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.utils.signature_utils import verify_hub_signature

# Database
from wabot_flow.database.flow_db import FlowDB

# Services
from wabot_flow.services.flow_interpreter_service import FlowInterpreterService
from wabot_flow.services.event_dispatch_service import EventDispatchService

# Models
from wabot_flow.models.bot_data import BotData
from wabot_flow.models.message_data import MessageData
from wabot_flow.models.request.inbound_message_request import InboundMessageRequest
from wabot_flow.models.request.whatsapp_webhook_request import WhatsAppWebhookRequest, WhatsAppChangeValue
from wabot_flow.models.response.flow_run_result import FlowRunResult

# Exceptions
from wabot_flow.exceptions.flow_exception import (
    WebhookAuthException,
    WebhookPayloadException,
    BotNotFoundException,
)


class WebhookService:
    """
    Service for handling inbound WhatsApp messages.
    Authenticates the callback, persists the message, notifies outbound
    webhooks and runs the bot's flow.
    """

    def __init__(
        self,
        log_util: LogUtil,
        flow_db: FlowDB,
        flow_interpreter_service: FlowInterpreterService,
        event_dispatch_service: EventDispatchService,
        app_secret: str = "",
        verify_token: str = ""
    ):
        self.log_util = log_util
        self.flow_db = flow_db
        self.flow_interpreter_service = flow_interpreter_service
        self.event_dispatch_service = event_dispatch_service
        self.app_secret = app_secret
        self.verify_token = verify_token

    @staticmethod
    def _parse_json(raw_body: bytes) -> Any:
        try:
            return json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as e:
            raise WebhookPayloadException(message=f"Invalid JSON body: {str(e)}")

    async def process_token_webhook(self, token: Optional[str], raw_body: bytes) -> FlowRunResult:
        """
        Handle POST /webhook?token=... with a {from, to, content, type} body.

        Steps:
        1. Authenticate the token against webhook_config (401)
        2. Validate the payload (400)
        3. Save the inbound message (500 on failure)
        4. Find the bot answering on "to" (404)
        5. Notify outbound webhooks and run the flow
        """
        if not token:
            raise WebhookAuthException(message="Authentication token not provided")

        webhook_config = await self.flow_db.get_webhook_config_by_token(token)
        if webhook_config is None:
            self.log_util.warning(service_name="WebhookService", message="Inbound webhook called with an unknown token")
            raise WebhookAuthException(message="Invalid token")

        payload = self._parse_json(raw_body)
        if not isinstance(payload, dict):
            raise WebhookPayloadException(message="Invalid payload")
        try:
            request = InboundMessageRequest.model_validate(payload)
        except ValidationError as e:
            raise WebhookPayloadException(message=f"Invalid payload: {e.errors(include_url=False)}")

        self.log_util.info(
            service_name="WebhookService",
            message=f"Received message from {request.sender} to {request.to} for user {webhook_config.user_id}"
        )

        await self.flow_db.save_message(MessageData(
            user_id=webhook_config.user_id,
            from_number=request.sender,
            to_number=request.to,
            content=request.content,
            type=request.type,
            direction="incoming",
            status="received",
            received_at=datetime.utcnow()
        ))

        bot = await self.flow_db.get_bot_by_phone_number(webhook_config.user_id, request.to)
        if bot is None:
            self.log_util.error(
                service_name="WebhookService",
                message=f"Bot not found for user {webhook_config.user_id} and number {request.to}"
            )
            raise BotNotFoundException(message="Bot not found")

        return await self._dispatch_and_run(bot, request.sender, request.to, request.content)

    def verify_subscription(self, mode: Optional[str], verify_token: Optional[str], challenge: Optional[str]) -> str:
        """
        Cloud API webhook verification handshake (GET with hub.* query parameters)
        """
        if mode == "subscribe" and self.verify_token and verify_token == self.verify_token and challenge is not None:
            self.log_util.info(service_name="WebhookService", message="WhatsApp webhook subscription verified")
            return challenge
        raise WebhookAuthException(message="Webhook verification failed")

    async def process_whatsapp_webhook(self, raw_body: bytes, signature: Optional[str]) -> List[FlowRunResult]:
        """
        Handle a native WhatsApp Cloud API webhook.
        The X-Hub-Signature-256 header must match the HMAC of the raw body.
        """
        if not signature:
            raise WebhookAuthException(message="Missing signature")
        if not self.app_secret:
            self.log_util.error(service_name="WebhookService", message="WHATSAPP_APP_SECRET is not configured, rejecting webhook")
            raise WebhookAuthException(message="Signature cannot be verified")
        if not verify_hub_signature(raw_body, self.app_secret, signature):
            self.log_util.warning(service_name="WebhookService", message="WhatsApp webhook signature mismatch")
            raise WebhookAuthException(message="Invalid signature")

        payload = self._parse_json(raw_body)
        if not isinstance(payload, dict):
            raise WebhookPayloadException(message="Invalid payload")
        try:
            request = WhatsAppWebhookRequest.model_validate(payload)
        except ValidationError as e:
            raise WebhookPayloadException(message=f"Invalid payload: {e.errors(include_url=False)}")

        if request.object != "whatsapp_business_account":
            raise BotNotFoundException(message="Not implemented")

        results: List[FlowRunResult] = []
        message_changes = 0
        resolved_changes = 0
        for entry in request.entry:
            for change in entry.changes:
                if not change.value.messages:
                    # Delivery/read status callbacks carry no messages
                    continue
                message_changes += 1
                bot = await self._resolve_cloud_bot(change.value)
                if bot is None:
                    # Skip only this change, the rest of the delivery is still processed
                    continue
                resolved_changes += 1
                results.extend(await self._process_cloud_messages(bot, change.value))

        if message_changes and not resolved_changes:
            raise BotNotFoundException(message="Bot not found")
        return results

    async def _resolve_cloud_bot(self, value: WhatsAppChangeValue) -> Optional[BotData]:
        """
        Find the bot a Cloud API change was sent to, by phone_number_id first and
        display number second. Returns None when no owned bot matches.
        """
        token = None
        if value.metadata.phone_number_id:
            token = await self.flow_db.get_whatsapp_token_by_phone_number_id(value.metadata.phone_number_id)
        if token is None and value.metadata.display_phone_number:
            token = await self.flow_db.get_whatsapp_token_by_phone_number(value.metadata.display_phone_number)
        if token is None:
            self.log_util.warning(
                service_name="WebhookService",
                message=f"No bot configured for phone number id {value.metadata.phone_number_id}, skipping change"
            )
            return None

        bot = await self.flow_db.get_bot(token.bot_id) if token.bot_id else None
        if bot is None and value.metadata.display_phone_number:
            bot = await self.flow_db.get_bot_by_phone_number(token.user_id, value.metadata.display_phone_number)
        if bot is None or bot.user_id != token.user_id:
            self.log_util.warning(
                service_name="WebhookService",
                message=f"Bot not found for WhatsApp credentials {token.id}, skipping change"
            )
            return None
        return bot

    async def _process_cloud_messages(self, bot: BotData, value: WhatsAppChangeValue) -> List[FlowRunResult]:
        results: List[FlowRunResult] = []
        for message in value.messages:
            content = message.get_text_content()
            await self.flow_db.save_message(MessageData(
                user_id=bot.user_id,
                bot_id=bot.id,
                from_number=message.sender,
                to_number=bot.phone_number,
                content=content,
                type=message.type,
                direction="incoming",
                status="received",
                wa_message_id=message.id,
                received_at=datetime.utcnow()
            ))
            results.append(await self._dispatch_and_run(bot, message.sender, bot.phone_number, content))
        return results

    async def _dispatch_and_run(self, bot: BotData, sender: str, to: str, content: str) -> FlowRunResult:
        await self.event_dispatch_service.dispatch(
            user_id=bot.user_id,
            event="message_received",
            data={
                "bot_id": bot.id,
                "from": sender,
                "to": to,
                "content": content,
                "timestamp": datetime.utcnow().isoformat()
            }
        )

        if not bot.is_active:
            self.log_util.info(
                service_name="WebhookService",
                message=f"Bot {bot.id} is inactive, flow not run for message from {sender}"
            )
            return FlowRunResult(status="bot_inactive")

        return await self.flow_interpreter_service.process_message(bot, sender, content)

    @staticmethod
    def to_response_dict(result: FlowRunResult) -> Dict[str, Any]:
        return {
            "message": "Webhook processed successfully",
            "status": result.status,
            "flow_id": result.flow_id,
            "current_node_id": result.current_node_id,
            "messages_sent": len(result.sent_messages)
        }
