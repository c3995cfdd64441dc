"""
Message Sender Service
Records outgoing bot messages and delivers them through the WhatsApp Cloud API.
"""
from datetime import datetime
from typing import Optional
import httpx

from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.database.flow_db import FlowDB
from wabot_flow.models.bot_data import BotData
from wabot_flow.models.message_data import MessageData
from wabot_flow.services.event_dispatch_service import EventDispatchService


class MessageSenderService:
    """
    Sends text replies on behalf of a bot.
    Every reply is stored as an outgoing message first; delivery errors mark
    it as failed and are never raised to the caller.
    """

    def __init__(
        self,
        log_util: LogUtil,
        flow_db: FlowDB,
        event_dispatch_service: EventDispatchService,
        api_url: str = "https://graph.facebook.com/v18.0",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.log_util = log_util
        self.flow_db = flow_db
        self.event_dispatch_service = event_dispatch_service
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def send_text(self, bot: BotData, to: str, content: str, flow_id: Optional[str] = None) -> MessageData:
        message = await self.flow_db.save_message(MessageData(
            user_id=bot.user_id,
            bot_id=bot.id,
            flow_id=flow_id,
            from_number=bot.phone_number,
            to_number=to,
            content=content,
            type="text",
            direction="outgoing",
            status="sending",
            sent_at=datetime.utcnow()
        ))

        token = await self.flow_db.get_whatsapp_token_for_bot(user_id=bot.user_id, bot_id=bot.id)
        if token is None:
            self.log_util.warning(
                service_name="MessageSenderService",
                message=f"No WhatsApp credentials for bot {bot.id}, message {message.id} to {to} recorded but not delivered"
            )
            return message
        if token.is_expired():
            return await self._mark_failed(message, "WhatsApp access token expired")

        endpoint = f"{self.api_url}/{token.phone_number_id}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to.lstrip("+"),
            "type": "text",
            "text": {"body": content}
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(
                    endpoint,
                    json=payload,
                    headers={"Authorization": f"Bearer {token.access_token}"}
                )
        except httpx.TimeoutException:
            return await self._mark_failed(message, "Timeout calling WhatsApp Cloud API")
        except httpx.RequestError as e:
            return await self._mark_failed(message, f"Error calling WhatsApp Cloud API: {str(e)}")

        if not response.is_success:
            return await self._mark_failed(message, f"WhatsApp Cloud API error: {response.status_code} - {response.text}")

        wa_message_id = None
        try:
            messages = response.json().get("messages") or []
            if messages:
                wa_message_id = messages[0].get("id")
        except ValueError:
            self.log_util.warning(
                service_name="MessageSenderService",
                message=f"WhatsApp Cloud API returned a non-JSON body for message {message.id}"
            )

        sent = await self.flow_db.update_message(message.id, {"status": "sent", "wa_message_id": wa_message_id})
        self.log_util.info(
            service_name="MessageSenderService",
            message=f"Message {message.id} sent to {to} via bot {bot.id} (wamid: {wa_message_id})"
        )

        await self.event_dispatch_service.dispatch(
            user_id=bot.user_id,
            event="response_sent",
            data={
                "bot_id": bot.id,
                "flow_id": flow_id,
                "from": bot.phone_number,
                "to": to,
                "content": content,
                "wa_message_id": wa_message_id
            }
        )
        return sent or message

    async def _mark_failed(self, message: MessageData, error: str) -> MessageData:
        self.log_util.error(
            service_name="MessageSenderService",
            message=f"Delivery of message {message.id} to {message.to_number} failed: {error}"
        )
        failed = await self.flow_db.update_message(message.id, {"status": "failed", "error": error})
        await self.event_dispatch_service.dispatch(
            user_id=message.user_id,
            event="error",
            data={
                "bot_id": message.bot_id,
                "flow_id": message.flow_id,
                "to": message.to_number,
                "content": message.content,
                "error": error
            }
        )
        return failed or message
