from typing import List
from urllib.parse import urlparse

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Database
from wabot_flow.database.flow_db import FlowDB

# Models
from wabot_flow.models.outbound_webhook_data import OutboundWebhookData
from wabot_flow.models.request.outbound_webhook_request import OutboundWebhookCreateRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowNotFoundException, FlowValidationException


class OutboundWebhookService:
    """
    Manages the URLs a user wants notified about bot events
    """
    def __init__(self, log_util: LogUtil, flow_db: FlowDB):
        self.log_util = log_util
        self.flow_db = flow_db

    async def create_webhook(self, user_id: str, request: OutboundWebhookCreateRequest) -> OutboundWebhookData:
        parsed = urlparse(request.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise FlowValidationException(message=f"Invalid webhook URL: {request.url}")

        webhook = await self.flow_db.create_outbound_webhook(OutboundWebhookData(
            user_id=user_id,
            url=request.url,
            trigger=request.trigger,
            is_active=request.is_active
        ))
        self.log_util.info(
            service_name="OutboundWebhookService",
            message=f"Webhook {webhook.id} created for user {user_id} on {webhook.trigger}"
        )
        return webhook

    async def get_webhooks(self, user_id: str) -> List[OutboundWebhookData]:
        return await self.flow_db.get_outbound_webhooks(user_id)

    async def _get_owned_webhook(self, user_id: str, webhook_id: str) -> OutboundWebhookData:
        webhook = await self.flow_db.get_outbound_webhook(webhook_id)
        if webhook is None or webhook.user_id != user_id:
            raise FlowNotFoundException(message="Webhook not found")
        return webhook

    async def toggle_webhook(self, user_id: str, webhook_id: str) -> OutboundWebhookData:
        webhook = await self._get_owned_webhook(user_id, webhook_id)
        updated = await self.flow_db.set_outbound_webhook_active(webhook.id, not webhook.is_active)
        if updated is None:
            raise FlowNotFoundException(message="Webhook not found")
        return updated

    async def delete_webhook(self, user_id: str, webhook_id: str) -> bool:
        webhook = await self._get_owned_webhook(user_id, webhook_id)
        return await self.flow_db.delete_outbound_webhook(webhook.id)
