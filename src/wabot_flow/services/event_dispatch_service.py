"""
Event Dispatch Service
Notifies user-configured URLs about bot events with a {event, timestamp, data} envelope.
"""
from typing import Optional, Dict, Any
import httpx

from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.database.flow_db import FlowDB
from wabot_flow.models.outbound_webhook_data import OutboundEventEnvelope


class EventDispatchService:
    """
    Delivers events to the user's active outbound webhooks.
    Delivery failures are logged and dropped; nothing is retried.
    """

    def __init__(
        self,
        log_util: LogUtil,
        flow_db: FlowDB,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.log_util = log_util
        self.flow_db = flow_db
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def dispatch(self, user_id: str, event: str, data: Dict[str, Any]) -> int:
        """
        POST the event envelope to every active webhook of user_id subscribed to event.

        Returns:
            Number of successful deliveries
        """
        try:
            webhooks = await self.flow_db.get_active_outbound_webhooks(user_id=user_id, trigger=event)
        except Exception as e:
            self.log_util.error(
                service_name="EventDispatchService",
                message=f"Error loading webhooks for user {user_id}, event {event} dropped: {str(e)}"
            )
            return 0

        if not webhooks:
            return 0

        envelope = OutboundEventEnvelope(event=event, data=data)
        payload = envelope.model_dump(mode="json")
        delivered = 0

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            for webhook in webhooks:
                succeeded = False
                try:
                    response = await client.post(
                        webhook.url,
                        json=payload,
                        headers={"Content-Type": "application/json"}
                    )
                    if response.is_success:
                        succeeded = True
                        delivered += 1
                    else:
                        self.log_util.error(
                            service_name="EventDispatchService",
                            message=f"Webhook {webhook.url} returned error: {response.status_code} - {response.text}"
                        )
                except httpx.TimeoutException:
                    self.log_util.error(
                        service_name="EventDispatchService",
                        message=f"Timeout sending {event} to webhook {webhook.url}"
                    )
                except httpx.RequestError as e:
                    self.log_util.error(
                        service_name="EventDispatchService",
                        message=f"Error sending {event} to webhook {webhook.url}: {str(e)}"
                    )

                try:
                    await self.flow_db.record_outbound_webhook_call(webhook.id, succeeded=succeeded)
                except Exception as e:
                    self.log_util.warning(
                        service_name="EventDispatchService",
                        message=f"Could not record call for webhook {webhook.id}: {str(e)}"
                    )

        self.log_util.info(
            service_name="EventDispatchService",
            message=f"Event {event} delivered to {delivered}/{len(webhooks)} webhook(s) for user {user_id}"
        )
        return delivered
