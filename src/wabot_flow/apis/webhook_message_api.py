from typing import Optional, Dict, Any, List
from fastapi import APIRouter, HTTPException, Request, Query, Header
from fastapi.responses import PlainTextResponse

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Services
from wabot_flow.services.webhook_service import WebhookService

# Models
from wabot_flow.models.response.webhook_message_response import WebhookMessageResponse

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowException


def create_webhook_message_api(
    log_util: LogUtil,
    webhook_service: WebhookService
) -> APIRouter:
    """
    Create API router for inbound WhatsApp messages.
    Two entry points run the same flow logic: a token-authenticated endpoint
    for relays and the native WhatsApp Cloud API callback.
    """
    router = APIRouter(
        prefix="/webhook",
        tags=["webhook"],
    )

    @router.post("", response_model=WebhookMessageResponse)
    async def process_webhook_message(request: Request, token: Optional[str] = Query(default=None)) -> Dict[str, Any]:
        """
        Process an inbound message relayed as {"from", "to", "content", "type"}.

        Responses:
        - 200 once the flow ran (or the bot is inactive)
        - 400 for an invalid body
        - 401 for a missing or unknown token
        - 404 when no bot answers on "to"
        """
        raw_body = await request.body()
        try:
            result = await webhook_service.process_token_webhook(token=token, raw_body=raw_body)
            return webhook_service.to_response_dict(result)
        except FlowException as e:
            log_util.error(
                service_name="WebhookMessageAPI",
                message=f"Error processing webhook message: {e.message}"
            )
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(
                service_name="WebhookMessageAPI",
                message=f"Unexpected error processing webhook message: {str(e)}"
            )
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.get("/whatsapp", response_class=PlainTextResponse)
    async def verify_whatsapp_webhook(
        hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
        hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
        hub_challenge: Optional[str] = Query(default=None, alias="hub.challenge")
    ) -> str:
        """WhatsApp Cloud API subscription handshake"""
        try:
            return webhook_service.verify_subscription(hub_mode, hub_verify_token, hub_challenge)
        except FlowException as e:
            log_util.warning(service_name="WebhookMessageAPI", message=f"Webhook verification rejected: {e.message}")
            raise HTTPException(status_code=403, detail="Forbidden")

    @router.post("/whatsapp")
    async def process_whatsapp_webhook(
        request: Request,
        x_hub_signature_256: Optional[str] = Header(default=None, alias="X-Hub-Signature-256")
    ) -> Dict[str, Any]:
        raw_body = await request.body()
        try:
            results = await webhook_service.process_whatsapp_webhook(raw_body=raw_body, signature=x_hub_signature_256)
        except FlowException as e:
            log_util.error(
                service_name="WebhookMessageAPI",
                message=f"Error processing WhatsApp webhook: {e.message}"
            )
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(
                service_name="WebhookMessageAPI",
                message=f"Unexpected error processing WhatsApp webhook: {str(e)}"
            )
            raise HTTPException(status_code=500, detail="Internal server error")

        processed: List[Dict[str, Any]] = [webhook_service.to_response_dict(result) for result in results]
        return {"message": "OK", "processed": processed}

    return router
