from fastapi import APIRouter, Request
from fastapi.exceptions import HTTPException

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Services
from wabot_flow.services.outbound_webhook_service import OutboundWebhookService

# Models
from wabot_flow.models.request.outbound_webhook_request import OutboundWebhookCreateRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowException

def create_outbound_webhook_api(
    log_util: LogUtil,
    outbound_webhook_service: OutboundWebhookService
) -> APIRouter:
    """
    Manage the URLs notified about message_received, response_sent,
    flow_completed and error events
    """
    router = APIRouter(
        prefix="/webhooks",
        tags=["webhooks"],
    )

    def _user_id(request: Request) -> str:
        user_id = request.headers.get("x-user-id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user_id

    @router.post("/create")
    async def create_webhook(request: Request, webhook_request: OutboundWebhookCreateRequest):
        try:
            return await outbound_webhook_service.create_webhook(user_id=_user_id(request), request=webhook_request)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error creating webhook: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error creating webhook: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/list")
    async def get_webhooks(request: Request):
        try:
            return await outbound_webhook_service.get_webhooks(user_id=_user_id(request))
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error listing webhooks: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error listing webhooks: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/toggle/{webhook_id}")
    async def toggle_webhook(request: Request, webhook_id: str):
        try:
            return await outbound_webhook_service.toggle_webhook(user_id=_user_id(request), webhook_id=webhook_id)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error toggling webhook: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error toggling webhook: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.delete("/delete/{webhook_id}")
    async def delete_webhook(request: Request, webhook_id: str):
        try:
            deleted = await outbound_webhook_service.delete_webhook(user_id=_user_id(request), webhook_id=webhook_id)
            return {"deleted": deleted, "webhook_id": webhook_id}
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error deleting webhook: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="OutboundWebhookAPI", message=f"Error deleting webhook: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return router
