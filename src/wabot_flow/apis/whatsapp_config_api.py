from typing import Dict, Any
from fastapi import APIRouter, Request
from fastapi.exceptions import HTTPException

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Services
from wabot_flow.services.whatsapp_config_service import WhatsAppConfigService

# Models
from wabot_flow.models.whatsapp_token_data import WhatsAppTokenData
from wabot_flow.models.request.whatsapp_config_request import WhatsAppConfigRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowException

def create_whatsapp_config_api(
    log_util: LogUtil,
    whatsapp_config_service: WhatsAppConfigService
) -> APIRouter:
    router = APIRouter(
        prefix="/whatsapp-config",
        tags=["whatsapp-config"],
    )

    def _user_id(request: Request) -> str:
        user_id = request.headers.get("x-user-id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user_id

    def _config_to_dict(token: WhatsAppTokenData) -> Dict[str, Any]:
        # Access tokens are never echoed back
        config = token.model_dump(mode="json", exclude={"access_token"})
        config["access_token_set"] = bool(token.access_token)
        return config

    @router.put("")
    async def save_whatsapp_config(request: Request, config_request: WhatsAppConfigRequest):
        try:
            token = await whatsapp_config_service.save_config(user_id=_user_id(request), request=config_request)
            return _config_to_dict(token)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="WhatsAppConfigAPI", message=f"Error saving WhatsApp config: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="WhatsAppConfigAPI", message=f"Error saving WhatsApp config: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("")
    async def get_whatsapp_configs(request: Request):
        try:
            tokens = await whatsapp_config_service.get_configs(user_id=_user_id(request))
            return [_config_to_dict(token) for token in tokens]
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="WhatsAppConfigAPI", message=f"Error getting WhatsApp config: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="WhatsAppConfigAPI", message=f"Error getting WhatsApp config: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return router
