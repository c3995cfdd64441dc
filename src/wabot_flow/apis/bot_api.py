from fastapi import APIRouter, Request
from fastapi.exceptions import HTTPException

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Services
from wabot_flow.services.bot_service import BotService

# Models
from wabot_flow.models.request.bot_request import BotCreateRequest, BotUpdateRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowException

def create_bot_api(
    log_util: LogUtil,
    bot_service: BotService
) -> APIRouter:
    router = APIRouter(
        prefix="/bot",
        tags=["bot"],
    )

    def _user_id(request: Request) -> str:
        user_id = request.headers.get("x-user-id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user_id

    @router.post("/create")
    async def create_bot(request: Request, bot_request: BotCreateRequest):
        try:
            return await bot_service.create_bot(user_id=_user_id(request), request=bot_request)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="BotAPI", message=f"Error creating bot: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="BotAPI", message=f"Error creating bot: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/list")
    async def get_bots(request: Request):
        try:
            return await bot_service.get_bots(user_id=_user_id(request))
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="BotAPI", message=f"Error getting bots: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="BotAPI", message=f"Error getting bots: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/detail/{bot_id}")
    async def get_bot(request: Request, bot_id: str):
        try:
            return await bot_service.get_bot(user_id=_user_id(request), bot_id=bot_id)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="BotAPI", message=f"Error getting bot: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="BotAPI", message=f"Error getting bot: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.put("/update/{bot_id}")
    async def update_bot(request: Request, bot_id: str, bot_request: BotUpdateRequest):
        try:
            return await bot_service.update_bot(user_id=_user_id(request), bot_id=bot_id, request=bot_request)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="BotAPI", message=f"Error updating bot: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="BotAPI", message=f"Error updating bot: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.delete("/delete/{bot_id}")
    async def delete_bot(request: Request, bot_id: str):
        try:
            deleted = await bot_service.delete_bot(user_id=_user_id(request), bot_id=bot_id)
            return {"deleted": deleted, "bot_id": bot_id}
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="BotAPI", message=f"Error deleting bot: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="BotAPI", message=f"Error deleting bot: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return router
