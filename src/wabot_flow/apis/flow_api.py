from typing import Optional
from fastapi import APIRouter, Request, Query
from fastapi.exceptions import HTTPException

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Services
from wabot_flow.services.flow_service import FlowService

# Models
from wabot_flow.models.request.flow_request import FlowCreateRequest, FlowUpdateRequest, FlowStatusRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowException

def create_flow_api(
    log_util: LogUtil,
    flow_service: FlowService
) -> APIRouter:
    router = APIRouter(
        prefix="/flow",
        tags=["flow"],
    )

    def _user_id(request: Request) -> str:
        user_id = request.headers.get("x-user-id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user_id

    @router.post("/create")
    async def create_flow(request: Request, flow_request: FlowCreateRequest):
        try:
            return await flow_service.create_flow(user_id=_user_id(request), request=flow_request)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error creating flow: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error creating flow: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/list")
    async def get_flows_list(request: Request, bot_id: Optional[str] = Query(default=None)):
        try:
            return await flow_service.get_flows_list(user_id=_user_id(request), bot_id=bot_id)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flows list: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flows list: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/detail/{flow_id}")
    async def get_flow_detail(request: Request, flow_id: str):
        try:
            return await flow_service.get_flow_detail(user_id=_user_id(request), flow_id=flow_id)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flow detail: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flow detail: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.put("/update/{flow_id}")
    async def update_flow(request: Request, flow_id: str, flow_request: FlowUpdateRequest):
        try:
            return await flow_service.update_flow(user_id=_user_id(request), flow_id=flow_id, request=flow_request)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error updating flow: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error updating flow: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/status/{flow_id}")
    async def update_flow_status(request: Request, flow_id: str, status_request: FlowStatusRequest):
        """
        Activate or deactivate a flow.

        Request body:
        {
            "is_active": true | false
        }
        """
        try:
            return await flow_service.update_flow_status(
                user_id=_user_id(request),
                flow_id=flow_id,
                is_active=status_request.is_active
            )
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error updating flow status: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error updating flow status: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.delete("/delete/{flow_id}")
    async def delete_flow(request: Request, flow_id: str):
        try:
            deleted = await flow_service.delete_flow(user_id=_user_id(request), flow_id=flow_id)
            return {"deleted": deleted, "flow_id": flow_id}
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error deleting flow: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error deleting flow: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/logs/{flow_id}")
    async def get_flow_logs(request: Request, flow_id: str, limit: int = Query(default=200, ge=1, le=1000)):
        try:
            return await flow_service.get_flow_logs(user_id=_user_id(request), flow_id=flow_id, limit=limit)
        except HTTPException:
            raise
        except FlowException as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flow logs: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FlowAPI", message=f"Error getting flow logs: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return router
