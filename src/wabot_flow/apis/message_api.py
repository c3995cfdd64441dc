from typing import Optional
from fastapi import APIRouter, Request, Query
from fastapi.exceptions import HTTPException

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Database
from wabot_flow.database.flow_db import FlowDB

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowException

def create_message_api(
    log_util: LogUtil,
    flow_db: FlowDB
) -> APIRouter:
    """
    Read-only access to the incoming and outgoing message log
    """
    router = APIRouter(
        prefix="/messages",
        tags=["messages"],
    )

    @router.get("/list")
    async def get_messages(
        request: Request,
        bot_id: Optional[str] = Query(default=None),
        limit: int = Query(default=100, ge=1, le=500)
    ):
        user_id = request.headers.get("x-user-id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Unauthorized")
        try:
            return await flow_db.get_messages(user_id=user_id, bot_id=bot_id, limit=limit)
        except FlowException as e:
            log_util.error(service_name="MessageAPI", message=f"Error listing messages: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)

    return router
