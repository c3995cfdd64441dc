import uvicorn
from typing import Optional
import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

# Utils
from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.utils.environment_utils import EnvironmentUtils

# Database
from wabot_flow.database.flow_db import FlowDB

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowException

# Services
from wabot_flow.services.bot_service import BotService
from wabot_flow.services.flow_service import FlowService
from wabot_flow.services.condition_evaluation_service import ConditionEvaluationService
from wabot_flow.services.conversation_lock_service import ConversationLockService
from wabot_flow.services.event_dispatch_service import EventDispatchService
from wabot_flow.services.message_sender_service import MessageSenderService
from wabot_flow.services.flow_interpreter_service import FlowInterpreterService
from wabot_flow.services.webhook_service import WebhookService
from wabot_flow.services.outbound_webhook_service import OutboundWebhookService
from wabot_flow.services.whatsapp_config_service import WhatsAppConfigService

# APIs
from wabot_flow.apis.bot_api import create_bot_api
from wabot_flow.apis.flow_api import create_flow_api
from wabot_flow.apis.webhook_message_api import create_webhook_message_api
from wabot_flow.apis.outbound_webhook_api import create_outbound_webhook_api
from wabot_flow.apis.whatsapp_config_api import create_whatsapp_config_api
from wabot_flow.apis.message_api import create_message_api


def create_app(
    log_util: LogUtil,
    environment_utils: EnvironmentUtils,
    flow_db: FlowDB,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Wire services and routers around a FlowDB.
    transport replaces the network for the WhatsApp Cloud API and outbound webhooks.
    """
    timeout_seconds = float(environment_utils.get_env_variable("HTTP_TIMEOUT_SECONDS"))

    # Services
    bot_service = BotService(log_util=log_util, flow_db=flow_db)
    flow_service = FlowService(log_util=log_util, flow_db=flow_db, bot_service=bot_service)

    event_dispatch_service = EventDispatchService(
        log_util=log_util,
        flow_db=flow_db,
        timeout_seconds=timeout_seconds,
        transport=transport
    )

    message_sender_service = MessageSenderService(
        log_util=log_util,
        flow_db=flow_db,
        event_dispatch_service=event_dispatch_service,
        api_url=environment_utils.get_env_variable("WHATSAPP_API_URL"),
        timeout_seconds=timeout_seconds,
        transport=transport
    )

    flow_interpreter_service = FlowInterpreterService(
        log_util=log_util,
        flow_db=flow_db,
        condition_evaluation_service=ConditionEvaluationService(log_util=log_util),
        message_sender_service=message_sender_service,
        event_dispatch_service=event_dispatch_service,
        conversation_lock_service=ConversationLockService(),
        max_steps=int(environment_utils.get_env_variable("FLOW_MAX_STEPS"))
    )

    webhook_service = WebhookService(
        log_util=log_util,
        flow_db=flow_db,
        flow_interpreter_service=flow_interpreter_service,
        event_dispatch_service=event_dispatch_service,
        app_secret=environment_utils.get_env_variable("WHATSAPP_APP_SECRET"),
        verify_token=environment_utils.get_env_variable("WHATSAPP_VERIFY_TOKEN")
    )

    outbound_webhook_service = OutboundWebhookService(log_util=log_util, flow_db=flow_db)
    whatsapp_config_service = WhatsAppConfigService(log_util=log_util, flow_db=flow_db, bot_service=bot_service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        try:
            await flow_db.ensure_indexes()
        except FlowException as e:
            log_util.error(service_name="FlowService", message=f"Could not create indexes: {e.message}")
        log_util.info(service_name="FlowService", message="Application startup complete")

        yield

        # Shutdown
        flow_db.close()
        log_util.info(service_name="FlowService", message="Application shutdown complete")

    app = FastAPI(
        title="wabot flow service",
        description="WhatsApp chatbot flow automation service",
        version="1.0.0",
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Inbound messages (token relay and WhatsApp Cloud API)
    app.include_router(create_webhook_message_api(log_util=log_util, webhook_service=webhook_service))

    # Management APIs
    app.include_router(create_bot_api(log_util=log_util, bot_service=bot_service))
    app.include_router(create_flow_api(log_util=log_util, flow_service=flow_service))
    app.include_router(create_outbound_webhook_api(
        log_util=log_util,
        outbound_webhook_service=outbound_webhook_service
    ))
    app.include_router(create_whatsapp_config_api(
        log_util=log_util,
        whatsapp_config_service=whatsapp_config_service
    ))
    app.include_router(create_message_api(log_util=log_util, flow_db=flow_db))

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "wabot_flow_service"}

    # Global exception handler for HTTPExceptions
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        log_util.error(service_name="FlowService", message=f"HTTPException: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error": str(exc),
                "status_code": exc.status_code
            }
        )

    # Global exception handler for any unhandled exceptions
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        log_util.error(service_name="FlowService", message=f"Exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc),
                "status_code": 500
            }
        )

    return app


# Utils
log_util = LogUtil()
environment_utils = EnvironmentUtils(log_util=log_util)

# Database
flow_db = FlowDB(log_util=log_util, environment_utils=environment_utils)

app = create_app(log_util=log_util, environment_utils=environment_utils, flow_db=flow_db)

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=environment_utils.get_env_variable("HOST"),
        port=environment_utils.get_env_variable("PORT")
    )
