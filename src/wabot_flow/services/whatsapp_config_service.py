from typing import List

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Database
from wabot_flow.database.flow_db import FlowDB

# Services
from wabot_flow.services.bot_service import BotService

# Models
from wabot_flow.models.whatsapp_token_data import WhatsAppTokenData
from wabot_flow.models.request.whatsapp_config_request import WhatsAppConfigRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowValidationException


class WhatsAppConfigService:
    """
    Stores the WhatsApp Cloud API credentials used to resolve and answer inbound messages
    """
    def __init__(self, log_util: LogUtil, flow_db: FlowDB, bot_service: BotService):
        self.log_util = log_util
        self.flow_db = flow_db
        self.bot_service = bot_service

    async def save_config(self, user_id: str, request: WhatsAppConfigRequest) -> WhatsAppTokenData:
        if not request.access_token.strip() or not request.phone_number_id.strip():
            raise FlowValidationException(message="access_token and phone_number_id are required")

        phone_number = request.phone_number.lstrip("+") if request.phone_number else None
        if request.bot_id:
            bot = await self.bot_service.get_bot(user_id, request.bot_id)
            phone_number = phone_number or bot.phone_number.lstrip("+")

        existing = await self.flow_db.get_whatsapp_token_by_phone_number_id(request.phone_number_id)
        if existing is not None and existing.user_id != user_id:
            raise FlowValidationException(message="Phone number id is already registered")

        token = await self.flow_db.upsert_whatsapp_token(WhatsAppTokenData(
            user_id=user_id,
            bot_id=request.bot_id,
            access_token=request.access_token.strip(),
            phone_number_id=request.phone_number_id.strip(),
            business_account_id=request.business_account_id,
            phone_number=phone_number,
            valid_until=request.valid_until
        ))
        self.log_util.info(
            service_name="WhatsAppConfigService",
            message=f"WhatsApp credentials saved for user {user_id}, phone number id {token.phone_number_id}"
        )
        return token

    async def get_configs(self, user_id: str) -> List[WhatsAppTokenData]:
        return await self.flow_db.get_whatsapp_tokens_by_user(user_id)
