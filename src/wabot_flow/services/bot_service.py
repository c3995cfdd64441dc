from typing import List

# Utils
from wabot_flow.utils.log_utils import LogUtil

# Database
from wabot_flow.database.flow_db import FlowDB

# Models
from wabot_flow.models.bot_data import BotData
from wabot_flow.models.request.bot_request import BotCreateRequest, BotUpdateRequest

# Exceptions
from wabot_flow.exceptions.flow_exception import BotNotFoundException, FlowValidationException


class BotService:
    def __init__(self, log_util: LogUtil, flow_db: FlowDB):
        self.log_util = log_util
        self.flow_db = flow_db

    async def create_bot(self, user_id: str, request: BotCreateRequest) -> BotData:
        phone_number = request.phone_number.strip()
        if not phone_number:
            raise FlowValidationException(message="Phone number is required")

        existing = await self.flow_db.get_bot_by_phone_number(user_id, phone_number)
        if existing is not None:
            raise FlowValidationException(message=f"A bot already answers on {phone_number}")

        bot = await self.flow_db.create_bot(BotData(
            user_id=user_id,
            name=request.name,
            description=request.description,
            phone_number=phone_number,
            is_active=request.is_active
        ))
        self.log_util.info(service_name="BotService", message=f"Bot '{bot.name}' created with ID: {bot.id}")
        return bot

    async def get_bots(self, user_id: str) -> List[BotData]:
        return await self.flow_db.get_bots_by_user(user_id)

    async def get_bot(self, user_id: str, bot_id: str) -> BotData:
        """
        Get a bot owned by user_id. Bots of other users are reported as missing.
        """
        bot = await self.flow_db.get_bot(bot_id)
        if bot is None or bot.user_id != user_id:
            raise BotNotFoundException(message="Bot not found")
        return bot

    async def update_bot(self, user_id: str, bot_id: str, request: BotUpdateRequest) -> BotData:
        bot = await self.get_bot(user_id, bot_id)
        fields = request.model_dump(exclude_none=True)
        if "phone_number" in fields:
            fields["phone_number"] = fields["phone_number"].strip()
            other = await self.flow_db.get_bot_by_phone_number(user_id, fields["phone_number"])
            if other is not None and other.id != bot.id:
                raise FlowValidationException(message=f"A bot already answers on {fields['phone_number']}")
        if not fields:
            return bot
        updated = await self.flow_db.update_bot(bot.id, fields)
        if updated is None:
            raise BotNotFoundException(message="Bot not found")
        return updated

    async def delete_bot(self, user_id: str, bot_id: str) -> bool:
        """
        Delete a bot together with its flows and conversation states
        """
        bot = await self.get_bot(user_id, bot_id)
        await self.flow_db.delete_flows_by_bot(bot.id)
        await self.flow_db.delete_flow_states_by_bot(bot.id)
        deleted = await self.flow_db.delete_bot(bot.id)
        self.log_util.info(service_name="BotService", message=f"Bot {bot.id} deleted")
        return deleted
