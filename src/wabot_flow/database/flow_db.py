from motor.motor_asyncio import AsyncIOMotorClient
from bson import ObjectId
from bson.errors import InvalidId
import urllib.parse
import threading
import asyncio
from typing import Optional, List, Dict, Any, Callable, Type, TypeVar
from datetime import datetime
import weakref
from pydantic import BaseModel
from pymongo import ReturnDocument, ASCENDING, DESCENDING
from pymongo.errors import NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure

# Utils
from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.utils.environment_utils import EnvironmentUtils

# Exceptions
from wabot_flow.exceptions.flow_exception import FlowDBException

# Models
from wabot_flow.models.bot_data import BotData
from wabot_flow.models.flow_data import FlowData
from wabot_flow.models.flow_state_data import FlowStateData
from wabot_flow.models.message_data import MessageData
from wabot_flow.models.webhook_config_data import WebhookConfigData
from wabot_flow.models.whatsapp_token_data import WhatsAppTokenData
from wabot_flow.models.outbound_webhook_data import OutboundWebhookData
from wabot_flow.models.flow_log_data import FlowLogData

ModelT = TypeVar("ModelT", bound=BaseModel)

"""
Database class for bot, flow and conversation records
"""
class FlowDB:
    def __init__(self, log_util: LogUtil, environment_utils: EnvironmentUtils,
                 client_factory: Optional[Callable[[], Any]] = None):

        # Initialize logger
        self.log_util = log_util

        # Initialize environment utils
        self.environment_utils = environment_utils

        self.db_name = self.environment_utils.get_env_variable("MONGO_DB_NAME")

        # Mongo Connection Pool Configs
        self.max_pool_size = 50
        self.min_pool_size = 0  # Create connections on-demand instead of at startup
        self.max_idle_time_ms = 30000
        self.wait_queue_timeout_ms = 10000
        self.connect_timeout_ms = 10000
        self.server_selection_timeout_ms = 10000
        self.socket_timeout_ms = 10000

        # Builds a motor-compatible client; tests inject an in-memory one
        self.client_factory = client_factory or self._create_motor_client

        # MongoDB client - initialized lazily on first use, one per event loop
        self._clients = {}  # {loop_id: client_data}

        # Thread-safe initialization lock
        self._client_lock = threading.Lock()

    def _build_connection_uri(self) -> str:
        mongo_uri = self.environment_utils.get_env_variable("MONGO_URI")
        if mongo_uri:
            return mongo_uri

        host = self.environment_utils.get_env_variable("MONGO_HOST")
        port = int(self.environment_utils.get_env_variable("MONGO_PORT"))
        username = self.environment_utils.get_env_variable("MONGO_USERNAME")
        if not username:
            return f"mongodb://{host}:{port}/"

        username = urllib.parse.quote_plus(username)
        password = urllib.parse.quote_plus(self.environment_utils.get_env_variable("MONGO_PASSWORD"))
        auth_source = self.environment_utils.get_env_variable("MONGO_AUTH_SOURCE")
        return f"mongodb://{username}:{password}@{host}:{port}/?authSource={auth_source}"

    def _create_motor_client(self) -> AsyncIOMotorClient:
        return AsyncIOMotorClient(
            self._build_connection_uri(),
            maxPoolSize=self.max_pool_size,
            minPoolSize=self.min_pool_size,
            maxIdleTimeMS=self.max_idle_time_ms,
            waitQueueTimeoutMS=self.wait_queue_timeout_ms,
            connectTimeoutMS=self.connect_timeout_ms,
            serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            socketTimeoutMS=self.socket_timeout_ms,
            retryWrites=True,
            retryReads=True
        )

    def _get_client_for_current_loop(self):
        """
        Thread-safe method to get the MongoDB client and collections for the current event loop.
        Motor clients are bound to the loop they were created on, so each loop gets its own.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("No event loop available. Database methods must be called from an async context.")

        loop_id = id(loop)

        if loop_id in self._clients:
            return self._clients[loop_id]

        with self._client_lock:
            # Double-check after acquiring lock (another thread might have created it)
            if loop_id in self._clients:
                return self._clients[loop_id]

            client = self.client_factory()
            db = client[self.db_name]

            client_data = {
                'client': client,
                'db': db,
                'collections': self._initialize_collections_for_client(db),
                'loop': weakref.ref(loop)  # Weak reference to avoid circular references
            }
            self._clients[loop_id] = client_data

            self.log_util.info(
                service_name="FlowDB",
                message=f"MongoDB client initialized for event loop {loop_id} (lazy initialization)"
            )

            return client_data

    def _initialize_collections_for_client(self, db):
        """
        Initialize MongoDB collections for a given database instance
        """
        return {
            'bots': db.bots,
            'flows': db.flows,
            'flow_states': db.flow_states,
            'messages': db.messages,
            'webhook_config': db.webhook_config,
            'whatsapp_tokens': db.whatsapp_tokens,
            'webhooks': db.webhooks,
            'flow_logs': db.flow_logs
        }

    def _collection(self, name: str):
        return self._get_client_for_current_loop()['collections'][name]

    def close(self):
        """
        Close all MongoDB clients and cleanup resources
        """
        with self._client_lock:
            for loop_id, client_data in self._clients.items():
                try:
                    client_data['client'].close()
                except Exception as e:
                    self.log_util.warning(
                        service_name="FlowDB",
                        message=f"Error closing client for loop {loop_id}: {str(e)}"
                    )

            self._clients.clear()

            self.log_util.info(
                service_name="FlowDB",
                message="All MongoDB clients closed"
            )

    def _handle_db_operation(self, operation_name: str, error: Exception) -> None:
        """
        Log a failed database operation and re-raise it as FlowDBException.

        Args:
            operation_name: Name of the operation that failed
            error: The exception that occurred
        """
        if isinstance(error, (NetworkTimeout, ServerSelectionTimeoutError, ConnectionFailure)):
            self.log_util.error(
                service_name="FlowDB",
                message=f"Database connection error in {operation_name}: {str(error)}"
            )
            raise FlowDBException(
                message=f"Database connection error: {str(error)}",
                status_code=503  # Service Unavailable
            ) from error
        self.log_util.error(
            service_name="FlowDB",
            message=f"Error in {operation_name}: {str(error)}"
        )
        raise FlowDBException(
            message=f"Database error: {str(error)}",
            status_code=500
        ) from error

    @staticmethod
    def _object_id(value: Optional[str]) -> Optional[ObjectId]:
        """
        Convert a string id to ObjectId, None when it is not a valid id
        """
        if not value:
            return None
        try:
            return ObjectId(value)
        except (InvalidId, TypeError):
            return None

    @staticmethod
    def _to_model(model_cls: Type[ModelT], document: Optional[Dict[str, Any]]) -> Optional[ModelT]:
        if document is None:
            return None
        document["id"] = str(document["_id"])
        return model_cls.model_validate(document)

    async def _insert(self, collection_name: str, model: ModelT) -> ModelT:
        document = model.model_dump(exclude={"id"})
        result = await self._collection(collection_name).insert_one(document)
        document["_id"] = result.inserted_id
        return self._to_model(type(model), document)

    async def _find_many(self, collection_name: str, model_cls: Type[ModelT], query: Dict[str, Any],
                         sort_field: Optional[str] = None, descending: bool = True,
                         limit: int = 0) -> List[ModelT]:
        cursor = self._collection(collection_name).find(query)
        if sort_field:
            cursor = cursor.sort(sort_field, DESCENDING if descending else ASCENDING)
        if limit:
            cursor = cursor.limit(limit)
        items: List[ModelT] = []
        async for document in cursor:
            items.append(self._to_model(model_cls, document))
        return items

    async def ensure_indexes(self) -> None:
        """
        Create the indexes the service relies on. FlowState upserts are keyed on (bot_id, user_number).
        """
        try:
            await self._collection('flow_states').create_index(
                [("bot_id", ASCENDING), ("user_number", ASCENDING)], unique=True
            )
            await self._collection('webhook_config').create_index([("token", ASCENDING)], unique=True)
            await self._collection('bots').create_index([("user_id", ASCENDING), ("phone_number", ASCENDING)])
            await self._collection('flows').create_index([("bot_id", ASCENDING), ("is_active", ASCENDING)])
            await self._collection('messages').create_index([("bot_id", ASCENDING), ("created_at", DESCENDING)])
            await self._collection('flow_logs').create_index([("flow_id", ASCENDING), ("timestamp", DESCENDING)])
            await self._collection('whatsapp_tokens').create_index([("phone_number_id", ASCENDING)])
        except Exception as e:
            self._handle_db_operation("ensure_indexes", e)

    # Bot operations
    async def create_bot(self, bot: BotData) -> BotData:
        try:
            return await self._insert('bots', bot)
        except Exception as e:
            self._handle_db_operation("create_bot", e)

    async def get_bot(self, bot_id: str) -> Optional[BotData]:
        object_id = self._object_id(bot_id)
        if object_id is None:
            return None
        try:
            result = await self._collection('bots').find_one({"_id": object_id})
            return self._to_model(BotData, result)
        except Exception as e:
            self._handle_db_operation("get_bot", e)

    async def get_bots_by_user(self, user_id: str) -> List[BotData]:
        try:
            return await self._find_many('bots', BotData, {"user_id": user_id}, sort_field="created_at")
        except Exception as e:
            self._handle_db_operation("get_bots_by_user", e)

    async def get_bot_by_phone_number(self, user_id: str, phone_number: str) -> Optional[BotData]:
        """
        Find the user's bot answering on phone_number, with or without a leading "+"
        """
        bare_number = phone_number.strip().lstrip("+")
        try:
            result = await self._collection('bots').find_one({
                "user_id": user_id,
                "phone_number": {"$in": [bare_number, f"+{bare_number}"]}
            })
            return self._to_model(BotData, result)
        except Exception as e:
            self._handle_db_operation("get_bot_by_phone_number", e)

    async def update_bot(self, bot_id: str, fields: Dict[str, Any]) -> Optional[BotData]:
        object_id = self._object_id(bot_id)
        if object_id is None:
            return None
        try:
            update_dict = dict(fields)
            update_dict["updated_at"] = datetime.utcnow()
            result = await self._collection('bots').find_one_and_update(
                {"_id": object_id},
                {"$set": update_dict},
                return_document=ReturnDocument.AFTER
            )
            return self._to_model(BotData, result)
        except Exception as e:
            self._handle_db_operation("update_bot", e)

    async def touch_bot_activity(self, bot_id: str) -> None:
        object_id = self._object_id(bot_id)
        if object_id is None:
            return
        try:
            await self._collection('bots').update_one(
                {"_id": object_id},
                {"$set": {"last_activity_at": datetime.utcnow()}}
            )
        except Exception as e:
            self._handle_db_operation("touch_bot_activity", e)

    async def delete_bot(self, bot_id: str) -> bool:
        object_id = self._object_id(bot_id)
        if object_id is None:
            return False
        try:
            result = await self._collection('bots').delete_one({"_id": object_id})
            return result.deleted_count > 0
        except Exception as e:
            self._handle_db_operation("delete_bot", e)

    # Flow operations
    async def create_flow(self, flow: FlowData) -> FlowData:
        try:
            return await self._insert('flows', flow)
        except Exception as e:
            self._handle_db_operation("create_flow", e)

    async def get_flow(self, flow_id: str) -> Optional[FlowData]:
        object_id = self._object_id(flow_id)
        if object_id is None:
            return None
        try:
            result = await self._collection('flows').find_one({"_id": object_id})
            return self._to_model(FlowData, result)
        except Exception as e:
            self._handle_db_operation("get_flow", e)

    async def get_flows_by_bot(self, bot_id: str) -> List[FlowData]:
        try:
            return await self._find_many('flows', FlowData, {"bot_id": bot_id}, sort_field="created_at")
        except Exception as e:
            self._handle_db_operation("get_flows_by_bot", e)

    async def get_flows_by_user(self, user_id: str) -> List[FlowData]:
        try:
            return await self._find_many('flows', FlowData, {"user_id": user_id}, sort_field="created_at")
        except Exception as e:
            self._handle_db_operation("get_flows_by_user", e)

    async def get_active_flow(self, bot_id: str) -> Optional[FlowData]:
        """
        Get the bot's active flow. If legacy data holds several, the most recently updated wins.
        """
        try:
            flows = await self._find_many(
                'flows', FlowData, {"bot_id": bot_id, "is_active": True},
                sort_field="updated_at", limit=1
            )
            return flows[0] if flows else None
        except Exception as e:
            self._handle_db_operation("get_active_flow", e)

    async def update_flow(self, flow_id: str, fields: Dict[str, Any]) -> Optional[FlowData]:
        object_id = self._object_id(flow_id)
        if object_id is None:
            return None
        try:
            update_dict = dict(fields)
            update_dict["updated_at"] = datetime.utcnow()
            result = await self._collection('flows').find_one_and_update(
                {"_id": object_id},
                {"$set": update_dict},
                return_document=ReturnDocument.AFTER
            )
            return self._to_model(FlowData, result)
        except Exception as e:
            self._handle_db_operation("update_flow", e)

    async def deactivate_other_flows(self, bot_id: str, keep_flow_id: str) -> int:
        """
        Deactivate every active flow of bot_id except keep_flow_id
        """
        try:
            result = await self._collection('flows').update_many(
                {"bot_id": bot_id, "is_active": True, "_id": {"$ne": self._object_id(keep_flow_id)}},
                {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
            )
            return result.modified_count
        except Exception as e:
            self._handle_db_operation("deactivate_other_flows", e)

    async def touch_flow_execution(self, flow_id: str) -> None:
        object_id = self._object_id(flow_id)
        if object_id is None:
            return
        try:
            await self._collection('flows').update_one(
                {"_id": object_id},
                {"$set": {"last_execution": datetime.utcnow()}}
            )
        except Exception as e:
            self._handle_db_operation("touch_flow_execution", e)

    async def delete_flow(self, flow_id: str) -> bool:
        object_id = self._object_id(flow_id)
        if object_id is None:
            return False
        try:
            result = await self._collection('flows').delete_one({"_id": object_id})
            return result.deleted_count > 0
        except Exception as e:
            self._handle_db_operation("delete_flow", e)

    async def delete_flows_by_bot(self, bot_id: str) -> int:
        try:
            result = await self._collection('flows').delete_many({"bot_id": bot_id})
            return result.deleted_count
        except Exception as e:
            self._handle_db_operation("delete_flows_by_bot", e)

    # Flow state operations
    async def get_flow_state(self, bot_id: str, user_number: str) -> Optional[FlowStateData]:
        try:
            result = await self._collection('flow_states').find_one({"bot_id": bot_id, "user_number": user_number})
            return self._to_model(FlowStateData, result)
        except Exception as e:
            self._handle_db_operation("get_flow_state", e)

    async def upsert_flow_state(self, bot_id: str, user_number: str, current_node: str,
                                flow_id: Optional[str] = None) -> FlowStateData:
        """
        Create or move the conversation pointer for (bot_id, user_number)
        """
        try:
            now = datetime.utcnow()
            result = await self._collection('flow_states').find_one_and_update(
                {"bot_id": bot_id, "user_number": user_number},
                {
                    "$set": {"current_node": current_node, "flow_id": flow_id, "updated_at": now},
                    "$setOnInsert": {"created_at": now}
                },
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
            return self._to_model(FlowStateData, result)
        except Exception as e:
            self._handle_db_operation("upsert_flow_state", e)

    async def delete_flow_state(self, bot_id: str, user_number: str) -> bool:
        try:
            result = await self._collection('flow_states').delete_one({"bot_id": bot_id, "user_number": user_number})
            return result.deleted_count > 0
        except Exception as e:
            self._handle_db_operation("delete_flow_state", e)

    async def delete_flow_states_by_bot(self, bot_id: str) -> int:
        try:
            result = await self._collection('flow_states').delete_many({"bot_id": bot_id})
            return result.deleted_count
        except Exception as e:
            self._handle_db_operation("delete_flow_states_by_bot", e)

    # Message operations
    async def save_message(self, message: MessageData) -> MessageData:
        try:
            return await self._insert('messages', message)
        except Exception as e:
            self._handle_db_operation("save_message", e)

    async def update_message(self, message_id: str, fields: Dict[str, Any]) -> Optional[MessageData]:
        object_id = self._object_id(message_id)
        if object_id is None:
            return None
        try:
            result = await self._collection('messages').find_one_and_update(
                {"_id": object_id},
                {"$set": fields},
                return_document=ReturnDocument.AFTER
            )
            return self._to_model(MessageData, result)
        except Exception as e:
            self._handle_db_operation("update_message", e)

    async def get_messages(self, user_id: str, bot_id: Optional[str] = None, limit: int = 100) -> List[MessageData]:
        query: Dict[str, Any] = {"user_id": user_id}
        if bot_id:
            query["bot_id"] = bot_id
        try:
            return await self._find_many('messages', MessageData, query, sort_field="created_at", limit=limit)
        except Exception as e:
            self._handle_db_operation("get_messages", e)

    # Inbound webhook configuration
    async def save_webhook_config(self, webhook_config: WebhookConfigData) -> WebhookConfigData:
        try:
            return await self._insert('webhook_config', webhook_config)
        except Exception as e:
            self._handle_db_operation("save_webhook_config", e)

    async def get_webhook_config_by_token(self, token: str) -> Optional[WebhookConfigData]:
        try:
            result = await self._collection('webhook_config').find_one({"token": token})
            return self._to_model(WebhookConfigData, result)
        except Exception as e:
            self._handle_db_operation("get_webhook_config_by_token", e)

    # WhatsApp Cloud API credentials
    async def upsert_whatsapp_token(self, token: WhatsAppTokenData) -> WhatsAppTokenData:
        """
        Save credentials, replacing the user's existing record for the same phone_number_id
        """
        try:
            token_dict = token.model_dump(exclude={"id", "created_at"})
            token_dict["updated_at"] = datetime.utcnow()
            result = await self._collection('whatsapp_tokens').find_one_and_update(
                {"user_id": token.user_id, "phone_number_id": token.phone_number_id},
                {"$set": token_dict, "$setOnInsert": {"created_at": token.created_at}},
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
            return self._to_model(WhatsAppTokenData, result)
        except Exception as e:
            self._handle_db_operation("upsert_whatsapp_token", e)

    async def get_whatsapp_tokens_by_user(self, user_id: str) -> List[WhatsAppTokenData]:
        try:
            return await self._find_many('whatsapp_tokens', WhatsAppTokenData, {"user_id": user_id})
        except Exception as e:
            self._handle_db_operation("get_whatsapp_tokens_by_user", e)

    async def get_whatsapp_token_by_phone_number_id(self, phone_number_id: str) -> Optional[WhatsAppTokenData]:
        try:
            result = await self._collection('whatsapp_tokens').find_one({"phone_number_id": phone_number_id})
            return self._to_model(WhatsAppTokenData, result)
        except Exception as e:
            self._handle_db_operation("get_whatsapp_token_by_phone_number_id", e)

    async def get_whatsapp_token_by_phone_number(self, phone_number: str) -> Optional[WhatsAppTokenData]:
        bare_number = phone_number.strip().lstrip("+")
        try:
            result = await self._collection('whatsapp_tokens').find_one(
                {"phone_number": {"$in": [bare_number, f"+{bare_number}"]}}
            )
            return self._to_model(WhatsAppTokenData, result)
        except Exception as e:
            self._handle_db_operation("get_whatsapp_token_by_phone_number", e)

    async def get_whatsapp_token_for_bot(self, user_id: str, bot_id: str) -> Optional[WhatsAppTokenData]:
        """
        Credentials bound to the bot, else the user's credentials not bound to any bot
        """
        try:
            result = await self._collection('whatsapp_tokens').find_one({"user_id": user_id, "bot_id": bot_id})
            if result is None:
                result = await self._collection('whatsapp_tokens').find_one({"user_id": user_id, "bot_id": None})
            return self._to_model(WhatsAppTokenData, result)
        except Exception as e:
            self._handle_db_operation("get_whatsapp_token_for_bot", e)

    # Outbound webhooks
    async def create_outbound_webhook(self, webhook: OutboundWebhookData) -> OutboundWebhookData:
        try:
            return await self._insert('webhooks', webhook)
        except Exception as e:
            self._handle_db_operation("create_outbound_webhook", e)

    async def get_outbound_webhook(self, webhook_id: str) -> Optional[OutboundWebhookData]:
        object_id = self._object_id(webhook_id)
        if object_id is None:
            return None
        try:
            result = await self._collection('webhooks').find_one({"_id": object_id})
            return self._to_model(OutboundWebhookData, result)
        except Exception as e:
            self._handle_db_operation("get_outbound_webhook", e)

    async def get_outbound_webhooks(self, user_id: str) -> List[OutboundWebhookData]:
        try:
            return await self._find_many('webhooks', OutboundWebhookData, {"user_id": user_id}, sort_field="created_at")
        except Exception as e:
            self._handle_db_operation("get_outbound_webhooks", e)

    async def get_active_outbound_webhooks(self, user_id: str, trigger: str) -> List[OutboundWebhookData]:
        try:
            return await self._find_many(
                'webhooks', OutboundWebhookData,
                {"user_id": user_id, "trigger": trigger, "is_active": True}
            )
        except Exception as e:
            self._handle_db_operation("get_active_outbound_webhooks", e)

    async def set_outbound_webhook_active(self, webhook_id: str, is_active: bool) -> Optional[OutboundWebhookData]:
        object_id = self._object_id(webhook_id)
        if object_id is None:
            return None
        try:
            result = await self._collection('webhooks').find_one_and_update(
                {"_id": object_id},
                {"$set": {"is_active": is_active, "updated_at": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER
            )
            return self._to_model(OutboundWebhookData, result)
        except Exception as e:
            self._handle_db_operation("set_outbound_webhook_active", e)

    async def record_outbound_webhook_call(self, webhook_id: str, succeeded: bool) -> None:
        object_id = self._object_id(webhook_id)
        if object_id is None:
            return
        update: Dict[str, Any] = {"$set": {"last_call": datetime.utcnow()}}
        if not succeeded:
            update["$inc"] = {"failure_count": 1}
        try:
            await self._collection('webhooks').update_one({"_id": object_id}, update)
        except Exception as e:
            self._handle_db_operation("record_outbound_webhook_call", e)

    async def delete_outbound_webhook(self, webhook_id: str) -> bool:
        object_id = self._object_id(webhook_id)
        if object_id is None:
            return False
        try:
            result = await self._collection('webhooks').delete_one({"_id": object_id})
            return result.deleted_count > 0
        except Exception as e:
            self._handle_db_operation("delete_outbound_webhook", e)

    # Flow logs
    async def save_flow_log(self, flow_log: FlowLogData) -> FlowLogData:
        try:
            return await self._insert('flow_logs', flow_log)
        except Exception as e:
            self._handle_db_operation("save_flow_log", e)

    async def get_flow_logs(self, flow_id: str, limit: int = 200) -> List[FlowLogData]:
        try:
            return await self._find_many('flow_logs', FlowLogData, {"flow_id": flow_id}, sort_field="timestamp", limit=limit)
        except Exception as e:
            self._handle_db_operation("get_flow_logs", e)
