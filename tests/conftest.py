import json
from typing import List, Dict, Any

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.utils.environment_utils import EnvironmentUtils
from wabot_flow.database.flow_db import FlowDB
from wabot_flow.models.bot_data import BotData
from wabot_flow.models.flow_data import FlowData, FlowGraph
from wabot_flow.services.condition_evaluation_service import ConditionEvaluationService
from wabot_flow.services.conversation_lock_service import ConversationLockService
from wabot_flow.services.event_dispatch_service import EventDispatchService
from wabot_flow.services.message_sender_service import MessageSenderService
from wabot_flow.services.flow_interpreter_service import FlowInterpreterService
from wabot_flow.main import create_app

USER_ID = "user-1"
BOT_NUMBER = "+15550001111"
APP_SECRET = "test-app-secret"
VERIFY_TOKEN = "test-verify-token"
INBOUND_TOKEN = "inbound-token-123"


def yes_no_graph() -> Dict[str, Any]:
    """
    1 (input) -> 2 (welcome message) -> 3 (yes/no condition)
    yes -> 4 (message), no -> 5 (message)
    """
    return {
        "nodes": [
            {"id": "1", "type": "input", "label": "Start", "position": {"x": 0, "y": 0}},
            {"id": "2", "type": "message", "content": "Welcome! Reply yes or no", "position": {"x": 0, "y": 100}},
            {
                "id": "3",
                "type": "condition",
                "conditions": [
                    {"id": "c1", "operator": "Equal", "value": "yes", "nextNode": "4"},
                    {"id": "c2", "operator": "Equal", "value": "no", "next_node": "5"}
                ],
                "fallback": "Please reply yes or no",
                "position": {"x": 0, "y": 200}
            },
            {"id": "4", "type": "message", "content": "Great!", "position": {"x": -100, "y": 300}},
            {"id": "5", "type": "message", "content": "Maybe next time", "position": {"x": 100, "y": 300}}
        ],
        "edges": [
            {"id": "e1-2", "source": "1", "target": "2"},
            {"id": "e2-3", "source": "2", "target": "3"}
        ]
    }


class RecordingTransport:
    """
    httpx.MockTransport handler that records every outgoing request.
    The Cloud API answers with a message id, every other URL with 200.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_by_host: Dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code = self.status_by_host.get(request.url.host, 200)
        if request.url.host == "graph.facebook.com" and status_code == 200:
            return httpx.Response(200, json={"messaging_product": "whatsapp", "messages": [{"id": "wamid.TEST"}]})
        return httpx.Response(status_code, json={"ok": status_code == 200})

    def to_host(self, host: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    def json_bodies(self, host: str) -> List[Dict[str, Any]]:
        return [json.loads(request.content) for request in self.to_host(host)]


@pytest.fixture
def log_util():
    return LogUtil()


@pytest.fixture
def environment_utils(log_util):
    environment_utils = EnvironmentUtils(log_util=log_util)
    environment_utils.set_env_variable("MONGO_DB_NAME", "wabot_test")
    environment_utils.set_env_variable("WHATSAPP_APP_SECRET", APP_SECRET)
    environment_utils.set_env_variable("WHATSAPP_VERIFY_TOKEN", VERIFY_TOKEN)
    environment_utils.set_env_variable("WHATSAPP_API_URL", "https://graph.facebook.com/v18.0")
    environment_utils.set_env_variable("FLOW_MAX_STEPS", 25)
    return environment_utils


@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture
def flow_db(log_util, environment_utils, mongo_client):
    return FlowDB(log_util=log_util, environment_utils=environment_utils, client_factory=lambda: mongo_client)


@pytest.fixture
def recorder():
    return RecordingTransport()


@pytest.fixture
def transport(recorder):
    return httpx.MockTransport(recorder)


@pytest.fixture
def event_dispatch_service(log_util, flow_db, transport):
    return EventDispatchService(log_util=log_util, flow_db=flow_db, transport=transport)


@pytest.fixture
def message_sender_service(log_util, flow_db, event_dispatch_service, transport):
    return MessageSenderService(
        log_util=log_util,
        flow_db=flow_db,
        event_dispatch_service=event_dispatch_service,
        api_url="https://graph.facebook.com/v18.0",
        transport=transport
    )


@pytest.fixture
def flow_interpreter_service(log_util, flow_db, message_sender_service, event_dispatch_service):
    return FlowInterpreterService(
        log_util=log_util,
        flow_db=flow_db,
        condition_evaluation_service=ConditionEvaluationService(log_util=log_util),
        message_sender_service=message_sender_service,
        event_dispatch_service=event_dispatch_service,
        conversation_lock_service=ConversationLockService(),
        max_steps=25
    )


@pytest.fixture
async def bot(flow_db) -> BotData:
    return await flow_db.create_bot(BotData(user_id=USER_ID, name="Support bot", phone_number=BOT_NUMBER))


@pytest.fixture
async def active_flow(flow_db, bot) -> FlowData:
    return await flow_db.create_flow(FlowData(
        bot_id=bot.id,
        user_id=USER_ID,
        name="Yes / no",
        is_active=True,
        data=FlowGraph.model_validate(yes_no_graph())
    ))


@pytest.fixture
def app(log_util, environment_utils, flow_db, transport):
    return create_app(log_util=log_util, environment_utils=environment_utils, flow_db=flow_db, transport=transport)


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def graph_data() -> Dict[str, Any]:
    return yes_no_graph()
