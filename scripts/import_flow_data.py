"""
Script to import a flow graph exported from the flow builder.
The graph is validated like a flow created through the API, inserted for the
given bot, and optionally activated.

Usage:
    python scripts/import_flow_data.py <bot_id> <flow.json> [--name NAME] [--activate]
"""
import argparse
import asyncio
import json
import sys
import os

# Add src directory to path to import modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from wabot_flow.utils.log_utils import LogUtil
from wabot_flow.utils.environment_utils import EnvironmentUtils
from wabot_flow.database.flow_db import FlowDB
from wabot_flow.services.bot_service import BotService
from wabot_flow.services.flow_service import FlowService
from wabot_flow.models.flow_data import FlowGraph
from wabot_flow.models.request.flow_request import FlowCreateRequest
from wabot_flow.exceptions.flow_exception import FlowException


async def import_flow_data(bot_id: str, flow_file: str, name: str, activate: bool) -> int:
    """Import one flow graph into MongoDB"""
    log_util = LogUtil()
    environment_utils = EnvironmentUtils(log_util=log_util)
    flow_db = FlowDB(log_util=log_util, environment_utils=environment_utils)
    flow_service = FlowService(log_util=log_util, flow_db=flow_db, bot_service=BotService(log_util=log_util, flow_db=flow_db))

    try:
        with open(flow_file, "r", encoding="utf-8") as f:
            raw = json.load(f)
        # Builder exports either the bare graph or a flow record holding it under "data"
        graph = FlowGraph.model_validate(raw.get("data", raw))

        bot = await flow_db.get_bot(bot_id)
        if bot is None:
            print(f"❌ Bot {bot_id} not found")
            return 1

        flow = await flow_service.create_flow(
            user_id=bot.user_id,
            request=FlowCreateRequest(bot_id=bot.id, name=name, data=graph)
        )
        print(f"✅ Flow inserted: {flow.id}")

        if activate:
            flow = await flow_service.update_flow_status(user_id=bot.user_id, flow_id=flow.id, is_active=True)
            print(f"✅ Flow activated, other flows of bot {bot.id} deactivated")

        print(f"\n✅ Flow data imported successfully!")
        print(f"   Flow ID: {flow.id}")
        print(f"   Flow Name: {flow.name}")
        print(f"   Bot: {bot.name} ({bot.phone_number})")
        print(f"   Nodes: {len(flow.data.nodes)}")
        print(f"   Edges: {len(flow.data.edges)}")
        print(f"   Active: {flow.is_active}")
        return 0

    except FlowException as e:
        print(f"❌ Error importing flow data: {e.message}")
        return 1
    finally:
        flow_db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import a flow graph for a bot")
    parser.add_argument("bot_id")
    parser.add_argument("flow_file")
    parser.add_argument("--name", default="Imported flow")
    parser.add_argument("--activate", action="store_true")
    args = parser.parse_args()

    print("=" * 80)
    print("Flow Data Import Script")
    print("=" * 80)

    sys.exit(asyncio.run(import_flow_data(args.bot_id, args.flow_file, args.name, args.activate)))
