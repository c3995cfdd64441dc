import pytest

HEADERS = {"x-user-id": "user-1"}


@pytest.fixture
async def created_flow(client, bot, graph_data):
    response = await client.post(
        "/flow/create",
        headers=HEADERS,
        json={"bot_id": bot.id, "name": "Onboarding", "data": graph_data}
    )
    assert response.status_code == 200
    return response.json()


async def test_requests_without_user_are_unauthorized(client):
    response = await client.get("/flow/list")

    assert response.status_code == 401


async def test_created_flow_is_inactive(created_flow, bot):
    assert created_flow["is_active"] is False
    assert created_flow["bot_id"] == bot.id
    assert [node["id"] for node in created_flow["data"]["nodes"]] == ["1", "2", "3", "4", "5"]


async def test_invalid_graph_is_rejected(client, bot, graph_data):
    graph_data["edges"].append({"id": "bad", "source": "5", "target": "404"})

    response = await client.post("/flow/create", headers=HEADERS, json={"bot_id": bot.id, "data": graph_data})

    assert response.status_code == 400
    assert "404" in response.json()["detail"]


async def test_flow_for_foreign_bot_is_404(client, bot, graph_data):
    response = await client.post(
        "/flow/create",
        headers={"x-user-id": "user-2"},
        json={"bot_id": bot.id, "data": graph_data}
    )

    assert response.status_code == 404


async def test_list_and_detail(client, bot, created_flow):
    listed = await client.get("/flow/list", headers=HEADERS, params={"bot_id": bot.id})
    assert [flow["id"] for flow in listed.json()] == [created_flow["id"]]

    detail = await client.get(f"/flow/detail/{created_flow['id']}", headers=HEADERS)
    assert detail.json()["name"] == "Onboarding"

    foreign = await client.get(f"/flow/detail/{created_flow['id']}", headers={"x-user-id": "user-2"})
    assert foreign.status_code == 404


async def test_activating_a_flow_deactivates_the_others(client, bot, created_flow, graph_data):
    second = (await client.post(
        "/flow/create", headers=HEADERS, json={"bot_id": bot.id, "name": "Second", "data": graph_data}
    )).json()

    await client.post(f"/flow/status/{created_flow['id']}", headers=HEADERS, json={"is_active": True})
    response = await client.post(f"/flow/status/{second['id']}", headers=HEADERS, json={"is_active": True})

    assert response.status_code == 200
    flows = (await client.get("/flow/list", headers=HEADERS, params={"bot_id": bot.id})).json()
    active = {flow["id"]: flow["is_active"] for flow in flows}
    assert active == {created_flow["id"]: False, second["id"]: True}


async def test_flow_without_start_node_cannot_be_activated(client, bot):
    graph = {"nodes": [{"id": "2", "type": "message", "content": "Hello"}], "edges": []}
    flow = (await client.post("/flow/create", headers=HEADERS, json={"bot_id": bot.id, "data": graph})).json()

    response = await client.post(f"/flow/status/{flow['id']}", headers=HEADERS, json={"is_active": True})

    assert response.status_code == 400


async def test_update_replaces_graph(client, created_flow):
    graph = {
        "nodes": [
            {"id": "1", "type": "input"},
            {"id": "2", "type": "message", "content": "Only message"}
        ],
        "edges": [{"id": "e1", "source": "1", "target": "2"}]
    }

    response = await client.put(
        f"/flow/update/{created_flow['id']}",
        headers=HEADERS,
        json={"name": "Renamed", "data": graph}
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert len(response.json()["data"]["nodes"]) == 2


async def test_delete_flow(client, created_flow):
    response = await client.delete(f"/flow/delete/{created_flow['id']}", headers=HEADERS)

    assert response.json() == {"deleted": True, "flow_id": created_flow["id"]}
    assert (await client.get(f"/flow/detail/{created_flow['id']}", headers=HEADERS)).status_code == 404


async def test_flow_logs_after_a_run(client, flow_db, bot, created_flow):
    from wabot_flow.models.webhook_config_data import WebhookConfigData

    await flow_db.save_webhook_config(WebhookConfigData(user_id="user-1", token="t"))
    await client.post(f"/flow/status/{created_flow['id']}", headers=HEADERS, json={"is_active": True})
    await client.post(
        "/webhook",
        params={"token": "t"},
        json={"from": "+15559998888", "to": bot.phone_number, "content": "hi"}
    )

    response = await client.get(f"/flow/logs/{created_flow['id']}", headers=HEADERS)

    assert response.status_code == 200
    assert {log["step"] for log in response.json()} == {"1", "2"}
