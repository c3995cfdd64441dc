from wabot_flow.models.message_data import MessageData

HEADERS = {"x-user-id": "user-1"}


async def test_outbound_webhook_lifecycle(client):
    created = await client.post(
        "/webhooks/create",
        headers=HEADERS,
        json={"url": "https://hooks.example.com/events", "trigger": "flow_completed"}
    )
    assert created.status_code == 200
    webhook = created.json()
    assert webhook["is_active"] is True

    toggled = await client.post(f"/webhooks/toggle/{webhook['id']}", headers=HEADERS)
    assert toggled.json()["is_active"] is False

    foreign = await client.post(f"/webhooks/toggle/{webhook['id']}", headers={"x-user-id": "user-2"})
    assert foreign.status_code == 404

    deleted = await client.delete(f"/webhooks/delete/{webhook['id']}", headers=HEADERS)
    assert deleted.json()["deleted"] is True
    assert (await client.get("/webhooks/list", headers=HEADERS)).json() == []


async def test_outbound_webhook_rejects_bad_url_and_trigger(client):
    bad_url = await client.post("/webhooks/create", headers=HEADERS, json={"url": "ftp://example.com"})
    bad_trigger = await client.post(
        "/webhooks/create", headers=HEADERS, json={"url": "https://example.com", "trigger": "bot_deleted"}
    )

    assert bad_url.status_code == 400
    assert bad_trigger.status_code == 422


async def test_whatsapp_config_hides_access_token(client, bot):
    response = await client.put(
        "/whatsapp-config",
        headers=HEADERS,
        json={"access_token": "EAAG-secret", "phone_number_id": "1234567890", "bot_id": bot.id}
    )

    assert response.status_code == 200
    config = response.json()
    assert "access_token" not in config
    assert config["access_token_set"] is True
    assert config["phone_number"] == "15550001111"

    listed = (await client.get("/whatsapp-config", headers=HEADERS)).json()
    assert [item["phone_number_id"] for item in listed] == ["1234567890"]


async def test_whatsapp_phone_number_id_belongs_to_one_user(client):
    await client.put("/whatsapp-config", headers=HEADERS, json={"access_token": "a", "phone_number_id": "555"})

    response = await client.put(
        "/whatsapp-config", headers={"x-user-id": "user-2"}, json={"access_token": "b", "phone_number_id": "555"}
    )

    assert response.status_code == 400


async def test_messages_are_listed_per_user(client, flow_db, bot):
    await flow_db.save_message(MessageData(
        user_id="user-1", bot_id=bot.id, from_number="+1555", to_number=bot.phone_number,
        content="hi", direction="incoming", status="received"
    ))
    await flow_db.save_message(MessageData(
        user_id="user-2", from_number="+1555", to_number="+1666",
        content="other", direction="incoming", status="received"
    ))

    response = await client.get("/messages/list", headers=HEADERS, params={"bot_id": bot.id})

    assert [message["content"] for message in response.json()] == ["hi"]


async def test_health(client):
    response = await client.get("/health")

    assert response.json()["status"] == "healthy"
