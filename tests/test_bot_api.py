HEADERS = {"x-user-id": "user-1"}


async def test_create_and_list_bots(client):
    response = await client.post("/bot/create", headers=HEADERS, json={"name": "Sales", "phone_number": "+15550002222"})

    assert response.status_code == 200
    bot = response.json()
    assert bot["is_active"] is True

    listed = await client.get("/bot/list", headers=HEADERS)
    assert [item["id"] for item in listed.json()] == [bot["id"]]
    assert (await client.get("/bot/list", headers={"x-user-id": "user-2"})).json() == []


async def test_duplicate_phone_number_is_rejected(client, bot):
    response = await client.post("/bot/create", headers=HEADERS, json={"name": "Copy", "phone_number": "15550001111"})

    assert response.status_code == 400


async def test_update_bot(client, bot):
    response = await client.put(f"/bot/update/{bot.id}", headers=HEADERS, json={"is_active": False})

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert response.json()["name"] == bot.name


async def test_foreign_bot_is_not_found(client, bot):
    response = await client.get(f"/bot/detail/{bot.id}", headers={"x-user-id": "user-2"})

    assert response.status_code == 404


async def test_invalid_id_is_not_found(client):
    response = await client.get("/bot/detail/not-an-object-id", headers=HEADERS)

    assert response.status_code == 404


async def test_delete_bot_removes_its_flows_and_states(client, flow_db, bot, active_flow):
    await flow_db.upsert_flow_state(bot.id, "+15559998888", current_node="3", flow_id=active_flow.id)

    response = await client.delete(f"/bot/delete/{bot.id}", headers=HEADERS)

    assert response.json() == {"deleted": True, "bot_id": bot.id}
    assert await flow_db.get_flow(active_flow.id) is None
    assert await flow_db.get_flow_state(bot.id, "+15559998888") is None
