from datetime import datetime, timedelta

from wabot_flow.models.whatsapp_token_data import WhatsAppTokenData
from wabot_flow.models.outbound_webhook_data import OutboundWebhookData


async def save_token(flow_db, bot, **fields):
    return await flow_db.upsert_whatsapp_token(WhatsAppTokenData(
        user_id=bot.user_id,
        access_token=fields.pop("access_token", "EAAG-token"),
        phone_number_id=fields.pop("phone_number_id", "1234567890"),
        **fields
    ))


async def test_without_credentials_message_is_only_recorded(message_sender_service, recorder, bot):
    message = await message_sender_service.send_text(bot, "+15559998888", "Hello")

    assert message.status == "sending"
    assert message.direction == "outgoing"
    assert message.from_number == bot.phone_number
    assert recorder.requests == []


async def test_user_level_credentials_are_used_for_the_bot(message_sender_service, flow_db, recorder, bot):
    await save_token(flow_db, bot)

    message = await message_sender_service.send_text(bot, "+15559998888", "Hello", flow_id="flow-1")

    assert message.status == "sent"
    assert message.wa_message_id == "wamid.TEST"
    assert message.flow_id == "flow-1"
    body = recorder.json_bodies("graph.facebook.com")[0]
    assert body == {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": "15559998888",
        "type": "text",
        "text": {"body": "Hello"}
    }


async def test_expired_token_marks_message_failed(message_sender_service, flow_db, recorder, bot):
    await save_token(flow_db, bot, valid_until=datetime.utcnow() - timedelta(days=1))

    message = await message_sender_service.send_text(bot, "+15559998888", "Hello")

    assert message.status == "failed"
    assert "expired" in message.error
    assert recorder.to_host("graph.facebook.com") == []


async def test_api_error_marks_message_failed_and_dispatches_error(message_sender_service, flow_db, recorder, bot):
    recorder.status_by_host["graph.facebook.com"] = 401
    await save_token(flow_db, bot)
    await flow_db.create_outbound_webhook(OutboundWebhookData(
        user_id=bot.user_id, url="https://hooks.example.com/errors", trigger="error"
    ))

    message = await message_sender_service.send_text(bot, "+15559998888", "Hello")

    assert message.status == "failed"
    assert "401" in message.error
    bodies = recorder.json_bodies("hooks.example.com")
    assert [body["event"] for body in bodies] == ["error"]
    assert bodies[0]["data"]["to"] == "+15559998888"


async def test_response_sent_is_dispatched(message_sender_service, flow_db, recorder, bot):
    await save_token(flow_db, bot)
    await flow_db.create_outbound_webhook(OutboundWebhookData(
        user_id=bot.user_id, url="https://hooks.example.com/sent", trigger="response_sent"
    ))

    await message_sender_service.send_text(bot, "+15559998888", "Hello")

    bodies = recorder.json_bodies("hooks.example.com")
    assert bodies[0]["event"] == "response_sent"
    assert bodies[0]["data"]["wa_message_id"] == "wamid.TEST"
