import pytest

from wabot_flow.models.request.whatsapp_webhook_request import WhatsAppMessage, WhatsAppWebhookRequest


def message(**fields):
    return WhatsAppMessage.model_validate({"from": "15559998888", "id": "wamid.X", **fields})


@pytest.mark.parametrize("fields, expected", [
    ({"type": "text", "text": {"body": "  yes  "}}, "yes"),
    ({"type": "image", "image": {"id": "img-1", "caption": "my receipt"}}, "my receipt"),
    ({"type": "document", "document": {"id": "doc-1", "caption": "invoice.pdf", "filename": "a.pdf"}}, "invoice.pdf"),
    ({"type": "video", "video": {"id": "vid-1", "caption": "unboxing"}}, "unboxing"),
    ({"type": "button", "button": {"text": "Yes", "payload": "YES_PAYLOAD"}}, "Yes"),
    ({"type": "button", "button": {"payload": "YES_PAYLOAD"}}, "YES_PAYLOAD"),
    ({"type": "interactive", "interactive": {"type": "button_reply", "button_reply": {"id": "b1", "title": "Sure"}}}, "Sure"),
    ({"type": "interactive", "interactive": {"type": "list_reply", "list_reply": {"id": "row-2", "title": "Plan B"}}}, "Plan B"),
    ({"type": "interactive", "interactive": {"type": "button_reply", "button_reply": {"id": "b1"}}}, "b1"),
    ({"type": "image", "image": {"id": "img-1"}}, ""),
    ({"type": "sticker", "sticker": {"id": "st-1"}}, ""),
])
def test_text_content(fields, expected):
    assert message(**fields).get_text_content() == expected


def test_text_body_wins_over_caption():
    assert message(text={"body": "hello"}, image={"caption": "photo"}).get_text_content() == "hello"


def test_sender_is_read_from_the_from_field():
    request = WhatsAppWebhookRequest.model_validate({
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_ID", "changes": [{"field": "messages", "value": {
            "metadata": {"display_phone_number": "15550001111", "phone_number_id": "1234567890"},
            "messages": [{"from": "15559998888", "type": "text", "text": {"body": "hi"}}]
        }}]}]
    })

    value = request.entry[0].changes[0].value
    assert value.metadata.phone_number_id == "1234567890"
    assert value.messages[0].sender == "15559998888"
