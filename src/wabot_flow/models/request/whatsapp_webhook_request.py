from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict


class WhatsAppMetadata(BaseModel):
    display_phone_number: Optional[str] = None
    phone_number_id: Optional[str] = None


class WhatsAppText(BaseModel):
    body: str = ""


class WhatsAppMedia(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: Optional[str] = None
    caption: Optional[str] = None
    mime_type: Optional[str] = None


class WhatsAppButton(BaseModel):
    text: Optional[str] = None
    payload: Optional[str] = None


class WhatsAppMessage(BaseModel):
    """
    A single entry of value.messages[] in a Cloud API webhook
    """
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    sender: str = Field(..., alias="from")
    id: Optional[str] = None
    timestamp: Optional[str] = None
    type: str = "text"
    text: Optional[WhatsAppText] = None
    image: Optional[WhatsAppMedia] = None
    document: Optional[WhatsAppMedia] = None
    video: Optional[WhatsAppMedia] = None
    button: Optional[WhatsAppButton] = None
    interactive: Optional[Dict[str, Any]] = None

    def get_text_content(self) -> str:
        """
        Text used for flow matching: the text body, else a media caption,
        else the tapped button or interactive reply title.
        """
        if self.text and self.text.body:
            return self.text.body.strip()
        for media in (self.image, self.document, self.video):
            if media and media.caption:
                return media.caption.strip()
        if self.button:
            return (self.button.text or self.button.payload or "").strip()
        if self.interactive:
            interactive_type = self.interactive.get("type")
            reply = self.interactive.get(interactive_type, {}) if interactive_type else {}
            if isinstance(reply, dict):
                return (reply.get("title") or reply.get("id") or "").strip()
        return ""


class WhatsAppChangeValue(BaseModel):
    model_config = ConfigDict(extra='allow')

    messaging_product: Optional[str] = None
    metadata: WhatsAppMetadata = Field(default_factory=WhatsAppMetadata)
    contacts: Optional[List[Dict[str, Any]]] = None
    messages: Optional[List[WhatsAppMessage]] = None
    statuses: Optional[List[Dict[str, Any]]] = None


class WhatsAppChange(BaseModel):
    field: Optional[str] = None
    value: WhatsAppChangeValue = Field(default_factory=WhatsAppChangeValue)


class WhatsAppEntry(BaseModel):
    id: Optional[str] = None
    changes: List[WhatsAppChange] = []


class WhatsAppWebhookRequest(BaseModel):
    """
    Native WhatsApp Cloud API webhook payload
    """
    object: str
    entry: List[WhatsAppEntry] = []

    class Config:
        json_schema_extra = {
            "example": {
                "object": "whatsapp_business_account",
                "entry": [
                    {
                        "id": "waba_id_12345",
                        "changes": [
                            {
                                "field": "messages",
                                "value": {
                                    "messaging_product": "whatsapp",
                                    "metadata": {
                                        "display_phone_number": "15550001111",
                                        "phone_number_id": "phone_number_id_67890"
                                    },
                                    "messages": [
                                        {
                                            "from": "5511999990000",
                                            "id": "wamid.HBgN",
                                            "timestamp": "1700000000",
                                            "type": "text",
                                            "text": {"body": "Hello"}
                                        }
                                    ]
                                }
                            }
                        ]
                    }
                ]
            }
        }
