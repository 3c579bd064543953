"""Email sender using the Mailjet v3.1 send API."""

import logging

import httpx

from src.core.config import constants, settings
from src.core.errors import ChannelError
from src.domain.notification import Channel, EmailContent
from src.interface.channel_sender import ChannelSender, response_error


logger = logging.getLogger(__name__)


def _extract_message_id(data: dict) -> str | None:
    """Extract the message ID from a Mailjet response.

    Mailjet returns {"Messages": [{"Status": "success", "To": [{"MessageID": 123, ...}]}]}.
    """
    messages = data.get("Messages") or []
    if not messages:
        return None
    recipients = messages[0].get("To") or []
    if not recipients:
        return None
    message_id = recipients[0].get("MessageID") or recipients[0].get("MessageUUID")
    return str(message_id) if message_id is not None else None


class EmailSender(ChannelSender):
    channel = Channel.EMAIL

    async def _deliver(self, *, to: str, content: EmailContent | str) -> str | None:
        if not isinstance(content, EmailContent):
            raise ChannelError(self.channel, "email content must include a subject")

        api_key = settings.require_credential("mailjet_api_key", "Mailjet API key")
        secret_key = settings.require_credential("mailjet_secret_key", "Mailjet secret key")

        payload = {
            "Messages": [
                {
                    "From": {"Email": settings.mail_from_email, "Name": settings.mail_from_name},
                    "To": [{"Email": to}],
                    "Subject": content.subject,
                    "TextPart": content.text,
                    "HTMLPart": content.html,
                }
            ]
        }

        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.mailjet_api_url, json=payload, auth=(api_key, secret_key))

        if not response.is_success:
            raise ChannelError(self.channel, response_error(response))

        data = response.json()
        status = (data.get("Messages") or [{}])[0].get("Status")
        if status != "success":
            raise ChannelError(self.channel, f"Mailjet status: {status}")

        return _extract_message_id(data)
