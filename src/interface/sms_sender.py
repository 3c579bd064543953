"""SMS sender using the Twilio Messages REST API."""

import logging

import httpx

from src.core.config import constants, settings
from src.core.errors import ChannelError
from src.domain.notification import Channel, EmailContent
from src.interface.channel_sender import ChannelSender, normalize_phone


logger = logging.getLogger(__name__)


def format_phone_e164(phone: str) -> str:
    """Format a phone number for Twilio (leading '+', digits only)."""
    clean_phone = normalize_phone(phone)
    return clean_phone if clean_phone.startswith("+") else f"+{clean_phone}"


class SmsSender(ChannelSender):
    channel = Channel.SMS

    async def _deliver(self, *, to: str, content: EmailContent | str) -> str | None:
        body = content.text if isinstance(content, EmailContent) else content

        account_sid = settings.require_credential("twilio_account_sid", "Twilio account SID")
        auth_token = settings.require_credential("twilio_auth_token", "Twilio auth token")
        from_number = settings.require_credential("twilio_phone_number", "Twilio phone number")

        url = f"{settings.twilio_api_base_url}/Accounts/{account_sid}/Messages.json"
        form = {"To": format_phone_e164(to), "From": from_number, "Body": body}

        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            response = await client.post(url, data=form, auth=(account_sid, auth_token))

        if not response.is_success:
            try:
                detail = response.json().get("message") or response.text
            except ValueError:
                detail = response.text
            raise ChannelError(self.channel, f"HTTP {response.status_code}: {detail[:200]}")

        return response.json().get("sid")
