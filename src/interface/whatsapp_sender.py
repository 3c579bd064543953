"""WhatsApp message sender with rate limiting using WAHA."""

import logging
from collections import defaultdict
from datetime import datetime, timedelta

import httpx

from src.core.config import constants, settings
from src.core.errors import ChannelError
from src.domain.notification import Channel, EmailContent
from src.interface.channel_sender import ChannelSender, response_error


logger = logging.getLogger(__name__)


class RateLimiter:
    """In-memory rate limiter for WhatsApp API calls.

    Tracks requests per phone number per minute to prevent exceeding rate limits.
    """

    def __init__(self) -> None:
        """Initialize rate limiter."""
        self._requests: dict[str, list[datetime]] = defaultdict(list)

    def can_send(self, phone: str) -> bool:
        """Check if a message can be sent to the given phone number.

        Args:
            phone: Phone number to check

        Returns:
            True if sending is allowed, False if rate limited
        """
        now = datetime.now()
        cutoff = now - timedelta(minutes=1)

        # Clean up old requests, dropping phones with no recent traffic
        recent = [ts for ts in self._requests.get(phone, []) if ts > cutoff]
        if recent:
            self._requests[phone] = recent
        else:
            self._requests.pop(phone, None)

        return len(recent) < constants.MAX_REQUESTS_PER_MINUTE

    def record_request(self, phone: str) -> None:
        """Record a request for rate limiting."""
        self._requests[phone].append(datetime.now())


def format_phone_for_waha(phone: str) -> str:
    """Format phone number for WAHA (e.g., '1234567890@c.us')."""
    # Remove 'whatsapp:' prefix if present
    clean_phone = phone.replace("whatsapp:", "").replace("+", "").replace(" ", "").strip()
    if not clean_phone.endswith("@c.us"):
        clean_phone = f"{clean_phone}@c.us"
    return clean_phone


def _extract_message_id(data: dict) -> str | None:
    """Extract message ID from WAHA response.

    WAHA returns { "id": ... } where id can be a string or an object.
    If it's an object (e.g., {"fromMe": True, "remote": "...", "_serialized": "..."}),
    extract the _serialized field or convert to string.
    """
    raw_id = data.get("id")
    if isinstance(raw_id, dict):
        return raw_id.get("_serialized") or str(raw_id)
    return raw_id


class WhatsAppSender(ChannelSender):
    channel = Channel.WHATSAPP

    def __init__(self, rate_limiter: RateLimiter | None = None) -> None:
        self.rate_limiter = rate_limiter or RateLimiter()

    def validate_address(self, to: str) -> bool:
        return to.endswith("@c.us") or super().validate_address(to)

    async def _deliver(self, *, to: str, content: EmailContent | str) -> str | None:
        text = content.text if isinstance(content, EmailContent) else content

        if not self.rate_limiter.can_send(to):
            raise ChannelError(self.channel, "rate limit exceeded")
        self.rate_limiter.record_request(to)

        url = f"{settings.waha_base_url}/api/sendText"
        payload = {"session": settings.waha_session, "chatId": format_phone_for_waha(to), "text": text}
        headers = {"Content-Type": "application/json"}
        if settings.waha_api_key:
            headers["X-Api-Key"] = settings.waha_api_key

        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            response = await client.post(url, json=payload, headers=headers)

        if not response.is_success:
            raise ChannelError(self.channel, response_error(response))

        return _extract_message_id(response.json())
