"""Shared behaviour of the email, SMS and WhatsApp senders.

A sender performs exactly one delivery attempt per call and appends exactly
one delivery log entry describing it. Failures surface as ``ChannelError``;
retrying is left to the caller.
"""

import logging
import re
import uuid
from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel, Field

from src.core.config import settings
from src.core.errors import ChannelError, NotificationCoreError
from src.core.logging import span
from src.domain.notification import Channel, DeliveryStatus, EmailContent
from src.services import delivery_log_service


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{6,14}$")


class SendMessageResult(BaseModel):
    """Result of a successful send."""

    success: bool = Field(..., description="Whether the message was accepted by the provider")
    message_id: str | None = Field(None, description="Provider message ID if successful")
    error: str | None = Field(None, description="Error message if failed")


def normalize_phone(phone: str) -> str:
    """Strip channel prefixes and formatting characters from a phone number."""
    return re.sub(r"[\s\-().]", "", phone.replace("whatsapp:", "")).strip()


class ChannelSender(ABC):
    """Base class for channel senders."""

    channel: Channel

    def validate_address(self, to: str) -> bool:
        if self.channel == Channel.EMAIL:
            return bool(EMAIL_PATTERN.match(to.strip()))
        return bool(PHONE_PATTERN.match(normalize_phone(to)))

    @abstractmethod
    async def _deliver(self, *, to: str, content: EmailContent | str) -> str | None:
        """Hand the message to the provider and return its message ID."""

    async def send(self, *, to: str, content: EmailContent | str) -> SendMessageResult:
        """Send one message and log the attempt.

        Raises:
            ChannelError: If the address is unusable or the provider call fails
        """
        with span(f"{self.channel}_sender.send"):
            if not to or not self.validate_address(to):
                await self._log_attempt(
                    to=to or "", content=content, status=DeliveryStatus.FAILED, error="Invalid recipient address"
                )
                raise ChannelError(self.channel, f"invalid recipient address: {to!r}")

            try:
                if settings.is_live:
                    message_id = await self._deliver(to=to, content=content)
                else:
                    message_id = f"simulated-{uuid.uuid4().hex[:12]}"
                    logger.info("Simulated %s delivery", self.channel, extra={"recipient": to})
            except ChannelError as e:
                await self._log_attempt(to=to, content=content, status=DeliveryStatus.FAILED, error=e.detail)
                raise
            except (httpx.HTTPError, NotificationCoreError, ValueError) as e:
                await self._log_attempt(to=to, content=content, status=DeliveryStatus.FAILED, error=str(e))
                raise ChannelError(self.channel, str(e)) from e
            except Exception as e:
                logger.exception("Unexpected %s provider error", self.channel, extra={"recipient": to})
                await self._log_attempt(
                    to=to, content=content, status=DeliveryStatus.FAILED, error=f"{type(e).__name__}: {e}"
                )
                raise ChannelError(self.channel, f"{type(e).__name__}: {e}") from e

            await self._log_attempt(to=to, content=content, status=DeliveryStatus.SENT, message_id=message_id)
            logger.info(
                "Message sent",
                extra={"channel": str(self.channel), "recipient": to, "message_id": message_id},
            )
            return SendMessageResult(success=True, message_id=message_id)

    async def _log_attempt(
        self,
        *,
        to: str,
        content: EmailContent | str,
        status: DeliveryStatus,
        message_id: str | None = None,
        error: str | None = None,
    ) -> None:
        """Append the delivery log entry; a logging failure never changes the send outcome."""
        subject = content.subject if isinstance(content, EmailContent) else None
        body = content.text if isinstance(content, EmailContent) else content
        try:
            await delivery_log_service.record_delivery(
                channel=self.channel,
                recipient=to,
                subject=subject,
                content=body,
                status=status,
                error_message=error,
                provider_message_id=message_id,
            )
        except Exception as e:
            logger.warning("Failed to write delivery log for %s to %s: %s", self.channel, to, e)


def response_error(response: httpx.Response) -> str:
    """Short description of a failed provider response."""
    return f"HTTP {response.status_code}: {response.text[:200]}"
