"""Dispatch coordinator: fans one notification out to a recipient's channels.

Each channel is formatted and sent independently; a failing channel never
prevents the others from being attempted, and ``dispatch`` never raises on
partial failure. There is no automatic retry.
"""

import asyncio
import logging
from collections.abc import Iterable

from src.core import message_templates
from src.core.errors import ChannelError, EntityNotFoundError
from src.core.logging import span
from src.domain.notification import Channel, NotificationEvent, NotificationKind, Recipient, Urgency
from src.interface.channel_sender import ChannelSender
from src.interface.email_sender import EmailSender
from src.interface.sms_sender import SmsSender
from src.interface.whatsapp_sender import WhatsAppSender
from src.models.service_models import ChannelOutcome, ChannelResult
from src.services import directory_service


logger = logging.getLogger(__name__)

# Global sender registry (replaced by fakes in tests)
senders: dict[Channel, ChannelSender] = {
    Channel.EMAIL: EmailSender(),
    Channel.SMS: SmsSender(),
    Channel.WHATSAPP: WhatsAppSender(),
}

CHANNEL_ORDER = list(Channel)


def _email_enabled(recipient: Recipient, kind: NotificationKind) -> bool:
    prefs = recipient.preferences
    if kind == NotificationKind.ASSIGNMENT:
        return prefs.email_task_assigned
    if kind == NotificationKind.STATUS_CHANGE:
        return prefs.email_task_updated
    return prefs.email_task_due


def resolve_channels(recipient: Recipient, kind: NotificationKind, urgency: Urgency = Urgency.LOW) -> set[Channel]:
    """Choose the channels a recipient should get for this kind of event.

    - email: the kind-specific email switch is on and an address is known
    - WhatsApp: push notifications are on and a phone is known
    - SMS: a phone is known and either SMS is switched on, or the event is a
      status change or a high/critical reminder
    """
    if not recipient.user.is_active:
        return set()

    channels: set[Channel] = set()
    has_phone = bool(recipient.user.phone)

    if recipient.user.email and _email_enabled(recipient, kind):
        channels.add(Channel.EMAIL)

    if has_phone and recipient.preferences.push_notifications:
        channels.add(Channel.WHATSAPP)

    important = kind == NotificationKind.STATUS_CHANGE or (
        kind == NotificationKind.REMINDER and urgency in (Urgency.HIGH, Urgency.CRITICAL)
    )
    if has_phone and (recipient.preferences.sms_notifications or important):
        channels.add(Channel.SMS)

    return channels


async def _send_one(event: NotificationEvent, recipient: Recipient, channel: Channel) -> ChannelResult:
    user_id = recipient.user.id
    address = recipient.address_for(channel)
    if not address:
        logger.info("Skipping %s for user %s: no address", channel, user_id)
        return ChannelResult(channel=channel, status=ChannelOutcome.SKIPPED, recipient_id=user_id, error="no address")

    try:
        content = message_templates.format_notification(event, channel)
        result = await senders[channel].send(to=address, content=content)
    except ChannelError as e:
        logger.warning("Channel %s failed for user %s: %s", channel, user_id, e.detail)
        return ChannelResult(channel=channel, status=ChannelOutcome.FAILED, recipient_id=user_id, error=e.detail)
    except Exception as e:
        logger.error("Unexpected error sending %s to user %s: %s", channel, user_id, e)
        return ChannelResult(channel=channel, status=ChannelOutcome.FAILED, recipient_id=user_id, error=str(e))

    return ChannelResult(
        channel=channel, status=ChannelOutcome.SENT, recipient_id=user_id, message_id=result.message_id
    )


async def dispatch(
    event: NotificationEvent,
    recipient: Recipient,
    channels: Iterable[Channel],
) -> list[ChannelResult]:
    """Send the event on every requested channel concurrently.

    Returns:
        One result per requested channel, in email, sms, whatsapp order
    """
    requested = set(channels)
    ordered = [channel for channel in CHANNEL_ORDER if channel in requested]

    with span("dispatch_service.dispatch"):
        results = list(await asyncio.gather(*(_send_one(event, recipient, channel) for channel in ordered)))

    logger.info(
        "Dispatched %s for task %s to user %s (%d sent, %d failed, %d skipped)",
        event.kind,
        event.task.id,
        recipient.user.id,
        sum(1 for r in results if r.status == ChannelOutcome.SENT),
        sum(1 for r in results if r.status == ChannelOutcome.FAILED),
        sum(1 for r in results if r.status == ChannelOutcome.SKIPPED),
    )
    return results


async def notify_user(event: NotificationEvent, user_id: str) -> list[ChannelResult]:
    """Resolve a user's channels from their preferences and dispatch to them.

    Lookup failures are logged and reported as no deliveries.
    """
    try:
        recipient = await directory_service.get_recipient(user_id)
    except EntityNotFoundError:
        logger.warning("Cannot notify missing user %s", user_id)
        return []

    channels = resolve_channels(recipient, event.kind, event.urgency)
    if not channels:
        logger.info("No channel enabled for user %s", user_id)
        return []
    return await dispatch(event, recipient, channels)


async def notify_users(
    event: NotificationEvent,
    user_ids: Iterable[str],
    *,
    exclude: Iterable[str] = (),
) -> list[ChannelResult]:
    """Notify several users once each, in the given order."""
    excluded = set(exclude)
    seen: set[str] = set()
    results: list[ChannelResult] = []
    for user_id in user_ids:
        if user_id in seen or user_id in excluded:
            continue
        seen.add(user_id)
        try:
            results.extend(await notify_user(event, user_id))
        except Exception as e:
            logger.error("Failed to notify user %s: %s", user_id, e)
    return results
