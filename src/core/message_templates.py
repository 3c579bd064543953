"""Centralized message templates for every notification channel.

All user-facing strings live here. ``format_notification`` renders one
``NotificationEvent`` into an email (subject, HTML, text) or into a bounded
plain string for SMS and WhatsApp. Rendering is pure: the same event always
produces the same output.
"""

from html import escape

from src.core.config import constants
from src.core.errors import ConfigurationError
from src.domain.assignment import AssignmentStatus
from src.domain.notification import (
    Audience,
    Channel,
    EmailContent,
    NotificationEvent,
    NotificationKind,
    ReminderTrigger,
    Urgency,
)
from src.domain.task import TaskPriority


APP_NAME = "TaskFlow"

PRIORITY_LABELS = {
    TaskPriority.LOW: "Faible",
    TaskPriority.MEDIUM: "Moyenne",
    TaskPriority.HIGH: "Haute",
    TaskPriority.URGENT: "Urgente",
}

# (colour, icon) per urgency level
URGENCY_STYLES = {
    Urgency.CRITICAL: ("#dc2626", "\U0001f6a8"),
    Urgency.HIGH: ("#ea580c", "\u26a0\ufe0f"),
    Urgency.MEDIUM: ("#ca8a04", "\u23f0"),
    Urgency.LOW: ("#2563eb", "\U0001f4cb"),
}

TRIGGER_LABELS = {
    ReminderTrigger.OVERDUE: "est en retard",
    ReminderTrigger.DUE_TODAY: "arrive à échéance aujourd'hui",
    ReminderTrigger.DUE_TOMORROW: "arrive à échéance demain",
}

ELLIPSIS = "…"


def _headline(event: NotificationEvent) -> str:
    title = event.task.title
    match event.kind:
        case NotificationKind.ASSIGNMENT:
            if event.audience == Audience.MANAGER:
                return f"{event.assignee_name or 'Un membre'} a été assigné(e) à la tâche « {title} »"
            return f"Nouvelle tâche assignée : « {title} »"
        case NotificationKind.STATUS_CHANGE:
            actor = event.actor_name or event.assignee_name or "Un membre"
            if event.new_status == AssignmentStatus.ACCEPTED:
                return f"{actor} a accepté la tâche « {title} »"
            if event.new_status == AssignmentStatus.REJECTED:
                return f"{actor} a refusé la tâche « {title} »"
            return f"La tâche « {title} » a été mise à jour"
        case NotificationKind.REMINDER:
            label = TRIGGER_LABELS.get(event.trigger)
            if label is None:
                return f"Rappel : « {title} »"
            if event.audience == Audience.MANAGER:
                return f"La tâche « {title} » assignée à {event.assignee_name or 'un membre'} {label}"
            return f"Rappel : la tâche « {title} » {label}"
    msg = f"Unsupported notification kind: {event.kind}"
    raise ConfigurationError(msg)


def _detail_lines(event: NotificationEvent) -> list[tuple[str, str]]:
    task = event.task
    lines: list[tuple[str, str]] = []
    if event.project_title:
        lines.append(("Projet", event.project_title))
    if task.due_date is not None:
        lines.append(("Échéance", task.due_date.strftime("%d/%m/%Y %H:%M")))
    lines.append(("Priorité", PRIORITY_LABELS[task.priority]))
    if event.reason:
        lines.append(("Raison du refus", event.reason))
    if event.message:
        lines.append(("Message", event.message))
    return lines


def _links(event: NotificationEvent) -> list[tuple[str, str]]:
    links = []
    if event.accept_url:
        links.append(("Accepter", event.accept_url))
    if event.reject_url:
        links.append(("Refuser", event.reject_url))
    return links


def _bounded(body: str, suffix: str, limit: int) -> str:
    """Truncate ``body`` so that ``body + suffix`` fits in ``limit`` characters.

    Links in ``suffix`` are never cut; they are dropped entirely if they
    cannot fit at all.
    """
    if len(suffix) >= limit:
        suffix = ""
    room = limit - len(suffix)
    if len(body) > room:
        body = body[: room - len(ELLIPSIS)].rstrip() + ELLIPSIS
    return body + suffix


def render_email(event: NotificationEvent) -> EmailContent:
    colour, icon = URGENCY_STYLES[event.urgency]
    headline = _headline(event)
    details = _detail_lines(event)
    links = _links(event)

    detail_rows = "".join(
        f"<tr><td style=\"padding:4px 12px 4px 0;color:#6b7280\">{escape(label)}</td>"
        f"<td style=\"padding:4px 0\">{escape(value)}</td></tr>"
        for label, value in details
    )
    buttons = "".join(
        f"<a href=\"{escape(url, quote=True)}\" style=\"display:inline-block;margin-right:8px;padding:10px 18px;"
        f"border-radius:6px;background:{colour};color:#ffffff;text-decoration:none\">{escape(label)}</a>"
        for label, url in links
    )
    description = f"<p>{escape(event.task.description)}</p>" if event.task.description else ""
    actions = f'<p style="margin-top:20px">{buttons}</p>' if buttons else ""
    html = (
        "<div style=\"font-family:Arial,sans-serif;max-width:600px;margin:0 auto\">"
        f"<div style=\"background:{colour};color:#ffffff;padding:16px 20px;border-radius:8px 8px 0 0\">"
        f"<h2 style=\"margin:0\">{icon} {escape(headline)}</h2></div>"
        "<div style=\"border:1px solid #e5e7eb;border-top:none;padding:20px;border-radius:0 0 8px 8px\">"
        f"{description}<table>{detail_rows}</table>{actions}"
        f"<p style=\"margin-top:24px;color:#9ca3af;font-size:12px\">{APP_NAME}</p>"
        "</div></div>"
    )

    text_lines = [f"{icon} {headline}", ""]
    if event.task.description:
        text_lines.extend([event.task.description, ""])
    text_lines.extend(f"{label} : {value}" for label, value in details)
    if links:
        text_lines.append("")
        text_lines.extend(f"{label} : {url}" for label, url in links)

    return EmailContent(subject=f"[{APP_NAME}] {headline}", html=html, text="\n".join(text_lines))


def render_sms(event: NotificationEvent) -> str:
    _, icon = URGENCY_STYLES[event.urgency]
    parts = [f"{APP_NAME}: {icon} {_headline(event)}."]
    parts.extend(f"{label}: {value}." for label, value in _detail_lines(event) if label != "Priorité")
    suffix = "".join(f" {label}: {url}" for label, url in _links(event))
    return _bounded(" ".join(parts), suffix, constants.SMS_MAX_LENGTH)


def render_whatsapp(event: NotificationEvent) -> str:
    _, icon = URGENCY_STYLES[event.urgency]
    lines = [f"{icon} *{_headline(event)}*", ""]
    if event.task.description:
        lines.extend([event.task.description, ""])
    lines.extend(f"\u2022 {label} : {value}" for label, value in _detail_lines(event))
    suffix = "".join(f"\n{label} : {url}" for label, url in _links(event))
    if suffix:
        suffix = "\n" + suffix
    return _bounded("\n".join(lines), suffix, constants.WHATSAPP_MAX_LENGTH)


def format_notification(event: NotificationEvent, channel: Channel | str) -> EmailContent | str:
    """Render an event for one channel.

    Raises:
        ConfigurationError: If the channel or the event kind is not supported
    """
    try:
        target = Channel(channel)
    except ValueError:
        msg = f"Unsupported channel: {channel}"
        raise ConfigurationError(msg) from None

    if target == Channel.EMAIL:
        return render_email(event)
    if target == Channel.SMS:
        return render_sms(event)
    return render_whatsapp(event)
