"""
Email notifications triggered by lifecycle changes.

Delivery is fire-and-forget: routes schedule it as a background task after the
transition has committed, and every failure is logged and recorded in the
notification log, never raised back to the caller.
"""

import logging
import smtplib
from dataclasses import dataclass
from decimal import Decimal
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Callable, Dict, List, Optional

import jinja2
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gifttable.core.config import Settings, settings
from gifttable.core.db import SessionLocal
from gifttable.models import Attendee, Event, GiftItem, NotificationLog
from gifttable.services.event_service import invitation_url

logger = logging.getLogger(__name__)

EVENT_PUBLISHED = "event_published"
ATTENDEE_INVITED = "attendee_invited"
NEW_GIFT_ITEM = "new_gift_item"

_TEMPLATES = {
    "invitation.txt": """Hello {{ attendee.name }}!

You've been invited to participate in a gift event for {{ event.gift_receiver_name }}!

Event: {{ event.subject }}
Gift Recipient: {{ event.gift_receiver_name }}
{% if event.description %}Description: {{ event.description }}
{% endif %}
Open the link below to view the gift list and select items you'd like to contribute:
{{ attendee.invitation_url }}

This is an automated message from the Digital Gift Table system.
""",
    "invitation.html": """<!DOCTYPE html>
<html><body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
<h2>Hello {{ attendee.name }}!</h2>
<p>You've been invited to participate in a gift event for <strong>{{ event.gift_receiver_name }}</strong>!</p>
<ul>
  <li><strong>Event:</strong> {{ event.subject }}</li>
  <li><strong>Gift Recipient:</strong> {{ event.gift_receiver_name }}</li>
  {% if event.description %}<li><strong>Description:</strong> {{ event.description }}</li>{% endif %}
</ul>
<p><a href="{{ attendee.invitation_url }}">View Gift Event</a></p>
<p style="font-size: 12px; color: #666;">This is an automated message from the Digital Gift Table system.</p>
</body></html>
""",
    "new_gift_item.txt": """Hello {{ attendee.name }}!

A new gift item has been added to the gift event for {{ event.gift_receiver_name }}:

{{ gift.name }}{% if gift.price is not none %} ({{ "%.2f"|format(gift.price) }}){% endif %}
{% for url in gift.store_urls %}- {{ url }}
{% endfor %}
View the gift list: {{ attendee.invitation_url }}

This is an automated message from the Digital Gift Table system.
""",
    "new_gift_item.html": """<!DOCTYPE html>
<html><body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
<h2>Hello {{ attendee.name }}!</h2>
<p>A new gift item has been added to the gift event for <strong>{{ event.gift_receiver_name }}</strong>!</p>
<h3>{{ gift.name }}</h3>
{% if gift.price is not none %}<p><strong>Price:</strong> {{ "%.2f"|format(gift.price) }}</p>{% endif %}
{% if gift.store_urls %}<ul>{% for url in gift.store_urls %}<li><a href="{{ url }}">{{ url }}</a></li>{% endfor %}</ul>{% endif %}
<p><a href="{{ attendee.invitation_url }}">View Gift Event</a></p>
</body></html>
""",
}

_env = jinja2.Environment(
    loader=jinja2.DictLoader(_TEMPLATES),
    autoescape=jinja2.select_autoescape(enabled_extensions=("html",), default_for_string=False),
)


@dataclass
class EventSnapshot:
    id: int
    subject: str
    description: Optional[str]
    gift_receiver_name: str

    @classmethod
    def of(cls, event: Event) -> "EventSnapshot":
        return cls(event.id, event.subject, event.description, event.gift_receiver_name)


@dataclass
class Recipient:
    attendee_id: int
    name: str
    email: str
    invitation_url: str

    @classmethod
    def of(cls, attendee: Attendee) -> "Recipient":
        return cls(attendee.id, attendee.name, attendee.email, invitation_url(attendee))


@dataclass
class GiftSnapshot:
    name: str
    price: Optional[Decimal]
    store_urls: List[str]

    @classmethod
    def of(cls, item: GiftItem) -> "GiftSnapshot":
        return cls(item.name, item.price, list(item.store_urls or []))


class EmailNotifier:
    """Renders and delivers attendee emails, logging every attempt"""

    def __init__(self, session_factory: Callable[[], Session], config: Settings = settings):
        self.session_factory = session_factory
        self.config = config

    # -------- public triggers --------

    def send_event_published(self, event: EventSnapshot, recipients: List[Recipient]) -> Dict[str, int]:
        return self._notify(
            event, recipients, EVENT_PUBLISHED, f"Gift Event: {event.subject}", "invitation"
        )

    def send_attendee_invited(self, event: EventSnapshot, recipients: List[Recipient]) -> Dict[str, int]:
        return self._notify(
            event, recipients, ATTENDEE_INVITED, f"Gift Event: {event.subject}", "invitation"
        )

    def send_new_gift_item(
        self, event: EventSnapshot, gift: GiftSnapshot, recipients: List[Recipient]
    ) -> Dict[str, int]:
        return self._notify(
            event, recipients, NEW_GIFT_ITEM, f"New Gift Added: {event.subject}", "new_gift_item",
            gift=gift,
        )

    # -------- internals --------

    def _notify(
        self,
        event: EventSnapshot,
        recipients: List[Recipient],
        notification_type: str,
        subject: str,
        template: str,
        **context
    ) -> Dict[str, int]:
        outcomes = []
        for recipient in recipients:
            status, detail = self._deliver_one(event, recipient, subject, template, context)
            outcomes.append((recipient.attendee_id, status, detail))

        self._log(event.id, notification_type, outcomes)
        summary = {"sent": 0, "skipped": 0, "failed": 0}
        for _, status, _ in outcomes:
            summary[status] += 1
        logger.info(f"{notification_type} for event {event.id}: {summary}")
        return summary

    def _deliver_one(self, event, recipient, subject, template, context):
        try:
            text = _env.get_template(f"{template}.txt").render(event=event, attendee=recipient, **context)
            html = _env.get_template(f"{template}.html").render(event=event, attendee=recipient, **context)
        except jinja2.TemplateError as e:
            logger.error(f"Error rendering {template} for attendee {recipient.attendee_id}: {e}")
            return "failed", str(e)

        if not self.config.smtp_configured:
            logger.info(f"Email service not configured. Would send '{subject}' to {recipient.email}")
            return "skipped", "smtp not configured"

        try:
            self.send_email(recipient.email, recipient.name, subject, html, text)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {recipient.email}: {e}")
            return "failed", str(e)
        return "sent", None

    def send_email(self, to_email: str, to_name: str, subject: str, html: str, text: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.config.FROM_NAME, self.config.FROM_EMAIL or self.config.SMTP_USER))
        msg["To"] = formataddr((to_name, to_email))
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10) as server:
            server.starttls()
            server.login(self.config.SMTP_USER, self.config.SMTP_PASS)
            server.send_message(msg)
        logger.info(f"Email sent to {to_email}")

    def _log(self, event_id: int, notification_type: str, outcomes) -> None:
        if not outcomes:
            return
        db = self.session_factory()
        try:
            db.add_all([
                NotificationLog(
                    event_id=event_id,
                    attendee_id=attendee_id,
                    notification_type=notification_type,
                    status=status,
                    detail=detail,
                )
                for attendee_id, status, detail in outcomes
            ])
            db.commit()
        except SQLAlchemyError as e:
            # the event or attendee may have been deleted in the meantime
            db.rollback()
            logger.error(f"Could not record {notification_type} notifications for event {event_id}: {e}")
        finally:
            db.close()


# Global notifier instance
notifier = EmailNotifier(SessionLocal)
