"""
Tests for attendee email notifications
"""

import smtplib

import pytest

from gifttable.core.config import settings
from gifttable.core.db import Base, make_engine, make_session_factory
from gifttable.models import Attendee, Event, EventStatus, GiftItem, NotificationLog
from gifttable.services.notification_service import (
    EmailNotifier, EventSnapshot, GiftSnapshot, Recipient, EVENT_PUBLISHED, NEW_GIFT_ITEM
)

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_notifications.db"
engine = make_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = make_session_factory(engine)

SMTP_SETTINGS = settings.model_copy(update={
    "SMTP_HOST": "smtp.example.com", "SMTP_USER": "mailer", "SMTP_PASS": "pw", "FROM_EMAIL": "noreply@example.com"
})

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def event(db_session):
    event = Event(subject="Retirement", description="Drinks after work", gift_receiver_name="Pat",
                  status=EventStatus.PUBLISHED)
    event.attendees.append(Attendee(name="Ola", email="ola@example.com"))
    event.attendees.append(Attendee(name="Raj", email="raj@example.com"))
    db_session.add(event)
    db_session.commit()
    db_session.refresh(event)
    return event

def test_delivery_skipped_without_smtp(db_session, event):
    """Test nothing is sent but every attendee is logged when SMTP is unset"""
    notifier = EmailNotifier(TestingSessionLocal, settings.model_copy(update={"SMTP_HOST": None}))

    summary = notifier.send_event_published(
        EventSnapshot.of(event), [Recipient.of(a) for a in event.attendees]
    )

    assert summary == {"sent": 0, "skipped": 2, "failed": 0}
    logs = db_session.query(NotificationLog).all()
    assert {log.notification_type for log in logs} == {EVENT_PUBLISHED}
    assert {log.attendee_id for log in logs} == {a.id for a in event.attendees}

def test_invitation_contains_personal_link(db_session, event, monkeypatch):
    sent = []
    notifier = EmailNotifier(TestingSessionLocal, SMTP_SETTINGS)
    monkeypatch.setattr(notifier, "send_email", lambda *args: sent.append(args))

    ola = event.attendees[0]
    summary = notifier.send_attendee_invited(EventSnapshot.of(event), [Recipient.of(ola)])

    assert summary["sent"] == 1
    to_email, to_name, subject, html, text = sent[0]
    assert to_email == "ola@example.com"
    assert subject == "Gift Event: Retirement"
    assert ola.access_token in text
    assert ola.access_token in html
    assert "Pat" in text

def test_failed_delivery_is_recorded(db_session, event, monkeypatch):
    """Test SMTP errors are counted and logged, never raised"""
    notifier = EmailNotifier(TestingSessionLocal, SMTP_SETTINGS)

    def refuse(*args):
        raise smtplib.SMTPException("relay denied")

    monkeypatch.setattr(notifier, "send_email", refuse)

    gift = GiftItem(event_id=event.id, name="Fishing rod", price=80)
    summary = notifier.send_new_gift_item(
        EventSnapshot.of(event), GiftSnapshot.of(gift), [Recipient.of(a) for a in event.attendees]
    )

    assert summary == {"sent": 0, "skipped": 0, "failed": 2}
    logs = db_session.query(NotificationLog).filter(NotificationLog.notification_type == NEW_GIFT_ITEM).all()
    assert [log.status for log in logs] == ["failed", "failed"]
    assert "relay denied" in logs[0].detail
