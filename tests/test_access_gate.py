"""
Tests for admin token checks and attendee token resolution
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from gifttable.core.bootstrap import ensure_default_admin
from gifttable.core.config import settings
from gifttable.core.db import Base, make_engine, make_session_factory
from gifttable.core.exceptions import AuthorizationFailure, EventGoneError, NotFoundError
from gifttable.models import AdminUser, Attendee, Event, EventStatus
from gifttable.services.access_gate import AccessGate
from gifttable.services.lifecycle_service import EventLifecycle
from gifttable.utils.security import create_access_token, hash_password, verify_password

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_access.db"
engine = make_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = make_session_factory(engine)

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
def admin(db_session):
    user = AdminUser(username="organizer", email="organizer@example.com", password_hash=hash_password("s3cret!"))
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user

@pytest.fixture
def attendee(db_session):
    event = Event(subject="Housewarming", gift_receiver_name="Lee", status=EventStatus.PUBLISHED)
    guest = Attendee(name="Kim", email="kim@example.com")
    event.attendees.append(guest)
    db_session.add(event)
    db_session.commit()
    db_session.refresh(guest)
    return guest

def test_password_hash_roundtrip():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)

def test_verify_password_with_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False

def test_login_with_username_or_email(db_session, admin):
    assert AccessGate.authenticate_login(db_session, "organizer", "s3cret!").id == admin.id
    assert AccessGate.authenticate_login(db_session, "organizer@example.com", "s3cret!").id == admin.id

@pytest.mark.parametrize("login,password", [
    ("organizer", "wrong"),
    ("nobody", "s3cret!"),
])
def test_login_rejected(db_session, admin, login, password):
    with pytest.raises(AuthorizationFailure) as exc_info:
        AccessGate.authenticate_login(db_session, login, password)
    assert exc_info.value.message == "Invalid credentials"

def test_issued_token_authenticates(db_session, admin):
    token = AccessGate.issue_admin_token(admin)
    assert AccessGate.authenticate_admin(db_session, token).id == admin.id

def test_admin_token_failures_are_indistinguishable(db_session, admin):
    """Test missing, forged, expired and orphaned tokens fail the same way"""
    expired = jwt.encode(
        {"sub": str(admin.id), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )
    forged = jwt.encode(
        {"sub": str(admin.id), "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "some-other-secret", algorithm=settings.JWT_ALGORITHM
    )
    no_subject = jwt.encode(
        {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )
    unknown_admin = create_access_token({"sub": "424242"})
    bad_subject = create_access_token({"sub": "not-a-number"})

    messages = set()
    for token in [None, "", "garbage", expired, forged, no_subject, unknown_admin, bad_subject]:
        with pytest.raises(AuthorizationFailure) as exc_info:
            AccessGate.authenticate_admin(db_session, token)
        messages.add(exc_info.value.message)

    assert messages == {"Invalid or expired token"}

def test_resolve_attendee_token(db_session, attendee):
    found, event = AccessGate.resolve_attendee(db_session, attendee.access_token)
    assert found.id == attendee.id
    assert event.subject == "Housewarming"

def test_resolve_unknown_token(db_session, attendee):
    with pytest.raises(NotFoundError):
        AccessGate.resolve_attendee(db_session, "no-such-token")

def test_resolve_token_of_archived_event(db_session, attendee):
    """Test archived events are reported as gone, with their subject"""
    EventLifecycle.archive(db_session, attendee.event_id)

    with pytest.raises(EventGoneError) as exc_info:
        AccessGate.resolve_attendee(db_session, attendee.access_token)
    assert exc_info.value.details["subject"] == "Housewarming"
    assert exc_info.value.details["closed_at"] is not None

    found, event = AccessGate.resolve_attendee(db_session, attendee.access_token, allow_archived=True)
    assert event.status == EventStatus.ARCHIVED

def test_access_tokens_are_unique_and_long(db_session):
    event = Event(subject="Party", gift_receiver_name="Jo")
    for i in range(20):
        event.attendees.append(Attendee(name=f"Guest {i}", email=f"g{i}@example.com"))
    db_session.add(event)
    db_session.commit()

    tokens = [a.access_token for a in event.attendees]
    assert len(set(tokens)) == 20
    assert all(len(t) >= 43 for t in tokens)

def test_default_admin_seeded_once(db_session):
    """Test startup seeding only runs against an empty admin table"""
    first = ensure_default_admin(db_session)
    assert first.username == settings.DEFAULT_ADMIN_USERNAME
    assert verify_password(settings.DEFAULT_ADMIN_PASSWORD, first.password_hash)

    assert ensure_default_admin(db_session) is None
    assert db_session.query(AdminUser).count() == 1
