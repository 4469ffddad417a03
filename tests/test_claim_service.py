"""
Tests for the gift claim engine
"""

import threading

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from gifttable.core.db import Base, make_engine, make_session_factory
from gifttable.core.exceptions import ClaimNotHeld, LifecycleViolation, NotFoundError
from gifttable.models import Attendee, Event, EventStatus, GiftItem
from gifttable.services.claim_service import ClaimService
from gifttable.services.event_service import EventService
from gifttable.services.lifecycle_service import EventLifecycle

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_claims.db"
engine = make_engine(SQLALCHEMY_DATABASE_URL, busy_timeout=30)
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

def make_event(db, status=EventStatus.PUBLISHED, attendees=2, gifts=2):
    event = Event(subject="Mia's Birthday", gift_receiver_name="Mia", status=status)
    for i in range(attendees):
        event.attendees.append(Attendee(name=f"Attendee {i}", email=f"attendee{i}@example.com"))
    for i in range(gifts):
        event.gift_items.append(GiftItem(name=f"Gift {i}", price=10 + i, store_urls=[]))
    db.add(event)
    db.commit()
    db.refresh(event)
    return event

@pytest.fixture
def published_event(db_session):
    return make_event(db_session)

def test_claim_unclaimed_item(db_session, published_event):
    """Test claiming a free item records the claimant and time"""
    alice = published_event.attendees[0]
    gift = published_event.gift_items[0]

    assert ClaimService.claim(db_session, gift.id, alice.id) is True

    db_session.refresh(gift)
    assert gift.claimed_by_attendee_id == alice.id
    assert gift.claimed_at is not None

def test_claim_already_claimed_item_is_conflict(db_session, published_event):
    """Test second claimant loses without an error and the first claim stays"""
    alice, bob = published_event.attendees
    gift = published_event.gift_items[0]

    assert ClaimService.claim(db_session, gift.id, alice.id) is True
    assert ClaimService.claim(db_session, gift.id, bob.id) is False

    db_session.refresh(gift)
    assert gift.claimed_by_attendee_id == alice.id

def test_claim_own_item_again_is_conflict(db_session, published_event):
    alice = published_event.attendees[0]
    gift = published_event.gift_items[0]

    assert ClaimService.claim(db_session, gift.id, alice.id) is True
    assert ClaimService.claim(db_session, gift.id, alice.id) is False

def test_claim_item_from_other_event_not_found(db_session, published_event):
    """Test attendees cannot reach gift items of another event"""
    other = make_event(db_session, attendees=0, gifts=1)
    alice = published_event.attendees[0]

    with pytest.raises(NotFoundError):
        ClaimService.claim(db_session, other.gift_items[0].id, alice.id)

def test_claim_unknown_item_not_found(db_session, published_event):
    with pytest.raises(NotFoundError):
        ClaimService.claim(db_session, 99999, published_event.attendees[0].id)

@pytest.mark.parametrize("status", [EventStatus.DRAFT, EventStatus.ARCHIVED])
def test_claim_requires_published_event(db_session, status):
    """Test claims are rejected outside the published state"""
    event = make_event(db_session, status=status)

    with pytest.raises(LifecycleViolation):
        ClaimService.claim(db_session, event.gift_items[0].id, event.attendees[0].id)

    gift = db_session.get(GiftItem, event.gift_items[0].id)
    assert gift.claimed_by_attendee_id is None

def test_release_by_claimant(db_session, published_event):
    alice = published_event.attendees[0]
    gift = published_event.gift_items[0]
    ClaimService.claim(db_session, gift.id, alice.id)

    ClaimService.release(db_session, gift.id, alice.id)

    db_session.refresh(gift)
    assert gift.claimed_by_attendee_id is None
    assert gift.claimed_at is None

def test_release_by_other_attendee_rejected(db_session, published_event):
    """Test only the claimant can release an item"""
    alice, bob = published_event.attendees
    gift = published_event.gift_items[0]
    ClaimService.claim(db_session, gift.id, alice.id)

    with pytest.raises(ClaimNotHeld):
        ClaimService.release(db_session, gift.id, bob.id)

    db_session.refresh(gift)
    assert gift.claimed_by_attendee_id == alice.id

def test_release_unclaimed_item_rejected(db_session, published_event):
    with pytest.raises(ClaimNotHeld):
        ClaimService.release(
            db_session, published_event.gift_items[0].id, published_event.attendees[0].id
        )

def test_release_after_archive_rejected(db_session, published_event):
    """Test claims are frozen once the event is archived"""
    alice = published_event.attendees[0]
    gift = published_event.gift_items[0]
    ClaimService.claim(db_session, gift.id, alice.id)
    EventLifecycle.archive(db_session, published_event.id)

    with pytest.raises(LifecycleViolation):
        ClaimService.release(db_session, gift.id, alice.id)

    db_session.refresh(gift)
    assert gift.claimed_by_attendee_id == alice.id

def test_claims_survive_revert_to_draft(db_session, published_event):
    alice = published_event.attendees[0]
    gift = published_event.gift_items[0]
    ClaimService.claim(db_session, gift.id, alice.id)

    EventLifecycle.revert_to_draft(db_session, published_event.id)

    assert [g.id for g in ClaimService.claims_for(db_session, alice.id)] == [gift.id]
    with pytest.raises(LifecycleViolation):
        ClaimService.release(db_session, gift.id, alice.id)

def after_claimable_check(monkeypatch, action):
    """Run action(other_session, event_id) once the published check has passed"""
    original = EventLifecycle.ensure_claimable

    def check_then_act(event):
        original(event)
        other = TestingSessionLocal()
        try:
            action(other, event.id)
        finally:
            other.close()

    monkeypatch.setattr(EventLifecycle, "ensure_claimable", staticmethod(check_then_act))

@pytest.mark.parametrize("close", [EventLifecycle.archive, EventLifecycle.revert_to_draft])
def test_claim_racing_status_change_rejected(db_session, published_event, monkeypatch, close):
    """Test a claim whose event closes between the check and the write is a lifecycle error"""
    alice_id = published_event.attendees[0].id
    gift_id = published_event.gift_items[0].id
    after_claimable_check(monkeypatch, close)

    with pytest.raises(LifecycleViolation):
        ClaimService.claim(db_session, gift_id, alice_id)

    db_session.expire_all()
    gift = db_session.get(GiftItem, gift_id)
    assert gift.claimed_by_attendee_id is None
    assert gift.claimed_at is None

@pytest.mark.parametrize("close", [EventLifecycle.archive, EventLifecycle.revert_to_draft])
def test_release_racing_status_change_rejected(db_session, published_event, monkeypatch, close):
    """Test a release whose event closes between the check and the write keeps the claim"""
    alice_id = published_event.attendees[0].id
    gift_id = published_event.gift_items[0].id
    assert ClaimService.claim(db_session, gift_id, alice_id) is True
    claimed_at = db_session.get(GiftItem, gift_id).claimed_at
    after_claimable_check(monkeypatch, close)

    with pytest.raises(LifecycleViolation):
        ClaimService.release(db_session, gift_id, alice_id)

    db_session.expire_all()
    gift = db_session.get(GiftItem, gift_id)
    assert gift.claimed_by_attendee_id == alice_id
    assert gift.claimed_at == claimed_at

def test_claim_by_attendee_removed_mid_request(db_session, published_event, monkeypatch):
    """Test a claimant deleted after their token resolved gets not-found and the item stays free"""
    alice_id = published_event.attendees[0].id
    gift_id = published_event.gift_items[0].id
    after_claimable_check(monkeypatch, lambda other, event_id: EventService.delete_attendee(other, alice_id))

    with pytest.raises(NotFoundError):
        ClaimService.claim(db_session, gift_id, alice_id)

    db_session.expire_all()
    gift = db_session.get(GiftItem, gift_id)
    assert gift.claimed_by_attendee_id is None
    assert gift.claimed_at is None
    assert db_session.get(Attendee, alice_id) is None

def test_claims_for_lists_only_own_items(db_session, published_event):
    alice, bob = published_event.attendees
    first, second = published_event.gift_items
    ClaimService.claim(db_session, first.id, alice.id)
    ClaimService.claim(db_session, second.id, bob.id)

    assert [g.id for g in ClaimService.claims_for(db_session, alice.id)] == [first.id]
    assert [g.id for g in ClaimService.claims_for(db_session, bob.id)] == [second.id]

def test_concurrent_claims_have_exactly_one_winner(db_session):
    """Test N simultaneous claims on one item produce a single winner"""
    n = 8
    event = make_event(db_session, attendees=n, gifts=1)
    gift_id = event.gift_items[0].id
    attendee_ids = [a.id for a in event.attendees]

    barrier = threading.Barrier(n)
    results = {}
    errors = []

    def worker(attendee_id):
        db = TestingSessionLocal()
        try:
            barrier.wait()
            results[attendee_id] = ClaimService.claim(db, gift_id, attendee_id)
        except Exception as e:
            errors.append(e)
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(aid,)) for aid in attendee_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    winners = [aid for aid, won in results.items() if won]
    assert len(winners) == 1
    assert sum(1 for won in results.values() if won is False) == n - 1

    db_session.expire_all()
    gift = db_session.get(GiftItem, gift_id)
    assert gift.claimed_by_attendee_id == winners[0]
    assert gift.claimed_at is not None

def test_claim_pair_is_all_or_nothing(db_session, published_event):
    """Test the store rejects a claimant without a claim time"""
    gift = published_event.gift_items[0]

    with pytest.raises(IntegrityError):
        db_session.execute(
            text("UPDATE gift_items SET claimed_by_attendee_id = :a WHERE id = :g"),
            {"a": published_event.attendees[0].id, "g": gift.id},
        )
        db_session.commit()
    db_session.rollback()
