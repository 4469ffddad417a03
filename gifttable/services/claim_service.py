"""
Gift claim engine.

A claim is one conditional UPDATE ("set claimant where claimant is null"),
never a read followed by a write, so the store's per-row atomicity decides
which of several simultaneous claims wins. Both claim and release also carry
the "event is published" predicate inside the UPDATE, so a claim racing an
archive or a revert cannot land on a closed event.
"""

import logging
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import update, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gifttable.core.exceptions import ClaimNotHeld, LifecycleViolation, NotFoundError
from gifttable.models import Event, EventStatus, GiftItem
from gifttable.services.lifecycle_service import EventLifecycle
from gifttable.services.repositories import AttendeeRepo, EventRepo, GiftItemRepo

logger = logging.getLogger(__name__)


def _published_event_ids():
    return select(Event.id).where(Event.status == EventStatus.PUBLISHED)


class ClaimService:
    """Atomic claim / release of gift items by attendees"""

    @staticmethod
    def _load_scoped(db: Session, gift_item_id: int, attendee_id: int) -> Tuple[GiftItem, Event]:
        """The gift item must belong to the attendee's own event"""
        attendee = AttendeeRepo.get_by_id(db, attendee_id)
        if not attendee:
            raise NotFoundError("Attendee")

        gift_item = GiftItemRepo.get_in_event(db, gift_item_id, attendee.event_id)
        if not gift_item:
            raise NotFoundError("Gift item")

        return gift_item, attendee.event

    @staticmethod
    def _recheck_lifecycle(db: Session, event_id: int) -> None:
        """After a write matched nothing, tell a status change apart from a lost race"""
        status = EventRepo.get_status(db, event_id)
        if status is None:
            raise NotFoundError("Event")
        if status != EventStatus.PUBLISHED:
            raise LifecycleViolation(
                "Gift selections are only open while the event is published",
                details={"status": status.value},
            )

    @staticmethod
    def claim(db: Session, gift_item_id: int, attendee_id: int) -> bool:
        """Claim a gift item for an attendee.

        Returns True when this attendee now holds the item and False when
        someone else got there first. Losing is an expected outcome, not an
        error, and is never retried.
        """
        gift_item, event = ClaimService._load_scoped(db, gift_item_id, attendee_id)
        EventLifecycle.ensure_claimable(event)
        event_id = event.id

        try:
            result = db.execute(
                update(GiftItem)
                .where(
                    GiftItem.id == gift_item_id,
                    GiftItem.claimed_by_attendee_id.is_(None),
                    GiftItem.event_id.in_(_published_event_ids()),
                )
                .values(claimed_by_attendee_id=attendee_id, claimed_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except IntegrityError:
            # the attendee row was removed after it was loaded
            db.rollback()
            logger.info(f"Claim on gift item {gift_item_id} by removed attendee {attendee_id}")
            raise NotFoundError("Attendee")

        if result.rowcount == 1:
            logger.info(f"Gift item {gift_item_id} claimed by attendee {attendee_id}")
            return True

        ClaimService._recheck_lifecycle(db, event_id)
        logger.info(f"Claim conflict on gift item {gift_item_id} for attendee {attendee_id}")
        return False

    @staticmethod
    def release(db: Session, gift_item_id: int, attendee_id: int) -> None:
        """Release a claim; only the current claimant may do so"""
        gift_item, event = ClaimService._load_scoped(db, gift_item_id, attendee_id)
        EventLifecycle.ensure_claimable(event)
        event_id = event.id

        result = db.execute(
            update(GiftItem)
            .where(
                GiftItem.id == gift_item_id,
                GiftItem.claimed_by_attendee_id == attendee_id,
                GiftItem.event_id.in_(_published_event_ids()),
            )
            .values(claimed_by_attendee_id=None, claimed_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        if result.rowcount == 1:
            logger.info(f"Gift item {gift_item_id} released by attendee {attendee_id}")
            return

        ClaimService._recheck_lifecycle(db, event_id)
        raise ClaimNotHeld("You can only unselect items you have selected")

    @staticmethod
    def claims_for(db: Session, attendee_id: int) -> List[GiftItem]:
        """Gift items the attendee currently holds, oldest claim first"""
        return GiftItemRepo.list_claimed_by(db, attendee_id)
