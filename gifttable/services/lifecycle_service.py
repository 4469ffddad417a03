"""
Event lifecycle: draft -> published -> archived, with published -> draft revert.

Every transition is a single conditional UPDATE guarded on the source status,
so two admins racing on the same event cannot both move it. Asking for the
status the event already has is accepted as a no-op (the call returns False
and no side effect fires); any other illegal source status is rejected.
"""

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import update, delete
from sqlalchemy.orm import Session

from gifttable.core.exceptions import LifecycleViolation, NotFoundError
from gifttable.models import Event, EventStatus, Attendee, GiftItem, NotificationLog
from gifttable.services.repositories import EventRepo, AttendeeRepo

logger = logging.getLogger(__name__)


class EventLifecycle:
    """State machine governing which operations are legal per event status"""

    @staticmethod
    def _transition(
        db: Session,
        event_id: int,
        allowed_from: Iterable[EventStatus],
        target: EventStatus,
        stamp: str = None
    ) -> bool:
        now = datetime.utcnow()
        values = {"status": target, "updated_at": now}
        if stamp:
            values[stamp] = now

        result = db.execute(
            update(Event)
            .where(Event.id == event_id, Event.status.in_(list(allowed_from)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        if result.rowcount == 1:
            logger.info(f"Event {event_id} moved to {target.value}")
            return True

        current = EventRepo.get_status(db, event_id)
        if current is None:
            raise NotFoundError("Event")
        if current == target:
            logger.info(f"Event {event_id} already {target.value}; nothing to do")
            return False
        raise LifecycleViolation(
            f"Cannot move a {current.value} event to {target.value}",
            details={"status": current.value},
        )

    @staticmethod
    def publish(db: Session, event_id: int) -> bool:
        """draft -> published, stamping the publish time"""
        return EventLifecycle._transition(
            db, event_id, [EventStatus.DRAFT], EventStatus.PUBLISHED, stamp="published_at"
        )

    @staticmethod
    def revert_to_draft(db: Session, event_id: int) -> bool:
        """published -> draft; claims stay but attendees can no longer change them"""
        return EventLifecycle._transition(
            db, event_id, [EventStatus.PUBLISHED], EventStatus.DRAFT
        )

    @staticmethod
    def archive(db: Session, event_id: int) -> bool:
        """draft|published -> archived, stamping the close time"""
        return EventLifecycle._transition(
            db, event_id, [EventStatus.DRAFT, EventStatus.PUBLISHED], EventStatus.ARCHIVED,
            stamp="closed_at"
        )

    @staticmethod
    def clone(db: Session, event_id: int) -> Event:
        """Copy an event and its invitee list into a new draft.

        Attendees get fresh access tokens; gift items and claims stay behind.
        """
        source = EventRepo.get_by_id(db, event_id)
        if not source:
            raise NotFoundError("Event")

        clone = Event(
            subject=source.subject,
            description=source.description,
            gift_receiver_name=source.gift_receiver_name,
            status=EventStatus.DRAFT,
        )
        for attendee in AttendeeRepo.list_for_event(db, source.id):
            clone.attendees.append(Attendee(name=attendee.name, email=attendee.email))

        db.add(clone)
        db.commit()
        db.refresh(clone)
        logger.info(f"Event {event_id} cloned into {clone.id} with {len(clone.attendees)} attendees")
        return clone

    @staticmethod
    def delete(db: Session, event_id: int, confirm: bool = False) -> None:
        """Delete an event with its attendees, gift items and notification log.

        Published events are live for attendees, so deleting one needs an
        explicit confirmation.
        """
        event = EventRepo.get_for_update(db, event_id)
        if not event:
            raise NotFoundError("Event")
        if event.status == EventStatus.PUBLISHED and not confirm:
            db.rollback()
            raise LifecycleViolation(
                "Event is published; confirm the deletion to proceed",
                details={"status": event.status.value, "confirm_required": True},
            )

        # children first so no set-null action fires on rows about to vanish
        db.execute(delete(GiftItem).where(GiftItem.event_id == event_id))
        db.execute(delete(NotificationLog).where(NotificationLog.event_id == event_id))
        db.execute(delete(Attendee).where(Attendee.event_id == event_id))
        db.execute(delete(Event).where(Event.id == event_id))
        db.commit()
        db.expunge_all()
        logger.info(f"Event {event_id} deleted")

    # -------- guards --------

    @staticmethod
    def lock_event(db: Session, event_id: int) -> Event:
        """Load an event for an admin write, serializing against status changes"""
        event = EventRepo.get_for_update(db, event_id)
        if not event:
            raise NotFoundError("Event")
        return event

    @staticmethod
    def ensure_mutable(event: Event) -> None:
        if event.status == EventStatus.ARCHIVED:
            raise LifecycleViolation(
                "This event is archived and can no longer be changed",
                details={"status": event.status.value},
            )

    @staticmethod
    def commit_mutation(db: Session, event_id: int) -> None:
        """Flush an admin write, re-read the status inside that write
        transaction, and commit only if the event is still open.

        The flushed write holds the store's write lock, so an archive can no
        longer slip in between this check and the commit.
        """
        db.flush()
        if EventRepo.get_status(db, event_id) == EventStatus.ARCHIVED:
            db.rollback()
            raise LifecycleViolation(
                "This event is archived and can no longer be changed",
                details={"status": EventStatus.ARCHIVED.value},
            )
        db.commit()

    @staticmethod
    def ensure_claimable(event: Event) -> None:
        if event.status != EventStatus.PUBLISHED:
            raise LifecycleViolation(
                "Gift selections are only open while the event is published",
                details={"status": event.status.value},
            )
