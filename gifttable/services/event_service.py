"""
Event, attendee and gift item management for the organizer, plus the
read-only views handed to attendees.

All writes go through the lifecycle guards: nothing that belongs to an
archived event can be added, edited or removed.
"""

import logging
from typing import Dict, Iterable, List

from sqlalchemy import update, delete
from sqlalchemy.orm import Session

from gifttable.core.config import settings
from gifttable.core.exceptions import NotFoundError, ValidationFailed
from gifttable.models import Attendee, Event, EventStatus, GiftItem, NotificationLog
from gifttable.schemas.attendee import AttendeeCreate, AttendeeUpdate, AttendeeResponse
from gifttable.schemas.event import EventCreate, EventUpdate, EventResponse, EventSummary
from gifttable.schemas.gift_item import (
    GiftItemCreate, GiftItemUpdate, GiftItemResponse, AttendeeGiftItemView
)
from gifttable.services.lifecycle_service import EventLifecycle
from gifttable.services.repositories import AttendeeRepo, EventRepo, GiftItemRepo

logger = logging.getLogger(__name__)


def invitation_url(attendee: Attendee) -> str:
    return f"{settings.BASE_URL}/event/{attendee.access_token}"


class EventService:
    """Organizer-side operations on events and what they own"""

    # -------- serializers --------

    @staticmethod
    def serialize_attendee(attendee: Attendee) -> AttendeeResponse:
        return AttendeeResponse(
            id=attendee.id,
            event_id=attendee.event_id,
            name=attendee.name,
            email=attendee.email,
            access_token=attendee.access_token,
            invitation_url=invitation_url(attendee),
            created_at=attendee.created_at,
        )

    @staticmethod
    def serialize_gift_item(item: GiftItem) -> GiftItemResponse:
        claimant = item.claimed_by
        return GiftItemResponse(
            id=item.id,
            event_id=item.event_id,
            name=item.name,
            price=item.price,
            store_urls=item.store_urls or [],
            claimed_by_attendee_id=item.claimed_by_attendee_id,
            claimed_by_name=claimant.name if claimant else None,
            claimed_by_email=claimant.email if claimant else None,
            claimed_at=item.claimed_at,
            created_at=item.created_at,
        )

    @staticmethod
    def attendee_gift_view(item: GiftItem, attendee_id: int) -> AttendeeGiftItemView:
        claimant = item.claimed_by
        return AttendeeGiftItemView(
            id=item.id,
            name=item.name,
            price=item.price,
            store_urls=item.store_urls or [],
            claimed=item.is_claimed,
            claimed_by_name=claimant.name if claimant else None,
            claimed_by_me=item.claimed_by_attendee_id == attendee_id,
            claimed_at=item.claimed_at,
        )

    # -------- events --------

    @staticmethod
    def get_event(db: Session, event_id: int) -> Event:
        event = EventRepo.get_by_id(db, event_id)
        if not event:
            raise NotFoundError("Event")
        return event

    @staticmethod
    def list_events(db: Session) -> List[EventSummary]:
        return [
            EventSummary(
                **EventResponse.model_validate(event).model_dump(),
                attendee_count=attendee_count,
                gift_count=gift_count,
            )
            for event, attendee_count, gift_count in EventRepo.list_with_counts(db)
        ]

    @staticmethod
    def event_details(db: Session, event_id: int) -> Dict:
        event = EventService.get_event(db, event_id)
        return {
            **EventResponse.model_validate(event).model_dump(),
            "attendees": [
                EventService.serialize_attendee(a) for a in AttendeeRepo.list_for_event(db, event.id)
            ],
            "gift_items": [
                EventService.serialize_gift_item(g) for g in GiftItemRepo.list_for_event(db, event.id)
            ],
        }

    @staticmethod
    def create_event(db: Session, data: EventCreate) -> Event:
        EventService._check_unique_emails(a.email for a in data.attendees)

        event = Event(
            subject=data.subject.strip(),
            description=data.description,
            gift_receiver_name=data.gift_receiver_name.strip(),
            status=EventStatus.DRAFT,
        )
        for invitee in data.attendees:
            event.attendees.append(Attendee(name=invitee.name.strip(), email=invitee.email))

        db.add(event)
        db.commit()
        db.refresh(event)
        logger.info(f"Event {event.id} created with {len(data.attendees)} attendees")
        return event

    @staticmethod
    def update_event(db: Session, event_id: int, data: EventUpdate) -> Event:
        event = EventLifecycle.lock_event(db, event_id)
        EventLifecycle.ensure_mutable(event)

        event.subject = data.subject.strip()
        event.description = data.description
        event.gift_receiver_name = data.gift_receiver_name.strip()
        EventLifecycle.commit_mutation(db, event_id)
        db.refresh(event)
        return event

    # -------- attendees --------

    @staticmethod
    def _check_unique_emails(emails: Iterable[str], existing: set = frozenset()) -> None:
        seen = set()
        duplicates = []
        for email in emails:
            key = email.lower()
            if key in seen or key in existing:
                duplicates.append(email)
            seen.add(key)
        if duplicates:
            raise ValidationFailed(
                "Attendee emails must be unique within an event",
                details={"duplicates": duplicates},
            )

    @staticmethod
    def get_attendee(db: Session, attendee_id: int) -> Attendee:
        attendee = AttendeeRepo.get_by_id(db, attendee_id)
        if not attendee:
            raise NotFoundError("Attendee")
        return attendee

    @staticmethod
    def add_attendees(db: Session, event_id: int, invitees: List[AttendeeCreate]) -> List[Attendee]:
        event = EventLifecycle.lock_event(db, event_id)
        EventLifecycle.ensure_mutable(event)
        EventService._check_unique_emails(
            (i.email for i in invitees), AttendeeRepo.emails_for_event(db, event_id)
        )

        created = [Attendee(event_id=event.id, name=i.name.strip(), email=i.email) for i in invitees]
        db.add_all(created)
        EventLifecycle.commit_mutation(db, event_id)
        for attendee in created:
            db.refresh(attendee)
        logger.info(f"Added {len(created)} attendees to event {event_id}")
        return created

    @staticmethod
    def update_attendee(db: Session, attendee_id: int, data: AttendeeUpdate) -> Attendee:
        attendee = EventService.get_attendee(db, attendee_id)
        event = EventLifecycle.lock_event(db, attendee.event_id)
        EventLifecycle.ensure_mutable(event)

        if data.email and data.email.lower() != attendee.email.lower():
            others = AttendeeRepo.emails_for_event(db, event.id) - {attendee.email.lower()}
            EventService._check_unique_emails([data.email], others)
            attendee.email = data.email
        if data.name:
            attendee.name = data.name.strip()

        EventLifecycle.commit_mutation(db, event.id)
        db.refresh(attendee)
        return attendee

    @staticmethod
    def delete_attendee(db: Session, attendee_id: int) -> None:
        attendee = EventService.get_attendee(db, attendee_id)
        event = EventLifecycle.lock_event(db, attendee.event_id)
        EventLifecycle.ensure_mutable(event)
        event_id = event.id
        # row-locking stores: hold off new claims by this attendee until the delete commits
        AttendeeRepo.get_for_update(db, attendee_id)

        # clear both claim columns together before the row goes away
        db.execute(
            update(GiftItem)
            .where(GiftItem.claimed_by_attendee_id == attendee_id)
            .values(claimed_by_attendee_id=None, claimed_at=None)
            .execution_options(synchronize_session=False)
        )
        db.execute(
            delete(NotificationLog)
            .where(NotificationLog.attendee_id == attendee_id)
            .execution_options(synchronize_session=False)
        )
        db.execute(
            delete(Attendee)
            .where(Attendee.id == attendee_id)
            .execution_options(synchronize_session=False)
        )
        EventLifecycle.commit_mutation(db, event_id)
        db.expunge_all()
        logger.info(f"Attendee {attendee_id} removed from event {event_id}")

    # -------- gift items --------

    @staticmethod
    def get_gift_item(db: Session, gift_item_id: int) -> GiftItem:
        item = GiftItemRepo.get_by_id(db, gift_item_id)
        if not item:
            raise NotFoundError("Gift item")
        return item

    @staticmethod
    def list_gift_items(db: Session, event_id: int) -> List[GiftItem]:
        EventService.get_event(db, event_id)
        return GiftItemRepo.list_for_event(db, event_id)

    @staticmethod
    def add_gift_item(db: Session, event_id: int, data: GiftItemCreate) -> GiftItem:
        event = EventLifecycle.lock_event(db, event_id)
        EventLifecycle.ensure_mutable(event)

        item = GiftItem(
            event_id=event.id,
            name=data.name.strip(),
            price=data.price,
            store_urls=list(data.store_urls),
        )
        db.add(item)
        EventLifecycle.commit_mutation(db, event_id)
        db.refresh(item)
        logger.info(f"Gift item {item.id} added to event {event_id}")
        return item

    @staticmethod
    def update_gift_item(db: Session, gift_item_id: int, data: GiftItemUpdate) -> GiftItem:
        item = EventService.get_gift_item(db, gift_item_id)
        event = EventLifecycle.lock_event(db, item.event_id)
        EventLifecycle.ensure_mutable(event)

        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] is not None:
            item.name = changes["name"].strip()
        if "price" in changes:
            item.price = changes["price"]
        if "store_urls" in changes and changes["store_urls"] is not None:
            item.store_urls = list(changes["store_urls"])

        EventLifecycle.commit_mutation(db, event.id)
        db.refresh(item)
        return item

    @staticmethod
    def delete_gift_item(db: Session, gift_item_id: int) -> None:
        item = EventService.get_gift_item(db, gift_item_id)
        event = EventLifecycle.lock_event(db, item.event_id)
        EventLifecycle.ensure_mutable(event)
        event_id = event.id

        db.delete(item)
        EventLifecycle.commit_mutation(db, event_id)
        logger.info(f"Gift item {gift_item_id} deleted from event {event_id}")

    # -------- attendee-facing views --------

    @staticmethod
    def attendee_view(db: Session, attendee: Attendee, event: Event) -> Dict:
        items = GiftItemRepo.list_for_event(db, event.id)
        return {
            "event": {
                "id": event.id,
                "subject": event.subject,
                "description": event.description,
                "gift_receiver_name": event.gift_receiver_name,
                "status": event.status.value,
            },
            "attendee": {
                "id": attendee.id,
                "name": attendee.name,
                "email": attendee.email,
            },
            "gift_items": [EventService.attendee_gift_view(i, attendee.id) for i in items],
            "selected_items": [
                EventService.attendee_gift_view(i, attendee.id)
                for i in GiftItemRepo.list_claimed_by(db, attendee.id)
            ],
        }
