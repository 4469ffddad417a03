"""
Admin API routes - requires authentication
"""

import os
from fastapi import APIRouter, BackgroundTasks, Depends, UploadFile, File, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from gifttable.api.deps import require_admin
from gifttable.core.config import settings
from gifttable.core.db import get_db
from gifttable.core.exceptions import ValidationFailed
from gifttable.models import EventStatus
from gifttable.schemas.attendee import AttendeeBulkCreate, AttendeeUpdate
from gifttable.schemas.event import EventCreate, EventUpdate, EventResponse
from gifttable.schemas.gift_item import GiftItemCreate, GiftItemUpdate
from gifttable.services.event_service import EventService
from gifttable.services.excel_service import ExcelService
from gifttable.services.lifecycle_service import EventLifecycle
from gifttable.services.notification_service import notifier, EventSnapshot, GiftSnapshot, Recipient
from gifttable.services.qr_service import QRService
from gifttable.services.repositories import AttendeeRepo
from gifttable.utils.responses import success_response

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

router = APIRouter(dependencies=[Depends(require_admin)])

# -------- events --------

@router.get("/events")
def list_events(db: Session = Depends(get_db)):
    """List events, newest first, with attendee and gift counts"""
    return success_response(
        message="Events retrieved successfully",
        data=EventService.list_events(db)
    )

@router.post("/events")
def create_event(event_data: EventCreate, db: Session = Depends(get_db)):
    """Create a draft event, optionally with its invitee list"""
    event = EventService.create_event(db, event_data)
    return success_response(
        message="Event created successfully",
        data=EventService.event_details(db, event.id),
        status_code=201
    )

@router.get("/events/{event_id}")
def get_event_details(event_id: int, db: Session = Depends(get_db)):
    return success_response(
        message="Event details retrieved",
        data=EventService.event_details(db, event_id)
    )

@router.put("/events/{event_id}")
def update_event(event_id: int, event_data: EventUpdate, db: Session = Depends(get_db)):
    EventService.update_event(db, event_id, event_data)
    return success_response(
        message="Event updated successfully",
        data=EventService.event_details(db, event_id)
    )

@router.post("/events/{event_id}/publish")
def publish_event(
    event_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Publish a draft event and email every attendee their link"""
    transitioned = EventLifecycle.publish(db, event_id)
    event = EventService.get_event(db, event_id)

    if transitioned:
        background_tasks.add_task(
            notifier.send_event_published,
            EventSnapshot.of(event),
            [Recipient.of(a) for a in AttendeeRepo.list_for_event(db, event_id)]
        )

    return success_response(
        message="Event published successfully" if transitioned else "Event was already published",
        data=EventResponse.model_validate(event)
    )

@router.post("/events/{event_id}/draft")
def revert_event_to_draft(event_id: int, db: Session = Depends(get_db)):
    transitioned = EventLifecycle.revert_to_draft(db, event_id)
    return success_response(
        message="Event set to draft successfully" if transitioned else "Event was already a draft",
        data=EventResponse.model_validate(EventService.get_event(db, event_id))
    )

@router.post("/events/{event_id}/archive")
def archive_event(event_id: int, db: Session = Depends(get_db)):
    transitioned = EventLifecycle.archive(db, event_id)
    return success_response(
        message="Event archived successfully" if transitioned else "Event was already archived",
        data=EventResponse.model_validate(EventService.get_event(db, event_id))
    )

@router.post("/events/{event_id}/clone")
def clone_event(event_id: int, db: Session = Depends(get_db)):
    """Start a new draft with the same invitee list but no gifts"""
    clone = EventLifecycle.clone(db, event_id)
    return success_response(
        message="Event cloned successfully",
        data=EventService.event_details(db, clone.id),
        status_code=201
    )

@router.delete("/events/{event_id}")
def delete_event(
    event_id: int,
    confirm: bool = Query(False, description="Required to delete a published event"),
    db: Session = Depends(get_db)
):
    EventLifecycle.delete(db, event_id, confirm=confirm)
    return success_response(
        message="Event deleted successfully",
        data={"deleted_event_id": event_id}
    )

@router.get("/events/{event_id}/export.xlsx")
def export_event(event_id: int, db: Session = Depends(get_db)):
    """Download the gift list with selections and the attendee links"""
    event = EventService.get_event(db, event_id)
    excel_content = ExcelService.export_event(event, db)

    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=gift_list_{event.id}.xlsx"}
    )

# -------- attendees --------

def _invite_if_published(background_tasks: BackgroundTasks, db: Session, event_id: int, attendees):
    event = EventService.get_event(db, event_id)
    if event.status == EventStatus.PUBLISHED and attendees:
        background_tasks.add_task(
            notifier.send_attendee_invited,
            EventSnapshot.of(event),
            [Recipient.of(a) for a in attendees]
        )

@router.post("/events/{event_id}/attendees")
def add_attendees(
    event_id: int,
    payload: AttendeeBulkCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    created = EventService.add_attendees(db, event_id, payload.attendees)
    _invite_if_published(background_tasks, db, event_id, created)

    return success_response(
        message=f"{len(created)} attendees added",
        data=[EventService.serialize_attendee(a) for a in AttendeeRepo.list_for_event(db, event_id)]
    )

@router.get("/attendees/template.xlsx")
def download_attendee_template():
    """Download an Excel template for attendee import"""
    return Response(
        content=ExcelService.create_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=attendee_template.xlsx"}
    )

@router.post("/events/{event_id}/attendees/import")
def import_attendees(
    event_id: int,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    db: Session = Depends(get_db)
):
    """Add attendees from an uploaded Excel sheet (Name, Email columns)"""
    if not file.filename or os.path.splitext(file.filename)[1].lower() != ".xlsx":
        raise ValidationFailed("Invalid file format. Please upload an Excel file (.xlsx)")

    file_content = file.file.read(settings.MAX_UPLOAD_SIZE + 1)
    if len(file_content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationFailed("File is too large")

    created = ExcelService.import_attendees(file_content, event_id, db)
    _invite_if_published(background_tasks, db, event_id, created)

    return success_response(
        message=f"Excel file processed successfully. {len(created)} attendees imported.",
        data={
            "processed_count": len(created),
            "filename": file.filename,
            "attendees": [EventService.serialize_attendee(a) for a in created]
        }
    )

@router.put("/attendees/{attendee_id}")
def update_attendee(attendee_id: int, payload: AttendeeUpdate, db: Session = Depends(get_db)):
    attendee = EventService.update_attendee(db, attendee_id, payload)
    return success_response(
        message="Attendee updated successfully",
        data=EventService.serialize_attendee(attendee)
    )

@router.delete("/attendees/{attendee_id}")
def delete_attendee(attendee_id: int, db: Session = Depends(get_db)):
    EventService.delete_attendee(db, attendee_id)
    return success_response(
        message="Attendee deleted successfully",
        data={"deleted_attendee_id": attendee_id}
    )

@router.get("/attendees/{attendee_id}/qr.png")
def get_attendee_qr(attendee_id: int, db: Session = Depends(get_db)):
    """QR code of the attendee's invitation link"""
    attendee = EventService.get_attendee(db, attendee_id)
    return Response(
        content=QRService.generate_invitation_qr(attendee),
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=invitation_{attendee.id}.png"}
    )

# -------- gift items --------

@router.get("/events/{event_id}/gift-items")
def list_gift_items(event_id: int, db: Session = Depends(get_db)):
    items = EventService.list_gift_items(db, event_id)
    return success_response(
        message="Gift items retrieved successfully",
        data=[EventService.serialize_gift_item(i) for i in items]
    )

@router.post("/events/{event_id}/gift-items")
def create_gift_item(
    event_id: int,
    payload: GiftItemCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Add a gift item; attendees of a published event hear about it"""
    item = EventService.add_gift_item(db, event_id, payload)
    event = EventService.get_event(db, event_id)

    if event.status == EventStatus.PUBLISHED:
        background_tasks.add_task(
            notifier.send_new_gift_item,
            EventSnapshot.of(event),
            GiftSnapshot.of(item),
            [Recipient.of(a) for a in AttendeeRepo.list_for_event(db, event_id)]
        )

    return success_response(
        message="Gift item created successfully",
        data=EventService.serialize_gift_item(item),
        status_code=201
    )

@router.put("/gift-items/{gift_item_id}")
def update_gift_item(gift_item_id: int, payload: GiftItemUpdate, db: Session = Depends(get_db)):
    item = EventService.update_gift_item(db, gift_item_id, payload)
    return success_response(
        message="Gift item updated successfully",
        data=EventService.serialize_gift_item(item)
    )

@router.delete("/gift-items/{gift_item_id}")
def delete_gift_item(gift_item_id: int, db: Session = Depends(get_db)):
    EventService.delete_gift_item(db, gift_item_id)
    return success_response(
        message="Gift item deleted successfully",
        data={"deleted_gift_item_id": gift_item_id}
    )
