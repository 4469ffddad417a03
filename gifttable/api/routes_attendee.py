"""
Attendee-facing API routes, keyed by the invitation token
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from gifttable.api.deps import rate_limited
from gifttable.api.ws import websocket_manager
from gifttable.core.db import get_db
from gifttable.schemas.attendee import ClaimRequest
from gifttable.services.access_gate import AccessGate
from gifttable.services.claim_service import ClaimService
from gifttable.services.event_service import EventService
from gifttable.utils.responses import success_response, claim_conflict_response

router = APIRouter(dependencies=[Depends(rate_limited)])

@router.get("/event/{token}")
def get_attendee_event(token: str, db: Session = Depends(get_db)):
    """The gift list as this attendee sees it"""
    attendee, event = AccessGate.resolve_attendee(db, token)
    return success_response(
        message="Event retrieved successfully",
        data=EventService.attendee_view(db, attendee, event)
    )

@router.post("/select/{token}")
def select_gift_item(
    token: str,
    claim: ClaimRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Claim a gift item and broadcast the change to the event room"""
    attendee, event = AccessGate.resolve_attendee(db, token, allow_archived=True)
    attendee_id, attendee_name, event_id = attendee.id, attendee.name, event.id

    if not ClaimService.claim(db, claim.gift_item_id, attendee_id):
        return claim_conflict_response()

    background_tasks.add_task(
        websocket_manager.broadcast_claim_change,
        event_id, claim.gift_item_id, True, attendee_name
    )

    return success_response(
        message="Gift item selected successfully",
        data=EventService.attendee_view(db, attendee, event)
    )

@router.post("/unselect/{token}")
def unselect_gift_item(
    token: str,
    claim: ClaimRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    attendee, event = AccessGate.resolve_attendee(db, token, allow_archived=True)
    event_id = event.id

    ClaimService.release(db, claim.gift_item_id, attendee.id)

    background_tasks.add_task(
        websocket_manager.broadcast_claim_change,
        event_id, claim.gift_item_id, False
    )

    return success_response(
        message="Gift item unselected successfully",
        data=EventService.attendee_view(db, attendee, event)
    )

@router.get("/selected/{token}")
def get_selected_items(token: str, db: Session = Depends(get_db)):
    """Gift items this attendee has selected"""
    attendee, _ = AccessGate.resolve_attendee(db, token)
    return success_response(
        message="Selected items retrieved successfully",
        data=[
            EventService.attendee_gift_view(item, attendee.id)
            for item in ClaimService.claims_for(db, attendee.id)
        ]
    )
