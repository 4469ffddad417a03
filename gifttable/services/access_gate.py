"""
Access gate: turns a bearer credential into an actor.

Two independent credential spaces:

* admins present a signed, time-limited JWT; every way it can be wrong
  (missing, bad signature, expired, unknown admin) produces the same
  rejection so callers learn nothing about which part failed;
* attendees present their access token in the URL path; an unknown token is
  an ordinary "not found", and an archived event is reported as gone.
"""

import logging
from typing import Optional, Tuple

import jwt
from sqlalchemy.orm import Session

from gifttable.core.exceptions import AuthorizationFailure, EventGoneError, NotFoundError
from gifttable.models import AdminUser, Attendee, Event, EventStatus
from gifttable.services.repositories import AdminUserRepo, AttendeeRepo
from gifttable.utils.security import create_access_token, decode_access_token, verify_password

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


class AccessGate:
    """Credential checks for admin and attendee requests"""

    @staticmethod
    def issue_admin_token(admin: AdminUser) -> str:
        return create_access_token({
            "sub": str(admin.id),
            "username": admin.username,
            "email": admin.email,
        })

    @staticmethod
    def authenticate_login(db: Session, username_or_email: str, password: str) -> AdminUser:
        admin = AdminUserRepo.get_by_login(db, username_or_email.strip())
        if not admin or not verify_password(password, admin.password_hash):
            logger.info("Rejected admin login")
            raise AuthorizationFailure("Invalid credentials")
        return admin

    @staticmethod
    def authenticate_admin(db: Session, token: Optional[str]) -> AdminUser:
        if not token:
            raise AuthorizationFailure(INVALID_TOKEN_MESSAGE)
        try:
            payload = decode_access_token(token)
            admin_id = int(payload["sub"])
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
            raise AuthorizationFailure(INVALID_TOKEN_MESSAGE)

        admin = AdminUserRepo.get_by_id(db, admin_id)
        if not admin:
            raise AuthorizationFailure(INVALID_TOKEN_MESSAGE)
        return admin

    @staticmethod
    def resolve_attendee(
        db: Session,
        access_token: str,
        allow_archived: bool = False
    ) -> Tuple[Attendee, Event]:
        """Resolve an attendee link token to its (attendee, event) pair.

        Claim and release pass ``allow_archived=True`` so that the claim
        engine reports the closed event as a lifecycle violation.
        """
        attendee = AttendeeRepo.get_by_token(db, access_token) if access_token else None
        if not attendee:
            raise NotFoundError("Invitation")

        event = attendee.event
        if event.status == EventStatus.ARCHIVED and not allow_archived:
            raise EventGoneError(
                "This gift event has been archived",
                details={
                    "subject": event.subject,
                    "closed_at": event.closed_at.isoformat() if event.closed_at else None,
                },
            )
        return attendee, event
