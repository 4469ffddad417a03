"""
Admin authentication routes
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gifttable.api.deps import require_admin, rate_limited
from gifttable.core.db import get_db
from gifttable.core.exceptions import AuthorizationFailure, ValidationFailed
from gifttable.models import AdminUser
from gifttable.schemas.auth import LoginRequest, RegisterRequest, ChangePasswordRequest, AdminUserResponse
from gifttable.services.access_gate import AccessGate
from gifttable.services.repositories import AdminUserRepo
from gifttable.utils.responses import success_response
from gifttable.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/login", dependencies=[Depends(rate_limited)])
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Exchange username (or email) and password for an admin token"""
    admin = AccessGate.authenticate_login(db, credentials.username, credentials.password)
    token = AccessGate.issue_admin_token(admin)
    logger.info(f"Admin {admin.username} logged in")

    return success_response(
        message="Login successful",
        data={
            "token": token,
            "user": AdminUserResponse.model_validate(admin)
        }
    )

@router.post("/register")
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin)
):
    """Create an additional admin user"""
    if AdminUserRepo.exists(db, payload.username, payload.email):
        raise ValidationFailed("User already exists")

    user = AdminUser(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password)
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin {admin.username} registered admin {user.username}")

    return success_response(
        message="User created successfully",
        data=AdminUserResponse.model_validate(user),
        status_code=201
    )

@router.get("/verify")
def verify(admin: AdminUser = Depends(require_admin)):
    return success_response(
        message="Token is valid",
        data={"valid": True, "user": AdminUserResponse.model_validate(admin)}
    )

@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(require_admin)
):
    if not verify_password(payload.current_password, admin.password_hash):
        raise AuthorizationFailure("Current password is incorrect")

    admin.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info(f"Password changed for admin {admin.username}")

    return success_response(message="Password changed successfully")
