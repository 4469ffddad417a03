"""
Request dependencies: admin authentication and rate limiting
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from gifttable.core.db import get_db
from gifttable.models import AdminUser
from gifttable.services.access_gate import AccessGate
from gifttable.utils.responses import rate_limit_error
from gifttable.utils.security import rate_limit_check, get_client_ip

# auto_error is off so a missing header gets the same 401 as a bad token
security = HTTPBearer(auto_error=False)

def require_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> AdminUser:
    """Verify the admin bearer token and return the admin it belongs to"""
    token = credentials.credentials if credentials else None
    return AccessGate.authenticate_admin(db, token)

def rate_limited(request: Request) -> None:
    if not rate_limit_check(get_client_ip(request)):
        rate_limit_error()
