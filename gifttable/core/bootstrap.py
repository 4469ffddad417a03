"""
Startup seeding
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from gifttable.core.config import settings
from gifttable.models import AdminUser
from gifttable.services.repositories import AdminUserRepo
from gifttable.utils.security import hash_password

logger = logging.getLogger(__name__)

def ensure_default_admin(db: Session) -> Optional[AdminUser]:
    """Create the configured default admin when no admin exists yet"""
    if AdminUserRepo.count(db) > 0:
        return None

    admin = AdminUser(
        username=settings.DEFAULT_ADMIN_USERNAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD)
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.warning(
        f"Created default admin '{admin.username}'. Change its password after first login."
    )
    return admin
