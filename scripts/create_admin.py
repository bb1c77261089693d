# File: scripts/create_admin.py

import logging
import os
import sys
from pathlib import Path

# Add the parent directory to Python path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from serialtrack.core.exceptions import SerialTrackException
from serialtrack.db.models.enums import UserRole
from serialtrack.db.session import SessionLocal, init_db
from serialtrack.schemas.user import UserCreate
from serialtrack.services.user_service import UserService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init() -> int:
    """
    Create the first admin user if it doesn't exist.

    Uses environment variables for email, username and password or the
    configured defaults. Returns a process exit code.
    """
    from serialtrack.core.config import settings

    admin_email = os.getenv("SERIALTRACK_ADMIN_EMAIL", settings.FIRST_SUPERUSER)
    admin_password = os.getenv("SERIALTRACK_ADMIN_PASSWORD", settings.FIRST_SUPERUSER_PASSWORD)
    admin_username = os.getenv("SERIALTRACK_ADMIN_USERNAME", settings.FIRST_SUPERUSER_USERNAME)

    init_db()
    db = SessionLocal()
    try:
        user_service = UserService(db)

        user = user_service.get_by_email(admin_email)
        if user:
            logger.info(f"Admin user already exists with email: {admin_email}")
            return 0

        logger.info(f"Creating admin user with email: {admin_email}")
        user_in = UserCreate(
            email=admin_email,
            username=admin_username,
            password=admin_password,
            full_name=settings.FIRST_SUPERUSER_FULLNAME,
            role=UserRole.ADMIN,
        )
        try:
            user = user_service.create_user(user_in)
        except SerialTrackException as e:
            logger.error(f"Failed to create admin user: {e.message}")
            return 1
        logger.info(f"Admin user created successfully with ID: {user.id}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    logger.info("Creating admin user")
    exit_code = init()
    logger.info("Admin user creation script completed")
    sys.exit(exit_code)
