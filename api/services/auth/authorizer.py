"""Admin checks for authenticated callers."""
import logging

from app.config import ADMIN_EMAIL
from db import UserQueries
from models import AdminSource, AdminStatus

logger = logging.getLogger(__name__)


class Authorizer:
    """Decides whether a caller may use the admin upload path."""

    def __init__(self, users: UserQueries | None = None, admin_email: str | None = ADMIN_EMAIL):
        self.users = users or UserQueries()
        self.admin_email = admin_email

    def is_admin(self, user_id: str) -> bool:
        """Database flag only; lookup errors propagate."""
        return self.users.is_admin(user_id)

    def _email_matches(self, email: str | None) -> bool:
        return bool(self.admin_email and email and email.lower() == self.admin_email.lower())

    def admin_status(self, user_id: str, email: str | None) -> AdminStatus:
        """
        Admin status for display purposes.

        The database flag wins, the configured admin email is the fallback,
        and a failed lookup degrades to the email comparison alone.
        """
        by_email = self._email_matches(email)
        try:
            by_db = self.users.is_admin(user_id)
        except Exception as e:
            logger.error(f"Database error checking admin status for {user_id}: {e}")
            return AdminStatus(is_admin=by_email, source=AdminSource.EMAIL_MATCH_FALLBACK)

        if by_db:
            return AdminStatus(is_admin=True, source=AdminSource.DATABASE)
        if by_email:
            return AdminStatus(is_admin=True, source=AdminSource.EMAIL_MATCH)
        return AdminStatus(is_admin=False, source=AdminSource.NONE)
