from dashboard_auth.models.session_record import SessionRecord
from dashboard_auth.models.user import User

__all__ = [
    "SessionRecord",
    "User",
]
