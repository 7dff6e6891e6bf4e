"""
Session management service.

Sessions are signed, time-limited tokens carrying the tenant and user ids.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.services.config_service import config_service

logger = logging.getLogger("app.session")

TOKEN_SALT = "staydesk-session"


class SessionService:
    """Service for issuing and verifying session tokens."""

    def __init__(self, secret_key: str = None, max_age: int = None):
        self.secret_key = secret_key or config_service.get_setting(
            "APP_SECRET_KEY", "staydesk-secret-key-change-in-production"
        )
        self.max_age = int(max_age or config_service.get_setting("AUTH_TOKEN_MAX_AGE"))
        self.serializer = URLSafeTimedSerializer(self.secret_key, salt=TOKEN_SALT)
        self.logger = logger

    def create_session(self, tenant_id: str, user_id: str) -> str:
        """
        Create a session token.

        Args:
            tenant_id: Tenant the user acts for
            user_id: User identifier

        Returns:
            Session token
        """
        session_data = {
            "tenant_id": tenant_id,
            "user_id": user_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        token = self.serializer.dumps(session_data)
        self.logger.info(f"Created session for user {user_id} tenant={tenant_id}")
        return token

    def get_session(self, session_token: str) -> Optional[Dict[str, Any]]:
        """
        Get session data by token.

        Returns:
            Session data or None if invalid/expired
        """
        if not session_token:
            return None

        try:
            session_data = self.serializer.loads(session_token, max_age=self.max_age)
        except SignatureExpired:
            self.logger.info("Session token expired")
            return None
        except BadSignature:
            self.logger.warning("Invalid session token")
            return None

        if not isinstance(session_data, dict) or not session_data.get("tenant_id"):
            return None
        return session_data


# Global session service instance
session_service = SessionService()
