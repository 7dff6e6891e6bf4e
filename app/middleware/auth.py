"""
Authentication dependencies.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from app.services.session_service import session_service

logger = logging.getLogger("app.auth_middleware")


@dataclass
class TenantContext:
    """Caller identity resolved from the session token."""

    tenant_id: str
    user_id: Optional[str] = None


def _get_token_from_request(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return request.cookies.get("session_token")


def require_tenant(request: Request) -> TenantContext:
    """FastAPI dependency: resolve the tenant or answer 401."""
    session_data = session_service.get_session(_get_token_from_request(request))
    if not session_data:
        logger.info(f"Unauthenticated request to {request.url.path}")
        raise HTTPException(status_code=401, detail="Authentication required")

    return TenantContext(tenant_id=session_data["tenant_id"], user_id=session_data.get("user_id"))
