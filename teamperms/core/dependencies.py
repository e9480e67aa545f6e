"""
Core dependencies for route protection
"""

import hmac
import logging

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from teamperms.config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer()


def require_admin(credentials: HTTPAuthorizationCredentials = Security(security)) -> str:
    """Accept only the configured admin token. Returns the token."""
    token = credentials.credentials
    if not settings.admin_api_token:
        logger.error("Admin route called but ADMIN_API_TOKEN is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured"
        )
    if not hmac.compare_digest(token, settings.admin_api_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token"
        )
    return token
