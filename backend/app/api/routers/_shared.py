"""
Utilitaires partages entre les routers API.
"""
import logging
from typing import Optional

from fastapi import Request, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from slowapi import Limiter
from slowapi.util import get_remote_address
from jose import JWTError, jwt as jose_jwt

from app.domain.services.training_session_service import (
    AthleteProfileNotFound,
    InvalidStatusTransition,
    SessionAlreadyCompleted,
    TrainingDetailNotFound,
    TrainingSessionNotFound,
)

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def security(request: Request) -> HTTPAuthorizationCredentials:
    """Extrait le JWT depuis le header Bearer."""
    creds = await _bearer_scheme(request)
    if creds:
        return creds

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_token_from_request(request: Request) -> Optional[str]:
    """Extrait le JWT brut du header (pour le rate limiter)."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


def _get_user_or_ip(request: Request) -> str:
    """Key function pour le rate limiter : retourne le user_id JWT si present, sinon l'IP."""
    token = _extract_token_from_request(request)
    if token:
        try:
            from app.core.settings import get_settings
            settings = get_settings()
            payload = jose_jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
            user_id = payload.get("sub")
            if user_id:
                return f"user:{user_id}"
        except JWTError:
            logger.debug("Token invalide pour le rate limiter, repli sur l'IP")
    return get_remote_address(request)


limiter = Limiter(key_func=_get_user_or_ip, default_limits=["100/minute"], headers_enabled=True)


def to_http_exception(error: ValueError) -> HTTPException:
    """Traduit une erreur metier du service de seances en HTTPException."""
    if isinstance(error, (TrainingSessionNotFound, TrainingDetailNotFound, AthleteProfileNotFound)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (SessionAlreadyCompleted, InvalidStatusTransition)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))
