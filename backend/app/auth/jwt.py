"""
Gestion des tokens JWT pour l'authentification
Le sujet (``sub``) du token identifie l'utilisateur qui agit sur ses seances.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fastapi import HTTPException, status
from pydantic import BaseModel

from app.core.settings import get_settings

settings = get_settings()


class TokenData(BaseModel):
    """Données contenues dans un token"""
    user_id: str
    email: Optional[str] = None
    exp: datetime


class TokenResponse(BaseModel):
    """Réponse d'authentification"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class JWTManager:
    """Gestionnaire des tokens JWT"""

    def __init__(self):
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.access_token_expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """Crée un access token JWT"""
        to_encode = data.copy()
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        to_encode.update({"exp": expire, "type": "access"})

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_token_for_user(self, user_id: str, email: Optional[str] = None) -> TokenResponse:
        token_data: Dict[str, Any] = {"sub": str(user_id)}
        if email:
            token_data["email"] = email

        return TokenResponse(
            access_token=self.create_access_token(token_data),
            expires_in=self.access_token_expire_minutes * 60
        )

    def verify_token(self, token: str) -> TokenData:
        """Vérifie et décode un access token JWT"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials"
            )

        if payload.get("type") != "access":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token type. Expected access"
            )

        user_id = payload.get("sub")
        if user_id is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload"
            )

        return TokenData(
            user_id=user_id,
            email=payload.get("email"),
            exp=datetime.fromtimestamp(payload.get("exp")),
        )


# Instance globale
jwt_manager = JWTManager()


def get_current_user_id(token: str) -> str:
    """Extrait l'ID utilisateur du token (pour dependency injection)"""
    return jwt_manager.verify_token(token).user_id
