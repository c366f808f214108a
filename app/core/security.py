# ===================================
# app/core/security.py
# ===================================

from datetime import datetime, timedelta, timezone
from typing import Any, Union, List, Optional
from uuid import UUID
from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import HTTPException, status, Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db

# Configuration du hachage des mots de passe
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Configuration du bearer token
security = HTTPBearer()

# Scopes/permissions pour l'autorisation
SCOPES = {
    "reviews:write": "Publier, modifier et voter sur des avis",
    "catalogue:write": "Créer des éditeurs et des produits",
    "admin": "Accès administrateur complet (modération, recalcul des statistiques)",
}


def scopes_for_user(user) -> List[str]:
    """Scopes attribués selon le rôle"""
    user_scopes = ["reviews:write", "catalogue:write"]
    if user.is_admin:
        user_scopes.append("admin")
    return user_scopes


def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
    scopes: Optional[List[str]] = None
) -> str:
    """Créer un token d'accès JWT"""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        "exp": expire,
        "sub": str(subject),
        "scopes": scopes or []
    }
    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Vérifier un mot de passe"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hacher un mot de passe"""
    return pwd_context.hash(password, rounds=settings.BCRYPT_ROUNDS)


def decode_token(token: str) -> dict:
    """Décoder et valider un token JWT"""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalide",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: Session = Depends(get_db)
):
    """Obtenir l'utilisateur actuel à partir du token"""
    from app.repositories.user_repo import get_user_by_id  # Import local pour éviter les imports circulaires

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Impossible de valider les credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    subject = payload.get("sub")
    if subject is None:
        raise credentials_exception

    try:
        user_id = UUID(subject)
    except ValueError:
        raise credentials_exception

    user = get_user_by_id(db, user_id=user_id)
    if user is None:
        raise credentials_exception

    # Ajouter les scopes au user pour vérifications ultérieures
    user.token_scopes = payload.get("scopes", [])
    return user


def get_current_active_user(current_user=Depends(get_current_user)):
    """Obtenir l'utilisateur actuel actif"""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Utilisateur inactif"
        )
    return current_user


def require_scope(required_scope: str):
    """Décorateur pour vérifier les permissions/scopes"""
    def scope_checker(current_user=Depends(get_current_active_user)):
        user_scopes = getattr(current_user, 'token_scopes', [])

        # L'admin a accès à tout
        if "admin" in user_scopes:
            return current_user

        if required_scope not in user_scopes:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission manquante: {required_scope}"
            )
        return current_user

    return scope_checker


def require_admin(current_user=Depends(get_current_active_user)):
    """
    Vérifier que l'utilisateur est admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Accès administrateur requis"
        )
    return current_user
