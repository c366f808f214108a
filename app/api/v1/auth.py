# ===================================
# app/api/v1/auth.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.config import settings
from app.core.security import (
    verify_password,
    create_access_token,
    get_current_active_user,
    scopes_for_user,
)
from app.repositories.user_repo import (
    get_user_by_email,
    get_user_by_handle,
    create_user,
    update_last_login,
)
from app.schemas.user import (
    UserCreate,
    LoginRequest,
    AuthResponse,
    Token,
    User,
    UserResponse,
)

router = APIRouter()


def _token_for(user) -> Token:
    access_token = create_access_token(
        subject=user.id,
        scopes=scopes_for_user(user)
    )
    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=User.model_validate(user)
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserCreate,
    db: Session = Depends(get_db)
) -> Any:
    """
    Inscription d'un nouvel utilisateur
    """
    # Vérifier si l'email ou le nom public existe déjà
    if get_user_by_email(db, email=user_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Un utilisateur avec cet email existe déjà"
        )
    if get_user_by_handle(db, handle=user_data.handle.strip()):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Ce nom d'utilisateur est déjà pris"
        )

    user = create_user(db=db, user=user_data)

    return AuthResponse(
        message="Inscription réussie",
        data=_token_for(user)
    )


@router.post("/login", response_model=AuthResponse)
def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
) -> Any:
    """
    Connexion d'un utilisateur
    """
    user = get_user_by_email(db, email=login_data.email)

    if not user or not verify_password(login_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou mot de passe incorrect",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Compte désactivé"
        )

    update_last_login(db, user.id)

    return AuthResponse(
        message="Connexion réussie",
        data=_token_for(user)
    )


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user=Depends(get_current_active_user)) -> Any:
    """
    Profil de l'utilisateur connecté
    """
    return UserResponse(data=User.model_validate(current_user))
