# ===================================
# app/repositories/user_repo.py
# ===================================
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, update

from app.models.user import User, UserRole
from app.schemas.user import UserCreate
from app.core.security import get_password_hash


def get_user_by_id(db: Session, user_id: UUID) -> Optional[User]:
    """Récupérer un utilisateur par son ID"""
    return db.scalar(
        select(User).where(User.id == user_id, User.deleted_at.is_(None))
    )


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Récupérer un utilisateur par son email"""
    return db.scalar(
        select(User).where(User.email == email.lower(), User.deleted_at.is_(None))
    )


def get_user_by_handle(db: Session, handle: str) -> Optional[User]:
    """Récupérer un utilisateur par son nom public"""
    return db.scalar(
        select(User).where(User.handle == handle, User.deleted_at.is_(None))
    )


def create_user(db: Session, user: UserCreate, role: UserRole = UserRole.USER) -> User:
    """Créer un nouvel utilisateur"""
    hashed_password = get_password_hash(user.password)

    db_user = User(
        email=user.email.lower(),
        handle=user.handle.strip(),
        password_hash=hashed_password,
        role=role,
        is_active=True,
    )

    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_last_login(db: Session, user_id: UUID) -> None:
    """Mettre à jour la date de dernière connexion"""
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(last_login=datetime.now(timezone.utc))
    )
    db.commit()
