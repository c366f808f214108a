# ===================================
# app/models/user.py
# ===================================
import enum
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Enum, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class UserRole(str, enum.Enum):
    """Rôles utilisateur"""
    USER = "user"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    handle = Column(String, unique=True, index=True, nullable=False)  # Nom public

    # Authentification
    password_hash = Column(String, nullable=False)
    role = Column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        nullable=False,
        default=UserRole.USER,
    )
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Relations
    reviews = relationship("Review", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def is_admin(self) -> bool:
        """Vérifier si l'utilisateur est administrateur"""
        return self.role == UserRole.ADMIN
