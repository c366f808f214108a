# ===================================
# Fichier: app/models/review.py
# ===================================
import enum
import uuid

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Enum, Uuid,
    Index, CheckConstraint, text
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.rating import Rating


class ReviewStatus(str, enum.Enum):
    """Statuts de modération"""
    PENDING = "pending"          # En attente de modération
    PUBLISHED = "published"      # Visible et pris en compte dans la note
    REJECTED = "rejected"        # Refusé par un modérateur


class Review(Base):
    __tablename__ = "review"
    __table_args__ = (
        # Un seul avis actif par (produit, utilisateur) : garde-fou faisant autorité
        Index(
            "uq_review_product_user_live",
            "product_id",
            "user_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_review_product_live", "product_id", "status", "deleted_at"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey('product.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Uuid, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    # Note (1-5 étoiles)
    rating = Column(Integer, nullable=False)

    # Avis
    title = Column(String(200), nullable=True)
    body = Column(Text, nullable=False)

    # Modération
    status = Column(
        Enum(ReviewStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        nullable=False,
        default=ReviewStatus.PUBLISHED,
    )

    # Compteurs, uniquement incrémentés par UPDATE atomique
    upvote_count = Column(Integer, nullable=False, default=0, server_default="0")
    downvote_count = Column(Integer, nullable=False, default=0, server_default="0")
    flag_count = Column(Integer, nullable=False, default=0, server_default="0")

    edited = Column(Boolean, nullable=False, default=False)

    # Timestamps (UTC). Pas de onupdate : les votes ne modifient pas updated_at.
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Relations
    product = relationship("Product", back_populates="reviews")
    user = relationship("User", back_populates="reviews")

    def __repr__(self):
        return f"<Review(id={self.id}, product_id={self.product_id}, rating={self.rating})>"

    @validates("rating")
    def validate_rating(self, key, value):
        return int(Rating(value))

    @hybrid_property
    def is_live(self):
        """Avis non supprimé"""
        return self.deleted_at is None

    @is_live.expression
    def is_live(cls):
        return cls.deleted_at.is_(None)

    @property
    def is_published(self) -> bool:
        return self.status == ReviewStatus.PUBLISHED

    @property
    def counts_toward_rating(self) -> bool:
        """Pris en compte dans les statistiques du produit"""
        return self.is_live and self.is_published


class ReviewSort(str, enum.Enum):
    """Ordres de tri des avis d'un produit"""
    RECENT = "recent"
    RATING_DESC = "rating_desc"
    RATING_ASC = "rating_asc"
    UPVOTES = "upvotes"

    @classmethod
    def parse(cls, value) -> "ReviewSort":
        """Clé inconnue ou vide : repli silencieux sur `recent`"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.RECENT
