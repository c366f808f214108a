# ===================================
# app/models/product.py
# ===================================
import enum
import uuid

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Float, Enum, Uuid,
    CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func as sql_func
from sqlalchemy.ext.hybrid import hybrid_property

from app.core.database import Base


class ProductCategory(str, enum.Enum):
    """Catégories de solutions logicielles"""
    HOSTING = "hosting"
    FEATURE_TOGGLES = "feature_toggles"
    CI_CD = "ci_cd"
    OBSERVABILITY = "observability"
    OTHER = "other"


class Product(Base):
    __tablename__ = "product"
    __table_args__ = (
        CheckConstraint("total_reviews >= 0", name="ck_product_total_reviews_positive"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey('company.id', ondelete='CASCADE'), nullable=False, index=True)

    # Informations principales
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    category = Column(
        Enum(ProductCategory, values_callable=lambda e: [m.value for m in e], native_enum=False, length=32),
        nullable=False,
        default=ProductCategory.OTHER,
        index=True,
    )
    short_tagline = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    homepage_url = Column(String, nullable=True)
    docs_url = Column(String, nullable=True)

    # Statistiques dénormalisées, dérivées des avis actifs et publiés.
    # avg_rating reste NULL tant qu'il n'y a aucun avis (jamais 0).
    avg_rating = Column(Float, nullable=True)
    total_reviews = Column(Integer, nullable=False, default=0, server_default="0")
    stats_updated_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=sql_func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=sql_func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Relations
    company = relationship("Company", back_populates="products")
    reviews = relationship("Review", back_populates="product")

    def __repr__(self):
        return f"<Product(id={self.id}, slug='{self.slug}', avg_rating={self.avg_rating})>"

    @hybrid_property
    def is_live(self):
        """Produit non supprimé"""
        return self.deleted_at is None

    @is_live.expression
    def is_live(cls):
        return cls.deleted_at.is_(None)
