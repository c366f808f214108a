# ===================================
# app/schemas/product.py
# ===================================

from typing import List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.product import ProductCategory


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = None  # Généré automatiquement si non fourni
    website: Optional[str] = None
    logo_url: Optional[str] = None


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class Company(BaseModel):
    id: UUID
    name: str
    slug: str
    website: Optional[str] = None
    logo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CompanyResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Company


class CompaniesListResponse(BaseModel):
    success: bool = True
    data: List[Company]
    total: int
    page: int
    per_page: int
    has_more: bool


class ProductBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: ProductCategory = ProductCategory.OTHER
    short_tagline: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    homepage_url: Optional[str] = None
    docs_url: Optional[str] = None


class ProductCreate(ProductBase):
    company_id: UUID
    slug: Optional[str] = None  # Généré automatiquement si non fourni


class ProductUpdate(BaseModel):
    # Mise à jour partielle : seuls les champs fournis sont modifiés
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    category: Optional[ProductCategory] = None
    short_tagline: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    homepage_url: Optional[str] = None
    docs_url: Optional[str] = None


class CompanyInfo(BaseModel):
    id: UUID
    name: str
    slug: str

    class Config:
        from_attributes = True


class Product(ProductBase):
    id: UUID
    company_id: UUID
    slug: str
    created_at: Optional[datetime] = None

    # Note moyenne : null (et non 0) tant qu'aucun avis n'est publié
    avg_rating: Optional[float] = None
    total_reviews: int = 0
    stats_updated_at: Optional[datetime] = None

    company: Optional[CompanyInfo] = None

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Product


class ProductsListResponse(BaseModel):
    success: bool = True
    data: List[Product]
    total: int
    page: int
    per_page: int
    has_more: bool


class ProductStats(BaseModel):
    product_id: UUID
    avg_rating: Optional[float] = None
    total_reviews: int


class ProductStatsResponse(BaseModel):
    success: bool = True
    data: ProductStats


class BackfillResponse(BaseModel):
    success: bool = True
    message: str
    products_recomputed: int
