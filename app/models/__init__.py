"""
Models package initialization.
This file imports all models to make them available to Alembic for autogeneration.
"""

# IMPORTANT: Utiliser la MÊME Base que celle de database.py
from app.core.database import Base

from .user import User, UserRole
from .company import Company
from .product import Product, ProductCategory
from .review import Review, ReviewStatus, ReviewSort
from .rating import Rating

__all__ = [
    'Base',
    'User',
    'UserRole',
    'Company',
    'Product',
    'ProductCategory',
    'Review',
    'ReviewStatus',
    'ReviewSort',
    'Rating',
]
