# ===================================
# app/api/deps.py
# ===================================
from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.services.product_service import ProductService
from app.services.review_service import ReviewService


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """
    Service des avis lié à la session de la requête
    """
    return ReviewService(db)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db)


def get_request_timeout() -> float:
    """
    Échéance appliquée à chaque opération déclenchée par une requête
    """
    return settings.REQUEST_TIMEOUT_SECONDS


def get_pagination_params(
    skip: int = 0,
    limit: int = 20
) -> tuple[int, int]:
    """
    Paramètres de pagination communs
    """
    if skip < 0:
        skip = 0
    if limit < 1:
        limit = 1
    if limit > settings.MAX_PAGE_SIZE:
        limit = settings.MAX_PAGE_SIZE

    return skip, limit
