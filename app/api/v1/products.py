# ===================================
# app/api/v1/products.py
# ===================================
from typing import Any, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import NotFound
from app.core.security import require_scope, require_admin
from app.api.deps import get_product_service, get_review_service, get_request_timeout
from app.repositories.product_repo import ProductRepository
from app.services.aggregation import RatingAggregator
from app.services.product_service import ProductService
from app.services.review_service import ReviewService, parse_id
from app.schemas.product import (
    Product,
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductsListResponse,
    ProductStats,
    ProductStatsResponse,
    BackfillResponse,
)
from app.models.product import ProductCategory
from app.schemas.review import MessageResponse

router = APIRouter()


def _list_response(products, total: int, skip: int, limit: int) -> ProductsListResponse:
    return ProductsListResponse(
        data=[Product.model_validate(product) for product in products],
        total=total,
        page=(skip // limit) + 1,
        per_page=limit,
        has_more=(skip + limit) < total
    )


@router.get("/", response_model=ProductsListResponse)
def list_products(
    skip: int = Query(0, ge=0, description="Nombre d'éléments à ignorer"),
    limit: int = Query(20, ge=1, le=100, description="Nombre d'éléments à retourner"),
    category: Optional[ProductCategory] = Query(None, description="Filtrer par catégorie"),
    sort_by: Optional[str] = Query("created_at", description="Tri par: created_at, name, avg_rating, total_reviews"),
    sort_order: Optional[str] = Query("desc", description="Ordre: asc, desc"),
    db: Session = Depends(get_db)
) -> Any:
    """
    Récupérer la liste des produits avec filtres et pagination
    """
    product_repo = ProductRepository(db)

    products, total = product_repo.get_products(
        skip=skip,
        limit=limit,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order
    )

    return _list_response(products, total, skip, limit)


@router.get("/search", response_model=ProductsListResponse)
def search_products(
    q: Optional[str] = Query(None, description="Terme recherché dans le nom ou le slug"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    product_service: ProductService = Depends(get_product_service)
) -> Any:
    """
    Rechercher des produits par nom ou slug
    """
    products, total = product_service.search_products(q, skip=skip, limit=limit)

    return _list_response(products, total, skip, limit)


@router.get("/category/{category}", response_model=ProductsListResponse)
def get_products_by_category(
    category: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    product_service: ProductService = Depends(get_product_service)
) -> Any:
    """
    Récupérer les produits d'une catégorie
    """
    products, total = product_service.list_products_by_category(category, skip=skip, limit=limit)

    return _list_response(products, total, skip, limit)


@router.get("/slug/{slug}", response_model=ProductResponse)
def get_product_by_slug(
    slug: str,
    db: Session = Depends(get_db)
) -> Any:
    """
    Récupérer un produit par son slug
    """
    product = ProductRepository(db).get_product_by_slug(slug)

    if not product:
        raise NotFound(f"Produit {slug!r} non trouvé")

    return ProductResponse(data=Product.model_validate(product))


@router.get("/company/{company_id}", response_model=ProductsListResponse)
def get_products_by_company(
    company_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
) -> Any:
    """
    Récupérer les produits d'un éditeur
    """
    products, total = ProductRepository(db).get_products(
        skip=skip,
        limit=limit,
        company_id=parse_id(company_id, "éditeur")
    )

    return _list_response(products, total, skip, limit)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: str,
    product_service: ProductService = Depends(get_product_service)
) -> Any:
    """
    Récupérer un produit par son ID, statistiques d'avis comprises
    """
    product = product_service.get_product(product_id)

    return ProductResponse(data=Product.model_validate(product))


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    product_data: ProductUpdate,
    product_service: ProductService = Depends(get_product_service),
    current_user=Depends(require_scope("catalogue:write"))
) -> Any:
    """
    Modifier la fiche d'un produit
    """
    product = product_service.update_product(product_id, product_data)

    return ProductResponse(
        message="Produit modifié",
        data=Product.model_validate(product)
    )


@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: str,
    product_service: ProductService = Depends(get_product_service),
    current_user=Depends(require_admin)
) -> Any:
    """
    Supprimer un produit (administration)
    """
    product_service.delete_product(product_id)

    return MessageResponse(message="Produit supprimé")


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: ProductCreate,
    product_service: ProductService = Depends(get_product_service),
    current_user=Depends(require_scope("catalogue:write"))
) -> Any:
    """
    Référencer un nouveau produit
    """
    product = product_service.create_product(product_data)

    return ProductResponse(
        message="Produit créé avec succès",
        data=Product.model_validate(product)
    )


@router.post("/stats/recompute", response_model=BackfillResponse)
def recompute_all_product_stats(
    db: Session = Depends(get_db),
    current_user=Depends(require_admin)
) -> Any:
    """
    Recalculer les statistiques de tous les produits (administration)
    """
    count = RatingAggregator(db).recompute_all()

    return BackfillResponse(
        message="Statistiques recalculées",
        products_recomputed=count
    )


@router.post("/{product_id}/stats/recompute", response_model=ProductStatsResponse)
def recompute_product_stats(
    product_id: str,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_admin)
) -> Any:
    """
    Recalculer les statistiques d'un produit à partir de ses avis (administration)
    """
    product_uuid = parse_id(product_id, "produit")
    stats = review_service.recompute_product_stats(product_uuid, timeout=timeout)

    return ProductStatsResponse(
        data=ProductStats(
            product_id=product_uuid,
            avg_rating=stats.avg_rating,
            total_reviews=stats.total_reviews
        )
    )
