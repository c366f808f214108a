# ===================================
# app/api/v1/companies.py
# ===================================
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import NotFound
from app.core.security import require_scope, require_admin
from app.api.deps import get_pagination_params, get_product_service
from app.repositories.company_repo import CompanyRepository
from app.services.product_service import ProductService
from app.schemas.product import (
    Company,
    CompanyCreate,
    CompanyUpdate,
    CompanyResponse,
    CompaniesListResponse,
)
from app.schemas.review import MessageResponse

router = APIRouter()


def _list_response(companies, total: int, skip: int, limit: int) -> CompaniesListResponse:
    return CompaniesListResponse(
        data=[Company.model_validate(company) for company in companies],
        total=total,
        page=(skip // limit) + 1,
        per_page=limit,
        has_more=(skip + limit) < total
    )


@router.get("/", response_model=CompaniesListResponse)
def list_companies(
    pagination: tuple = Depends(get_pagination_params),
    db: Session = Depends(get_db)
) -> Any:
    """Récupérer tous les éditeurs"""
    skip, limit = pagination
    companies, total = CompanyRepository(db).get_companies(skip=skip, limit=limit)
    return _list_response(companies, total, skip, limit)


@router.get("/search", response_model=CompaniesListResponse)
def search_companies(
    q: Optional[str] = Query(None, description="Terme recherché dans le nom ou le slug"),
    pagination: tuple = Depends(get_pagination_params),
    product_service: ProductService = Depends(get_product_service)
) -> Any:
    """Rechercher des éditeurs par nom ou slug"""
    skip, limit = pagination
    companies, total = product_service.search_companies(q, skip=skip, limit=limit)
    return _list_response(companies, total, skip, limit)


@router.get("/slug/{slug}", response_model=CompanyResponse)
def get_company_by_slug(slug: str, db: Session = Depends(get_db)) -> Any:
    """Récupérer un éditeur par son slug"""
    company = CompanyRepository(db).get_company_by_slug(slug)
    if not company:
        raise NotFound(f"Éditeur {slug!r} non trouvé")
    return CompanyResponse(data=Company.model_validate(company))


@router.get("/{company_id}", response_model=CompanyResponse)
def get_company(
    company_id: str,
    product_service: ProductService = Depends(get_product_service)
) -> Any:
    """Récupérer un éditeur par ID"""
    company = product_service.get_company(company_id)
    return CompanyResponse(data=Company.model_validate(company))


@router.post("/", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
def create_company(
    company_data: CompanyCreate,
    product_service: ProductService = Depends(get_product_service),
    current_user=Depends(require_scope("catalogue:write"))
) -> Any:
    """Créer un nouvel éditeur"""
    company = product_service.create_company(company_data)
    return CompanyResponse(
        message="Éditeur créé avec succès",
        data=Company.model_validate(company)
    )


@router.put("/{company_id}", response_model=CompanyResponse)
def update_company(
    company_id: str,
    company_data: CompanyUpdate,
    product_service: ProductService = Depends(get_product_service),
    current_user=Depends(require_scope("catalogue:write"))
) -> Any:
    """Modifier un éditeur"""
    company = product_service.update_company(company_id, company_data)
    return CompanyResponse(
        message="Éditeur modifié",
        data=Company.model_validate(company)
    )


@router.delete("/{company_id}", response_model=MessageResponse)
def delete_company(
    company_id: str,
    product_service: ProductService = Depends(get_product_service),
    current_user=Depends(require_admin)
) -> Any:
    """Supprimer un éditeur (administration)"""
    product_service.delete_company(company_id)
    return MessageResponse(message="Éditeur supprimé")
