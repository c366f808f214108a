# ===================================
# app/repositories/company_repo.py
# ===================================
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, func, asc, or_

from app.models.company import Company


class CompanyRepository:
    """Repository pour la gestion des éditeurs"""

    def __init__(self, db: Session):
        self.db = db

    def get_company_by_id(self, company_id: UUID) -> Optional[Company]:
        """Récupérer un éditeur par son ID"""
        return self.db.scalar(
            select(Company).where(Company.id == company_id, Company.deleted_at.is_(None))
        )

    def get_company_by_slug(self, slug: str) -> Optional[Company]:
        """Récupérer un éditeur par son slug"""
        return self.db.scalar(
            select(Company).where(Company.slug == slug, Company.deleted_at.is_(None))
        )

    def get_companies(self, skip: int = 0, limit: int = 20) -> Tuple[List[Company], int]:
        """Récupérer les éditeurs, triés par nom"""
        query = select(Company).where(Company.deleted_at.is_(None))
        total = self.db.scalar(select(func.count()).select_from(query.subquery()))
        companies = self.db.scalars(query.order_by(asc(Company.name)).offset(skip).limit(limit)).all()
        return list(companies), total or 0

    def create_company(self, company_data: dict) -> Company:
        """Créer un éditeur"""
        company = Company(**company_data)
        self.db.add(company)
        self.db.commit()
        self.db.refresh(company)
        return company

    def search_companies(self, query: str, skip: int = 0, limit: int = 20) -> Tuple[List[Company], int]:
        """Recherche simple sur le nom ou le slug (insensible à la casse)"""
        statement = select(Company).where(
            Company.deleted_at.is_(None),
            or_(
                Company.name.icontains(query, autoescape=True),
                Company.slug.icontains(query, autoescape=True),
            ),
        )
        total = self.db.scalar(select(func.count()).select_from(statement.subquery()))
        companies = self.db.scalars(statement.order_by(asc(Company.name)).offset(skip).limit(limit)).all()
        return list(companies), total or 0

    def update_company(self, company: Company, update_data: dict) -> Company:
        """Mettre à jour un éditeur"""
        for field, value in update_data.items():
            setattr(company, field, value)

        self.db.commit()
        self.db.refresh(company)
        return company

    def soft_delete_company(self, company: Company, deleted_at: datetime) -> Company:
        """Supprimer un éditeur (soft delete)"""
        company.deleted_at = deleted_at
        self.db.commit()
        return company

    def slug_exists(self, slug: str) -> bool:
        return self.db.scalar(select(func.count(Company.id)).where(Company.slug == slug)) > 0
