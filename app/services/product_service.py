# ===================================
# app/services/product_service.py
# ===================================

import logging
import re
import unicodedata
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import Duplicate, InvalidInput, NotFound
from app.models.company import Company
from app.models.product import Product, ProductCategory
from app.repositories.company_repo import CompanyRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.product import CompanyCreate, CompanyUpdate, ProductCreate, ProductUpdate
from app.services.review_service import IdLike, parse_id

logger = logging.getLogger(__name__)

# Slug : kebab-case a-z0-9 et tirets
SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

MAX_SEARCH_LENGTH = 100

# Champs obligatoires : un null explicite dans une mise à jour est ignoré
_REQUIRED_FIELDS = {"name", "slug", "category"}


def slugify(value: str) -> str:
    """Générer un slug kebab-case à partir d'un nom"""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    base_slug = re.sub(r"[^a-z0-9\s-]", "", value.lower())
    return re.sub(r"[-\s]+", "-", base_slug).strip("-")


def _clean_search_query(query: Optional[str]) -> str:
    query = (query or "").strip()
    if not query:
        raise InvalidInput("Le paramètre de recherche 'q' est obligatoire")
    if len(query) > MAX_SEARCH_LENGTH:
        raise InvalidInput(f"La recherche ne peut pas dépasser {MAX_SEARCH_LENGTH} caractères")
    return query


def _update_fields(data) -> dict:
    update_data = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if not (field in _REQUIRED_FIELDS and value is None)
    }
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
        if not update_data["name"]:
            raise InvalidInput("Le nom est obligatoire")
    return update_data


class ProductService:
    """Service pour la logique métier du catalogue (éditeurs et produits)"""

    def __init__(self, db: Session):
        self.db = db
        self.product_repo = ProductRepository(db)
        self.company_repo = CompanyRepository(db)

    # ------------------------------------------------------------------
    # Éditeurs
    # ------------------------------------------------------------------

    def create_company(self, company_data: CompanyCreate) -> Company:
        """Créer un éditeur"""
        slug = self._resolve_slug(company_data.slug, company_data.name, self.company_repo.slug_exists)

        company_dict = company_data.model_dump(exclude={"slug"})
        company_dict["name"] = company_dict["name"].strip()
        company_dict["slug"] = slug

        company = self.company_repo.create_company(company_dict)
        logger.info(f"Éditeur {company.slug} créé")
        return company

    def get_company(self, company_id: IdLike) -> Company:
        company_uuid = parse_id(company_id, "éditeur")
        company = self.company_repo.get_company_by_id(company_uuid)
        if company is None:
            raise NotFound(f"Éditeur {company_uuid} introuvable")
        return company

    def update_company(self, company_id: IdLike, company_data: CompanyUpdate) -> Company:
        """Modifier un éditeur ; le slug reste inchangé s'il n'est pas fourni"""
        company = self.get_company(company_id)
        update_data = _update_fields(company_data)

        if "slug" in update_data:
            update_data["slug"] = self._change_slug(company.slug, update_data["slug"], self.company_repo.slug_exists)

        company = self.company_repo.update_company(company, update_data)
        logger.info(f"Éditeur {company.slug} modifié")
        return company

    def delete_company(self, company_id: IdLike) -> None:
        """Supprimer un éditeur (soft delete)"""
        company = self.get_company(company_id)
        self.company_repo.soft_delete_company(company, datetime.now(timezone.utc))
        logger.info(f"Éditeur {company.slug} supprimé")

    def search_companies(self, query: Optional[str], skip: int = 0,
                         limit: int = 20) -> Tuple[List[Company], int]:
        return self.company_repo.search_companies(_clean_search_query(query), skip=skip, limit=limit)

    # ------------------------------------------------------------------
    # Produits
    # ------------------------------------------------------------------

    def create_product(self, product_data: ProductCreate) -> Product:
        """Créer un produit ; ses statistiques démarrent à (null, 0)"""
        if self.company_repo.get_company_by_id(product_data.company_id) is None:
            raise NotFound(f"Éditeur {product_data.company_id} introuvable")

        slug = self._resolve_slug(product_data.slug, product_data.name, self.product_repo.slug_exists)

        product_dict = product_data.model_dump(exclude={"slug"})
        product_dict["name"] = product_dict["name"].strip()
        product_dict["slug"] = slug
        product_dict["avg_rating"] = None
        product_dict["total_reviews"] = 0

        product = self.product_repo.create_product(product_dict)
        logger.info(f"Produit {product.slug} créé (éditeur={product.company_id})")
        return product

    def get_product(self, product_id: IdLike) -> Product:
        product_uuid = parse_id(product_id, "produit")
        product = self.product_repo.get_product_by_id(product_uuid)
        if product is None:
            raise NotFound(f"Produit {product_uuid} introuvable")
        return product

    def update_product(self, product_id: IdLike, product_data: ProductUpdate) -> Product:
        """
        Modifier la fiche d'un produit.
        Les statistiques d'avis ne sont jamais modifiées ici.
        """
        product = self.get_product(product_id)
        update_data = _update_fields(product_data)

        if "slug" in update_data:
            update_data["slug"] = self._change_slug(product.slug, update_data["slug"], self.product_repo.slug_exists)
        update_data["updated_at"] = datetime.now(timezone.utc)

        product = self.product_repo.update_product(product, update_data)
        logger.info(f"Produit {product.slug} modifié")
        return product

    def delete_product(self, product_id: IdLike) -> None:
        """Supprimer un produit (soft delete) ; ses avis ne sont plus modifiables"""
        product = self.get_product(product_id)
        self.product_repo.soft_delete_product(product, datetime.now(timezone.utc))
        logger.info(f"Produit {product.slug} supprimé")

    def search_products(self, query: Optional[str], skip: int = 0,
                        limit: int = 20) -> Tuple[List[Product], int]:
        return self.product_repo.search_products(_clean_search_query(query), skip=skip, limit=limit)

    def list_products_by_category(self, category: str, skip: int = 0,
                                  limit: int = 20) -> Tuple[List[Product], int]:
        try:
            product_category = ProductCategory(category.strip().lower())
        except ValueError:
            raise InvalidInput(f"Catégorie invalide: {category!r}")
        return self.product_repo.get_products(skip=skip, limit=limit, category=product_category)

    # ------------------------------------------------------------------
    # Slugs
    # ------------------------------------------------------------------

    def _resolve_slug(self, slug: Optional[str], name: str, exists) -> str:
        """Slug fourni (validé et unique) ou généré à partir du nom"""
        if slug:
            slug = slug.strip().lower()
            if not SLUG_RE.match(slug):
                raise InvalidInput(f"Slug invalide: {slug!r}")
            if exists(slug):
                raise Duplicate(f"Le slug {slug!r} est déjà utilisé")
            return slug
        return self._generate_slug(name, exists)

    def _change_slug(self, current: str, slug: str, exists) -> str:
        slug = slug.strip().lower()
        if slug == current:
            return current
        if not SLUG_RE.match(slug):
            raise InvalidInput(f"Slug invalide: {slug!r}")
        if exists(slug):
            raise Duplicate(f"Le slug {slug!r} est déjà utilisé")
        return slug

    def _generate_slug(self, name: str, exists) -> str:
        """Générer un slug unique à partir du nom"""
        base_slug = slugify(name)
        if not base_slug:
            raise InvalidInput(f"Impossible de générer un slug pour {name!r}")

        # Vérifier l'unicité
        counter = 1
        slug = base_slug

        while exists(slug):
            slug = f"{base_slug}-{counter}"
            counter += 1

        return slug
