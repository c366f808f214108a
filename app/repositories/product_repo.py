from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, func, and_, or_, desc, asc, nulls_last

from app.models.product import Product, ProductCategory


# Tri des produits : liste fermée, jamais de getattr sur une chaîne libre
_PRODUCT_SORTS = {
    "created_at": Product.created_at,
    "name": Product.name,
    "avg_rating": Product.avg_rating,
    "total_reviews": Product.total_reviews,
}


class ProductRepository:
    """Repository pour la gestion des produits"""

    def __init__(self, db: Session):
        self.db = db

    def get_product_by_id(self, product_id: UUID, include_deleted: bool = False) -> Optional[Product]:
        """Récupérer un produit par son ID"""
        query = select(Product).where(Product.id == product_id).options(selectinload(Product.company))
        if not include_deleted:
            query = query.where(Product.is_live)
        return self.db.scalar(query)

    def get_product_by_slug(self, slug: str) -> Optional[Product]:
        """Récupérer un produit par son slug"""
        return self.db.scalar(
            select(Product)
            .where(Product.slug == slug, Product.is_live)
            .options(selectinload(Product.company))
        )

    def get_products(self, skip: int = 0, limit: int = 20,
                     category: Optional[ProductCategory] = None,
                     company_id: Optional[UUID] = None,
                     sort_by: str = "created_at",
                     sort_order: str = "desc") -> Tuple[List[Product], int]:
        """Récupérer les produits avec filtres et pagination"""

        query = select(Product)

        # Filtres
        conditions = [Product.is_live]

        if category is not None:
            conditions.append(Product.category == category)

        if company_id is not None:
            conditions.append(Product.company_id == company_id)

        query = query.where(and_(*conditions))

        # Compter le total
        count_query = select(func.count()).select_from(query.subquery())
        total = self.db.scalar(count_query)

        # Tri
        order_column = _PRODUCT_SORTS.get(sort_by, Product.created_at)
        if sort_order.lower() == "asc":
            query = query.order_by(nulls_last(asc(order_column)), desc(Product.id))
        else:
            query = query.order_by(nulls_last(desc(order_column)), desc(Product.id))

        products = self.db.scalars(
            query.options(selectinload(Product.company))
            .offset(skip)
            .limit(limit)
        ).all()

        return list(products), total or 0

    def create_product(self, product_data: dict) -> Product:
        """Créer un nouveau produit"""
        product = Product(**product_data)
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def search_products(self, query: str, skip: int = 0, limit: int = 20) -> Tuple[List[Product], int]:
        """Recherche simple sur le nom ou le slug (insensible à la casse, sans classement)"""
        statement = select(Product).where(
            Product.is_live,
            or_(
                Product.name.icontains(query, autoescape=True),
                Product.slug.icontains(query, autoescape=True),
            ),
        )
        total = self.db.scalar(select(func.count()).select_from(statement.subquery()))
        products = self.db.scalars(
            statement.options(selectinload(Product.company))
            .order_by(asc(Product.name), desc(Product.id))
            .offset(skip)
            .limit(limit)
        ).all()
        return list(products), total or 0

    def update_product(self, product: Product, update_data: dict) -> Product:
        """Mettre à jour un produit"""
        for field, value in update_data.items():
            setattr(product, field, value)

        self.db.commit()
        self.db.refresh(product)
        return product

    def soft_delete_product(self, product: Product, deleted_at: datetime) -> Product:
        """Supprimer un produit (soft delete)"""
        product.deleted_at = deleted_at
        self.db.commit()
        return product

    def lock_product(self, product_id: UUID) -> Optional[Product]:
        """
        Verrouiller la ligne du produit (SELECT ... FOR UPDATE) dans la transaction courante.
        Ignoré par les dialectes sans verrou de ligne (SQLite).
        """
        return self.db.scalar(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    def set_product_stats(self, product: Product, avg_rating: Optional[float],
                          total_reviews: int, computed_at: datetime) -> Product:
        """Écrire les statistiques dénormalisées (sans commit)"""
        product.avg_rating = avg_rating
        product.total_reviews = total_reviews
        product.stats_updated_at = computed_at
        self.db.flush()
        return product

    def get_all_product_ids(self) -> List[UUID]:
        """Identifiants de tous les produits actifs (backfill)"""
        return list(self.db.scalars(select(Product.id).where(Product.is_live).order_by(Product.created_at)).all())

    def slug_exists(self, slug: str) -> bool:
        return self.db.scalar(select(func.count(Product.id)).where(Product.slug == slug)) > 0
