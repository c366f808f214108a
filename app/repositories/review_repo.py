# ===================================
# app/repositories/review_repo.py
# ===================================
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select, func, update, desc, asc

from app.models.review import Review, ReviewStatus, ReviewSort


# Colonnes de tri par clé ; départage toujours par les plus récents
_SORT_ORDERS = {
    ReviewSort.RECENT: (desc(Review.created_at), desc(Review.id)),
    ReviewSort.RATING_DESC: (desc(Review.rating), desc(Review.created_at), desc(Review.id)),
    ReviewSort.RATING_ASC: (asc(Review.rating), desc(Review.created_at), desc(Review.id)),
    ReviewSort.UPVOTES: (desc(Review.upvote_count), desc(Review.created_at), desc(Review.id)),
}

_COUNTER_COLUMNS = {
    "upvote": Review.upvote_count,
    "downvote": Review.downvote_count,
    "flag": Review.flag_count,
}


class ReviewRepository:
    """Repository pour la gestion des avis"""

    def __init__(self, db: Session):
        self.db = db

    def get_review_by_id(self, review_id: UUID, live_only: bool = True) -> Optional[Review]:
        """Récupérer un avis par son ID"""
        query = select(Review).where(Review.id == review_id)
        if live_only:
            query = query.where(Review.is_live)
        return self.db.scalar(query)

    def get_live_review_for_user(self, product_id: UUID, user_id: UUID) -> Optional[Review]:
        """Récupérer l'avis actif d'un utilisateur sur un produit"""
        return self.db.scalar(
            select(Review).where(
                Review.product_id == product_id,
                Review.user_id == user_id,
                Review.is_live,
            )
        )

    def create_review(self, review_data: dict) -> Review:
        """Créer un avis (IntegrityError si l'index d'unicité est violé)"""
        review = Review(**review_data)
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def update_review(self, review: Review, update_data: dict) -> Review:
        """Mettre à jour un avis"""
        for field, value in update_data.items():
            setattr(review, field, value)

        self.db.commit()
        self.db.refresh(review)
        return review

    def soft_delete_review(self, review: Review, deleted_at: datetime) -> Review:
        """Supprimer un avis (soft delete)"""
        review.deleted_at = deleted_at
        self.db.commit()
        return review

    def increment_counter(self, review_id: UUID, counter: str) -> bool:
        """
        Incrémenter un compteur de façon atomique (UPDATE ... SET n = n + 1)
        Retourne False si aucun avis actif ne correspond
        """
        column = _COUNTER_COLUMNS[counter]
        result = self.db.execute(
            update(Review)
            .where(Review.id == review_id, Review.is_live)
            .values({column: column + 1})
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount > 0

    def get_live_published_ratings(self, product_id: UUID) -> List[int]:
        """Notes des avis actifs et publiés d'un produit"""
        return list(
            self.db.scalars(
                select(Review.rating).where(
                    Review.product_id == product_id,
                    Review.status == ReviewStatus.PUBLISHED,
                    Review.is_live,
                )
            ).all()
        )

    def get_reviews_by_product(self, product_id: UUID, sort: ReviewSort = ReviewSort.RECENT,
                               skip: int = 0, limit: int = 50) -> List[Review]:
        """Récupérer les avis publiés d'un produit, triés"""
        query = (
            select(Review)
            .where(
                Review.product_id == product_id,
                Review.status == ReviewStatus.PUBLISHED,
                Review.is_live,
            )
            .order_by(*_SORT_ORDERS[sort])
            .offset(skip)
            .limit(limit)
        )
        return list(self.db.scalars(query).all())

    def count_reviews_by_product(self, product_id: UUID) -> int:
        """Compter les avis publiés d'un produit"""
        total = self.db.scalar(
            select(func.count(Review.id)).where(
                Review.product_id == product_id,
                Review.status == ReviewStatus.PUBLISHED,
                Review.is_live,
            )
        )
        return total or 0

    def get_reviews_by_user(self, user_id: UUID, skip: int = 0, limit: int = 50) -> List[Review]:
        """Récupérer les avis actifs d'un utilisateur"""
        query = (
            select(Review)
            .where(Review.user_id == user_id, Review.is_live)
            .order_by(desc(Review.created_at), desc(Review.id))
            .offset(skip)
            .limit(limit)
        )
        return list(self.db.scalars(query).all())

    def count_reviews_by_user(self, user_id: UUID) -> int:
        """Compter les avis actifs d'un utilisateur"""
        total = self.db.scalar(
            select(func.count(Review.id)).where(Review.user_id == user_id, Review.is_live)
        )
        return total or 0
