# ===================================
# app/services/review_service.py
# ===================================
"""
Service des avis : validation, unicité, persistance et déclenchement du
recalcul des statistiques produit après chaque mutation.

Les avis font foi. Un échec du recalcul des statistiques n'annule jamais la
mutation qui l'a déclenché : il est journalisé en avertissement.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import apply_statement_timeout, is_statement_timeout, is_unique_violation
from app.core.deadline import Deadline
from app.core.exceptions import (
    AggregationFailure,
    Duplicate,
    Forbidden,
    InvalidInput,
    NotFound,
    OperationTimeout,
)
from app.models.rating import Rating
from app.models.review import Review, ReviewStatus, ReviewSort
from app.repositories.product_repo import ProductRepository
from app.repositories.review_repo import ReviewRepository
from app.repositories.user_repo import get_user_by_id
from app.services.aggregation import RatingAggregator, RatingStats

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200

IdLike = Union[str, UUID]


def parse_id(value: IdLike, label: str) -> UUID:
    """Convertir un identifiant en UUID, InvalidInput s'il est mal formé"""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidInput(f"Identifiant {label} invalide: {value!r}")


def clamp_page(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    """Pagination simple : limite bornée à [1, MAX_PAGE_SIZE], offset >= 0"""
    if limit is None or limit < 1:
        limit = settings.DEFAULT_PAGE_SIZE
    limit = min(limit, settings.MAX_PAGE_SIZE)
    if offset is None or offset < 0:
        offset = 0
    return limit, offset


def _clean_body(body: Optional[str]) -> str:
    body = (body or "").strip()
    if not body:
        raise InvalidInput("Le contenu de l'avis est obligatoire")
    return body


def _clean_title(title: Optional[str]) -> Optional[str]:
    title = (title or "").strip()
    if not title:
        return None
    if len(title) > MAX_TITLE_LENGTH:
        raise InvalidInput(f"Le titre ne peut pas dépasser {MAX_TITLE_LENGTH} caractères")
    return title


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewService:
    """Service pour la logique métier des avis"""

    def __init__(self, db: Session, auto_publish: Optional[bool] = None):
        self.db = db
        self.review_repo = ReviewRepository(db)
        self.product_repo = ProductRepository(db)
        self.aggregator = RatingAggregator(db)
        self.auto_publish = settings.REVIEW_AUTO_PUBLISH if auto_publish is None else auto_publish

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_review(self, product_id: IdLike, user_id: IdLike, title: Optional[str],
                      body: str, rating: int, timeout: Optional[float] = None) -> Review:
        """Créer un avis puis recalculer les statistiques du produit"""
        deadline = Deadline(timeout)
        product_uuid = parse_id(product_id, "produit")
        user_uuid = parse_id(user_id, "utilisateur")
        rating = Rating(rating)
        body = _clean_body(body)
        title = _clean_title(title)

        with self._storage(deadline, "vérification du produit"):
            product = self.product_repo.get_product_by_id(product_uuid)
        if product is None:
            raise NotFound(f"Produit {product_uuid} introuvable")

        with self._storage(deadline, "vérification de l'utilisateur"):
            user = get_user_by_id(self.db, user_uuid)
        if user is None:
            raise NotFound(f"Utilisateur {user_uuid} introuvable")

        # Pré-contrôle pour un message clair ; l'index unique partiel fait autorité
        with self._storage(deadline, "contrôle d'unicité"):
            existing = self.review_repo.get_live_review_for_user(product_uuid, user_uuid)
        if existing is not None:
            raise Duplicate("Vous avez déjà publié un avis sur ce produit")

        now = _utcnow()
        status = ReviewStatus.PUBLISHED if self.auto_publish else ReviewStatus.PENDING
        with self._storage(deadline, "insertion de l'avis"):
            try:
                review = self.review_repo.create_review({
                    "product_id": product_uuid,
                    "user_id": user_uuid,
                    "title": title,
                    "body": body,
                    "rating": rating,
                    "status": status,
                    "upvote_count": 0,
                    "downvote_count": 0,
                    "flag_count": 0,
                    "edited": False,
                    "created_at": now,
                    "updated_at": now,
                })
            except IntegrityError as exc:
                self.db.rollback()
                if is_unique_violation(exc):
                    raise Duplicate("Vous avez déjà publié un avis sur ce produit") from exc
                # Produit ou utilisateur supprimé entre la vérification et l'insertion
                logger.warning(f"Insertion de l'avis refusée par le stockage (produit={product_uuid}): {exc.orig}")
                raise InvalidInput("Avis refusé: produit ou utilisateur indisponible") from exc

        logger.info(f"Avis {review.id} créé (produit={product_uuid}, note={int(rating)}, statut={status.value})")
        self._refresh_product_stats(product_uuid, deadline)
        return review

    def edit_review(self, review_id: IdLike, requesting_user_id: IdLike, title: Optional[str],
                    body: str, rating: int, timeout: Optional[float] = None) -> Review:
        """
        Modifier le contenu d'un avis (auteur uniquement).
        Les statistiques ne sont recalculées que si la note change.
        """
        deadline = Deadline(timeout)
        review_uuid = parse_id(review_id, "avis")
        user_uuid = parse_id(requesting_user_id, "utilisateur")
        rating = Rating(rating)
        body = _clean_body(body)
        title = _clean_title(title)

        review = self._get_owned_review(review_uuid, user_uuid, deadline, "modifier")
        previous_rating = review.rating

        with self._storage(deadline, "mise à jour de l'avis"):
            review = self.review_repo.update_review(review, {
                "title": title,
                "body": body,
                "rating": rating,
                "edited": True,
                "updated_at": _utcnow(),
            })

        logger.info(f"Avis {review.id} modifié par {user_uuid}")
        if previous_rating != int(rating):
            self._refresh_product_stats(review.product_id, deadline)
        return review

    def delete_review(self, review_id: IdLike, requesting_user_id: IdLike,
                      timeout: Optional[float] = None) -> None:
        """Supprimer un avis (soft delete) puis recalculer les statistiques"""
        deadline = Deadline(timeout)
        review_uuid = parse_id(review_id, "avis")
        user_uuid = parse_id(requesting_user_id, "utilisateur")

        review = self._get_owned_review(review_uuid, user_uuid, deadline, "supprimer")

        with self._storage(deadline, "suppression de l'avis"):
            self.review_repo.soft_delete_review(review, _utcnow())

        logger.info(f"Avis {review.id} supprimé par {user_uuid}")
        self._refresh_product_stats(review.product_id, deadline)

    def moderate_review(self, review_id: IdLike, status: Union[str, ReviewStatus],
                        timeout: Optional[float] = None) -> Review:
        """Changer le statut de modération d'un avis actif (administration)"""
        deadline = Deadline(timeout)
        review_uuid = parse_id(review_id, "avis")
        try:
            new_status = ReviewStatus(status)
        except ValueError:
            raise InvalidInput(f"Statut de modération invalide: {status!r}")

        with self._storage(deadline, "lecture de l'avis"):
            review = self.review_repo.get_review_by_id(review_uuid)
        if review is None:
            raise NotFound(f"Avis {review_uuid} introuvable")

        if review.status == new_status:
            return review

        previous_status = review.status
        with self._storage(deadline, "modération de l'avis"):
            review = self.review_repo.update_review(review, {
                "status": new_status,
                "updated_at": _utcnow(),
            })

        logger.info(f"Avis {review.id} modéré: {previous_status.value} -> {new_status.value}")
        self._refresh_product_stats(review.product_id, deadline)
        return review

    # ------------------------------------------------------------------
    # Compteurs (votes et signalements)
    # ------------------------------------------------------------------

    def upvote(self, review_id: IdLike, timeout: Optional[float] = None) -> None:
        self._increment(review_id, "upvote", timeout)

    def downvote(self, review_id: IdLike, timeout: Optional[float] = None) -> None:
        self._increment(review_id, "downvote", timeout)

    def flag(self, review_id: IdLike, timeout: Optional[float] = None) -> None:
        self._increment(review_id, "flag", timeout)

    # ------------------------------------------------------------------
    # Lectures
    # ------------------------------------------------------------------

    def get_review(self, review_id: IdLike, timeout: Optional[float] = None) -> Review:
        """Récupérer un avis actif"""
        deadline = Deadline(timeout)
        review_uuid = parse_id(review_id, "avis")
        with self._storage(deadline, "lecture de l'avis"):
            review = self.review_repo.get_review_by_id(review_uuid)
        if review is None:
            raise NotFound(f"Avis {review_uuid} introuvable")
        return review

    def get_reviews_by_product(self, product_id: IdLike, sort: Union[str, ReviewSort, None] = None,
                               limit: Optional[int] = None, offset: Optional[int] = None,
                               timeout: Optional[float] = None) -> List[Review]:
        """Avis publiés d'un produit ; clé de tri inconnue => `recent`"""
        deadline = Deadline(timeout)
        product_uuid = parse_id(product_id, "produit")
        limit, offset = clamp_page(limit, offset)
        with self._storage(deadline, "lecture des avis du produit"):
            return self.review_repo.get_reviews_by_product(
                product_uuid, sort=ReviewSort.parse(sort), skip=offset, limit=limit
            )

    def count_reviews_by_product(self, product_id: IdLike, timeout: Optional[float] = None) -> int:
        deadline = Deadline(timeout)
        product_uuid = parse_id(product_id, "produit")
        with self._storage(deadline, "comptage des avis du produit"):
            return self.review_repo.count_reviews_by_product(product_uuid)

    def get_reviews_by_user(self, user_id: IdLike, limit: Optional[int] = None,
                            offset: Optional[int] = None, timeout: Optional[float] = None) -> List[Review]:
        """Avis actifs d'un utilisateur, les plus récents d'abord"""
        deadline = Deadline(timeout)
        user_uuid = parse_id(user_id, "utilisateur")
        limit, offset = clamp_page(limit, offset)
        with self._storage(deadline, "lecture des avis de l'utilisateur"):
            return self.review_repo.get_reviews_by_user(user_uuid, skip=offset, limit=limit)

    def count_reviews_by_user(self, user_id: IdLike, timeout: Optional[float] = None) -> int:
        deadline = Deadline(timeout)
        user_uuid = parse_id(user_id, "utilisateur")
        with self._storage(deadline, "comptage des avis de l'utilisateur"):
            return self.review_repo.count_reviews_by_user(user_uuid)

    # ------------------------------------------------------------------
    # Statistiques
    # ------------------------------------------------------------------

    def recompute_product_stats(self, product_id: IdLike, timeout: Optional[float] = None) -> RatingStats:
        """Recalcul explicite (réparation, backfill) ; NotFound si le produit n'existe pas"""
        product_uuid = parse_id(product_id, "produit")
        return self.aggregator.recompute(product_uuid, Deadline(timeout))

    # ------------------------------------------------------------------
    # Interne
    # ------------------------------------------------------------------

    @contextmanager
    def _storage(self, deadline: Deadline, operation: str):
        """Borne un accès au stockage par l'échéance de l'appelant, y compris le statement en cours"""
        deadline.check(operation)
        try:
            apply_statement_timeout(self.db, deadline.remaining())
            yield
        except OperationalError as exc:
            self.db.rollback()
            if is_statement_timeout(exc):
                raise OperationTimeout(f"Délai dépassé pendant: {operation}") from exc
            raise

    def _get_owned_review(self, review_id: UUID, user_id: UUID, deadline: Deadline, action: str) -> Review:
        with self._storage(deadline, "lecture de l'avis"):
            review = self.review_repo.get_review_by_id(review_id)
        if review is None:
            raise NotFound(f"Avis {review_id} introuvable")
        if review.user_id != user_id:
            raise Forbidden(f"Vous ne pouvez {action} que vos propres avis")
        return review

    def _increment(self, review_id: IdLike, counter: str, timeout: Optional[float]) -> None:
        deadline = Deadline(timeout)
        review_uuid = parse_id(review_id, "avis")
        with self._storage(deadline, f"incrément {counter}"):
            found = self.review_repo.increment_counter(review_uuid, counter)
        if not found:
            raise NotFound(f"Avis {review_uuid} introuvable")

    def _refresh_product_stats(self, product_id: UUID, deadline: Deadline) -> Optional[RatingStats]:
        """Recalcul après mutation : un échec est journalisé, jamais propagé"""
        try:
            return self.aggregator.recompute(product_id, deadline)
        except (AggregationFailure, NotFound, OperationTimeout) as e:
            logger.warning(f"Statistiques du produit {product_id} non recalculées: {e}")
            return None
