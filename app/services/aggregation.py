# ===================================
# app/services/aggregation.py
# ===================================
"""
Moteur d'agrégation des notes produit.

Les statistiques d'un produit (note moyenne, nombre d'avis) sont un cache
dérivé des avis actifs et publiés. Elles sont toujours reconstruites
entièrement à partir de l'ensemble courant, jamais patchées par delta.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import apply_statement_timeout, is_statement_timeout
from app.core.deadline import Deadline
from app.core.exceptions import AggregationFailure, NotFound, OperationTimeout, ReviewPlatformError
from app.repositories.product_repo import ProductRepository
from app.repositories.review_repo import ReviewRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingStats:
    avg_rating: Optional[float]
    total_reviews: int


def compute_rating_stats(ratings: Iterable[int]) -> RatingStats:
    """Moyenne arithmétique et nombre de notes ; moyenne None si aucune note"""
    ratings = [int(r) for r in ratings]
    if not ratings:
        return RatingStats(avg_rating=None, total_reviews=0)
    return RatingStats(avg_rating=sum(ratings) / len(ratings), total_reviews=len(ratings))


class RatingAggregator:
    """Recalcul et écriture des statistiques dénormalisées d'un produit"""

    def __init__(self, db: Session):
        self.db = db
        self.product_repo = ProductRepository(db)
        self.review_repo = ReviewRepository(db)

    def recompute(self, product_id: UUID, deadline: Optional[Deadline] = None) -> RatingStats:
        """
        Recalculer les statistiques d'un produit dans une seule transaction.

        La ligne produit est verrouillée avant la lecture des avis : deux recalculs
        concurrents du même produit s'exécutent l'un après l'autre, et le dernier
        lit l'état validé le plus récent.

        Lève NotFound si le produit n'existe pas, AggregationFailure si le stockage échoue.
        """
        deadline = deadline or Deadline.none()
        deadline.check("recalcul des statistiques")

        try:
            apply_statement_timeout(self.db, deadline.remaining())
            product = self.product_repo.lock_product(product_id)
            if product is None:
                raise NotFound(f"Produit {product_id} introuvable")

            ratings = self.review_repo.get_live_published_ratings(product_id)
            stats = compute_rating_stats(ratings)

            deadline.check("écriture des statistiques")
            self.product_repo.set_product_stats(
                product,
                avg_rating=stats.avg_rating,
                total_reviews=stats.total_reviews,
                computed_at=datetime.now(timezone.utc),
            )
            self.db.commit()
        except ReviewPlatformError:
            self.db.rollback()
            raise
        except OperationalError as exc:
            self.db.rollback()
            if is_statement_timeout(exc):
                raise OperationTimeout(f"Recalcul du produit {product_id} interrompu") from exc
            raise AggregationFailure(product_id, exc) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise AggregationFailure(product_id, exc) from exc

        logger.debug(
            f"Statistiques produit {product_id}: moyenne={stats.avg_rating} avis={stats.total_reviews}"
        )
        return stats

    def recompute_all(self) -> int:
        """
        Recalcul complet de tous les produits (backfill/réparation).
        Un échec sur un produit est journalisé et n'interrompt pas le balayage.
        """
        recomputed = 0
        for product_id in self.product_repo.get_all_product_ids():
            try:
                self.recompute(product_id)
                recomputed += 1
            except (AggregationFailure, NotFound) as e:
                logger.warning(f"Backfill: produit {product_id} ignoré ({e})")

        logger.info(f"Backfill statistiques: {recomputed} produits recalculés")
        return recomputed
