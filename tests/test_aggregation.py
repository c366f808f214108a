import uuid

import pytest

from app.core.deadline import Deadline
from app.core.exceptions import NotFound, OperationTimeout
from app.repositories.product_repo import ProductRepository
from app.services.aggregation import RatingAggregator, RatingStats, compute_rating_stats
from app.services.review_service import ReviewService


def test_compute_rating_stats_empty_is_null_not_zero():
    stats = compute_rating_stats([])
    assert stats == RatingStats(avg_rating=None, total_reviews=0)


def test_compute_rating_stats_mean():
    assert compute_rating_stats([5, 3, 4]) == RatingStats(avg_rating=4.0, total_reviews=3)
    assert compute_rating_stats([5, 4]).avg_rating == 4.5
    # Moyenne non arrondie
    assert compute_rating_stats([5, 4, 4]).avg_rating == pytest.approx(13 / 3)


def _stored_stats(db, product_id):
    db.expire_all()
    product = ProductRepository(db).get_product_by_id(product_id)
    return product.avg_rating, product.total_reviews


def test_new_product_has_no_rating(db, product):
    assert _stored_stats(db, product.id) == (None, 0)


def test_ratings_scenario_then_soft_delete(db, product, make_user):
    service = ReviewService(db)
    authors = [make_user() for _ in range(3)]
    reviews = [
        service.create_review(product.id, author.id, None, "Très bon produit", rating)
        for author, rating in zip(authors, [5, 3, 4])
    ]

    assert _stored_stats(db, product.id) == (4.0, 3)

    # Suppression de l'avis noté 3
    service.delete_review(reviews[1].id, authors[1].id)
    assert _stored_stats(db, product.id) == (4.5, 2)


def test_recompute_is_idempotent(db, product, user, other_user):
    service = ReviewService(db)
    service.create_review(product.id, user.id, None, "Correct", 2)
    service.create_review(product.id, other_user.id, None, "Excellent", 5)

    first = service.recompute_product_stats(product.id)
    stored_first = _stored_stats(db, product.id)
    second = service.recompute_product_stats(product.id)

    assert first == second == RatingStats(avg_rating=3.5, total_reviews=2)
    assert _stored_stats(db, product.id) == stored_first


def test_recompute_repairs_drifted_stats(db, product, user):
    service = ReviewService(db)
    service.create_review(product.id, user.id, None, "Bien", 4)

    repo = ProductRepository(db)
    drifted = repo.get_product_by_id(product.id)
    drifted.avg_rating = 1.0
    drifted.total_reviews = 42
    db.commit()

    RatingAggregator(db).recompute(product.id)
    assert _stored_stats(db, product.id) == (4.0, 1)


def test_recompute_unknown_product_is_not_found(db):
    with pytest.raises(NotFound):
        RatingAggregator(db).recompute(uuid.uuid4())


def test_recompute_with_expired_deadline(db, product):
    with pytest.raises(OperationTimeout):
        RatingAggregator(db).recompute(product.id, Deadline(0))


def test_recompute_all(db, make_product, user):
    first = make_product()
    second = make_product()
    ReviewService(db).create_review(first.id, user.id, None, "Solide", 3)

    # Dérive volontaire sur le second produit
    drifted = ProductRepository(db).get_product_by_id(second.id)
    drifted.total_reviews = 7
    db.commit()

    assert RatingAggregator(db).recompute_all() == 2
    assert _stored_stats(db, first.id) == (3.0, 1)
    assert _stored_stats(db, second.id) == (None, 0)
