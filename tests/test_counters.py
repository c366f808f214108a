import threading
import uuid

import pytest

from app.core.database import SessionLocal
from app.core.exceptions import NotFound
from app.repositories.review_repo import ReviewRepository
from app.services.review_service import ReviewService


def _reload(db, review_id):
    db.expire_all()
    return ReviewRepository(db).get_review_by_id(review_id, live_only=False)


def test_counters_increment_independently(db, product, user):
    service = ReviewService(db)
    review = service.create_review(product.id, user.id, None, "Bien", 4)

    service.upvote(review.id)
    service.upvote(review.id)
    service.downvote(review.id)
    service.flag(review.id)

    stored = _reload(db, review.id)
    assert (stored.upvote_count, stored.downvote_count, stored.flag_count) == (2, 1, 1)


def test_counters_do_not_touch_updated_at_or_stats(db, product, user):
    service = ReviewService(db)
    review = service.create_review(product.id, user.id, None, "Bien", 4)
    before = _reload(db, review.id).updated_at

    service.upvote(review.id)
    service.flag(review.id)

    stored = _reload(db, review.id)
    assert stored.updated_at == before
    assert stored.edited is False


def test_counter_on_unknown_or_deleted_review(db, product, user):
    service = ReviewService(db)
    with pytest.raises(NotFound):
        service.upvote(uuid.uuid4())

    review = service.create_review(product.id, user.id, None, "Bien", 4)
    service.delete_review(review.id, user.id)
    with pytest.raises(NotFound):
        service.downvote(review.id)
    assert _reload(db, review.id).downvote_count == 0


def test_concurrent_upvotes_are_not_lost(db, product, user):
    review = ReviewService(db).create_review(product.id, user.id, None, "Bien", 4)
    threads_count, votes_per_thread = 8, 5
    errors = []

    def vote():
        # Une session par thread, comme une requête par worker
        with SessionLocal() as session:
            service = ReviewService(session)
            try:
                for _ in range(votes_per_thread):
                    service.upvote(review.id)
            except Exception as exc:
                errors.append(exc)

    threads = [threading.Thread(target=vote) for _ in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert _reload(db, review.id).upvote_count == threads_count * votes_per_thread
