from apscheduler.schedulers.background import BackgroundScheduler

from app.core import scheduler as scheduler_module
from app.core.config import settings
from app.repositories.product_repo import ProductRepository
from app.services.review_service import ReviewService


def test_periodic_backfill_job_is_registered():
    target = BackgroundScheduler(timezone="UTC")
    scheduler_module.add_periodic_jobs(target)

    job = target.get_job("recompute_product_stats")
    assert job is not None
    assert job.func is scheduler_module.recompute_product_stats_job
    assert job.trigger.interval.total_seconds() == settings.STATS_BACKFILL_INTERVAL_MINUTES * 60


def test_scheduler_disabled_by_configuration():
    assert settings.SCHEDULER_ENABLED is False
    assert scheduler_module.init_scheduler() is None


def test_backfill_job_repairs_stats(db, product, user):
    ReviewService(db).create_review(product.id, user.id, None, "Bien", 2)
    drifted = ProductRepository(db).get_product_by_id(product.id)
    drifted.avg_rating = None
    drifted.total_reviews = 0
    db.commit()

    assert scheduler_module.recompute_product_stats_job() == 1

    db.expire_all()
    repaired = ProductRepository(db).get_product_by_id(product.id)
    assert (repaired.avg_rating, repaired.total_reviews) == (2.0, 1)
