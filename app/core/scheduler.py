# ===================================
# Fichier: app/core/scheduler.py
# ===================================
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

scheduler = None


def init_scheduler():
    """Initialiser APScheduler"""
    global scheduler

    if not settings.SCHEDULER_ENABLED:
        return None

    executors = {
        'default': ThreadPoolExecutor(2),
    }

    job_defaults = {
        'coalesce': True,
        'max_instances': 1
    }

    scheduler = BackgroundScheduler(
        executors=executors,
        job_defaults=job_defaults,
        timezone='UTC'
    )

    # Ajouter les jobs périodiques
    add_periodic_jobs(scheduler)

    scheduler.start()
    logger.info("✓ APScheduler démarré")
    return scheduler


def add_periodic_jobs(target):
    """Ajouter les tâches périodiques"""
    # Recalcul complet des statistiques produits (filet de sécurité contre la dérive)
    target.add_job(
        func=recompute_product_stats_job,
        trigger='interval',
        minutes=settings.STATS_BACKFILL_INTERVAL_MINUTES,
        id='recompute_product_stats',
        replace_existing=True,
    )


def recompute_product_stats_job() -> int:
    """Job de recalcul des statistiques de tous les produits"""
    from app.core.database import SessionLocal
    from app.services.aggregation import RatingAggregator

    try:
        with SessionLocal() as db:
            return RatingAggregator(db).recompute_all()
    except Exception as e:
        logger.error(f"Erreur recalcul statistiques: {e}", exc_info=True)
        return 0


def shutdown_scheduler():
    """Arrêter le scheduler"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
