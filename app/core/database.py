# ===================================
# app/core/database.py
# ===================================
import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

# SQLSTATE PostgreSQL d'une requête annulée (statement_timeout)
QUERY_CANCELED_SQLSTATE = "57014"
UNIQUE_VIOLATION_SQLSTATE = "23505"


def _connect_args() -> dict:
    """Arguments DBAPI selon le dialecte"""
    if settings.is_sqlite:
        # Les sessions sont utilisées depuis le pool de threads de FastAPI
        return {"check_same_thread": False}
    if settings.DB_STATEMENT_TIMEOUT_MS:
        return {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}
    return {}


# Configuration du moteur SQLAlchemy
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,  # Log des requêtes SQL en mode debug
    connect_args=_connect_args(),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

Base = declarative_base()


def get_db() -> Generator:
    """
    Générateur de session de base de données pour l'injection de dépendance FastAPI
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Crée les tables (développement uniquement, Alembic ailleurs)
    """
    # Enregistre tous les modèles sur Base.metadata
    import app.models  # noqa: F401

    if not (settings.is_development or settings.is_sqlite):
        logger.info("Création des tables ignorée (utiliser les migrations Alembic)")
        return

    Base.metadata.create_all(bind=engine)
    logger.info("✓ Tables créées")


def check_db_connection() -> bool:
    """
    Vérifie la connexion à la base de données
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except OperationalError as e:
        logger.error(f"❌ Erreur de connexion DB: {e}")
        return False


def is_statement_timeout(exc: OperationalError) -> bool:
    """Vérifie si l'erreur provient d'un statement_timeout PostgreSQL"""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate == QUERY_CANCELED_SQLSTATE


def is_unique_violation(exc: IntegrityError) -> bool:
    """Vérifie si l'erreur d'intégrité provient d'un index d'unicité"""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    # SQLite ne fournit pas de SQLSTATE
    return "UNIQUE constraint failed" in str(orig)


def statement_timeout_ms(remaining: Optional[float]) -> Optional[int]:
    """
    statement_timeout à appliquer : le temps restant de l'échéance,
    plafonné par DB_STATEMENT_TIMEOUT_MS. None si aucune borne.
    """
    configured = settings.DB_STATEMENT_TIMEOUT_MS or None
    if remaining is None:
        return configured
    # 0 désactive le timeout côté PostgreSQL : au moins 1 ms
    bounded = max(1, int(remaining * 1000))
    return min(bounded, configured) if configured else bounded


def apply_statement_timeout(db: Session, remaining: Optional[float]) -> None:
    """
    Borne les statements de la transaction courante par l'échéance de l'appelant
    (SET LOCAL, PostgreSQL uniquement). Une annulation remonte en SQLSTATE 57014.
    """
    if remaining is None or db.get_bind().dialect.name != "postgresql":
        return
    timeout_ms = statement_timeout_ms(remaining)
    if timeout_ms is None:
        return
    db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
