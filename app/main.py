# ===================================
# app/main.py
# ===================================
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from app.core.config import settings
from app.core.database import init_db, check_db_connection
from app.core.exceptions import ReviewPlatformError
from app.core.scheduler import init_scheduler, shutdown_scheduler

# Import des routes
from app.api.v1 import auth, companies, products, reviews

# Configuration des logs
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def _error_response(status_code: int, message, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "code": status_code,
                "message": message,
                "type": error_type
            }
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestionnaire de cycle de vie de l'application"""
    # Démarrage
    logger.info(f"🚀 Démarrage de {settings.PROJECT_NAME}...")

    # Vérifier la connexion DB
    if not check_db_connection():
        logger.error("❌ Impossible de se connecter à la base de données")
        raise RuntimeError("Database connection failed")

    # Initialiser la base de données
    init_db()

    # Démarrer le scheduler si activé
    if settings.SCHEDULER_ENABLED:
        init_scheduler()

    logger.info("✅ Application démarrée avec succès")

    yield

    # Arrêt
    logger.info("⏹️ Arrêt de l'application...")
    shutdown_scheduler()


def create_app() -> FastAPI:
    """Factory pour créer l'application FastAPI"""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes API v1
    app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["Auth"])
    app.include_router(companies.router, prefix=f"{settings.API_V1_STR}/companies", tags=["Companies"])
    app.include_router(products.router, prefix=f"{settings.API_V1_STR}/products", tags=["Products"])
    app.include_router(reviews.router, prefix=f"{settings.API_V1_STR}/reviews", tags=["Reviews"])

    # Route de santé
    @app.get("/health")
    async def health_check():
        """Vérification de la santé de l'API"""
        db_status = "ok" if check_db_connection() else "error"

        return {
            "status": "ok" if db_status == "ok" else "error",
            "version": settings.PROJECT_VERSION,
            "environment": settings.ENVIRONMENT,
            "database": db_status,
            "scheduler": "ok" if settings.SCHEDULER_ENABLED else "disabled"
        }

    # Route racine
    @app.get("/")
    async def root():
        return {
            "message": f"Bienvenue sur {settings.PROJECT_NAME}",
            "version": settings.PROJECT_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    # Gestion globale des erreurs
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error_response(exc.status_code, exc.detail, "http_error")

    @app.exception_handler(ReviewPlatformError)
    async def platform_exception_handler(request: Request, exc: ReviewPlatformError):
        if exc.status_code >= 500:
            logger.error(f"Erreur métier {exc.error_type}: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.error_type)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Erreur non gérée: {exc}", exc_info=True)
        return _error_response(500, "Erreur interne du serveur", "internal_error")

    return app


# Créer l'instance de l'application
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
