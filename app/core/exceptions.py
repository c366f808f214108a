# ===================================
# app/core/exceptions.py
# ===================================
"""
Erreurs métier de la plateforme d'avis.

Les services lèvent ces exceptions ; la couche HTTP les traduit en codes de
statut via un unique gestionnaire enregistré dans app/main.py.
"""

from fastapi import status


class ReviewPlatformError(Exception):
    """Erreur métier de base"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "platform_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ReviewPlatformError):
    """Identifiant mal formé, note hors bornes, corps vide..."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "invalid_input"


class InvalidRating(InvalidInput):
    error_type = "invalid_rating"


class NotFound(ReviewPlatformError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"


class Duplicate(ReviewPlatformError):
    """Un avis actif existe déjà pour ce couple (produit, utilisateur)"""

    status_code = status.HTTP_409_CONFLICT
    error_type = "duplicate"


class Forbidden(ReviewPlatformError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "forbidden"


class OperationTimeout(ReviewPlatformError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_type = "timeout"


class AggregationFailure(ReviewPlatformError):
    """
    Échec du recalcul des statistiques d'un produit.
    Jamais renvoyé au client : le service le journalise en avertissement.
    """

    error_type = "aggregation_failure"

    def __init__(self, product_id, cause: Exception):
        super().__init__(f"Recalcul des statistiques du produit {product_id} impossible: {cause}")
        self.product_id = product_id
        self.cause = cause
