# ===================================
# app/api/v1/reviews.py
# ===================================
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query, status

from app.core.security import require_scope, require_admin
from app.api.deps import get_review_service, get_request_timeout
from app.models.review import ReviewSort
from app.services.review_service import ReviewService, clamp_page
from app.schemas.review import (
    Review,
    ReviewCreate,
    ReviewUpdate,
    ReviewModeration,
    ReviewResponse,
    ReviewsListResponse,
    MessageResponse,
)

router = APIRouter()


@router.get("/product/{product_id}", response_model=ReviewsListResponse)
def get_product_reviews(
    product_id: str,
    sort: Optional[str] = Query(None, description="Tri: recent, rating_desc, rating_asc, upvotes"),
    limit: Optional[int] = Query(None, description="Nombre d'avis à retourner"),
    offset: Optional[int] = Query(None, description="Nombre d'avis à ignorer"),
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout)
) -> Any:
    """Récupérer les avis publiés d'un produit"""
    limit, offset = clamp_page(limit, offset)
    reviews = review_service.get_reviews_by_product(
        product_id, sort=sort, limit=limit, offset=offset, timeout=timeout
    )
    total = review_service.count_reviews_by_product(product_id, timeout=timeout)

    return ReviewsListResponse(
        data=[Review.model_validate(review) for review in reviews],
        total=total,
        limit=limit,
        offset=offset,
        sort=ReviewSort.parse(sort).value
    )


@router.get("/user/{user_id}", response_model=ReviewsListResponse)
def get_user_reviews(
    user_id: str,
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout)
) -> Any:
    """Récupérer les avis d'un utilisateur"""
    limit, offset = clamp_page(limit, offset)
    reviews = review_service.get_reviews_by_user(user_id, limit=limit, offset=offset, timeout=timeout)
    total = review_service.count_reviews_by_user(user_id, timeout=timeout)

    return ReviewsListResponse(
        data=[Review.model_validate(review) for review in reviews],
        total=total,
        limit=limit,
        offset=offset
    )


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(
    review_id: str,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout)
) -> Any:
    """Récupérer un avis par ID"""
    review = review_service.get_review(review_id, timeout=timeout)
    return ReviewResponse(data=Review.model_validate(review))


@router.post("/", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    review_data: ReviewCreate,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_scope("reviews:write"))
) -> Any:
    """Créer un nouvel avis"""
    review = review_service.create_review(
        product_id=review_data.product_id,
        user_id=current_user.id,
        title=review_data.title,
        body=review_data.body,
        rating=review_data.rating,
        timeout=timeout
    )
    return ReviewResponse(
        message="Avis publié" if review.is_published else "Avis en attente de modération",
        data=Review.model_validate(review)
    )


@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: str,
    review_data: ReviewUpdate,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_scope("reviews:write"))
) -> Any:
    """Modifier son avis"""
    review = review_service.edit_review(
        review_id,
        current_user.id,
        title=review_data.title,
        body=review_data.body,
        rating=review_data.rating,
        timeout=timeout
    )
    return ReviewResponse(message="Avis modifié", data=Review.model_validate(review))


@router.delete("/{review_id}", response_model=MessageResponse)
def delete_review(
    review_id: str,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_scope("reviews:write"))
) -> Any:
    """Supprimer son avis"""
    review_service.delete_review(review_id, current_user.id, timeout=timeout)
    return MessageResponse(message="Avis supprimé")


@router.post("/{review_id}/upvote", response_model=MessageResponse)
def upvote_review(
    review_id: str,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_scope("reviews:write"))
) -> Any:
    review_service.upvote(review_id, timeout=timeout)
    return MessageResponse(message="Vote enregistré")


@router.post("/{review_id}/downvote", response_model=MessageResponse)
def downvote_review(
    review_id: str,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_scope("reviews:write"))
) -> Any:
    review_service.downvote(review_id, timeout=timeout)
    return MessageResponse(message="Vote enregistré")


@router.post("/{review_id}/flag", response_model=MessageResponse)
def flag_review(
    review_id: str,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_scope("reviews:write"))
) -> Any:
    """Signaler un avis à la modération"""
    review_service.flag(review_id, timeout=timeout)
    return MessageResponse(message="Signalement enregistré")


@router.put("/{review_id}/moderation", response_model=ReviewResponse)
def moderate_review(
    review_id: str,
    moderation: ReviewModeration,
    review_service: ReviewService = Depends(get_review_service),
    timeout: float = Depends(get_request_timeout),
    current_user=Depends(require_admin)
) -> Any:
    """Publier ou rejeter un avis (administration)"""
    review = review_service.moderate_review(review_id, moderation.status, timeout=timeout)
    return ReviewResponse(
        message=f"Avis {review.status.value}",
        data=Review.model_validate(review)
    )
