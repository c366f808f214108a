# ===================================
# app/schemas/review.py
# ===================================
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt

from app.models.review import ReviewStatus


class ReviewCreate(BaseModel):
    product_id: str
    title: Optional[str] = Field(None, max_length=200)
    body: str = Field(max_length=5000)
    # Entier strict (true n'est pas 1) ; bornes vérifiées par le type Rating (erreur 400 dédiée)
    rating: StrictInt


class ReviewUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    body: str = Field(max_length=5000)
    rating: StrictInt


class ReviewModeration(BaseModel):
    status: ReviewStatus


class Review(BaseModel):
    id: UUID
    product_id: UUID
    user_id: UUID
    title: Optional[str] = None
    body: str
    rating: int
    status: ReviewStatus
    upvote_count: int
    downvote_count: int
    flag_count: int
    edited: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Review


class ReviewsListResponse(BaseModel):
    success: bool = True
    data: List[Review]
    total: int
    limit: int
    offset: int
    sort: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
