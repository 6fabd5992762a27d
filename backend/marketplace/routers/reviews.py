from fastapi import APIRouter, Depends

from marketplace.context import MarketplaceContext
from marketplace.dependencies import get_context, require_user
from marketplace.models.review import Review
from marketplace.models.user import User
from marketplace.schemas.review import ReviewCreate, ReviewResponse
from marketplace.services import review_service

router = APIRouter(tags=["reviews"], dependencies=[Depends(require_user)])


def _review_to_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        job_id=review.job_id,
        reviewer_id=review.reviewer_id,
        reviewee_id=review.reviewee_id,
        reviewer_type=review.reviewer_type,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
    )


@router.post("/jobs/{job_id}/reviews", response_model=ReviewResponse, status_code=201)
async def create_review(
    job_id: str, req: ReviewCreate,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _review_to_response(review_service.create_review(ctx, job_id, user.id, req))


@router.get("/users/{user_id}/reviews", response_model=list[ReviewResponse])
async def list_reviews(user_id: str, ctx: MarketplaceContext = Depends(get_context)):
    return [_review_to_response(r) for r in review_service.list_reviews(ctx, user_id)]
