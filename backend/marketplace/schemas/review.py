from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class ReviewResponse(BaseModel):
    id: str
    job_id: str
    reviewer_id: str
    reviewee_id: str
    reviewer_type: str
    rating: int
    comment: str | None
    created_at: str
