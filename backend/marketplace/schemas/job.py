from typing import Literal

from pydantic import BaseModel, Field, model_validator


class JobCreate(BaseModel):
    title: str = Field(min_length=3, max_length=120)
    description: str = Field(min_length=10)
    service_id: str | None = None
    work_address: str = Field(min_length=3)
    work_latitude: float | None = Field(None, ge=-90, le=90)
    work_longitude: float | None = Field(None, ge=-180, le=180)
    work_city: str | None = None
    urgency: Literal["normal", "urgent", "emergency"] = "normal"
    preferred_date: str | None = None
    preferred_time: str | None = None
    flexible_schedule: bool = True
    budget_min: float | None = Field(None, ge=0)
    budget_max: float | None = Field(None, ge=0)
    client_notes: str | None = None

    @model_validator(mode="after")
    def _budget_order(self):
        if self.budget_min is not None and self.budget_max is not None and self.budget_min > self.budget_max:
            raise ValueError("budget_min must not exceed budget_max")
        return self


class JobUpdate(BaseModel):
    title: str | None = Field(None, min_length=3, max_length=120)
    description: str | None = Field(None, min_length=10)
    service_id: str | None = None
    work_address: str | None = None
    work_latitude: float | None = Field(None, ge=-90, le=90)
    work_longitude: float | None = Field(None, ge=-180, le=180)
    work_city: str | None = None
    urgency: Literal["normal", "urgent", "emergency"] | None = None
    preferred_date: str | None = None
    preferred_time: str | None = None
    flexible_schedule: bool | None = None
    budget_min: float | None = Field(None, ge=0)
    budget_max: float | None = Field(None, ge=0)
    client_notes: str | None = None


class TransitionRequest(BaseModel):
    event: str
    reason: str | None = None
    notes: str | None = None
    payment_method: str | None = None


class ReasonRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class JobResponse(BaseModel):
    id: str
    job_number: str
    client_id: str
    professional_id: str | None
    service_id: str | None
    title: str
    description: str
    work_address: str
    work_latitude: float | None
    work_longitude: float | None
    work_city: str | None
    urgency: str
    preferred_date: str | None
    preferred_time: str | None
    flexible_schedule: bool
    status: str
    budget_min: float | None
    budget_max: float | None
    final_price: float | None
    price_currency: str
    published_at: str | None
    assigned_at: str | None
    started_at: str | None
    completed_at: str | None
    delivered_at: str | None
    cancelled_at: str | None
    cancellation_reason: str | None
    disputed_at: str | None
    dispute_reason: str | None
    created_at: str
    updated_at: str
    quotation_count: int = 0
    allowed_events: list[str] = []


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    total: int
    page: int
    per_page: int


class StatusChangeResponse(BaseModel):
    id: str
    job_id: str
    event: str
    from_status: str
    to_status: str
    actor_id: str | None
    notes: str | None
    occurred_at: str
