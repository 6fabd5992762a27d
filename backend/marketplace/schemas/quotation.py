from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class QuotationCreate(BaseModel):
    total_price: float = Field(gt=0)
    description: str = Field(min_length=10)
    valid_until: datetime
    estimated_hours: int | None = Field(None, ge=1)
    estimated_start_date: str | None = None
    estimated_completion_date: str | None = None
    terms_and_conditions: str | None = None
    includes_materials: bool = False
    materials_description: str | None = None
    materials_cost: float = Field(0, ge=0)
    professional_notes: str | None = None


class QuotationDecision(BaseModel):
    decision: Literal["accept", "reject"]
    feedback: str | None = Field(None, max_length=1000)


class QuotationResponse(BaseModel):
    id: str
    job_id: str
    professional_id: str
    total_price: float
    price_currency: str
    description: str
    estimated_hours: int | None
    estimated_start_date: str | None
    estimated_completion_date: str | None
    status: str
    valid_until: str
    includes_materials: bool
    materials_description: str | None
    materials_cost: float
    terms_and_conditions: str | None
    professional_notes: str | None
    client_feedback: str | None
    responded_at: str | None
    created_at: str


class DecisionResponse(BaseModel):
    job_id: str
    job_status: str
    quotation: QuotationResponse
